# app/models/kv_entry.py
from datetime import datetime

from sqlalchemy import Column, DateTime, String
from sqlalchemy.types import JSON

from app.db.base import Base


class KeyValueEntry(Base):
    """
    Small JSON documents addressed by key: letterhead templates,
    hospital profiles. Backs SqlKeyValueStore.
    """

    __tablename__ = "kv_entries"

    key = Column(String(191), primary_key=True)
    value = Column(JSON, nullable=True)

    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow)
