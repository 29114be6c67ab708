# FILE: app/services/kv_store.py
from __future__ import annotations

import copy
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import ReportStoreError
from app.models.kv_entry import KeyValueEntry

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Read/write JSON documents by key."""

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Process-local store. Values are deep-copied in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SqlKeyValueStore:
    """kv_entries table; commits on every write."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[Any]:
        try:
            row = self.db.get(KeyValueEntry, key)
        except SQLAlchemyError as e:
            logger.exception("kv read failed: %s", key)
            raise ReportStoreError() from e
        return copy.deepcopy(row.value) if row else None

    def set(self, key: str, value: Any) -> None:
        try:
            row = self.db.get(KeyValueEntry, key)
            if row is None:
                row = KeyValueEntry(key=key)
                self.db.add(row)
            row.value = copy.deepcopy(value)
            row.updated_at = datetime.utcnow()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("kv write failed: %s", key)
            raise ReportStoreError() from e

    def delete(self, key: str) -> None:
        try:
            row = self.db.get(KeyValueEntry, key)
            if row is not None:
                self.db.delete(row)
                self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("kv delete failed: %s", key)
            raise ReportStoreError() from e
