# app/api/deps.py
from __future__ import annotations

from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.services.field_resolver import HospitalProfileStore
from app.services.kv_store import KeyValueStore, SqlKeyValueStore
from app.services.letterhead_store import LetterheadStore


# =========================================================
# DB (per request)
# =========================================================
def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =========================================================
# Key/value backed stores
# =========================================================
def get_kv_store(db: Session = Depends(get_db)) -> KeyValueStore:
    return SqlKeyValueStore(db)


def get_letterhead_store(
        store: KeyValueStore = Depends(get_kv_store)) -> LetterheadStore:
    return LetterheadStore(store)


def get_profile_store(
        store: KeyValueStore = Depends(get_kv_store)) -> HospitalProfileStore:
    return HospitalProfileStore(store)
