# app/db/init_db.py
from __future__ import annotations

import argparse
import logging

from sqlalchemy.engine import Engine

from app.db.base import Base
from app.db.session import engine as default_engine

# Import all models so metadata is complete
from app.models import KeyValueEntry, LabReport, ReportRecord  # noqa: F401

logger = logging.getLogger(__name__)


def init_db(engine: Engine | None = None) -> None:
    eng = engine or default_engine
    Base.metadata.create_all(bind=eng)
    logger.info("Tables ready: %s", sorted(Base.metadata.tables))


def main() -> None:
    parser = argparse.ArgumentParser(description="Create report tables")
    parser.parse_args()
    logging.basicConfig(level=logging.INFO)
    init_db()


if __name__ == "__main__":
    main()
