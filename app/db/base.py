# app/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Report records, lab reports and key/value entries inherit from this."""
    pass
