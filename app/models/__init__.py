# app/models/__init__.py
from .kv_entry import KeyValueEntry
from .report import LabReport, ReportRecord

__all__ = [
    "KeyValueEntry",
    "LabReport",
    "ReportRecord",
]
