# FILE: app/models/report.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Index, String
from sqlalchemy.types import JSON

from app.db.base import Base


class ReportRecord(Base):
    """
    Immutable snapshot of a finalized lab report.

    `token` gates public reads when present. `qr_id` is the identifier embedded
    in the QR code and is never derived from `report_id`; both are provisioned
    lazily on first fetch if missing.
    """
    __tablename__ = "report_records"
    __table_args__ = (
        Index("ix_report_records_patient_test", "patient_id", "test_id"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
            "mysql_collate": "utf8mb4_unicode_ci",
        },
    )

    report_id = Column(String(64), primary_key=True)

    patient_id = Column(String(64), nullable=False, index=True)
    test_id = Column(String(64), nullable=False)
    test_name = Column(String(255), nullable=False, default="")
    hospital_id = Column(String(64), nullable=True, index=True)

    # {id, name, age, gender}
    patient = Column(JSON, nullable=False, default=dict)
    # {fieldId: {value}}
    parameters = Column(JSON, nullable=False, default=dict)
    # {fields: [{id, label, unit?, refRange?}]}
    test_config = Column(JSON, nullable=False, default=dict)

    referred_by = Column(String(255), nullable=True)
    collected_at = Column(DateTime, nullable=True)
    reported_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    token = Column(String(128), nullable=True)
    qr_id = Column(String(64), nullable=True, unique=True, index=True)


class LabReport(Base):
    """
    Working lab report (draft -> completed -> printed).
    Finalizing it produces a ReportRecord snapshot linked via `report_id`.
    """
    __tablename__ = "lab_reports"
    __table_args__ = (
        Index("ix_lab_reports_patient_created", "patient_id", "created_at"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
            "mysql_collate": "utf8mb4_unicode_ci",
        },
    )

    id = Column(String(64), primary_key=True)

    patient_id = Column(String(64), nullable=False, index=True)
    patient_name = Column(String(255), nullable=False, default="")
    patient_age = Column(String(32), nullable=False, default="0")
    patient_gender = Column(String(32), nullable=False, default="Unknown")
    referred_by = Column(String(255), nullable=True)

    test_id = Column(String(64), nullable=False)
    test_name = Column(String(255), nullable=False, default="")
    hospital_id = Column(String(64), nullable=True, index=True)

    # [{id, label, value, unit, refRange, isAbnormal, notes}]
    parameters = Column(JSON, nullable=False, default=list)

    collected_at = Column(DateTime, nullable=True)
    reported_at = Column(DateTime, nullable=True)
    collected_by = Column(String(255), nullable=False, default="System")
    technician_name = Column(String(255), nullable=False, default="System")

    status = Column(String(20), nullable=False,
                    default="draft")  # draft | completed | printed

    report_id = Column(String(64), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)
