# FILE: app/schemas/report.py
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

LabReportStatus = Literal["draft", "completed", "printed"]


class _Camel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---- Report snapshot (public share / QR) ----
class PatientSnapshot(_Camel):
    id: str = ""
    name: str = ""
    age: Optional[Union[int, str]] = None
    gender: str = ""


class ParameterValue(_Camel):
    # results arrive as JSON numbers from some analyzers
    model_config = ConfigDict(coerce_numbers_to_str=True)

    value: str = ""


class TestFieldConfig(_Camel):
    id: str
    label: str
    unit: Optional[str] = None
    ref_range: Optional[str] = None


class TestConfig(_Camel):
    fields: List[TestFieldConfig] = Field(default_factory=list)


class ReportSnapshotIn(_Camel):
    # identifying fields are checked by the service (400, not 422)
    patient_id: Optional[str] = None
    test_id: Optional[str] = None
    test_name: str = ""
    hospital_id: Optional[str] = None
    patient: PatientSnapshot = Field(default_factory=PatientSnapshot)
    parameters: Dict[str, ParameterValue] = Field(default_factory=dict)
    test_config: TestConfig = Field(default_factory=TestConfig)
    referred_by: Optional[str] = None
    collected_at: Optional[datetime] = None
    reported_at: Optional[datetime] = None
    # false -> open record until its first fetch provisions a token
    issue_token: bool = True


class IssuedReportOut(_Camel):
    report_id: str
    token: Optional[str] = None
    url: str


# ---- Lab report workflow ----
class LabReportParameterIn(_Camel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: Optional[str] = None
    label: Optional[str] = None
    value: Optional[str] = None
    unit: Optional[str] = None
    ref_range: Optional[str] = None
    is_abnormal: Optional[bool] = None
    notes: Optional[str] = None


class LabReportCreate(_Camel):
    patient_id: Optional[str] = None
    patient_name: str = ""
    patient_age: Optional[Union[int, str]] = None
    patient_gender: Optional[str] = None
    referred_by: Optional[str] = None
    test_id: Optional[str] = None
    test_name: str = ""
    hospital_id: Optional[str] = None
    parameters: Optional[List[LabReportParameterIn]] = None
    collected_at: Optional[datetime] = None
    reported_at: Optional[datetime] = None
    collected_by: Optional[str] = None
    technician_name: Optional[str] = None
    status: Optional[LabReportStatus] = None


class LabReportStatusIn(_Camel):
    status: LabReportStatus


class FinalizedReportOut(_Camel):
    lab_report_id: str
    report_id: str
    token: Optional[str] = None
    url: str
    verify_url: str
