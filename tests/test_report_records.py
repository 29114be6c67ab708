"""
Report record snapshots: creation, token checks and lazy provisioning of
verification identifiers.
"""
import pytest

from app.core.errors import ReportForbidden, ReportValidationError
from app.models.report import ReportRecord
from app.schemas.report import ReportSnapshotIn
from app.services.report_records import (age_text, check_token,
                                         create_report_record,
                                         ensure_verification_identifiers,
                                         get_report_record,
                                         get_report_record_by_qr_id,
                                         record_to_dict, record_to_document,
                                         snapshot_parameters)


def _make_record(db, payload, **overrides):
    snap = ReportSnapshotIn.model_validate({**payload, **overrides})
    issued = create_report_record(db, snap)
    return issued, get_report_record(db, issued.report_id)


class TestCreate:

    def test_issues_token_by_default(self, db, cbc_snapshot):
        issued, rec = _make_record(db, cbc_snapshot)
        assert issued.token
        assert rec.token == issued.token
        assert rec.qr_id is None
        assert rec.patient["name"] == "John Doe"
        assert rec.parameters == {"hb": {"value": "14.5"}}

    def test_open_record(self, db, cbc_snapshot):
        issued, rec = _make_record(db, cbc_snapshot, issueToken=False)
        assert issued.token is None
        assert rec.token is None

    @pytest.mark.parametrize("field,msg", [
        ("patientId", "Missing patientId"),
        ("testId", "Missing testId"),
    ])
    def test_identifying_fields_required(self, db, cbc_snapshot, field, msg):
        with pytest.raises(ReportValidationError) as ei:
            _make_record(db, cbc_snapshot, **{field: "  "})
        assert ei.value.public_msg == msg

    def test_unknown_ids(self, db):
        assert get_report_record(db, "nope") is None
        assert get_report_record_by_qr_id(db, "nope") is None


class TestCheckToken:

    def _make(self, token):
        return ReportRecord(report_id="R1", patient_id="P", test_id="T",
                            token=token)

    def test_exact_match(self):
        check_token(self._make("secret"), "secret")

    @pytest.mark.parametrize("supplied", [None, "", "Secret", "secret "])
    def test_mismatch(self, supplied):
        with pytest.raises(ReportForbidden):
            check_token(self._make("secret"), supplied)

    @pytest.mark.parametrize("supplied", [None, "", "anything"])
    def test_open_record_accepts_anything(self, supplied):
        check_token(self._make(None), supplied)


class TestEnsureIdentifiers:

    def test_provisions_missing_values(self, db, cbc_snapshot):
        _, rec = _make_record(db, cbc_snapshot, issueToken=False)
        rec = ensure_verification_identifiers(db, rec)
        assert rec.token and rec.qr_id
        assert get_report_record_by_qr_id(db, rec.qr_id).report_id == (
            rec.report_id)

    def test_keeps_existing_token(self, db, cbc_snapshot):
        issued, rec = _make_record(db, cbc_snapshot)
        rec = ensure_verification_identifiers(db, rec)
        assert rec.token == issued.token

    def test_idempotent(self, db, cbc_snapshot):
        _, rec = _make_record(db, cbc_snapshot)
        first = ensure_verification_identifiers(db, rec)
        token, qr_id = first.token, first.qr_id
        again = ensure_verification_identifiers(db, first)
        assert (again.token, again.qr_id) == (token, qr_id)

    def test_concurrent_first_reads_converge(self, session_factory,
                                             cbc_snapshot):
        setup = session_factory()
        issued, _ = _make_record(setup, cbc_snapshot, issueToken=False)
        setup.close()

        a, b = session_factory(), session_factory()
        try:
            rec_a = get_report_record(a, issued.report_id)
            rec_b = get_report_record(b, issued.report_id)
            assert rec_a.qr_id is None and rec_b.qr_id is None

            rec_a = ensure_verification_identifiers(a, rec_a)
            rec_b = ensure_verification_identifiers(b, rec_b)
            assert rec_b.token == rec_a.token
            assert rec_b.qr_id == rec_a.qr_id
        finally:
            a.close()
            b.close()


class TestRendering:

    def test_parameters_follow_field_order(self, db, cbc_snapshot):
        payload = dict(cbc_snapshot)
        payload["parameters"] = {
            "wbc": {"value": "7000"},
            "hb": {"value": "14.5"},
            "extra": {"value": "x"},
        }
        payload["testConfig"] = {"fields": [
            {"id": "hb", "label": "Hemoglobin"},
            {"id": "wbc", "label": "WBC", "unit": "/uL"},
        ]}
        _, rec = _make_record(db, payload)
        params = snapshot_parameters(rec)
        assert [p["label"] for p in params] == ["Hemoglobin", "WBC", "extra"]
        assert params[1]["unit"] == "/uL"

    def test_document_fields(self, db, cbc_snapshot):
        _, rec = _make_record(db, cbc_snapshot)
        doc = record_to_document(rec, verification_url="https://x/verify")
        assert doc.patient_name == "John Doe"
        assert doc.patient_age == "30 Years"
        assert doc.referred_by == "Self"
        assert doc.test_name == "Complete Blood Count"
        assert doc.reported_at == rec.created_at
        assert [r.value for r in doc.rows] == ["14.5"]
        assert doc.verification_url == "https://x/verify"

    def test_dict_never_contains_token(self, db, cbc_snapshot):
        issued, rec = _make_record(db, cbc_snapshot)
        out = record_to_dict(rec)
        assert "token" not in out
        assert issued.token not in str(out)
        assert out["hasToken"] is True

    @pytest.mark.parametrize("age,expected", [
        (30, "30 Years"),
        ("4.5", "4.5 Years"),
        ("6 Months", "6 Months"),
        (None, ""),
        ("", ""),
    ])
    def test_age_text(self, age, expected):
        assert age_text(age) == expected
