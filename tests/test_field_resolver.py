"""
Hospital profile normalization and field placeholder resolution.
"""
from app.schemas.letterhead import FieldKey, LetterheadTemplate
from app.services.field_resolver import (DEFAULT_HOSPITAL, HospitalProfile,
                                         HospitalProfileStore,
                                         hospital_from_record, resolve_field,
                                         resolve_fields)
from app.services.kv_store import InMemoryKeyValueStore


def _make_template(elements):
    return LetterheadTemplate.model_validate({
        "id": "tpl_1",
        "name": "T",
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-01-01T00:00:00Z",
        "elements": elements,
    })


class TestHospitalFromRecord:

    def test_admin_console_shape(self):
        prof = hospital_from_record({
            "displayName": "City Care",
            "address": {
                "street": "12 MG Road",
                "city": "Coimbatore",
                "state": "TN",
                "pincode": "641001",
            },
            "phoneNumbers": ["+91 98765 43210", "0422 123456"],
            "email": "lab@citycare.test",
            "gstNumber": "33ABCDE1234F1Z5",
            "registrationNumber": "REG-77",
            "logoUrl": "https://cdn.test/logo.png",
            "settings": {"footerNote": "Open 24x7"},
        })
        assert prof.name == "City Care"
        assert prof.address == "12 MG Road, Coimbatore, TN, 641001"
        assert prof.phone == "+91 98765 43210"
        assert prof.gstin == "33ABCDE1234F1Z5"
        assert prof.registration == "REG-77"
        assert prof.logo == "https://cdn.test/logo.png"
        assert prof.footer_note == "Open 24x7"

    def test_flat_shape(self):
        prof = hospital_from_record({"name": "Plain", "phone": "123",
                                     "gstin": "G1", "footer_note": "Bye"})
        assert (prof.name, prof.phone, prof.gstin, prof.footer_note) == (
            "Plain", "123", "G1", "Bye")

    def test_empty_gives_default(self):
        assert hospital_from_record(None) == DEFAULT_HOSPITAL
        assert hospital_from_record({}) == DEFAULT_HOSPITAL


class TestResolve:

    def test_known_value(self):
        prof = HospitalProfile(name="City Care")
        assert resolve_field(FieldKey.name, prof) == "City Care"
        assert resolve_field("name", prof) == "City Care"

    def test_missing_value_shows_placeholder(self):
        assert resolve_field(FieldKey.gstin, HospitalProfile()) == "[gstin]"

    def test_unknown_key_shows_placeholder(self):
        assert resolve_field("fax", HospitalProfile(name="x")) == "[fax]"

    def test_resolve_fields_with_label(self):
        tpl = _make_template([
            {"id": "n", "type": "field", "field": "name"},
            {"id": "g", "type": "field", "field": "gstin", "label": "GSTIN:"},
            {"id": "t", "type": "text", "text": "ignored"},
        ])
        out = resolve_fields(tpl, HospitalProfile(name="City Care",
                                                  gstin="G1"))
        assert out == {"n": "City Care", "g": "GSTIN: G1"}


class TestProfileStore:

    def test_round_trip(self):
        store = HospitalProfileStore(InMemoryKeyValueStore())
        assert store.get("H1") is None
        assert store.get_or_default("H1") == DEFAULT_HOSPITAL
        store.save("H1", HospitalProfile(name="City Care"))
        assert store.get("H1").name == "City Care"

    def test_blank_id(self):
        store = HospitalProfileStore(InMemoryKeyValueStore())
        assert store.get(None) is None
        assert store.get("") is None
