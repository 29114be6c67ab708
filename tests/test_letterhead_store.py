"""
Letterhead template persistence on top of the key/value store.
"""
import pytest

from app.core.errors import ReportNotFound, ReportValidationError
from app.schemas.letterhead import (ElementCreate, ElementUpdate,
                                    FieldElement, LetterheadCreate,
                                    LetterheadUpdate, LineElement)
from app.services.kv_store import InMemoryKeyValueStore
from app.services.letterhead_store import (PRESETS, STORAGE_KEY,
                                           LetterheadStore)


def _make_store(initial=None):
    return LetterheadStore(InMemoryKeyValueStore(initial))


def _make_raw_template(tid="tpl_1", **kw):
    raw = {
        "id": tid,
        "name": "Stored",
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-01-01T00:00:00Z",
        "elements": [{"id": "n", "type": "field", "field": "name"}],
    }
    raw.update(kw)
    return raw


class TestLoad:

    def test_empty_store(self):
        store = _make_store()
        assert store.load_templates() == []
        assert not store.has_templates()

    def test_non_list_value_is_ignored(self):
        assert _make_store({STORAGE_KEY: {"oops": 1}}).load_templates() == []

    def test_unreadable_items_are_skipped(self):
        store = _make_store({
            STORAGE_KEY: [
                _make_raw_template("tpl_ok"),
                {"id": "tpl_bad"},
                "garbage",
            ]
        })
        assert [t.id for t in store.load_templates()] == ["tpl_ok"]

    def test_field_key_alias(self):
        raw = _make_raw_template(
            elements=[{"id": "p", "type": "field", "fieldKey": "phone"}])
        tpl = _make_store({STORAGE_KEY: [raw]}).get_template("tpl_1")
        assert isinstance(tpl.elements[0], FieldElement)
        assert tpl.elements[0].field.value == "phone"

    def test_unknown_field_key_keeps_template(self):
        raw = _make_raw_template(elements=[
            {"id": "n", "type": "field", "field": "name"},
            {"id": "f", "type": "field", "field": "fax"},
        ])
        store = _make_store({STORAGE_KEY: [raw]})
        tpl = store.get_template("tpl_1")
        assert tpl is not None
        assert [el.field_name for el in tpl.elements] == ["name", "fax"]
        store.save_templates([tpl])
        assert store.get_template("tpl_1").elements[1].field == "fax"

    def test_new_elements_need_known_field_key(self):
        with pytest.raises(ValueError):
            ElementCreate(type="field", field="fax")


class TestCrud:

    def test_create_uses_default_layout(self):
        store = _make_store()
        tpl = store.create_template(LetterheadCreate(name="Main"))
        assert tpl.id.startswith("tpl_")
        assert tpl.name == "Main"
        assert [e.type for e in tpl.elements] == [
            "logo", "field", "field", "text", "line"
        ]
        assert tpl.settings.primary_color == "#2563eb"
        assert tpl.created_at == tpl.updated_at
        assert store.get_template(tpl.id) == tpl

    def test_create_keeps_explicit_elements(self):
        store = _make_store()
        tpl = store.create_template(
            LetterheadCreate.model_validate({
                "name": "Bare",
                "elements": [{"id": "t", "type": "text", "text": "Hi"}],
                "settings": {"showFooter": False},
            }))
        assert len(tpl.elements) == 1
        assert tpl.settings.show_footer is False

    def test_duplicate_element_ids_rejected(self):
        with pytest.raises(ValueError):
            LetterheadCreate.model_validate({
                "elements": [
                    {"id": "x", "type": "text"},
                    {"id": "x", "type": "line"},
                ]
            })

    def test_update_keeps_identity(self):
        store = _make_store({STORAGE_KEY: [_make_raw_template()]})
        tpl = store.update_template("tpl_1",
                                    LetterheadUpdate(name="Renamed"))
        assert tpl.name == "Renamed"
        assert tpl.id == "tpl_1"
        assert tpl.created_at == "2024-01-01T00:00:00Z"
        assert tpl.updated_at != "2024-01-01T00:00:00Z"
        assert store.get_template("tpl_1").name == "Renamed"

    def test_update_missing(self):
        assert _make_store().update_template("nope", {"name": "x"}) is None

    def test_invalid_update_rejected(self):
        store = _make_store({STORAGE_KEY: [_make_raw_template()]})
        with pytest.raises(ReportValidationError):
            store.update_template("tpl_1", {"elements": [{"type": "bogus"}]})

    def test_delete(self):
        store = _make_store({STORAGE_KEY: [_make_raw_template()]})
        assert store.delete_template("tpl_1") is True
        assert store.delete_template("tpl_1") is False
        with pytest.raises(ReportNotFound):
            store.require_template("tpl_1")

    def test_default_template_lookup(self):
        store = _make_store({
            STORAGE_KEY: [
                _make_raw_template("tpl_bill", type="billing",
                                   isDefault=True),
                _make_raw_template("tpl_gen", type="general"),
                _make_raw_template("tpl_rep", type="report", isDefault=True),
            ]
        })
        assert store.get_default_template("report").id == "tpl_rep"
        assert store.get_default_template("billing").id == "tpl_bill"
        assert store.get_default_template("prescription") is None


class TestPresets:

    def test_apply_replaces_layout_and_merges_settings(self):
        store = _make_store({
            STORAGE_KEY: [
                _make_raw_template(settings={
                    "watermark": {"text": "CONFIDENTIAL"},
                    "primaryColor": "#000000",
                })
            ]
        })
        tpl = store.apply_preset("tpl_1", "bold")
        assert tpl.name == "Bold Divider"
        assert tpl.settings.primary_color == "#dc2626"
        assert tpl.settings.watermark.text == "CONFIDENTIAL"
        assert any(isinstance(e, LineElement) for e in tpl.elements)

    def test_unknown_preset(self):
        store = _make_store({STORAGE_KEY: [_make_raw_template()]})
        with pytest.raises(ReportValidationError):
            store.apply_preset("tpl_1", "fancy")

    def test_every_preset_is_valid(self):
        store = _make_store({STORAGE_KEY: [_make_raw_template()]})
        for name in PRESETS:
            assert store.apply_preset("tpl_1", name).elements


class TestElements:

    def test_add_with_defaults(self):
        store = _make_store({STORAGE_KEY: [_make_raw_template()]})
        tpl = store.add_element("tpl_1", ElementCreate(type="text",
                                                       text="Hello"))
        added = tpl.elements[-1]
        assert added.id.startswith("text_")
        assert added.text == "Hello"
        assert added.position.x == 40

    def test_update_merges_style(self):
        store = _make_store({
            STORAGE_KEY: [
                _make_raw_template(elements=[{
                    "id": "t",
                    "type": "text",
                    "text": "Hi",
                    "style": {"fontSize": 20},
                }])
            ]
        })
        tpl = store.update_element(
            "tpl_1", "t",
            ElementUpdate.model_validate({"style": {"color": "#ff0000"},
                                          "text": "Hello"}))
        el = tpl.elements[0]
        assert el.text == "Hello"
        assert el.style.font_size == 20
        assert el.style.color == "#ff0000"

    def test_update_missing_element(self):
        store = _make_store({STORAGE_KEY: [_make_raw_template()]})
        with pytest.raises(ReportNotFound):
            store.update_element("tpl_1", "zz", ElementUpdate(text="x"))

    def test_remove(self):
        store = _make_store({STORAGE_KEY: [_make_raw_template()]})
        assert store.remove_element("tpl_1", "n").elements == []
        with pytest.raises(ReportNotFound):
            store.remove_element("tpl_1", "n")
