# FILE: app/services/letterhead_store.py
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from app.core.errors import ReportNotFound, ReportValidationError
from app.schemas.letterhead import (ElementCreate, ElementUpdate,
                                    LetterheadCreate, LetterheadTemplate,
                                    LetterheadUpdate)
from app.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "letterhead_templates"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _new_template_id() -> str:
    return f"tpl_{secrets.token_hex(4)}"


def _new_element_id(kind: str) -> str:
    return f"{kind}_{secrets.token_hex(3)}"


# ---------------------------------------------------------
# Presets (header area canvas is ~792 x 200 px)
# ---------------------------------------------------------
def _preset_default() -> Dict[str, Any]:
    return {
        "name": "New Template",
        "description": "Custom letterhead",
        "settings": {
            "primaryColor": "#2563eb",
            "fontFamily": "Arial, sans-serif",
            "backgroundColor": "#ffffff",
            "showFooter": True,
            "watermark": {"text": "", "color": "rgba(0,0,0,0.06)",
                          "angle": -30, "opacity": 0.06},
        },
        "elements": [
            {"id": "logo1", "type": "logo", "position": {"x": 24, "y": 24},
             "size": {"w": 140, "h": 60}, "style": {}, "src": "logo.png"},
            {"id": "name1", "type": "field", "field": "name",
             "position": {"x": 180, "y": 24},
             "style": {"fontSize": 22, "fontWeight": "bold"}},
            {"id": "addr1", "type": "field", "field": "address",
             "position": {"x": 180, "y": 56}, "style": {"fontSize": 12}},
            {"id": "contact1", "type": "text", "text": "Phone | Email",
             "position": {"x": 180, "y": 78}, "style": {"fontSize": 12}},
            {"id": "line1", "type": "line", "position": {"x": 24, "y": 110},
             "size": {"w": 720, "h": 2}, "thickness": 2, "color": "#2563eb"},
        ],
    }


def _preset_classic() -> Dict[str, Any]:
    return {
        "name": "Classic Centered",
        "description": "Centered title with logo and contact under it",
        "settings": {"primaryColor": "#1d4ed8", "fontFamily": "Georgia, serif",
                     "backgroundColor": "#ffffff", "showFooter": True},
        "elements": [
            {"id": "logo", "type": "logo", "position": {"x": 326, "y": 10},
             "size": {"w": 140, "h": 60}, "src": "logo.png"},
            {"id": "title", "type": "field", "field": "name",
             "position": {"x": 260, "y": 72},
             "style": {"fontSize": 24, "fontWeight": "bold",
                       "textAlign": "center"}},
            {"id": "addr", "type": "field", "field": "address",
             "position": {"x": 180, "y": 102},
             "style": {"fontSize": 12, "textAlign": "center"}},
            {"id": "contact", "type": "text", "text": "Phone | Email",
             "position": {"x": 300, "y": 122},
             "style": {"fontSize": 12, "textAlign": "center"}},
            {"id": "line", "type": "line", "position": {"x": 24, "y": 150},
             "size": {"w": 720, "h": 2}, "thickness": 2, "color": "#1d4ed8"},
        ],
    }


def _preset_left() -> Dict[str, Any]:
    return {
        "name": "Left Logo & Left Text",
        "description": "Logo left with hospital details left-aligned",
        "settings": {"primaryColor": "#0ea5e9",
                     "fontFamily": "Arial, sans-serif",
                     "backgroundColor": "#ffffff", "showFooter": True},
        "elements": [
            {"id": "logo", "type": "logo", "position": {"x": 24, "y": 20},
             "size": {"w": 120, "h": 60}, "src": "logo.png"},
            {"id": "title", "type": "field", "field": "name",
             "position": {"x": 160, "y": 22},
             "style": {"fontSize": 22, "fontWeight": "bold"}},
            {"id": "addr", "type": "field", "field": "address",
             "position": {"x": 160, "y": 52}, "style": {"fontSize": 12}},
            {"id": "contact", "type": "text", "text": "Phone | Email | GSTIN",
             "position": {"x": 160, "y": 74}, "style": {"fontSize": 12}},
            {"id": "line", "type": "line", "position": {"x": 24, "y": 110},
             "size": {"w": 720, "h": 2}, "thickness": 2, "color": "#0ea5e9"},
        ],
    }


def _preset_bold() -> Dict[str, Any]:
    return {
        "name": "Bold Divider",
        "description": "Bold color bar under header",
        "settings": {"primaryColor": "#dc2626",
                     "fontFamily": "Arial, sans-serif",
                     "backgroundColor": "#ffffff", "showFooter": True},
        "elements": [
            {"id": "logo", "type": "logo", "position": {"x": 24, "y": 24},
             "size": {"w": 120, "h": 50}, "src": "logo.png"},
            {"id": "title", "type": "field", "field": "name",
             "position": {"x": 160, "y": 24},
             "style": {"fontSize": 22, "fontWeight": "bold"}},
            {"id": "addr", "type": "field", "field": "address",
             "position": {"x": 160, "y": 52}, "style": {"fontSize": 12}},
            {"id": "bar", "type": "line", "position": {"x": 0, "y": 110},
             "size": {"w": 792, "h": 6}, "thickness": 6, "color": "#dc2626"},
        ],
    }


PRESETS: Dict[str, Callable[[], Dict[str, Any]]] = {
    "default": _preset_default,
    "classic": _preset_classic,
    "left": _preset_left,
    "bold": _preset_bold,
}


def _element_defaults(kind: str) -> Dict[str, Any]:
    base: Dict[str, Any] = {
        "id": _new_element_id(kind),
        "type": kind,
        "position": {"x": 40, "y": 40},
        "style": {"fontSize": 14},
    }
    if kind == "text":
        base["text"] = "New Text"
    elif kind == "html":
        base["html"] = "<b>Custom HTML</b>"
    elif kind == "logo":
        base.update(src="logo.png", size={"w": 120, "h": 50})
    elif kind == "line":
        base.update(thickness=2, color="#333", size={"w": 720, "h": 2})
    else:
        base["field"] = "name"
    return base


class LetterheadStore:
    """
    Letterhead templates kept as one list under STORAGE_KEY.
    All writes go through save_templates().
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    # ---------- raw list ----------
    def load_templates(self) -> List[LetterheadTemplate]:
        raw = self.store.get(STORAGE_KEY)
        if not isinstance(raw, list):
            return []
        out: List[LetterheadTemplate] = []
        for item in raw:
            try:
                out.append(LetterheadTemplate.model_validate(item))
            except ValidationError:
                logger.warning("Skipping unreadable letterhead template: %r",
                               (item or {}).get("id") if isinstance(item, dict) else item)
        return out

    def save_templates(self, templates: List[LetterheadTemplate]) -> None:
        self.store.set(
            STORAGE_KEY,
            [t.model_dump(mode="json", by_alias=True) for t in templates],
        )

    def has_templates(self) -> bool:
        return bool(self.load_templates())

    # ---------- CRUD ----------
    def get_template(self, template_id: str) -> Optional[LetterheadTemplate]:
        for t in self.load_templates():
            if t.id == template_id:
                return t
        return None

    def get_default_template(
            self, kind: str = "report") -> Optional[LetterheadTemplate]:
        """isDefault template for `kind` (or untyped), else None."""
        for t in self.load_templates():
            if t.is_default and t.type in (kind, None, "general"):
                return t
        return None

    def require_template(self, template_id: str) -> LetterheadTemplate:
        t = self.get_template(template_id)
        if t is None:
            raise ReportNotFound("Template not found")
        return t

    def create_template(self, payload: LetterheadCreate) -> LetterheadTemplate:
        data = payload.model_dump(mode="json", by_alias=True,
                                  exclude_none=True)
        if payload.elements is None or payload.settings is None:
            base = _preset_default()
            data.setdefault("elements", base["elements"])
            data.setdefault("settings", base["settings"])

        now = _now_iso()
        all_templates = self.load_templates()
        existing = {t.id for t in all_templates}
        tid = _new_template_id()
        while tid in existing:
            tid = _new_template_id()

        tpl = self._validate({**data, "id": tid, "createdAt": now,
                              "updatedAt": now})
        all_templates.append(tpl)
        self.save_templates(all_templates)
        return tpl

    def update_template(
            self, template_id: str,
            changes: LetterheadUpdate | Dict[str, Any]
    ) -> Optional[LetterheadTemplate]:
        if isinstance(changes, LetterheadUpdate):
            changes = changes.model_dump(mode="json", by_alias=True,
                                         exclude_unset=True)
        all_templates = self.load_templates()
        for i, t in enumerate(all_templates):
            if t.id != template_id:
                continue
            merged = {
                **t.model_dump(mode="json", by_alias=True),
                **changes,
                "id": t.id,
                "createdAt": t.created_at,
                "updatedAt": _now_iso(),
            }
            updated = self._validate(merged)
            all_templates[i] = updated
            self.save_templates(all_templates)
            return updated
        return None

    def delete_template(self, template_id: str) -> bool:
        all_templates = self.load_templates()
        kept = [t for t in all_templates if t.id != template_id]
        if len(kept) == len(all_templates):
            return False
        self.save_templates(kept)
        return True

    def apply_preset(self, template_id: str,
                     preset: str) -> LetterheadTemplate:
        factory = PRESETS.get(preset)
        if factory is None:
            raise ReportValidationError(f"Unknown preset: {preset}")
        tpl = self.require_template(template_id)
        base = factory()
        settings = {
            **tpl.settings.model_dump(mode="json", by_alias=True,
                                      exclude_none=True),
            **base["settings"],
        }
        return self.update_template(
            template_id, {
                "name": base["name"],
                "description": base["description"],
                "settings": settings,
                "elements": base["elements"],
            })

    # ---------- elements ----------
    def add_element(self, template_id: str,
                    payload: ElementCreate) -> LetterheadTemplate:
        tpl = self.require_template(template_id)
        el = _element_defaults(payload.type)
        el.update(
            payload.model_dump(mode="json", by_alias=True, exclude_none=True))
        elements = [
            e.model_dump(mode="json", by_alias=True) for e in tpl.elements
        ]
        elements.append(el)
        return self.update_template(template_id, {"elements": elements})

    def update_element(self, template_id: str, element_id: str,
                       payload: ElementUpdate) -> LetterheadTemplate:
        tpl = self.require_template(template_id)
        changes = payload.model_dump(mode="json", by_alias=True,
                                     exclude_unset=True)
        elements: List[Dict[str, Any]] = []
        found = False
        for e in tpl.elements:
            d = e.model_dump(mode="json", by_alias=True)
            if e.id == element_id:
                found = True
                style = {**(d.get("style") or {}),
                         **(changes.pop("style", None) or {})}
                d.update(changes)
                d["style"] = style
            elements.append(d)
        if not found:
            raise ReportNotFound("Element not found")
        return self.update_template(template_id, {"elements": elements})

    def remove_element(self, template_id: str,
                       element_id: str) -> LetterheadTemplate:
        tpl = self.require_template(template_id)
        elements = [
            e.model_dump(mode="json", by_alias=True) for e in tpl.elements
            if e.id != element_id
        ]
        if len(elements) == len(tpl.elements):
            raise ReportNotFound("Element not found")
        return self.update_template(template_id, {"elements": elements})

    # ---------- internals ----------
    @staticmethod
    def _validate(data: Dict[str, Any]) -> LetterheadTemplate:
        try:
            return LetterheadTemplate.model_validate(data)
        except ValidationError as e:
            raise ReportValidationError(
                f"Invalid template: {e.errors()[0].get('msg', 'invalid')}"
            ) from e
