# FILE: app/services/field_resolver.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from app.schemas.letterhead import FieldElement, FieldKey, LetterheadTemplate
from app.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

PROFILE_KEY_PREFIX = "hospital_profile:"


class HospitalProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""
    gstin: str = ""
    registration: str = ""
    logo: str = ""
    additional_info: str = ""
    footer_note: str = ""


DEFAULT_HOSPITAL = HospitalProfile(
    name="Hospital Name",
    address="Hospital Address",
    phone="",
    email="",
)


def _s(v: Any) -> str:
    return "" if v is None else str(v).strip()


def _join_address(addr: Any) -> str:
    if isinstance(addr, dict):
        parts = [
            _s(addr.get(k))
            for k in ("street", "city", "state", "pincode", "country")
        ]
        return ", ".join(p for p in parts if p)
    return _s(addr)


def hospital_from_record(raw: Optional[Dict[str, Any]]) -> HospitalProfile:
    """
    Normalize a stored hospital document.
    Accepts both the admin-console shape (displayName, phoneNumbers[],
    gstNumber, registrationNumber, logoUrl, settings.footerNote) and the
    flat profile shape.
    """
    if not raw:
        return DEFAULT_HOSPITAL.model_copy()

    phones = raw.get("phoneNumbers") or []
    phone = _s(phones[0]) if isinstance(phones, list) and phones else ""
    settings_doc = raw.get("settings") or {}

    return HospitalProfile(
        name=_s(raw.get("displayName")) or _s(raw.get("name")),
        address=_join_address(raw.get("address")),
        phone=phone or _s(raw.get("phone")),
        email=_s(raw.get("email")),
        gstin=_s(raw.get("gstNumber")) or _s(raw.get("gst"))
        or _s(raw.get("gstin")),
        registration=_s(raw.get("registrationNumber"))
        or _s(raw.get("registration")),
        logo=_s(raw.get("logoUrl")) or _s(raw.get("logo")),
        additional_info=_s(raw.get("additionalInfo"))
        or _s(raw.get("additional_info")),
        footer_note=(_s(settings_doc.get("footerNote"))
                     if isinstance(settings_doc, dict) else "")
        or _s(raw.get("footerNote")) or _s(raw.get("footer_note")),
    )


def resolve_field(key: FieldKey | str, hospital: HospitalProfile) -> str:
    k = key.value if isinstance(key, FieldKey) else str(key)
    value = _s(getattr(hospital, k, "")) if k in FieldKey.__members__ else ""
    return value or f"[{k}]"


def resolve_fields(template: LetterheadTemplate,
                   hospital: HospitalProfile) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for el in template.elements:
        if isinstance(el, FieldElement):
            text = resolve_field(el.field, hospital)
            out[el.id] = f"{el.label} {text}" if el.label else text
    return out


class HospitalProfileStore:

    def __init__(self, store: KeyValueStore):
        self.store = store

    @staticmethod
    def _key(hospital_id: str) -> str:
        return f"{PROFILE_KEY_PREFIX}{hospital_id}"

    def get(self, hospital_id: Optional[str]) -> Optional[HospitalProfile]:
        if not hospital_id:
            return None
        raw = self.store.get(self._key(hospital_id))
        if not isinstance(raw, dict):
            return None
        try:
            return HospitalProfile.model_validate(raw)
        except ValidationError:
            logger.warning("Unreadable hospital profile for %s", hospital_id)
            return None

    def get_or_default(self, hospital_id: Optional[str]) -> HospitalProfile:
        return self.get(hospital_id) or DEFAULT_HOSPITAL.model_copy()

    def save(self, hospital_id: str,
             profile: HospitalProfile) -> HospitalProfile:
        self.store.set(self._key(hospital_id), profile.model_dump())
        return profile
