# FILE: app/api/routes_hospital_profile.py
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from app.api.deps import get_profile_store
from app.api.response import ok
from app.services.field_resolver import (HospitalProfileStore,
                                         hospital_from_record)

router = APIRouter(prefix="/hospitals", tags=["Hospital Profile"])


@router.get("/{hospital_id}/profile")
def read_profile(
        hospital_id: str,
        profiles: HospitalProfileStore = Depends(get_profile_store),
):
    stored = profiles.get(hospital_id)
    data = (stored or profiles.get_or_default(None)).model_dump()
    return ok(data, meta={"stored": stored is not None})


@router.put("/{hospital_id}/profile")
def save_profile(
        hospital_id: str,
        payload: Dict[str, Any] = Body(...),
        profiles: HospitalProfileStore = Depends(get_profile_store),
):
    # accepts either the hospital document shape or the flat profile
    profile = hospital_from_record(payload)
    return ok(profiles.save(hospital_id, profile).model_dump())
