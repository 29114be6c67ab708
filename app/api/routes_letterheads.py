# FILE: app/api/routes_letterheads.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse

from app.api.deps import get_letterhead_store, get_profile_store
from app.api.response import ok
from app.core.errors import ReportNotFound
from app.schemas.letterhead import (ElementCreate, ElementUpdate,
                                    LetterheadCreate, LetterheadUpdate)
from app.services.field_resolver import HospitalProfileStore
from app.services.letterhead_store import PRESETS, LetterheadStore
from app.services.report_html import render_letterhead_page

router = APIRouter(prefix="/letterheads", tags=["Letterheads"])


def _out(tpl):
    return tpl.model_dump(mode="json", by_alias=True)


@router.get("")
def list_letterheads(store: LetterheadStore = Depends(get_letterhead_store)):
    items = store.load_templates()
    return ok([_out(t) for t in items], meta={"count": len(items)})


@router.post("")
def create_letterhead(
        payload: LetterheadCreate,
        store: LetterheadStore = Depends(get_letterhead_store),
):
    return ok(_out(store.create_template(payload)), status_code=201)


@router.get("/presets")
def list_presets():
    return ok(sorted(PRESETS))


@router.get("/{template_id}")
def read_letterhead(
        template_id: str,
        store: LetterheadStore = Depends(get_letterhead_store),
):
    return ok(_out(store.require_template(template_id)))


@router.patch("/{template_id}")
def update_letterhead(
        template_id: str,
        payload: LetterheadUpdate,
        store: LetterheadStore = Depends(get_letterhead_store),
):
    tpl = store.update_template(template_id, payload)
    if tpl is None:
        raise ReportNotFound("Template not found")
    return ok(_out(tpl))


@router.delete("/{template_id}")
def delete_letterhead(
        template_id: str,
        store: LetterheadStore = Depends(get_letterhead_store),
):
    if not store.delete_template(template_id):
        raise ReportNotFound("Template not found")
    return ok({"id": template_id, "deleted": True})


@router.post("/{template_id}/preset/{preset}")
def apply_preset(
        template_id: str,
        preset: str,
        store: LetterheadStore = Depends(get_letterhead_store),
):
    return ok(_out(store.apply_preset(template_id, preset)))


# ---------------- elements ----------------


@router.post("/{template_id}/elements")
def add_element(
        template_id: str,
        payload: ElementCreate,
        store: LetterheadStore = Depends(get_letterhead_store),
):
    return ok(_out(store.add_element(template_id, payload)), status_code=201)


@router.patch("/{template_id}/elements/{element_id}")
def update_element(
        template_id: str,
        element_id: str,
        payload: ElementUpdate,
        store: LetterheadStore = Depends(get_letterhead_store),
):
    return ok(_out(store.update_element(template_id, element_id, payload)))


@router.delete("/{template_id}/elements/{element_id}")
def remove_element(
        template_id: str,
        element_id: str,
        store: LetterheadStore = Depends(get_letterhead_store),
):
    return ok(_out(store.remove_element(template_id, element_id)))


# ---------------- preview ----------------


@router.get("/{template_id}/render", response_class=HTMLResponse)
def render_letterhead(
        template_id: str,
        hospital_id: Optional[str] = Query(None),
        store: LetterheadStore = Depends(get_letterhead_store),
        profiles: HospitalProfileStore = Depends(get_profile_store),
):
    tpl = store.require_template(template_id)
    hospital = profiles.get_or_default(hospital_id)
    return HTMLResponse(render_letterhead_page(tpl, hospital))
