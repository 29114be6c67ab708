# app/api/router.py
from fastapi import APIRouter

from app.api.routes_hospital_profile import router as hospital_profile_router
from app.api.routes_lab_reports import router as lab_reports_router
from app.api.routes_letterheads import router as letterheads_router
from app.api.routes_public_report import router as public_report_router
from app.api.routes_report_records import router as report_records_router

api_router = APIRouter()

# Public (QR / shared links)
api_router.include_router(public_report_router)

# Internal JSON API
api_router.include_router(report_records_router)
api_router.include_router(lab_reports_router)
api_router.include_router(letterheads_router)
api_router.include_router(hospital_profile_router)
