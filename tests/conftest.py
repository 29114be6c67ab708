"""
Shared fixtures: an isolated in-memory database per test and a TestClient
wired to it. Environment is set before the app is imported so settings
pick up the temporary storage dir and uncompressed PDF output.
"""
import os
import tempfile

os.environ["STORAGE_DIR"] = tempfile.mkdtemp(prefix="labreport-test-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PDF_PAGE_COMPRESSION"] = "false"
os.environ["REPORT_HEADER_IMAGE"] = ""
os.environ["REPORT_FOOTER_IMAGE"] = ""
os.environ["REPORT_WATERMARK_IMAGE"] = ""
os.environ["API_V1_STR"] = "/api"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.api.deps import get_db  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.main import app as fastapi_app  # noqa: E402


def make_cbc_snapshot(**overrides):
    """Complete Blood Count snapshot as the lab UI posts it."""
    payload = {
        "patientId": "P-1001",
        "testId": "CBC",
        "testName": "Complete Blood Count",
        "hospitalId": "H1",
        "patient": {
            "id": "P-1001",
            "name": "John Doe",
            "age": 30,
            "gender": "Male",
        },
        "parameters": {
            "hb": {
                "value": "14.5"
            }
        },
        "testConfig": {
            "fields": [{
                "id": "hb",
                "label": "Hemoglobin",
                "unit": "g/dL",
                "refRange": "12-16",
            }]
        },
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(fastapi_app, raise_server_exceptions=False)
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def cbc_snapshot():
    return make_cbc_snapshot()


@pytest.fixture()
def snapshot_factory():
    return make_cbc_snapshot
