# app/core/config.py
import os
from typing import List, Tuple
from pydantic import BaseModel
from dotenv import load_dotenv
from urllib.parse import quote_plus
from pathlib import Path

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


def _signatories(value: str) -> List[Tuple[str, str]]:
    """
    "Komal Kumari|DMLT;Dr. Amar Kumar|MBBS" -> [(name, qualification), ...]
    """
    out: List[Tuple[str, str]] = []
    for chunk in (value or "").split(";"):
        chunk = chunk.strip()
        if not chunk:
            continue
        name, _, qual = chunk.partition("|")
        out.append((name.strip(), qual.strip()))
    return out


def _database_uri(storage_dir: str) -> str:
    explicit = (os.getenv("DATABASE_URL") or "").strip()
    if explicit:
        return explicit

    host = (os.getenv("MYSQL_HOST") or "").strip()
    if host:
        driver = os.getenv("DB_DRIVER", "pymysql")
        user = os.getenv("MYSQL_USER", "labreport_user")
        password = os.getenv("MYSQL_PASSWORD", "")
        port = int(os.getenv("MYSQL_PORT", "3306"))
        name = os.getenv("MYSQL_DB", "lab_reports")
        return (f"mysql+{driver}://{quote_plus(user)}:{quote_plus(password)}"
                f"@{host}:{port}/{name}?charset=utf8mb4")

    db_file = Path(storage_dir).resolve() / "labreports.sqlite3"
    return f"sqlite:///{db_file.as_posix()}"


class Settings(BaseModel):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Lab Report Service")
    API_V1_STR: str = os.getenv("API_V1_STR", "/api")
    SITE_URL: str = os.getenv("SITE_URL", "http://127.0.0.1:8000")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # CORS (env takes priority)
    BACKEND_CORS_ORIGINS: List[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ))

    # ---------- File storage ----------
    STORAGE_DIR: str = os.getenv("STORAGE_DIR", "./media")
    MEDIA_URL: str = os.getenv("MEDIA_URL", "/files")

    # ---------- Document store ----------
    # DATABASE_URL wins; MYSQL_* parts next; local SQLite file otherwise
    SQLALCHEMY_DATABASE_URI: str = _database_uri(
        os.getenv("STORAGE_DIR", "./media"))

    # ---------- Report rendering ----------
    # storage-relative image paths (letterhead artwork)
    REPORT_HEADER_IMAGE: str = os.getenv("REPORT_HEADER_IMAGE", "")
    REPORT_FOOTER_IMAGE: str = os.getenv("REPORT_FOOTER_IMAGE", "")
    REPORT_WATERMARK_IMAGE: str = os.getenv("REPORT_WATERMARK_IMAGE", "")

    # a timed-out render still holds its worker until it returns, so keep
    # REPORT_RENDER_WORKERS above the number of slow renders expected at once
    REPORT_RENDER_TIMEOUT_SECONDS: float = float(
        os.getenv("REPORT_RENDER_TIMEOUT_SECONDS", "20") or 20)
    REPORT_RENDER_WORKERS: int = int(
        os.getenv("REPORT_RENDER_WORKERS", "4") or 4)
    REPORT_VERIFIED_BY: str = os.getenv("REPORT_VERIFIED_BY",
                                        "Verified Laboratory")
    REPORT_DEFAULT_REFERRER: str = os.getenv("REPORT_DEFAULT_REFERRER",
                                             "Self")
    REPORT_SIGNATORIES: List[Tuple[str, str]] = _signatories(
        os.getenv("REPORT_SIGNATORIES",
                  "Lab Technician|DMLT;Consultant Pathologist|MD"))

    PDF_PAGE_COMPRESSION: bool = _flag("PDF_PAGE_COMPRESSION", "true")


settings = Settings()

Path(settings.STORAGE_DIR).resolve().mkdir(parents=True, exist_ok=True)
