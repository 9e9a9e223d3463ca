import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from medgenius.config.settings import Settings
from medgenius.database.connection import apply_schema, close_pool, get_connection, init_pool
from medgenius.database.models import ReportRecord
from medgenius.database.repositories.report_repository import ReportRepository


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "medgenius_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        apply_schema()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[list[str], None, None]:
    report_ids: list[str] = []
    yield report_ids
    if not report_ids:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            for report_id in report_ids:
                cur.execute("DELETE FROM reports WHERE id = %s", (report_id,))
        conn.commit()


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def seed_report(
    integration_cleanup: list[str], upload_dir: Path, sample_pdf_bytes: bytes
) -> ReportRecord:
    upload_dir.mkdir(parents=True, exist_ok=True)
    stored_name = "1714564800000-42-bloodtest.pdf"
    (upload_dir / stored_name).write_bytes(sample_pdf_bytes)
    report = ReportRepository().create(
        file_name="bloodtest.pdf",
        file_type="application/pdf",
        file_size=len(sample_pdf_bytes),
        file_url=f"/uploads/{stored_name}",
        stored_name=stored_name,
    )
    integration_cleanup.append(report.id)
    return report
