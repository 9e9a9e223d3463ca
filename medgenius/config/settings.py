from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "medgenius"
    db_username: str = "medgenius"
    db_password: str = "secret"

    api_host: str = "0.0.0.0"
    api_port: int = 5000
    upload_dir: Path = Path("uploads")
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_media_types: list[str] = [
        "image/jpeg",
        "image/png",
        "image/dicom",
        "application/pdf",
    ]

    worker_poll_interval_seconds: int = 5

    pdf_engine: str = "pdfplumber"
    max_extracted_chars: int = 20000

    scanner_api_base_url: str = "http://localhost:5000/api"
    scanner_http_timeout_seconds: float = 15.0
    scanner_poll_interval_seconds: float = 1.5
    scanner_max_poll_attempts: int = 5
    scanner_progress_floor: int = 70
    scanner_stuck_timeout_seconds: float = 10.0
    scanner_total_timeout_seconds: float = 30.0

    local_analysis_provider: str = "openai"
    backend_analysis_provider: str = "mock"

    analysis_openai_api_key: str = ""
    analysis_openai_model_name: str = "gpt-4o-mini"
    analysis_openai_timeout_seconds: int = 30
    analysis_openai_temperature: float = 0.0
    analysis_openai_compatible_base_url: str = ""
    analysis_openai_compatible_api_key: str = ""
    analysis_openai_compatible_model_name: str = ""

    medicine_api_url: str = ""
    medicine_api_timeout_seconds: float = 5.0
