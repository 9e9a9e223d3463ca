from dataclasses import dataclass
from datetime import datetime
from typing import Any

REPORT_STATUSES = ("pending", "processing", "completed", "failed")


@dataclass
class ReportRecord:
    """Represents a row from the reports table."""

    id: str
    file_name: str
    file_type: str
    file_size: int
    file_url: str
    stored_name: str
    status: str = "pending"
    user_id: str | None = None
    analysis_results: dict[str, Any] | None = None
    error_message: str | None = None
    locked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
