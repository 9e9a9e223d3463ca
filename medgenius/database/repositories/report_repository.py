import uuid
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from medgenius.database.connection import get_connection
from medgenius.database.exceptions import ReportNotFoundError
from medgenius.database.models import ReportRecord

_COLUMNS = """
    id, user_id, file_name, file_type, file_size, file_url, stored_name,
    status, analysis_results, error_message, locked_at, created_at, updated_at
"""


class ReportRepository:
    """Database operations for the reports table."""

    def create(
        self,
        *,
        file_name: str,
        file_type: str,
        file_size: int,
        file_url: str,
        stored_name: str,
        user_id: str | None = None,
    ) -> ReportRecord:
        """Insert a pending report and return it."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO reports
                        (user_id, file_name, file_type, file_size, file_url, stored_name)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (user_id, file_name, file_type, file_size, file_url, stored_name),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError("INSERT INTO reports returned no row")
        return self._to_record(row)

    def find_by_id(self, report_id: str) -> ReportRecord | None:
        """Find a report by ID. Malformed IDs are treated as unknown."""
        try:
            uuid.UUID(report_id)
        except ValueError:
            return None
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM reports WHERE id = %s",
                    (report_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return self._to_record(row)

    def claim_next_pending(self, conn: psycopg.Connection[Any]) -> ReportRecord | None:
        """Claim the oldest pending report using SELECT FOR UPDATE SKIP LOCKED."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM reports
                WHERE status = 'pending'
                ORDER BY created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """
            )
            row = cur.fetchone()

        if row is None:
            return None

        conn.execute(
            """
            UPDATE reports
            SET status = 'processing', locked_at = NOW(), updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        conn.commit()

        record = self._to_record(row)
        record.status = "processing"
        return record

    def mark_completed(self, report_id: str, analysis_results: dict[str, Any]) -> None:
        """Store analysis results and mark the report completed.

        Raises:
            ReportNotFoundError: if no report with this ID exists.
        """
        self._update(
            """
            UPDATE reports
            SET status = 'completed', analysis_results = %s, updated_at = NOW()
            WHERE id = %s
            """,
            (Jsonb(analysis_results), report_id),
            report_id,
        )

    def mark_failed(self, report_id: str, error: str) -> None:
        """Mark a report as failed.

        Raises:
            ReportNotFoundError: if no report with this ID exists.
        """
        self._update(
            """
            UPDATE reports
            SET status = 'failed', error_message = %s, updated_at = NOW()
            WHERE id = %s
            """,
            (error, report_id),
            report_id,
        )

    @staticmethod
    def _update(query: str, params: tuple[Any, ...], report_id: str) -> None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                if cur.rowcount == 0:
                    raise ReportNotFoundError(f"Report {report_id} not found")
            conn.commit()

    @staticmethod
    def _to_record(row: dict[str, Any]) -> ReportRecord:
        return ReportRecord(
            id=str(row["id"]),
            user_id=row["user_id"],
            file_name=row["file_name"],
            file_type=row["file_type"],
            file_size=row["file_size"],
            file_url=row["file_url"],
            stored_name=row["stored_name"],
            status=row["status"],
            analysis_results=row["analysis_results"],
            error_message=row["error_message"],
            locked_at=row["locked_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
