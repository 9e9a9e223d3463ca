from dataclasses import dataclass
from typing import Any

import httpx

from medgenius.analysis.exceptions import AnalysisValidationError
from medgenius.analysis.models import AnalysisResult
from medgenius.analysis.validator import validate_and_build
from medgenius.logging.logger import Log
from medgenius.scanner.exceptions import RemoteRequestError, RemoteUploadFailed
from medgenius.scanner.models import ReportFile


@dataclass(frozen=True)
class UploadReceipt:
    id: str
    file_name: str
    status: str


@dataclass(frozen=True)
class RemoteReportStatus:
    status: str
    analysis_results: AnalysisResult | None = None


class ReportsApiClient:
    """HTTP client for the report service. No retries; callers own resilience."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def upload(self, file: ReportFile) -> UploadReceipt:
        """POST the file to /reports/upload.

        Raises:
            RemoteUploadFailed: on transport errors, non-JSON or error responses.
        """
        Log.info(f"Uploading {file.name} ({file.size} bytes) to report service")
        try:
            response = self._client.post(
                "/reports/upload",
                files={"file": (file.name, file.content, file.media_type)},
            )
        except httpx.HTTPError as exc:
            raise RemoteUploadFailed(f"Upload request failed: {exc}") from exc

        body = self._json_body(response, RemoteUploadFailed, "Error uploading report")
        report = body.get("report")
        if not isinstance(report, dict) or not report.get("id"):
            raise RemoteUploadFailed("Upload response is missing the report id")
        return UploadReceipt(
            id=str(report["id"]),
            file_name=str(report.get("fileName", file.name)),
            status=str(report.get("status", "pending")),
        )

    def get_status(self, report_id: str) -> RemoteReportStatus:
        """GET /reports/{id} and validate any analysis results.

        Raises:
            RemoteRequestError: on transport errors, non-JSON, error responses
                or malformed analysis results.
        """
        try:
            response = self._client.get(f"/reports/{report_id}")
        except httpx.HTTPError as exc:
            raise RemoteRequestError(f"Status request failed: {exc}") from exc

        body = self._json_body(response, RemoteRequestError, "Error fetching report analysis")
        report = body.get("report")
        if not isinstance(report, dict):
            raise RemoteRequestError("Status response is missing the report")
        raw_results = report.get("analysisResults")
        try:
            results = validate_and_build(raw_results) if raw_results is not None else None
        except AnalysisValidationError as exc:
            raise RemoteRequestError(f"Malformed analysis results: {exc}") from exc
        return RemoteReportStatus(status=str(report.get("status", "")), analysis_results=results)

    @staticmethod
    def _json_body(
        response: httpx.Response,
        error_cls: type[RemoteUploadFailed] | type[RemoteRequestError],
        default_message: str,
    ) -> dict[str, Any]:
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise error_cls(f"Server responded with non-JSON content: {content_type or 'none'}")
        try:
            body = response.json()
        except ValueError as exc:
            raise error_cls(f"Server responded with invalid JSON: {exc}") from exc
        if not isinstance(body, dict):
            raise error_cls("Server responded with a non-object JSON body")
        if response.is_error:
            raise error_cls(str(body.get("message") or default_message))
        return body
