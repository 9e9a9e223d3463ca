from medgenius.analysis.base import BaseAnalysisProvider
from medgenius.analysis.models import AnalysisResult, to_payload
from medgenius.database.models import ReportRecord
from medgenius.database.repositories.report_repository import ReportRepository
from medgenius.extraction.base import BaseTextExtractor
from medgenius.logging.logger import Log
from medgenius.storage.file_store import FileStore


class ReportRunner:
    """Analyse one claimed report and record the outcome.

    A report is updated exactly once here: to ``completed`` with its
    analysis payload, or to ``failed`` with the error message.
    """

    def __init__(
        self,
        provider: BaseAnalysisProvider,
        text_extractor: BaseTextExtractor,
        file_store: FileStore,
        report_repo: ReportRepository,
    ) -> None:
        self._provider = provider
        self._text_extractor = text_extractor
        self._file_store = file_store
        self._report_repo = report_repo

    def run(self, report: ReportRecord) -> None:
        """Execute a single analysis with error handling."""
        Log.info(f"Analysing report {report.id} ({report.file_type}, {report.file_size} bytes)")
        try:
            result = self._analyse(report)
            self._report_repo.mark_completed(report.id, to_payload(result))
            Log.info(f"Report {report.id} completed")
        except Exception as exc:
            self._handle_failure(report, exc)

    def _handle_failure(self, report: ReportRecord, exc: Exception) -> None:
        """Mark the report failed; errors from that write are only logged."""
        Log.error(f"Report {report.id} analysis failed: {exc}")
        try:
            self._report_repo.mark_failed(report.id, str(exc))
        except Exception as write_exc:
            Log.error(f"Could not mark report {report.id} failed: {write_exc}")

    def _analyse(self, report: ReportRecord) -> AnalysisResult:
        if report.file_type.startswith("image/"):
            return self._provider.analyze_image(self._file_store.path_for(report.stored_name))
        raw_bytes = self._file_store.load(report.stored_name)
        text = self._text_extractor.extract(raw_bytes)
        Log.info(f"Extracted {len(text)} chars from report {report.id}")
        return self._provider.analyze_document(text)
