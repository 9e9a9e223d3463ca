import time

from medgenius.config.settings import Settings
from medgenius.database.connection import get_connection
from medgenius.database.models import ReportRecord
from medgenius.database.repositories.report_repository import ReportRepository
from medgenius.logging.logger import Log
from medgenius.worker.report_runner import ReportRunner


class Worker:
    """Poll loop: sleep -> claim -> dispatch."""

    def __init__(
        self,
        report_repo: ReportRepository,
        report_runner: ReportRunner,
        settings: Settings,
    ) -> None:
        self._report_repo = report_repo
        self._report_runner = report_runner
        self._settings = settings

    def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_jobs is set, stop after analysing that many reports.
        """
        Log.info("Worker started, polling for pending reports")
        jobs_done = 0
        try:
            while max_jobs is None or jobs_done < max_jobs:
                report = self._try_claim_report()
                if report:
                    self._dispatch(report)
                    jobs_done += 1
                else:
                    Log.debug("No pending reports, sleeping")
                    time.sleep(self._settings.worker_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def _dispatch(self, report: ReportRecord) -> None:
        """Run one claimed report; an escaping error is logged and the loop continues.

        The report is left in `processing`.
        """
        try:
            self._report_runner.run(report)
        except Exception as exc:
            Log.exception(f"Report {report.id} left in processing after unexpected error: {exc}")

    def _try_claim_report(self) -> ReportRecord | None:
        """Attempt to claim the next pending report. Gracefully handle DB errors."""
        try:
            with get_connection() as conn:
                return self._report_repo.claim_next_pending(conn)
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None
