from medgenius.analysis.factory import AnalysisProviderFactory
from medgenius.config.settings import Settings
from medgenius.database.connection import close_pool, init_pool
from medgenius.database.repositories.report_repository import ReportRepository
from medgenius.extraction.factory import TextExtractorFactory
from medgenius.logging.logger import Log
from medgenius.storage.file_store import FileStore
from medgenius.worker.report_runner import ReportRunner
from medgenius.worker.worker import Worker


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        report_repo = ReportRepository()
        report_runner = ReportRunner(
            provider=AnalysisProviderFactory.create(settings.backend_analysis_provider, settings),
            text_extractor=TextExtractorFactory.create(settings),
            file_store=FileStore(settings.upload_dir),
            report_repo=report_repo,
        )
        worker = Worker(report_repo, report_runner, settings)
        worker.run()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
