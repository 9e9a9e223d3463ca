from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from medgenius.analysis.exceptions import AnalysisError
from medgenius.analysis.mock_provider import MockAnalysisProvider
from medgenius.analysis.models import DocumentResult, ImageResult
from medgenius.config.settings import Settings
from medgenius.scanner.exceptions import (
    AnalysisFailed,
    InvalidFileType,
    NoFileSelected,
    PollingTimedOut,
    RemoteRequestError,
    RemoteUploadFailed,
    TransientProviderError,
)
from medgenius.scanner.models import (
    JobSnapshot,
    Outcome,
    ReportFile,
    ScannerPolicy,
    Stage,
)
from medgenius.scanner.orchestrator import UploadOrchestrator, build_orchestrator
from medgenius.scanner.remote_client import RemoteReportStatus, UploadReceipt

_CANONICAL = [
    Stage.IDLE,
    Stage.LOCAL_INFERENCE,
    Stage.REMOTE_UPLOADING,
    Stage.POLLING,
]


def _pdf() -> ReportFile:
    return ReportFile(name="bloodtest.pdf", media_type="application/pdf", content=b"%PDF-1.4")


def _png() -> ReportFile:
    return ReportFile(name="xray.png", media_type="image/png", content=b"\x89PNG\r\n\x1a\n")


def _document_result() -> DocumentResult:
    return MockAnalysisProvider().analyze_document("")


def _image_result() -> ImageResult:
    return MockAnalysisProvider().analyze_image(Path("xray.png"))


def _make_orchestrator(
    clock: Any,
    *,
    local: MagicMock | None = None,
    remote: MagicMock | None = None,
    fallback: Any = None,
    policy: ScannerPolicy | None = None,
) -> tuple[UploadOrchestrator, MagicMock, MagicMock, list[JobSnapshot]]:
    local = local or MagicMock()
    remote = remote or MagicMock()
    extractor = MagicMock()
    extractor.extract.return_value = "Hemoglobin 11.2 g/dL"
    orchestrator = UploadOrchestrator(
        local_provider=local,
        fallback_provider=fallback or MockAnalysisProvider(),
        remote_client=remote,
        text_extractor=extractor,
        policy=policy or ScannerPolicy(),
        clock=clock,
    )
    snapshots: list[JobSnapshot] = []
    orchestrator.subscribe(snapshots.append)
    return orchestrator, local, remote, snapshots


def _local_fails(local: MagicMock) -> None:
    local.analyze_document.side_effect = AnalysisError("model unavailable")
    local.analyze_image.side_effect = AnalysisError("model unavailable")


def _uploads_as(remote: MagicMock, report_id: str = "r1") -> None:
    remote.upload.return_value = UploadReceipt(id=report_id, file_name="f", status="pending")


def _assert_valid_history(history: list[Stage]) -> None:
    """Stages follow the canonical order, ending in Complete or Failed(-> Complete)."""
    *path, last = history
    if last is Stage.COMPLETE and path and path[-1] is Stage.FAILED:
        path = path[:-1]
    else:
        assert last in (Stage.COMPLETE, Stage.FAILED)
    assert path == _CANONICAL[: len(path)]


def _assert_progress_invariants(snapshots: list[JobSnapshot]) -> None:
    progress = [s.progress for s in snapshots]
    assert progress == sorted(progress)
    for snapshot in snapshots:
        assert (snapshot.progress == 100) == (snapshot.stage is Stage.COMPLETE)


class TestLocalInference:
    def test_image_local_success_completes_without_network(self, fake_clock: Any) -> None:
        orchestrator, local, remote, snapshots = _make_orchestrator(fake_clock)
        result = _image_result()
        seen_paths: list[Path] = []

        def analyze_image(path: Path) -> ImageResult:
            seen_paths.append(path)
            assert path.read_bytes() == _png().content
            return result

        local.analyze_image.side_effect = analyze_image

        job = orchestrator.submit(_png())

        assert job.stage is Stage.COMPLETE
        assert job.progress == 100
        assert job.result is result
        assert job.outcome is Outcome.COMPLETED
        assert job.history == [Stage.IDLE, Stage.LOCAL_INFERENCE, Stage.COMPLETE]
        remote.upload.assert_not_called()
        remote.get_status.assert_not_called()
        assert not seen_paths[0].exists()
        assert [s.progress for s in snapshots] == [20, 100]

    def test_document_is_extracted_then_analysed(self, fake_clock: Any) -> None:
        orchestrator, local, remote, _snapshots = _make_orchestrator(fake_clock)
        local.analyze_document.return_value = _document_result()

        job = orchestrator.submit(_pdf())

        local.analyze_document.assert_called_once_with("Hemoglobin 11.2 g/dL")
        assert job.stage is Stage.COMPLETE
        remote.upload.assert_not_called()

    def test_preview_released_when_local_inference_fails(self, fake_clock: Any) -> None:
        orchestrator, local, remote, _snapshots = _make_orchestrator(fake_clock)
        seen_paths: list[Path] = []

        def analyze_image(path: Path) -> ImageResult:
            seen_paths.append(path)
            raise AnalysisError("model unavailable")

        local.analyze_image.side_effect = analyze_image
        remote.upload.side_effect = RemoteUploadFailed("offline")

        orchestrator.submit(_png())

        assert not seen_paths[0].exists()


class TestRemotePath:
    def test_local_failure_uploads_and_polls_to_completion(self, fake_clock: Any) -> None:
        orchestrator, local, remote, snapshots = _make_orchestrator(fake_clock)
        _local_fails(local)
        _uploads_as(remote, "r1")
        remote_result = _document_result()
        remote.get_status.side_effect = [
            RemoteReportStatus(status="processing"),
            RemoteReportStatus(status="completed", analysis_results=remote_result),
        ]

        job = orchestrator.submit(_pdf())

        assert job.stage is Stage.COMPLETE
        assert job.result is remote_result
        assert job.remote_id == "r1"
        assert job.outcome is Outcome.COMPLETED
        assert job.fallback_used is False
        assert job.history == [
            Stage.IDLE,
            Stage.LOCAL_INFERENCE,
            Stage.REMOTE_UPLOADING,
            Stage.POLLING,
            Stage.COMPLETE,
        ]
        remote.upload.assert_called_once()
        remote.get_status.assert_called_with("r1")
        assert fake_clock.sleeps == [1.5, 1.5]
        assert [s.progress for s in snapshots] == [20, 30, 70, 78, 100]
        _assert_progress_invariants(snapshots)

    def test_upload_failure_completes_with_document_fallback(self, fake_clock: Any) -> None:
        orchestrator, local, remote, snapshots = _make_orchestrator(fake_clock)
        _local_fails(local)
        remote.upload.side_effect = RemoteUploadFailed("Error uploading report")

        job = orchestrator.submit(_pdf())

        assert job.stage is Stage.COMPLETE
        assert isinstance(job.result, DocumentResult)
        assert job.result.fallback is True
        assert job.fallback_used is True
        assert isinstance(job.error, RemoteUploadFailed)
        assert job.outcome is Outcome.FAILED_WITH_FALLBACK
        assert job.history[-2:] == [Stage.FAILED, Stage.COMPLETE]
        remote.get_status.assert_not_called()
        assert snapshots[-2].stage is Stage.FAILED
        assert snapshots[-2].error_message == "Error uploading report"
        _assert_valid_history(job.history)

    def test_image_fallback_is_image_result(self, fake_clock: Any) -> None:
        orchestrator, local, remote, _snapshots = _make_orchestrator(fake_clock)
        _local_fails(local)
        remote.upload.side_effect = RemoteUploadFailed("offline")

        job = orchestrator.submit(_png())

        assert isinstance(job.result, ImageResult)
        assert job.result.fallback is True

    def test_remote_failed_status_falls_back(self, fake_clock: Any) -> None:
        orchestrator, local, remote, _snapshots = _make_orchestrator(fake_clock)
        _local_fails(local)
        _uploads_as(remote)
        remote.get_status.return_value = RemoteReportStatus(status="failed")

        job = orchestrator.submit(_pdf())

        assert isinstance(job.error, AnalysisFailed)
        assert job.outcome is Outcome.FAILED_WITH_FALLBACK
        assert remote.get_status.call_count == 1

    def test_completed_without_results_falls_back(self, fake_clock: Any) -> None:
        orchestrator, local, remote, _snapshots = _make_orchestrator(fake_clock)
        _local_fails(local)
        _uploads_as(remote)
        remote.get_status.return_value = RemoteReportStatus(status="completed")

        job = orchestrator.submit(_pdf())

        assert isinstance(job.error, AnalysisFailed)
        assert job.result is not None and job.result.fallback is True

    def test_polling_errors_are_retried_without_progress(self, fake_clock: Any) -> None:
        orchestrator, local, remote, snapshots = _make_orchestrator(fake_clock)
        _local_fails(local)
        _uploads_as(remote)
        remote_result = _document_result()
        remote.get_status.side_effect = [
            RemoteRequestError("Server responded with non-JSON content"),
            RemoteReportStatus(status="completed", analysis_results=remote_result),
        ]

        job = orchestrator.submit(_pdf())

        assert job.result is remote_result
        assert [s.progress for s in snapshots] == [20, 30, 70, 100]

    def test_unexpected_error_still_terminates(self, fake_clock: Any) -> None:
        orchestrator, local, remote, _snapshots = _make_orchestrator(fake_clock)
        _local_fails(local)
        remote.upload.side_effect = ValueError("unexpected")

        job = orchestrator.submit(_pdf())

        assert job.stage is Stage.COMPLETE
        assert isinstance(job.error, TransientProviderError)
        _assert_valid_history(job.history)

    def test_failed_fallback_leaves_job_failed(self, fake_clock: Any) -> None:
        broken_fallback = MagicMock()
        broken_fallback.analyze_document.side_effect = RuntimeError("no samples")
        orchestrator, local, remote, snapshots = _make_orchestrator(
            fake_clock, fallback=broken_fallback
        )
        _local_fails(local)
        remote.upload.side_effect = RemoteUploadFailed("offline")

        job = orchestrator.submit(_pdf())

        assert job.stage is Stage.FAILED
        assert job.outcome is Outcome.FAILED
        assert job.result is None
        assert job.progress < 100
        _assert_progress_invariants(snapshots)


class TestPollingBounds:
    def test_exhausted_polling_falls_back(self, fake_clock: Any) -> None:
        orchestrator, local, remote, snapshots = _make_orchestrator(fake_clock)
        _local_fails(local)
        _uploads_as(remote)
        remote.get_status.return_value = RemoteReportStatus(status="processing")

        job = orchestrator.submit(_pdf())

        assert remote.get_status.call_count == 5
        assert isinstance(job.error, PollingTimedOut)
        assert job.stage is Stage.COMPLETE
        assert job.outcome is Outcome.FAILED_WITH_FALLBACK
        polling = [s.progress for s in snapshots if s.stage is Stage.POLLING]
        assert polling == [70, 78, 89, 95]
        _assert_progress_invariants(snapshots)
        _assert_valid_history(job.history)

    def test_configured_attempts_are_honoured(self, fake_clock: Any) -> None:
        orchestrator, local, remote, _snapshots = _make_orchestrator(
            fake_clock, policy=ScannerPolicy(max_poll_attempts=2)
        )
        _local_fails(local)
        _uploads_as(remote)
        remote.get_status.return_value = RemoteReportStatus(status="pending")

        orchestrator.submit(_pdf())

        assert remote.get_status.call_count == 2

    def test_total_watchdog_stops_polling(self, fake_clock: Any) -> None:
        policy = ScannerPolicy(max_poll_attempts=50, total_timeout_seconds=3.0)
        orchestrator, local, remote, _snapshots = _make_orchestrator(fake_clock, policy=policy)
        _local_fails(local)
        _uploads_as(remote)
        remote.get_status.return_value = RemoteReportStatus(status="processing")

        job = orchestrator.submit(_pdf())

        assert remote.get_status.call_count == 2
        assert isinstance(job.error, PollingTimedOut)
        assert str(job.error) == "Analysis taking too long"

    def test_total_watchdog_checked_before_upload(self, fake_clock: Any) -> None:
        orchestrator, local, remote, _snapshots = _make_orchestrator(fake_clock)

        def slow_failure(text: str) -> DocumentResult:
            fake_clock.advance(31)
            raise AnalysisError("model unavailable")

        local.analyze_document.side_effect = slow_failure

        job = orchestrator.submit(_pdf())

        remote.upload.assert_not_called()
        assert isinstance(job.error, PollingTimedOut)
        assert job.outcome is Outcome.FAILED_WITH_FALLBACK

    def test_stuck_watchdog_bumps_then_gives_up(self, fake_clock: Any) -> None:
        policy = ScannerPolicy(
            max_poll_attempts=50, stuck_timeout_seconds=3.0, total_timeout_seconds=100.0
        )
        orchestrator, local, remote, snapshots = _make_orchestrator(fake_clock, policy=policy)
        _local_fails(local)
        _uploads_as(remote)
        remote.get_status.side_effect = RemoteRequestError("Status request failed")

        job = orchestrator.submit(_pdf())

        assert remote.get_status.call_count == 4
        assert isinstance(job.error, PollingTimedOut)
        assert str(job.error) == "Analysis process stalled"
        polling = [s.progress for s in snapshots if s.stage is Stage.POLLING]
        assert polling == [70, 80]
        assert job.outcome is Outcome.FAILED_WITH_FALLBACK


class TestValidation:
    def test_disallowed_type_never_leaves_idle(self, fake_clock: Any) -> None:
        orchestrator, local, remote, snapshots = _make_orchestrator(fake_clock)
        text_file = ReportFile(name="notes.txt", media_type="text/plain", content=b"hi")

        with pytest.raises(InvalidFileType):
            orchestrator.submit(text_file)

        assert orchestrator.job is None
        assert snapshots == []
        local.analyze_document.assert_not_called()
        remote.upload.assert_not_called()

    def test_missing_file_is_rejected(self, fake_clock: Any) -> None:
        orchestrator, _local, _remote, _snapshots = _make_orchestrator(fake_clock)
        with pytest.raises(NoFileSelected):
            orchestrator.submit(None)

    def test_rejected_file_keeps_previous_job(self, fake_clock: Any) -> None:
        orchestrator, local, _remote, _snapshots = _make_orchestrator(fake_clock)
        local.analyze_document.return_value = _document_result()
        first = orchestrator.submit(_pdf())

        with pytest.raises(InvalidFileType):
            orchestrator.submit(ReportFile(name="a.gif", media_type="image/gif", content=b"GIF"))

        assert orchestrator.job is first


class TestCancellation:
    def test_new_submit_supersedes_running_job(self, fake_clock: Any) -> None:
        orchestrator, local, remote, _snapshots = _make_orchestrator(fake_clock)
        local.analyze_document.side_effect = AnalysisError("model unavailable")
        image_result = _image_result()
        local.analyze_image.return_value = image_result
        _uploads_as(remote, "r1")
        remote.get_status.return_value = RemoteReportStatus(status="processing")
        second_jobs: list[Any] = []

        def submit_second() -> None:
            if not second_jobs:
                second_jobs.append(orchestrator.submit(_png()))

        fake_clock.on_sleep = submit_second

        first = orchestrator.submit(_pdf())

        second = second_jobs[0]
        assert orchestrator.job is second
        assert second.stage is Stage.COMPLETE
        assert second.result is image_result
        assert first.stage is Stage.POLLING
        assert first.progress == 70
        assert first.result is None
        remote.get_status.assert_not_called()

    def test_reset_cancels_polling(self, fake_clock: Any) -> None:
        orchestrator, local, remote, snapshots = _make_orchestrator(fake_clock)
        _local_fails(local)
        _uploads_as(remote)
        fake_clock.on_sleep = orchestrator.reset

        job = orchestrator.submit(_pdf())

        assert orchestrator.job is None
        assert job.stage is Stage.POLLING
        remote.get_status.assert_not_called()
        assert snapshots[-1].stage is Stage.POLLING

    def test_reset_from_listener_stops_run(self, fake_clock: Any) -> None:
        orchestrator, local, remote, _snapshots = _make_orchestrator(fake_clock)
        _local_fails(local)

        def reset_on_upload(snapshot: JobSnapshot) -> None:
            if snapshot.stage is Stage.REMOTE_UPLOADING:
                orchestrator.reset()

        orchestrator.subscribe(reset_on_upload)
        remote.upload.return_value = UploadReceipt(id="r1", file_name="f", status="pending")

        job = orchestrator.submit(_pdf())

        assert job.stage is Stage.REMOTE_UPLOADING
        assert job.remote_id is None


class TestListeners:
    def test_unsubscribe_stops_notifications(self, fake_clock: Any) -> None:
        orchestrator, local, _remote, _snapshots = _make_orchestrator(fake_clock)
        local.analyze_document.return_value = _document_result()
        received: list[JobSnapshot] = []
        unsubscribe = orchestrator.subscribe(received.append)

        unsubscribe()
        orchestrator.submit(_pdf())

        assert received == []

    def test_failing_listener_does_not_break_run(self, fake_clock: Any) -> None:
        orchestrator, local, _remote, snapshots = _make_orchestrator(fake_clock)
        local.analyze_document.return_value = _document_result()
        orchestrator.subscribe(MagicMock(side_effect=RuntimeError("render failed")))

        job = orchestrator.submit(_pdf())

        assert job.stage is Stage.COMPLETE
        assert snapshots[-1].stage is Stage.COMPLETE

    def test_snapshots_are_immutable_copies(self, fake_clock: Any) -> None:
        orchestrator, local, _remote, snapshots = _make_orchestrator(fake_clock)
        local.analyze_document.return_value = _document_result()

        orchestrator.submit(_pdf())

        assert snapshots[0].stage is Stage.LOCAL_INFERENCE
        assert snapshots[0].result is None
        with pytest.raises(AttributeError):
            snapshots[0].progress = 50  # type: ignore[misc]


class TestBuildOrchestrator:
    def test_builds_from_settings(self, sample_pdf_bytes: bytes) -> None:
        settings = Settings(
            local_analysis_provider="mock",
            scanner_max_poll_attempts=3,
            scanner_api_base_url="http://api.test/api",
        )
        orchestrator = build_orchestrator(settings)
        try:
            job = orchestrator.submit(
                ReportFile(
                    name="bloodtest.pdf", media_type="application/pdf", content=sample_pdf_bytes
                )
            )
        finally:
            orchestrator.close()

        assert job.stage is Stage.COMPLETE
        assert job.outcome is Outcome.COMPLETED
