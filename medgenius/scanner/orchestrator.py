"""Client-side orchestration of a report upload into one terminal outcome.

Flow: validate -> local inference -> remote upload -> polling, with every
failure except validation resolved through a fallback result.
"""

import threading
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

from medgenius.analysis.base import BaseAnalysisProvider
from medgenius.analysis.factory import AnalysisProviderFactory
from medgenius.analysis.models import AnalysisResult
from medgenius.config.settings import Settings
from medgenius.extraction.base import BaseTextExtractor
from medgenius.extraction.factory import TextExtractorFactory
from medgenius.logging.logger import Log
from medgenius.scanner.clock import Clock, SystemClock
from medgenius.scanner.exceptions import (
    AnalysisFailed,
    JobSuperseded,
    LocalInferenceFailed,
    PollingTimedOut,
    ScannerError,
    TerminalAnalysisFailure,
    TransientProviderError,
)
from medgenius.scanner.models import (
    ALLOWED_TRANSITIONS,
    JobSnapshot,
    ReportFile,
    TERMINAL_STAGES,
    ScannerPolicy,
    Stage,
    UploadJob,
)
from medgenius.scanner.preview import preview_file
from medgenius.scanner.remote_client import RemoteReportStatus, ReportsApiClient
from medgenius.scanner.validation import validate_file

Listener = Callable[[JobSnapshot], None]

SUBMIT_PROGRESS = 20
REMOTE_START_PROGRESS = 30
STUCK_BUMP = 10


class UploadOrchestrator:
    """Runs one upload job at a time through the analysis stages.

    A new submit() or reset() supersedes the running job: the superseded run
    stops at its next suspension point without touching the new job.
    """

    def __init__(
        self,
        *,
        local_provider: BaseAnalysisProvider,
        fallback_provider: BaseAnalysisProvider,
        remote_client: ReportsApiClient,
        text_extractor: BaseTextExtractor,
        policy: ScannerPolicy | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._local_provider = local_provider
        self._fallback_provider = fallback_provider
        self._remote_client = remote_client
        self._text_extractor = text_extractor
        self._policy = policy or ScannerPolicy()
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._generation = 0
        self._job: UploadJob | None = None
        self._listeners: list[Listener] = []

    @property
    def job(self) -> UploadJob | None:
        return self._job

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for stage/progress changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def reset(self) -> None:
        """Discard the current job and cancel its run."""
        with self._lock:
            self._generation += 1
            self._job = None
        Log.info("Upload job reset")

    def close(self) -> None:
        self.reset()
        self._remote_client.close()

    def submit(self, file: ReportFile | None) -> UploadJob:
        """Validate the file and run a new job to a terminal stage.

        Raises:
            ValidationError: before any stage transition, if the file is rejected.
        """
        file = validate_file(file, self._policy)
        job = UploadJob(file=file)
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._job = job
        Log.info(f"Submitted {file.name} ({file.media_type}, {file.size} bytes)")

        try:
            self._run(job, generation)
        except JobSuperseded:
            Log.info(f"Job for {file.name} superseded, stopping")
        except Exception as exc:
            Log.exception(f"Unexpected error while analysing {file.name}")
            self._recover(job, generation, TransientProviderError(str(exc)))
        return job

    def _recover(self, job: UploadJob, generation: int, error: ScannerError) -> None:
        if job.stage in TERMINAL_STAGES:
            return
        try:
            self._fail_with_fallback(job, generation, error)
        except JobSuperseded:
            Log.info(f"Job for {job.file.name} superseded during recovery")

    def _run(self, job: UploadJob, generation: int) -> None:
        started = self._clock.now()
        self._transition(job, generation, Stage.LOCAL_INFERENCE, progress=SUBMIT_PROGRESS)

        try:
            result = self._analyze_locally(job.file)
        except LocalInferenceFailed as exc:
            self._ensure_current(generation)
            Log.warning(f"Local AI processing failed, falling back to report service: {exc}")
        else:
            self._complete(job, generation, result)
            return

        if self._total_expired(started):
            self._fail_with_fallback(
                job, generation, PollingTimedOut("Analysis took too long before upload")
            )
            return

        self._transition(job, generation, Stage.REMOTE_UPLOADING, progress=REMOTE_START_PROGRESS)
        try:
            receipt = self._remote_client.upload(job.file)
        except TransientProviderError as exc:
            self._ensure_current(generation)
            self._fail_with_fallback(job, generation, exc)
            return

        self._transition(
            job,
            generation,
            Stage.POLLING,
            progress=self._policy.progress_floor,
            remote_id=receipt.id,
        )
        self._poll(job, generation, receipt.id, started)

    def _analyze_locally(self, file: ReportFile) -> AnalysisResult:
        try:
            if file.is_image:
                with preview_file(file) as image_path:
                    return self._local_provider.analyze_image(image_path)
            text = self._text_extractor.extract(file.content)
            return self._local_provider.analyze_document(text)
        except Exception as exc:
            raise LocalInferenceFailed(f"Local analysis of {file.name} failed: {exc}") from exc

    def _poll(self, job: UploadJob, generation: int, remote_id: str, started: float) -> None:
        policy = self._policy
        last_progress = job.progress
        last_change = self._clock.now()
        stuck_fired = False
        attempts = 0

        while True:
            self._clock.sleep(policy.poll_interval_seconds)
            self._ensure_current(generation)
            attempts += 1
            Log.info(f"Polling attempt {attempts}/{policy.max_poll_attempts} for {remote_id}")

            status: RemoteReportStatus | None = None
            try:
                status = self._remote_client.get_status(remote_id)
            except TransientProviderError as exc:
                Log.warning(f"Polling error for {remote_id}: {exc}")
            self._ensure_current(generation)

            if status is not None:
                if status.status == "completed" and status.analysis_results is not None:
                    self._complete(job, generation, status.analysis_results)
                    return
                if status.status in ("completed", "failed"):
                    self._fail_with_fallback(
                        job,
                        generation,
                        AnalysisFailed(f"Report {remote_id} analysis {status.status} without results"),
                    )
                    return
                increment = min(5 + attempts * 3, 15)
                self._set_progress(
                    job, generation, min(job.progress + increment, policy.progress_ceiling)
                )

            if self._total_expired(started):
                self._fail_with_fallback(
                    job, generation, PollingTimedOut("Analysis taking too long")
                )
                return

            now = self._clock.now()
            if job.progress != last_progress:
                last_progress, last_change = job.progress, now
            elif (
                policy.progress_floor <= job.progress < policy.progress_ceiling
                and now - last_change >= policy.stuck_timeout_seconds
            ):
                if stuck_fired:
                    self._fail_with_fallback(
                        job, generation, PollingTimedOut("Analysis process stalled")
                    )
                    return
                stuck_fired = True
                Log.warning(f"Analysis of {remote_id} seems stuck, advancing progress")
                self._set_progress(job, generation, min(job.progress + STUCK_BUMP, 99))
                last_progress, last_change = job.progress, now

            if attempts >= policy.max_poll_attempts:
                self._fail_with_fallback(
                    job,
                    generation,
                    PollingTimedOut(f"No result after {attempts} polling attempts"),
                )
                return

    def _fail_with_fallback(self, job: UploadJob, generation: int, error: ScannerError) -> None:
        """Move to Failed, then substitute a fallback result when one is obtainable."""
        self._transition(job, generation, Stage.FAILED, error=error)
        if isinstance(error, TerminalAnalysisFailure):
            Log.error(f"Report service failed analysing {job.file.name}: {error}")
        else:
            Log.warning(f"Analysis of {job.file.name} failed ({type(error).__name__}): {error}")

        try:
            if job.file.is_image:
                fallback = self._fallback_provider.analyze_image(Path(job.file.name))
            else:
                fallback = self._fallback_provider.analyze_document("")
        except Exception as exc:
            Log.error(f"Fallback analysis failed for {job.file.name}: {exc}")
            return
        Log.info(f"Completing {job.file.name} with fallback result")
        self._complete(job, generation, replace(fallback, fallback=True), fallback_used=True)

    def _complete(
        self,
        job: UploadJob,
        generation: int,
        result: AnalysisResult,
        fallback_used: bool = False,
    ) -> None:
        self._transition(
            job,
            generation,
            Stage.COMPLETE,
            progress=100,
            result=result,
            fallback_used=fallback_used,
        )
        Log.info(f"Analysis of {job.file.name} complete")

    def _total_expired(self, started: float) -> bool:
        return self._clock.now() - started >= self._policy.total_timeout_seconds

    def _ensure_current(self, generation: int) -> None:
        if generation != self._generation:
            raise JobSuperseded()

    def _set_progress(self, job: UploadJob, generation: int, progress: int) -> None:
        with self._lock:
            self._ensure_current(generation)
            if progress <= job.progress:
                return
            job.progress = progress
            snapshot = job.snapshot()
        self._notify(snapshot)

    def _transition(
        self,
        job: UploadJob,
        generation: int,
        stage: Stage,
        *,
        progress: int | None = None,
        remote_id: str | None = None,
        result: AnalysisResult | None = None,
        error: ScannerError | None = None,
        fallback_used: bool = False,
    ) -> None:
        with self._lock:
            self._ensure_current(generation)
            if stage not in ALLOWED_TRANSITIONS[job.stage]:
                raise RuntimeError(f"Illegal stage transition {job.stage.value} -> {stage.value}")
            job.stage = stage
            job.history.append(stage)
            if progress is not None:
                job.progress = max(job.progress, progress)
            if remote_id is not None:
                job.remote_id = remote_id
            if result is not None:
                job.result = result
                job.fallback_used = fallback_used
            if error is not None:
                job.error = error
            snapshot = job.snapshot()
        Log.info(f"{job.file.name}: stage {stage.value}, progress {job.progress}%")
        self._notify(snapshot)

    def _notify(self, snapshot: JobSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                Log.exception("Upload listener raised")


def build_orchestrator(settings: Settings, clock: Clock | None = None) -> UploadOrchestrator:
    """Build an UploadOrchestrator with all required adapters."""
    return UploadOrchestrator(
        local_provider=AnalysisProviderFactory.create(settings.local_analysis_provider, settings),
        fallback_provider=AnalysisProviderFactory.create_fallback(),
        remote_client=ReportsApiClient(
            settings.scanner_api_base_url,
            timeout_seconds=settings.scanner_http_timeout_seconds,
        ),
        text_extractor=TextExtractorFactory.create(settings),
        policy=ScannerPolicy.from_settings(settings),
        clock=clock,
    )
