import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from medgenius.analysis.models import AnalysisResult
from medgenius.config.settings import Settings
from medgenius.scanner.exceptions import ScannerError

_EXTRA_MEDIA_TYPES = {".dcm": "image/dicom", ".dicom": "image/dicom"}


class Stage(str, Enum):
    IDLE = "idle"
    LOCAL_INFERENCE = "local_inference"
    REMOTE_UPLOADING = "remote_uploading"
    POLLING = "polling"
    COMPLETE = "complete"
    FAILED = "failed"


TERMINAL_STAGES = frozenset({Stage.COMPLETE, Stage.FAILED})

# Failed -> Complete is the fallback substitution.
ALLOWED_TRANSITIONS: dict[Stage, frozenset[Stage]] = {
    Stage.IDLE: frozenset({Stage.LOCAL_INFERENCE}),
    Stage.LOCAL_INFERENCE: frozenset({Stage.COMPLETE, Stage.REMOTE_UPLOADING, Stage.FAILED}),
    Stage.REMOTE_UPLOADING: frozenset({Stage.POLLING, Stage.FAILED}),
    Stage.POLLING: frozenset({Stage.COMPLETE, Stage.FAILED}),
    Stage.FAILED: frozenset({Stage.COMPLETE}),
    Stage.COMPLETE: frozenset(),
}


class Outcome(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED_WITH_FALLBACK = "failed_with_fallback"
    FAILED = "failed"


@dataclass(frozen=True)
class ReportFile:
    """A user-selected file: name, declared media type and content."""

    name: str
    media_type: str
    content: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_image(self) -> bool:
        return self.media_type.startswith("image/")

    @classmethod
    def from_path(cls, path: Path, media_type: str | None = None) -> "ReportFile":
        """Read a file from disk, guessing the media type from its extension."""
        if media_type is None:
            suffix = path.suffix.lower()
            media_type = _EXTRA_MEDIA_TYPES.get(suffix) or mimetypes.guess_type(path.name)[0]
        return cls(
            name=path.name,
            media_type=media_type or "application/octet-stream",
            content=path.read_bytes(),
        )


@dataclass(frozen=True)
class ScannerPolicy:
    """Validation limits, polling bounds and watchdog timeouts."""

    allowed_media_types: frozenset[str] = frozenset(
        {"image/jpeg", "image/png", "image/dicom", "application/pdf"}
    )
    max_file_bytes: int = 10 * 1024 * 1024
    poll_interval_seconds: float = 1.5
    max_poll_attempts: int = 5
    progress_floor: int = 70
    progress_ceiling: int = 95
    stuck_timeout_seconds: float = 10.0
    total_timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScannerPolicy":
        return cls(
            allowed_media_types=frozenset(settings.allowed_media_types),
            max_file_bytes=settings.max_upload_bytes,
            poll_interval_seconds=settings.scanner_poll_interval_seconds,
            max_poll_attempts=settings.scanner_max_poll_attempts,
            progress_floor=settings.scanner_progress_floor,
            stuck_timeout_seconds=settings.scanner_stuck_timeout_seconds,
            total_timeout_seconds=settings.scanner_total_timeout_seconds,
        )


@dataclass
class UploadJob:
    """One user-initiated analysis request, mutated only by the orchestrator."""

    file: ReportFile
    stage: Stage = Stage.IDLE
    progress: int = 0
    remote_id: str | None = None
    result: AnalysisResult | None = None
    error: ScannerError | None = None
    fallback_used: bool = False
    history: list[Stage] = field(default_factory=lambda: [Stage.IDLE])

    @property
    def outcome(self) -> Outcome:
        if self.stage is Stage.COMPLETE:
            if self.fallback_used and self.error is not None:
                return Outcome.FAILED_WITH_FALLBACK
            return Outcome.COMPLETED
        if self.stage is Stage.FAILED:
            return Outcome.FAILED
        return Outcome.PENDING

    def snapshot(self) -> "JobSnapshot":
        return JobSnapshot(
            file_name=self.file.name,
            stage=self.stage,
            progress=self.progress,
            remote_id=self.remote_id,
            result=self.result,
            error_message=str(self.error) if self.error is not None else None,
            fallback_used=self.fallback_used,
        )


@dataclass(frozen=True)
class JobSnapshot:
    """Immutable view of a job handed to listeners."""

    file_name: str
    stage: Stage
    progress: int
    remote_id: str | None
    result: AnalysisResult | None
    error_message: str | None
    fallback_used: bool
