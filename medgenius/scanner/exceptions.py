class ScannerError(Exception):
    """Base exception for all upload/analysis orchestration errors."""


class ValidationError(ScannerError):
    """The selected file cannot be submitted. Blocks submission, never retried."""


class NoFileSelected(ValidationError):
    """Raised when submit is called without a file."""


class InvalidFileType(ValidationError):
    """Raised when the file's media type is not accepted."""


class FileTooLarge(ValidationError):
    """Raised when the file exceeds the upload size limit."""


class EmptyFile(ValidationError):
    """Raised when the file has no content."""


class TransientProviderError(ScannerError):
    """A local or remote provider call failed; recovered through the fallback path."""


class LocalInferenceFailed(TransientProviderError):
    """Raised when local inference cannot analyse the file."""


class RemoteUploadFailed(TransientProviderError):
    """Raised when the report service rejects or cannot receive the upload."""


class RemoteRequestError(TransientProviderError):
    """Raised when a status request to the report service fails."""


class PollingTimedOut(ScannerError, TimeoutError):
    """Raised when polling or a watchdog gives up waiting for the remote result."""


class TerminalAnalysisFailure(ScannerError):
    """The report service explicitly reported a failed analysis."""


class AnalysisFailed(TerminalAnalysisFailure):
    """Raised when the remote report record ends in the failed status."""


class JobSuperseded(ScannerError):
    """Raised inside a run whose job was reset or replaced by a newer submit."""
