class AnalysisError(Exception):
    """Raised when an analysis provider cannot produce a result."""


class AnalysisValidationError(AnalysisError):
    """Raised when an analysis payload fails domain validation."""


class AnalysisNetworkError(AnalysisError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""
