class ReportNotFoundError(Exception):
    """Raised when an update targets a report that does not exist."""
