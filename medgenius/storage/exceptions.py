class StorageError(Exception):
    """Base exception for upload storage errors."""


class FileReadError(StorageError):
    """Raised when a stored upload cannot be read from disk."""


class FileWriteError(StorageError):
    """Raised when an upload cannot be written to disk."""
