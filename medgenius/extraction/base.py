from abc import ABC, abstractmethod


class BaseTextExtractor(ABC):
    """Contract for all PDF text extraction adapters."""

    def __init__(self, max_chars: int | None = None) -> None:
        self._max_chars = max_chars

    def extract(self, pdf_bytes: bytes) -> str:
        """Extract plain text from PDF bytes, truncated to max_chars.

        Raises:
            TextExtractionError: if extraction fails for any reason.
        """
        text = self._extract_pages(pdf_bytes)
        if self._max_chars is not None and len(text) > self._max_chars:
            return text[: self._max_chars]
        return text

    @abstractmethod
    def _extract_pages(self, pdf_bytes: bytes) -> str:
        """Return the text of all pages joined by newlines."""
