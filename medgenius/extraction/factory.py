from medgenius.config.settings import Settings
from medgenius.extraction.base import BaseTextExtractor
from medgenius.extraction.pdfplumber_adapter import PdfPlumberAdapter
from medgenius.extraction.pymupdf_adapter import PyMuPdfAdapter


class TextExtractorFactory:
    """Creates the configured PDF text extractor."""

    ADAPTERS: dict[str, type[BaseTextExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseTextExtractor:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls(max_chars=settings.max_extracted_chars)
