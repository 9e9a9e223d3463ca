from abc import ABC, abstractmethod
from pathlib import Path

from medgenius.analysis.models import DocumentResult, ImageResult


class BaseAnalysisProvider(ABC):
    """Contract for all analysis providers (AI model, canned mock, fallback)."""

    @abstractmethod
    def analyze_document(self, text: str) -> DocumentResult:
        """Analyze the plain text of a medical report.

        Args:
            text: Text extracted from the uploaded document.

        Returns:
            DocumentResult with abnormal/normal values, score and actions.

        Raises:
            AnalysisError: on any failure.
        """

    @abstractmethod
    def analyze_image(self, image_path: Path) -> ImageResult:
        """Analyze a medical image stored at image_path.

        Raises:
            AnalysisError: on any failure.
        """
