from medgenius.analysis.base import BaseAnalysisProvider
from medgenius.analysis.factory import AnalysisProviderFactory
from medgenius.analysis.models import AnalysisResult, DocumentResult, ImageResult

__all__ = [
    "AnalysisProviderFactory",
    "AnalysisResult",
    "BaseAnalysisProvider",
    "DocumentResult",
    "ImageResult",
]
