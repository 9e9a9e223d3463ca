import random
from typing import ClassVar

from medgenius.analysis.ai_provider import AIAnalysisProvider
from medgenius.analysis.base import BaseAnalysisProvider
from medgenius.analysis.mock_provider import MockAnalysisProvider
from medgenius.analysis.openai_client_adapter import OpenAIClientAdapter
from medgenius.config.settings import Settings


class AnalysisProviderFactory:
    """Creates analysis providers by name."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, provider: str, settings: Settings) -> BaseAnalysisProvider:
        """Create a provider; ``provider`` is usually one of the *_analysis_provider settings."""
        name = provider.lower()
        if name == "mock":
            return MockAnalysisProvider(rng=random.Random())
        if name == "openai":
            client = OpenAIClientAdapter(
                api_key=settings.analysis_openai_api_key,
                timeout_seconds=settings.analysis_openai_timeout_seconds,
            )
            return AIAnalysisProvider(
                client=client,
                model=settings.analysis_openai_model_name,
                temperature=settings.analysis_openai_temperature,
            )
        base_url = cls._resolve_base_url(name, settings)
        client = OpenAIClientAdapter(
            api_key=settings.analysis_openai_compatible_api_key,
            timeout_seconds=settings.analysis_openai_timeout_seconds,
            base_url=base_url,
        )
        return AIAnalysisProvider(
            client=client,
            model=settings.analysis_openai_compatible_model_name,
        )

    @classmethod
    def create_fallback(cls) -> BaseAnalysisProvider:
        """Provider of substitute results used when real analysis is unavailable."""
        return MockAnalysisProvider(fallback=True)

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str:
        if provider == "openai_compatible":
            url = settings.analysis_openai_compatible_base_url.strip()
            if not url:
                raise ValueError(
                    "analysis_openai_compatible_base_url is required for "
                    "provider openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        supported = ["mock", "openai", "openai_compatible", *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS)]
        raise ValueError(f"Unknown analysis provider '{provider}'. Choose from: {supported}")
