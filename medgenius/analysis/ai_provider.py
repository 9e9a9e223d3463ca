"""AI-backed analysis provider for reports and medical images."""

import base64
import json
import mimetypes
from pathlib import Path

from medgenius.analysis.base import BaseAnalysisProvider
from medgenius.analysis.client_base import BaseInferenceClient
from medgenius.analysis.exceptions import AnalysisError
from medgenius.analysis.models import AnalysisResult, DocumentResult, ImageResult
from medgenius.analysis.prompt_loader import load_json_schema, load_prompt_template
from medgenius.analysis.validator import validate_and_build
from medgenius.logging.logger import Log


class AIAnalysisProvider(BaseAnalysisProvider):
    """Asks an inference client for analysis JSON and validates the answer."""

    def __init__(
        self,
        *,
        client: BaseInferenceClient,
        model: str,
        temperature: float = 0.0,
        prompt_dir: Path | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._system_prompt = load_prompt_template("system_prompt.txt", prompt_dir)
        self._document_prompt = load_prompt_template("document_prompt.txt", prompt_dir)
        self._image_prompt = load_prompt_template("image_prompt.txt", prompt_dir)
        self._document_schema = load_json_schema("document_schema.json", prompt_dir)
        self._image_schema = load_json_schema("image_schema.json", prompt_dir)

    def analyze_document(self, text: str) -> DocumentResult:
        if not text.strip():
            raise AnalysisError("Document contains no extractable text")
        prompt = self._document_prompt.format(report_text=text)
        Log.debug(f"Document analysis prompt:\n{prompt}")
        raw_response = self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            json_schema=self._document_schema,
        )
        result = self._build(raw_response, DocumentResult)
        Log.info(
            f"Document analysis complete: {len(result.abnormal_values)} abnormal, "
            f"{len(result.normal_values)} normal values"
        )
        return result

    def analyze_image(self, image_path: Path) -> ImageResult:
        raw_response = self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=self._image_prompt,
            json_schema=self._image_schema,
            image_data_url=self._to_data_url(image_path),
        )
        result = self._build(raw_response, ImageResult)
        Log.info(f"Image analysis complete: {len(result.findings)} findings")
        return result

    def _build(self, raw: str, expected: type[AnalysisResult]) -> AnalysisResult:
        Log.debug(f"AI raw response:\n{raw}")
        result = validate_and_build(self._parse_json(raw))
        if not isinstance(result, expected):
            raise AnalysisError(
                f"AI returned a '{result.type}' result where '{expected().type}' was expected"
            )
        return result

    @staticmethod
    def _to_data_url(image_path: Path) -> str:
        try:
            data = image_path.read_bytes()
        except OSError as exc:
            raise AnalysisError(f"Failed to read image {image_path.name}: {exc}") from exc
        media_type = mimetypes.guess_type(image_path.name)[0] or "image/png"
        encoded = base64.b64encode(data).decode("ascii")
        return f"data:{media_type};base64,{encoded}"

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise AnalysisError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise AnalysisError("JSON response must be an object")
        return parsed
