"""Validates raw analysis JSON (provider output or backend payload)."""

from collections.abc import Callable
from typing import Any, TypeVar

from medgenius.analysis.exceptions import AnalysisValidationError
from medgenius.analysis.models import (
    SEVERITIES,
    URGENCIES,
    AnalysisResult,
    DocumentResult,
    Finding,
    ImageResult,
    LabValue,
    RecommendedAction,
)

_MAX_ITEMS = 100
_VALID_TYPES = frozenset({"document", "image"})

T = TypeVar("T")


def validate_and_build(data: dict[str, Any]) -> AnalysisResult:
    """Validate a camelCase analysis payload and build the matching result.

    Older payloads that only carry ``type``, the value/finding list and
    ``summary`` are accepted; missing scores and actions get defaults.

    Raises:
        AnalysisValidationError: on any validation failure.
    """
    if not isinstance(data, dict):
        raise AnalysisValidationError("Analysis payload must be an object")
    rtype = data.get("type")
    if rtype not in _VALID_TYPES:
        raise AnalysisValidationError(
            f"'type' must be one of {sorted(_VALID_TYPES)}, got {rtype!r}"
        )
    summary = data.get("summary", "")
    if not isinstance(summary, str):
        raise AnalysisValidationError("'summary' must be a string")
    health_score = _build_health_score(data.get("healthScore", 50))
    actions = _build_list(data.get("recommendedActions", []), "recommendedActions", _build_action)
    fallback = bool(data.get("fallback", False))

    if rtype == "document":
        return DocumentResult(
            abnormal_values=_build_list(
                data.get("abnormalValues", []),
                "abnormalValues",
                lambda raw, label: _build_lab_value(raw, label, "medium"),
            ),
            normal_values=_build_list(
                data.get("normalValues", []),
                "normalValues",
                lambda raw, label: _build_lab_value(raw, label, "normal"),
            ),
            summary=summary,
            health_score=health_score,
            recommended_actions=actions,
            fallback=fallback,
        )
    return ImageResult(
        findings=_build_list(data.get("findings", []), "findings", _build_finding),
        summary=summary,
        health_score=health_score,
        recommended_actions=actions,
        fallback=fallback,
    )


def _build_health_score(raw: Any) -> int:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise AnalysisValidationError("'healthScore' must be a number")
    if not 0 <= raw <= 100:
        raise AnalysisValidationError(f"'healthScore' must be within 0-100, got {raw}")
    return round(raw)


def _build_list(raw: Any, name: str, build: Callable[[Any, str], T]) -> list[T]:
    if not isinstance(raw, list):
        raise AnalysisValidationError(f"'{name}' must be a list")
    if len(raw) > _MAX_ITEMS:
        raise AnalysisValidationError(f"Too many {name}: {len(raw)} (max {_MAX_ITEMS})")
    return [build(item, f"{name}[{i}]") for i, item in enumerate(raw)]


def _require_str(raw: dict[str, Any], key: str, label: str) -> str:
    value = raw.get(key)
    if not value or not isinstance(value, str):
        raise AnalysisValidationError(f"{label}: '{key}' must be a non-empty string")
    return value


def _optional_str(raw: dict[str, Any], key: str, label: str) -> str | None:
    value = raw.get(key)
    if value is not None and not isinstance(value, str):
        raise AnalysisValidationError(f"{label}: '{key}' must be a string or null")
    return value


def _build_confidence(raw: Any, label: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise AnalysisValidationError(f"{label}: 'confidence' must be a number")
    if not 0.0 <= raw <= 1.0:
        raise AnalysisValidationError(f"{label}: 'confidence' must be within 0-1, got {raw}")
    return float(raw)


def _build_severity(raw: Any, label: str) -> str:
    if raw not in SEVERITIES:
        raise AnalysisValidationError(
            f"{label}: 'severity' must be one of {list(SEVERITIES)}, got {raw!r}"
        )
    return raw


def _build_lab_value(raw: Any, label: str, default_severity: str) -> LabValue:
    if not isinstance(raw, dict):
        raise AnalysisValidationError(f"{label} must be an object")
    return LabValue(
        test=_require_str(raw, "test", label),
        value=_require_str(raw, "value", label),
        normal_range=_optional_str(raw, "normalRange", label) or "",
        interpretation=_optional_str(raw, "interpretation", label) or "",
        severity=_build_severity(raw.get("severity", default_severity), label),
        confidence=_build_confidence(raw.get("confidence", 0.5), label),
    )


def _build_action(raw: Any, label: str) -> RecommendedAction:
    if not isinstance(raw, dict):
        raise AnalysisValidationError(f"{label} must be an object")
    urgency = raw.get("urgency", "routine")
    if urgency not in URGENCIES:
        raise AnalysisValidationError(
            f"{label}: 'urgency' must be one of {list(URGENCIES)}, got {urgency!r}"
        )
    return RecommendedAction(
        description=_require_str(raw, "description", label),
        urgency=urgency,
        rationale=_optional_str(raw, "rationale", label) or "",
        confidence=_build_confidence(raw.get("confidence", 0.5), label),
    )


def _build_finding(raw: Any, label: str) -> Finding:
    if not isinstance(raw, dict):
        raise AnalysisValidationError(f"{label} must be an object")
    confidence = raw.get("confidence")
    severity = raw.get("severity")
    return Finding(
        type=_require_str(raw, "type", label),
        description=_require_str(raw, "description", label),
        location=_optional_str(raw, "location", label),
        confidence=_build_confidence(confidence, label) if confidence is not None else None,
        severity=_build_severity(severity, label) if severity is not None else None,
        suggested_action=_optional_str(raw, "suggestedAction", label),
    )
