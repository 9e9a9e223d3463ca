from dataclasses import dataclass, field

SEVERITIES = ("critical", "high", "medium", "low", "normal")
URGENCIES = ("immediate", "soon", "routine", "monitoring")


@dataclass(frozen=True)
class LabValue:
    """A single lab test reading, normal or abnormal."""

    test: str
    value: str
    normal_range: str
    interpretation: str
    severity: str = "normal"
    confidence: float = 0.5


@dataclass(frozen=True)
class RecommendedAction:
    """Follow-up suggestion attached to an analysis."""

    description: str
    urgency: str = "routine"
    rationale: str = ""
    confidence: float = 0.5


@dataclass(frozen=True)
class Finding:
    """Observation or recommendation produced for a medical image."""

    type: str
    description: str
    location: str | None = None
    confidence: float | None = None
    severity: str | None = None
    suggested_action: str | None = None


@dataclass(frozen=True)
class DocumentResult:
    """Analysis of a text report (lab results, pathology)."""

    type: str = "document"
    abnormal_values: list[LabValue] = field(default_factory=list)
    normal_values: list[LabValue] = field(default_factory=list)
    summary: str = ""
    health_score: int = 50
    recommended_actions: list[RecommendedAction] = field(default_factory=list)
    fallback: bool = False


@dataclass(frozen=True)
class ImageResult:
    """Analysis of a medical image (X-ray, CT, MRI, ultrasound)."""

    type: str = "image"
    findings: list[Finding] = field(default_factory=list)
    summary: str = ""
    health_score: int = 50
    recommended_actions: list[RecommendedAction] = field(default_factory=list)
    fallback: bool = False


AnalysisResult = DocumentResult | ImageResult


def health_band(score: int) -> str:
    """Bucket a 0-100 health score the way the result view colours it."""
    if score >= 80:
        return "good"
    if score >= 60:
        return "fair"
    return "poor"


def to_payload(result: AnalysisResult) -> dict[str, object]:
    """Serialize a result into its camelCase wire form."""
    payload: dict[str, object] = {"type": result.type}
    if isinstance(result, DocumentResult):
        payload["abnormalValues"] = [_lab_value_payload(v) for v in result.abnormal_values]
        payload["normalValues"] = [_lab_value_payload(v) for v in result.normal_values]
    else:
        payload["findings"] = [_finding_payload(f) for f in result.findings]
    payload["summary"] = result.summary
    payload["healthScore"] = result.health_score
    payload["recommendedActions"] = [
        {
            "description": a.description,
            "urgency": a.urgency,
            "rationale": a.rationale,
            "confidence": a.confidence,
        }
        for a in result.recommended_actions
    ]
    payload["fallback"] = result.fallback
    return payload


def _lab_value_payload(value: LabValue) -> dict[str, object]:
    return {
        "test": value.test,
        "value": value.value,
        "normalRange": value.normal_range,
        "interpretation": value.interpretation,
        "severity": value.severity,
        "confidence": value.confidence,
    }


def _finding_payload(finding: Finding) -> dict[str, object]:
    payload: dict[str, object] = {
        "type": finding.type,
        "description": finding.description,
    }
    # optional keys are omitted rather than sent as null
    optional = {
        "location": finding.location,
        "confidence": finding.confidence,
        "severity": finding.severity,
        "suggestedAction": finding.suggested_action,
    }
    payload.update({k: v for k, v in optional.items() if v is not None})
    return payload
