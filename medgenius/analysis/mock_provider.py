"""Canned analysis results.

Serves three roles: the backend's default analyser, a provider for local
development without an AI key, and the source of fallback results when no
real analysis can be obtained.
"""

import random
from dataclasses import replace
from pathlib import Path

from medgenius.analysis.base import BaseAnalysisProvider
from medgenius.analysis.models import (
    DocumentResult,
    Finding,
    ImageResult,
    LabValue,
    RecommendedAction,
)

_DOCUMENT_RESULT = DocumentResult(
    abnormal_values=[
        LabValue(
            test="Hemoglobin",
            value="11.2 g/dL",
            normal_range="13.5-17.5 g/dL",
            interpretation="Below normal range",
            severity="medium",
            confidence=0.91,
        ),
        LabValue(
            test="White Blood Cells",
            value="11,500 /μL",
            normal_range="4,500-11,000 /μL",
            interpretation="Above normal range",
            severity="low",
            confidence=0.88,
        ),
        LabValue(
            test="Platelet Count",
            value="142,000 /μL",
            normal_range="150,000-450,000 /μL",
            interpretation="Slightly below normal range",
            severity="low",
            confidence=0.84,
        ),
    ],
    normal_values=[
        LabValue(
            test="Glucose (fasting)",
            value="92 mg/dL",
            normal_range="70-99 mg/dL",
            interpretation="Within normal range",
            severity="normal",
            confidence=0.95,
        ),
        LabValue(
            test="Creatinine",
            value="0.9 mg/dL",
            normal_range="0.7-1.3 mg/dL",
            interpretation="Within normal range",
            severity="normal",
            confidence=0.93,
        ),
    ],
    summary=(
        "The report shows hemoglobin below the normal range and an elevated white "
        "blood cell count, which may indicate anemia and a possible infection or "
        "inflammation. The platelet count is slightly low and may warrant monitoring."
    ),
    health_score=68,
    recommended_actions=[
        RecommendedAction(
            description="Discuss the low hemoglobin result with your doctor",
            urgency="soon",
            rationale="Low hemoglobin can point to anemia, which has several treatable causes",
            confidence=0.86,
        ),
        RecommendedAction(
            description="Repeat the complete blood count in 2-4 weeks",
            urgency="monitoring",
            rationale="Mildly abnormal white cell and platelet counts often settle on their own",
            confidence=0.78,
        ),
    ],
)

_IMAGE_RESULT = ImageResult(
    findings=[
        Finding(
            type="observation",
            location="upper right quadrant",
            description="Possible density variation",
            confidence=0.87,
            severity="medium",
            suggested_action="Specialist review of the upper right quadrant",
        ),
        Finding(
            type="observation",
            location="lower left quadrant",
            description="Normal tissue appearance",
            confidence=0.92,
            severity="normal",
        ),
        Finding(
            type="recommendation",
            description="Consult with a specialist for further evaluation",
        ),
    ],
    summary=(
        "Image analysis detected a potential area of interest in the upper right "
        "quadrant with 87% confidence. The lower regions appear normal. A specialist "
        "review is recommended for a comprehensive evaluation."
    ),
    health_score=74,
    recommended_actions=[
        RecommendedAction(
            description="Have a radiologist review the image",
            urgency="routine",
            rationale="Automated image observations need professional confirmation",
            confidence=0.9,
        ),
    ],
)


class MockAnalysisProvider(BaseAnalysisProvider):
    """Returns fixed results, optionally jittering the health score.

    Args:
        fallback: mark every result as a fallback substitute.
        rng: when given, health scores vary by up to +/-5 points.
    """

    def __init__(self, *, fallback: bool = False, rng: random.Random | None = None) -> None:
        self._fallback = fallback
        self._rng = rng

    def analyze_document(self, text: str) -> DocumentResult:
        _ = text
        return replace(
            _DOCUMENT_RESULT,
            abnormal_values=list(_DOCUMENT_RESULT.abnormal_values),
            normal_values=list(_DOCUMENT_RESULT.normal_values),
            recommended_actions=list(_DOCUMENT_RESULT.recommended_actions),
            health_score=self._score(_DOCUMENT_RESULT.health_score),
            fallback=self._fallback,
        )

    def analyze_image(self, image_path: Path) -> ImageResult:
        _ = image_path
        return replace(
            _IMAGE_RESULT,
            findings=list(_IMAGE_RESULT.findings),
            recommended_actions=list(_IMAGE_RESULT.recommended_actions),
            health_score=self._score(_IMAGE_RESULT.health_score),
            fallback=self._fallback,
        )

    def _score(self, base: int) -> int:
        if self._rng is None:
            return base
        return max(0, min(100, base + self._rng.randint(-5, 5)))
