"""Rule-based preliminary assessment of user-reported symptoms."""

from dataclasses import dataclass, field

from medgenius.logging.logger import Log

URGENCY_LEVELS = ("Low", "Medium", "High", "Emergency")

HIGH_SEVERITY_SYMPTOMS = frozenset(
    {"chest pain", "difficulty breathing", "severe headache", "seizure", "unconsciousness"}
)
EMERGENCY_SYMPTOMS = frozenset({"chest pain", "difficulty breathing"})
MEDIUM_SEVERITY_SYMPTOMS = frozenset(
    {"fever", "persistent cough", "vomiting", "dizziness", "abdominal pain"}
)


@dataclass(frozen=True)
class UserHealthData:
    age: int
    gender: str
    weight: float | None = None
    height: float | None = None
    medical_history: str | None = None
    medications: str | None = None


@dataclass(frozen=True)
class PossibleCondition:
    name: str
    probability: float
    description: str


@dataclass(frozen=True)
class SymptomAnalysisResult:
    possible_conditions: list[PossibleCondition] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    urgency_level: str = "Low"
    follow_up_recommended: bool = False


@dataclass(frozen=True)
class _ConditionRule:
    triggers: frozenset[str]
    conditions: tuple[PossibleCondition, ...]


_CONDITION_RULES = (
    _ConditionRule(
        triggers=frozenset({"cough", "sore throat", "runny nose"}),
        conditions=(
            PossibleCondition(
                "Common Cold", 0.75, "A viral infection of the upper respiratory tract"
            ),
        ),
    ),
    _ConditionRule(
        triggers=frozenset({"fever", "fatigue", "body aches"}),
        conditions=(
            PossibleCondition(
                "Influenza", 0.65, "A contagious respiratory illness caused by influenza viruses"
            ),
        ),
    ),
    _ConditionRule(
        triggers=frozenset({"itching", "rash", "watery eyes"}),
        conditions=(
            PossibleCondition("Allergic Reaction", 0.60, "An immune system response to allergens"),
        ),
    ),
    _ConditionRule(
        triggers=frozenset({"chest pain"}),
        conditions=(
            PossibleCondition(
                "Angina", 0.40, "Chest pain caused by reduced blood flow to the heart"
            ),
            PossibleCondition(
                "Muscle Strain", 0.35, "Pain from strained muscles in the chest wall"
            ),
            PossibleCondition(
                "Gastroesophageal Reflux",
                0.30,
                "Stomach acid flowing back into the esophagus causing pain",
            ),
        ),
    ),
)

NON_SPECIFIC_CONDITION = PossibleCondition(
    "Non-specific condition",
    0.5,
    "Based on the provided symptoms, no specific condition could be identified",
)

_RECOMMENDATIONS = {
    "Emergency": [
        "Seek emergency medical attention immediately",
        "Call emergency services (911) or go to the nearest emergency room",
    ],
    "High": [
        "Schedule an appointment with your doctor as soon as possible",
        "Monitor your symptoms closely and seek emergency care if they worsen",
    ],
    "Medium": [
        "Schedule a routine appointment with your healthcare provider",
        "Rest and stay hydrated",
        "Take over-the-counter medications as appropriate for symptom relief",
    ],
    "Low": [
        "Rest and stay hydrated",
        "Monitor your symptoms for any changes",
        "Consider over-the-counter remedies for symptom relief",
    ],
}


def analyze_symptoms(symptoms: list[str], user: UserHealthData) -> SymptomAnalysisResult:
    """Estimate urgency, likely conditions and next steps for a symptom list.

    Symptom names are matched case-insensitively after trimming; blank
    entries are ignored. Repeated entries still count towards the
    follow-up threshold.
    """
    entries = [s.strip().lower() for s in symptoms if s.strip()]
    normalized = set(entries)
    Log.info(
        f"Analyzing {len(entries)} symptoms for {user.gender or 'unspecified'} "
        f"patient aged {user.age}"
    )

    urgency = _urgency_for(normalized)
    follow_up = urgency != "Low" or len(entries) > 2

    conditions = [
        condition
        for rule in _CONDITION_RULES
        if rule.triggers & normalized
        for condition in rule.conditions
    ]
    if not conditions:
        conditions = [NON_SPECIFIC_CONDITION]

    return SymptomAnalysisResult(
        possible_conditions=conditions,
        recommendations=list(_RECOMMENDATIONS[urgency]),
        urgency_level=urgency,
        follow_up_recommended=follow_up,
    )


def _urgency_for(symptoms: set[str]) -> str:
    if symptoms & HIGH_SEVERITY_SYMPTOMS:
        return "Emergency" if symptoms & EMERGENCY_SYMPTOMS else "High"
    if symptoms & MEDIUM_SEVERITY_SYMPTOMS:
        return "Medium"
    return "Low"
