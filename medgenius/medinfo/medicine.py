from dataclasses import dataclass, field
from typing import Any

import httpx

from medgenius.logging.logger import Log


@dataclass(frozen=True)
class MedicineInfo:
    name: str
    generic_name: str
    uses: list[str] = field(default_factory=list)
    side_effects: list[str] = field(default_factory=list)
    dosage: str = ""
    interactions: list[str] = field(default_factory=list)
    precautions: list[str] = field(default_factory=list)


_FORMULARY: dict[str, dict[str, Any]] = {
    "ibuprofen": {
        "generic_name": "Ibuprofen",
        "uses": ["Pain relief", "Fever reduction", "Inflammation reduction"],
        "side_effects": ["Upset stomach", "Heartburn", "Dizziness", "Mild headache"],
        "dosage": "Adults: 200-400mg every 4-6 hours as needed, not exceeding 1200mg per day.",
        "interactions": ["Blood thinners", "Aspirin", "Some blood pressure medications"],
        "precautions": [
            "Avoid if you have stomach ulcers",
            "Use caution if you have heart conditions",
        ],
    },
    "paracetamol": {
        "generic_name": "Acetaminophen",
        "uses": ["Pain relief", "Fever reduction"],
        "side_effects": ["Rare allergic reactions", "Liver damage (at high doses)"],
        "dosage": "Adults: 500-1000mg every 4-6 hours, not exceeding 4000mg per day.",
        "interactions": ["Alcohol", "Other medications containing acetaminophen"],
        "precautions": ["Avoid alcohol consumption", "Do not exceed recommended dose"],
    },
    "aspirin": {
        "generic_name": "Acetylsalicylic acid",
        "uses": ["Pain relief", "Fever reduction", "Blood thinning", "Anti-inflammatory"],
        "side_effects": ["Upset stomach", "Heartburn", "Increased bleeding risk"],
        "dosage": "Adults: 300-600mg every 4-6 hours as needed.",
        "interactions": ["Blood thinners", "Ibuprofen", "Some antidepressants"],
        "precautions": [
            "Not recommended for children under 16",
            "Avoid if you have bleeding disorders",
        ],
    },
}


def is_known_medicine(name: str) -> bool:
    return name.strip().lower() in _FORMULARY


def formulary_entry(name: str) -> MedicineInfo:
    """Canned information for a medicine; unknown names get generic advice."""
    name = name.strip()
    data = _FORMULARY.get(name.lower(), {})
    return MedicineInfo(
        name=name,
        generic_name=data.get("generic_name", name),
        uses=data.get("uses", ["Consult healthcare provider for specific uses"]),
        side_effects=data.get(
            "side_effects", ["Consult healthcare provider for side effect information"]
        ),
        dosage=data.get("dosage", "Please consult your healthcare provider for proper dosage."),
        interactions=data.get(
            "interactions", ["Consult healthcare provider for potential drug interactions"]
        ),
        precautions=data.get("precautions", ["Consult healthcare provider before use"]),
    )


class MedicineLookup:
    """Looks medicines up in an external service, falling back to the formulary."""

    def __init__(
        self,
        api_url: str = "",
        *,
        timeout_seconds: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_url = api_url.strip()
        self._timeout = timeout_seconds
        self._transport = transport

    def lookup(self, name: str) -> MedicineInfo:
        """Medicine information; unknown names get the generic advice template."""
        return self.find(name) or formulary_entry(name)

    def find(self, name: str) -> MedicineInfo | None:
        """Medicine information from the external service or the formulary, if known."""
        if self._api_url:
            remote = self._fetch_remote(name)
            if remote is not None:
                return remote
        if is_known_medicine(name):
            return formulary_entry(name)
        return None

    def _fetch_remote(self, name: str) -> MedicineInfo | None:
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.get(self._api_url, params={"name": name})
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            Log.warning(f"Medicine service lookup for {name} failed: {exc}")
            return None

        if not isinstance(data, dict) or not data.get("name"):
            Log.warning(f"Medicine service returned no usable record for {name}")
            return None
        return MedicineInfo(
            name=str(data["name"]),
            generic_name=str(data.get("genericName") or data["name"]),
            uses=list(data.get("uses") or []),
            side_effects=list(data.get("sideEffects") or []),
            dosage=str(data.get("dosage") or ""),
            interactions=list(data.get("interactions") or []),
            precautions=list(data.get("precautions") or []),
        )
