from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from medgenius.checkup.symptoms import SymptomAnalysisResult, UserHealthData
from medgenius.database.models import ReportRecord
from medgenius.medinfo.medicine import MedicineInfo


class CamelModel(BaseModel):
    """Wire models use camelCase keys; Python code uses snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageResponse(CamelModel):
    message: str


class UploadedReport(CamelModel):
    id: str
    file_name: str
    status: str


class UploadResponse(CamelModel):
    message: str
    report: UploadedReport


class ReportDetail(CamelModel):
    id: str = Field(alias="_id")
    file_name: str
    file_type: str
    file_size: int
    file_url: str
    status: str
    analysis_results: dict[str, Any] | None = None
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, record: ReportRecord) -> "ReportDetail":
        return cls(
            id=record.id,
            file_name=record.file_name,
            file_type=record.file_type,
            file_size=record.file_size,
            file_url=record.file_url,
            status=record.status,
            analysis_results=record.analysis_results,
            created_at=record.created_at,
        )


class ReportResponse(CamelModel):
    report: ReportDetail


class UserHealthPayload(CamelModel):
    age: int = Field(ge=0, le=150)
    gender: str = ""
    weight: float | None = None
    height: float | None = None
    medical_history: str | None = None
    medications: str | None = None

    def to_domain(self) -> UserHealthData:
        return UserHealthData(**self.model_dump())


class CheckupRequest(CamelModel):
    symptoms: list[str] = Field(min_length=1)
    user: UserHealthPayload


class PossibleConditionPayload(CamelModel):
    name: str
    probability: float
    description: str


class CheckupResponse(CamelModel):
    possible_conditions: list[PossibleConditionPayload]
    recommendations: list[str]
    urgency_level: str
    follow_up_recommended: bool

    @classmethod
    def from_result(cls, result: SymptomAnalysisResult) -> "CheckupResponse":
        return cls(
            possible_conditions=[
                PossibleConditionPayload(
                    name=c.name, probability=c.probability, description=c.description
                )
                for c in result.possible_conditions
            ],
            recommendations=result.recommendations,
            urgency_level=result.urgency_level,
            follow_up_recommended=result.follow_up_recommended,
        )


class MedicineResponse(CamelModel):
    name: str
    generic_name: str
    uses: list[str]
    side_effects: list[str]
    dosage: str
    interactions: list[str]
    precautions: list[str]

    @classmethod
    def from_info(cls, info: MedicineInfo) -> "MedicineResponse":
        return cls(
            name=info.name,
            generic_name=info.generic_name,
            uses=info.uses,
            side_effects=info.side_effects,
            dosage=info.dosage,
            interactions=info.interactions,
            precautions=info.precautions,
        )
