from dataclasses import dataclass
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EntityType(str, Enum):
    DRUG = "DRUG"
    ADE = "ADE"
    MODIFIER = "MODIFIER"
    INDICATION = "INDICATION"


class SeverityLevel(str, Enum):
    MILD = "MILD"
    MODERATE = "MODERATE"
    SEVERE = "SEVERE"
    UNKNOWN = "UNKNOWN"


class _Record(BaseModel):
    # Wire format is camelCase, Python side is snake_case.
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Entity(_Record):
    text: str
    type: EntityType
    severity: Optional[SeverityLevel] = None
    description: Optional[str] = None


class TamilAnalysis(_Record):
    summary: str
    clinical_reasoning: str
    suggested_actions: List[str]


class AnalysisResult(_Record):
    """
    Canonical output of one analysis call.

    Every narrative field is required. transcript and detected_language
    only carry meaning for audio input and may be empty or absent.
    """

    transcript: Optional[str] = None
    detected_language: Optional[str] = None
    entities: List[Entity]
    summary: str
    patient_age_group: str
    overall_risk_score: int = Field(ge=0, le=100)
    clinical_reasoning: str
    suggested_actions: List[str]
    sentiment: Literal["Positive", "Negative", "Neutral"]
    classification: str
    tamil_analysis: TamilAnalysis

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class HistoryItem(_Record):
    id: str
    timestamp: int
    text: str
    result: AnalysisResult


@dataclass(frozen=True)
class Attachment:
    data: str  # base64
    mime_type: str
    name: Optional[str] = None


@dataclass(frozen=True)
class ConversationTurn:
    role: Literal["user", "model"]
    text: str
