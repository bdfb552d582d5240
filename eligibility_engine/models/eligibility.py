"""
Pydantic models for eligibility requests, scores, explanations and results
"""
from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Union
from pydantic import BaseModel, Field, field_validator, ConfigDict

from .rules import coerce_to_date

AnswerValue = Optional[Union[bool, int, float, str]]

LIKELY_THRESHOLD = 85
POSSIBLY_THRESHOLD = 60


def get_current_utc_time():
    """Get current UTC time for default values"""
    return datetime.now(timezone.utc)


class EligibilityStatus(str, Enum):
    """Overall likelihood label derived from a confidence score"""
    LIKELY = "Likely"
    POSSIBLY = "Possibly"
    UNLIKELY = "Unlikely"

    @classmethod
    def from_score(cls, score: int) -> "EligibilityStatus":
        if score >= LIKELY_THRESHOLD:
            return cls.LIKELY
        if score >= POSSIBLY_THRESHOLD:
            return cls.POSSIBLY
        return cls.UNLIKELY


class ExplanationItemStatus(str, Enum):
    """Outcome of a single criterion"""
    MET = "Met"
    UNMET = "Unmet"
    MISSING = "Missing"


class EligibilityRequest(BaseModel):
    """Request to evaluate eligibility in one jurisdiction on one date"""
    jurisdiction: str = Field(..., description="Two-letter jurisdiction code")
    effective_date: date = Field(..., description="Date the rules must be in force")
    answers: Dict[str, AnswerValue] = Field(default_factory=dict, description="Answer key to scalar value")

    @field_validator('jurisdiction')
    @classmethod
    def normalize_jurisdiction(cls, v):
        return v.strip().upper()

    @field_validator('effective_date', mode='before')
    @classmethod
    def coerce_effective_date(cls, v):
        return coerce_to_date(v)

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "jurisdiction": "IL",
                "effective_date": "2026-03-01",
                "answers": {
                    "age": 34,
                    "household_size": 3,
                    "annual_income_cents": 3100000,
                    "is_pregnant": False,
                    "state_of_residence": "IL"
                }
            }
        }
    )


class ConfidenceScore(BaseModel):
    """Confidence score clamped to 0-100, paired with its status label"""
    value: int = Field(..., description="Score between 0 and 100")

    @field_validator('value', mode='before')
    @classmethod
    def clamp_value(cls, v):
        return max(0, min(100, int(v)))

    @property
    def status(self) -> EligibilityStatus:
        return EligibilityStatus.from_score(self.value)

    model_config = ConfigDict(frozen=True)


class ProgramMatch(BaseModel):
    """A program whose rule evaluated true"""
    program_code: str
    program_name: str
    confidence_score: int = Field(..., ge=0, le=100)
    explanation: str

    model_config = ConfigDict(frozen=True)


class ExplanationItem(BaseModel):
    """Plain-language explanation of one criterion"""
    criterion_id: str = Field(..., description="Criterion identifier, e.g. income_threshold")
    message: str = Field(..., description="Plain-language message")
    status: ExplanationItemStatus
    glossary_reference: Optional[str] = Field(None, description="Longer definition for known criteria")

    model_config = ConfigDict(frozen=True)


class EligibilityResult(BaseModel):
    """Result of one eligibility evaluation"""
    status: EligibilityStatus
    matched_programs: List[ProgramMatch] = Field(default_factory=list)
    confidence_score: int = Field(..., ge=0, le=100)
    explanation: str
    explanation_items: List[ExplanationItem] = Field(default_factory=list)
    rule_version_used: Optional[str] = Field(None, description="Version label of the rule set applied")
    evaluated_at: datetime = Field(default_factory=get_current_utc_time)

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "status": "Likely",
                "matched_programs": [
                    {
                        "program_code": "MAGI_ADULT",
                        "program_name": "Adult Medicaid",
                        "confidence_score": 100,
                        "explanation": "Rule matched for Adult Medicaid."
                    }
                ],
                "confidence_score": 100,
                "explanation": "Matched 1 program(s). Based on the information provided, you appear to be eligible.",
                "explanation_items": [],
                "rule_version_used": "2026.1",
                "evaluated_at": "2026-03-01T10:30:00Z"
            }
        }
    )


class CacheStatistics(BaseModel):
    """Snapshot of rule cache health"""
    total_entries: int = 0
    valid_entries: int = 0
    expired_entries: int = 0
    hit_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    last_refreshed: Optional[datetime] = None


class RefreshReport(BaseModel):
    """Outcome of refreshing the rule cache for every supported jurisdiction"""
    refreshed: Dict[str, int] = Field(default_factory=dict, description="Jurisdiction to rules loaded")
    failed: Dict[str, str] = Field(default_factory=dict, description="Jurisdiction to failure message")

    @property
    def all_succeeded(self) -> bool:
        return not self.failed
