"""
Pydantic models for the rule catalogue: rule-set versions, rules, programs and FPL rows
"""
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field, field_validator, ConfigDict


def get_current_utc_time():
    """Get current UTC time for default values"""
    return datetime.now(timezone.utc)


def coerce_to_date(v):
    """Accept datetimes (as stored by MongoDB) where a calendar date is expected"""
    if isinstance(v, datetime):
        return v.date()
    return v


class RuleSetStatus(str, Enum):
    """Lifecycle status of a rule-set version"""
    ACTIVE = "Active"
    RETIRED = "Retired"


class ProgramCategory(str, Enum):
    """Benefit program category"""
    MAGI = "MAGI"
    NON_MAGI = "NON_MAGI"
    PREGNANCY = "PREGNANCY"
    SSI_LINKED = "SSI_LINKED"
    OTHER = "OTHER"


class ProgramDefinition(BaseModel):
    """Benefit program offered in a jurisdiction"""
    program_code: str = Field(..., description="Program code, unique within a jurisdiction")
    jurisdiction: str = Field(..., description="Two-letter jurisdiction code")
    program_name: str = Field(..., description="Display name of the program")
    description: Optional[str] = Field(None, description="Short program description")
    category: ProgramCategory = Field(default=ProgramCategory.OTHER)
    is_active: bool = Field(default=True)

    @field_validator('jurisdiction')
    @classmethod
    def normalize_jurisdiction(cls, v):
        return v.strip().upper()


class EligibilityRule(BaseModel):
    """A declarative eligibility rule belonging to one rule-set version"""
    id: str = Field(..., description="Rule identifier")
    rule_set_version_id: str = Field(..., description="Owning rule-set version")
    jurisdiction: str = Field(..., description="Two-letter jurisdiction code")
    program_code: str = Field(..., description="Program this rule decides")
    program: Optional[ProgramDefinition] = Field(None, description="Joined program definition")
    rule_logic: Union[str, Dict[str, Any]] = Field(..., description="JSON Logic expression (text or decoded)")
    priority: int = Field(default=0, description="Authoring priority; evaluation follows list order")
    created_at: datetime = Field(default_factory=get_current_utc_time)

    @field_validator('jurisdiction')
    @classmethod
    def normalize_jurisdiction(cls, v):
        return v.strip().upper()

    @property
    def program_name(self) -> str:
        """Program display name, falling back to the program code"""
        if self.program is not None and self.program.program_name:
            return self.program.program_name
        return self.program_code

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "il-magi-adult-2026",
                "rule_set_version_id": "il-2026-01",
                "jurisdiction": "IL",
                "program_code": "MAGI_ADULT",
                "rule_logic": '{"and": [{">=": [{"var": "age"}, 19]}, {"<=": [{"var": "household_income_percent_fpl"}, 138]}]}',
                "priority": 1
            }
        }
    )


class RuleSetVersion(BaseModel):
    """A dated, versioned bundle of rules in force for a jurisdiction"""
    id: str = Field(..., description="Rule-set version identifier")
    jurisdiction: str = Field(..., description="Two-letter jurisdiction code")
    version: str = Field(..., description="Version label, e.g. 2026.1")
    effective_date: date = Field(..., description="First day the version applies")
    end_date: Optional[date] = Field(None, description="Last day the version applies (inclusive)")
    status: RuleSetStatus = Field(default=RuleSetStatus.ACTIVE)
    created_at: datetime = Field(default_factory=get_current_utc_time)
    rules: List[EligibilityRule] = Field(default_factory=list)

    @field_validator('jurisdiction')
    @classmethod
    def normalize_jurisdiction(cls, v):
        return v.strip().upper()

    @field_validator('effective_date', 'end_date', mode='before')
    @classmethod
    def coerce_dates(cls, v):
        return coerce_to_date(v)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "il-2026-01",
                "jurisdiction": "IL",
                "version": "2026.1",
                "effective_date": "2026-01-01",
                "end_date": None,
                "status": "Active"
            }
        }
    )


class FederalPovertyLevel(BaseModel):
    """Published poverty-income baseline for a year and household size"""
    year: int = Field(..., ge=2000, le=2100)
    household_size: int = Field(..., ge=1, le=8, description="Sizes above 8 are derived, never stored")
    annual_income_cents: int = Field(..., ge=0, description="Annual amount in integer cents")
    jurisdiction: Optional[str] = Field(None, description="Set for jurisdiction-adjusted rows")
    adjustment_multiplier: Optional[float] = Field(None, gt=0, description="E.g. 1.25 for a 25% uplift")

    @field_validator('jurisdiction')
    @classmethod
    def normalize_jurisdiction(cls, v):
        if v:
            return v.strip().upper()
        return None
