"""
Models package for the Benefits Eligibility Rules Engine
"""

from .rules import (
    RuleSetStatus,
    ProgramCategory,
    ProgramDefinition,
    EligibilityRule,
    RuleSetVersion,
    FederalPovertyLevel
)

from .eligibility import (
    EligibilityStatus,
    ExplanationItemStatus,
    EligibilityRequest,
    ConfidenceScore,
    ProgramMatch,
    ExplanationItem,
    EligibilityResult,
    CacheStatistics,
    RefreshReport
)

__all__ = [
    # Rule catalogue models
    "RuleSetStatus",
    "ProgramCategory",
    "ProgramDefinition",
    "EligibilityRule",
    "RuleSetVersion",
    "FederalPovertyLevel",

    # Evaluation models
    "EligibilityStatus",
    "ExplanationItemStatus",
    "EligibilityRequest",
    "ConfidenceScore",
    "ProgramMatch",
    "ExplanationItem",
    "EligibilityResult",
    "CacheStatistics",
    "RefreshReport"
]
