"""
Services package for the Benefits Eligibility Rules Engine
"""

from .repositories import RuleRepository, FplRepository, RuleSetRepository
from .version_selector import RuleSetVersionSelector
from .scoring_policy import ConfidenceScoringPolicy
from .fpl_cache import FplYearCache
from .fpl_calculator import FplThresholdCalculator
from .explanation_builder import ExplanationBuilder
from .explanation_readability import ExplanationReadability, ReadabilityValidation, ReadabilityIssueType
from .rule_cache import RuleCache, InMemoryRuleCache
from .state_rule_loader import StateRuleLoader
from .eligibility_service import EligibilityEvaluator, EligibilityService, create_eligibility_service

__all__ = [
    # Repository interfaces
    "RuleRepository",
    "FplRepository",
    "RuleSetRepository",

    # Evaluation
    "RuleSetVersionSelector",
    "ConfidenceScoringPolicy",
    "EligibilityEvaluator",
    "EligibilityService",
    "create_eligibility_service",

    # FPL
    "FplYearCache",
    "FplThresholdCalculator",

    # Explanations
    "ExplanationBuilder",
    "ExplanationReadability",
    "ReadabilityValidation",
    "ReadabilityIssueType",

    # Rule caching
    "RuleCache",
    "InMemoryRuleCache",
    "StateRuleLoader"
]
