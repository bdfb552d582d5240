"""
Error taxonomy for eligibility evaluation.

Every error carries the context that produced it so callers (an API layer, a
batch job) can map it to a response without parsing messages.
"""
from datetime import date
from typing import Iterable, Optional


class EligibilityEngineError(Exception):
    """Base exception for eligibility engine errors."""

    pass


class UnsupportedJurisdictionError(EligibilityEngineError):
    """Jurisdiction is not on the supported allow-list. Not retryable."""

    def __init__(self, jurisdiction: str, supported: Iterable[str] = ()):
        self.jurisdiction = jurisdiction
        self.supported = tuple(supported)
        message = f"Jurisdiction '{jurisdiction}' is not supported"
        if self.supported:
            message += f". Supported jurisdictions: {', '.join(self.supported)}"
        super().__init__(message)


class NoRulesProvisionedError(EligibilityEngineError):
    """Jurisdiction is supported but has no active rules yet."""

    def __init__(self, jurisdiction: str):
        self.jurisdiction = jurisdiction
        super().__init__(
            f"No active rules found for jurisdiction '{jurisdiction}'. "
            f"Rules for this jurisdiction may not be provisioned yet."
        )


class NoEffectiveRuleSetError(EligibilityEngineError):
    """No rule-set version covers the requested date."""

    def __init__(self, jurisdiction: str, effective_date: date, reason: Optional[str] = None):
        self.jurisdiction = jurisdiction
        self.effective_date = effective_date
        message = f"No effective rule set for jurisdiction '{jurisdiction}' on {effective_date.isoformat()}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class MalformedRuleError(EligibilityEngineError):
    """Rule logic could not be parsed. A rule-authoring defect."""

    def __init__(self, rule_id: Optional[str], detail: str):
        self.rule_id = rule_id
        self.detail = detail
        super().__init__(f"Malformed rule logic in rule '{rule_id}': {detail}")


class FplNotFoundError(EligibilityEngineError):
    """Federal Poverty Level row is missing for the requested lookup."""

    def __init__(self, year: int, household_size: int, jurisdiction: Optional[str] = None):
        self.year = year
        self.household_size = household_size
        self.jurisdiction = jurisdiction
        message = f"FPL data not found for year {year}, household size {household_size}"
        if jurisdiction:
            message += f", jurisdiction {jurisdiction}"
        super().__init__(message)
