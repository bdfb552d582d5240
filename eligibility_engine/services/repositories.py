"""
Repository interfaces consumed by the engine.

Implementations live in mongo_service (MongoDB) and in the test suite
(in-memory fakes). All methods are coroutines: repository access is the only
place evaluation suspends.
"""
from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional, Tuple

from ..models.rules import EligibilityRule, FederalPovertyLevel, ProgramDefinition, RuleSetVersion


class RuleRepository(ABC):
    """Read access to eligibility rules"""

    @abstractmethod
    async def get_rules_by_version(self, jurisdiction: str, version_id: str) -> List[EligibilityRule]:
        """Rules of one rule-set version, in authoring order"""

    @abstractmethod
    async def get_active_rules_by_jurisdiction(self, jurisdiction: str) -> List[EligibilityRule]:
        """Rules of the jurisdiction's active rule-set versions"""

    @abstractmethod
    async def get_programs_with_active_rules(
        self,
        jurisdiction: str
    ) -> List[Tuple[ProgramDefinition, EligibilityRule]]:
        """Active rules joined with their program definitions"""


class FplRepository(ABC):
    """Read access to Federal Poverty Level tables"""

    @abstractmethod
    async def get_by_year_and_household_size(
        self,
        year: int,
        household_size: int,
        jurisdiction: Optional[str] = None
    ) -> Optional[FederalPovertyLevel]:
        """Baseline row when jurisdiction is None, else the jurisdiction-specific row"""

    @abstractmethod
    async def get_by_year(self, year: int) -> List[FederalPovertyLevel]:
        """Every row (baseline and jurisdiction-specific) published for a year"""


class RuleSetRepository(ABC):
    """Read access to rule-set versions"""

    @abstractmethod
    async def get_active_rule_set(self, jurisdiction: str, effective_date: date) -> Optional[RuleSetVersion]:
        """Active version in force for the jurisdiction on the date"""

    @abstractmethod
    async def get_rule_set_version(self, version_id: str) -> Optional[RuleSetVersion]:
        """Version by identifier"""

    @abstractmethod
    async def get_rules_for_rule_set(self, version_id: str) -> List[EligibilityRule]:
        """Rules owned by a version"""

    @abstractmethod
    async def get_rule_set_versions(self, jurisdiction: str) -> List[RuleSetVersion]:
        """Every version (any status) recorded for a jurisdiction"""
