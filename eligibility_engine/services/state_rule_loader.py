"""
Jurisdiction-scoped rule loading with caching
"""
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from ..config import settings
from ..exceptions import NoRulesProvisionedError, UnsupportedJurisdictionError
from ..models.eligibility import RefreshReport
from ..models.rules import EligibilityRule, ProgramDefinition, RuleSetVersion
from ..utils.validators import normalize_jurisdiction_code
from .repositories import RuleRepository, RuleSetRepository
from .rule_cache import RuleCache

logger = logging.getLogger(__name__)


class StateRuleLoader:
    """Loads active rules for supported jurisdictions, cache first"""

    def __init__(
        self,
        rule_repository: RuleRepository,
        cache: RuleCache,
        supported_jurisdictions: Optional[Iterable[str]] = None
    ):
        if rule_repository is None:
            raise ValueError("rule_repository is required")
        if cache is None:
            raise ValueError("cache is required")

        self.rule_repository = rule_repository
        self.cache = cache
        if supported_jurisdictions is None:
            supported_jurisdictions = settings.get_supported_jurisdictions_list()
        self.supported_jurisdictions = tuple(normalize_jurisdiction_code(j) for j in supported_jurisdictions)

    def validate_jurisdiction(self, jurisdiction: str) -> str:
        """
        Normalize a jurisdiction code and check it against the allow-list

        Raises:
            ValueError: If the code is blank
            UnsupportedJurisdictionError: If the code is not supported
        """
        code = normalize_jurisdiction_code(jurisdiction)
        if not code:
            raise ValueError("Jurisdiction code cannot be empty")
        if code not in self.supported_jurisdictions:
            raise UnsupportedJurisdictionError(code, self.supported_jurisdictions)
        return code

    async def load_rules_for_jurisdiction(self, jurisdiction: str) -> List[EligibilityRule]:
        """
        Load active rules for a jurisdiction

        The cache holds one rule per program, so when several active rules
        share a program code the last one is kept, whether or not the cache
        was warm.

        Args:
            jurisdiction: Jurisdiction code (any case)

        Returns:
            Active rules, from the cache when present

        Raises:
            UnsupportedJurisdictionError: Before any repository call, for unsupported codes
            NoRulesProvisionedError: If the repository has no active rules
        """
        code = self.validate_jurisdiction(jurisdiction)

        cached = self.cache.get_cached_rules_by_jurisdiction(code)
        if cached:
            return list(cached)

        rules = list(await self.rule_repository.get_active_rules_by_jurisdiction(code))
        if not rules:
            raise NoRulesProvisionedError(code)

        by_program: Dict[str, EligibilityRule] = {}
        for rule in rules:
            self.cache.set_cached_rule(code, rule.program_code, rule)
            by_program[rule.program_code] = rule

        if len(by_program) < len(rules):
            logger.warning(
                f"{len(rules) - len(by_program)} active rules for {code} share a program code "
                f"with a later rule and are not cached"
            )
        logger.info(f"Cached {len(by_program)} active rules for {code}")
        return list(by_program.values())

    async def load_rules_for_rule_set(
        self,
        rule_set: RuleSetVersion,
        rule_set_repository: RuleSetRepository
    ) -> List[EligibilityRule]:
        """
        Load every rule of a rule-set version, cache first

        Args:
            rule_set: Selected rule-set version
            rule_set_repository: Source of the version's rules

        Returns:
            The version's rules in authoring order; falls back to the rule
            repository by version id when the rule-set repository has none
        """
        code = self.validate_jurisdiction(rule_set.jurisdiction)

        cached = self.cache.get_cached_rule_set(rule_set.id)
        if cached is not None:
            return cached

        rules = list(await rule_set_repository.get_rules_for_rule_set(rule_set.id))
        if not rules:
            logger.info(f"Loading rules for {code} version {rule_set.version} by version id")
            rules = list(await self.rule_repository.get_rules_by_version(code, rule_set.id))

        if rules:
            self.cache.set_cached_rule_set(code, rule_set.id, rules)
        return rules

    async def load_programs_with_rules(self, jurisdiction: str) -> List[Tuple[ProgramDefinition, EligibilityRule]]:
        """
        Load (program, rule) pairs for a jurisdiction

        Not cached: the join leaves out rules without an active program, so
        its rows are not a complete view of the jurisdiction's rules.
        """
        code = self.validate_jurisdiction(jurisdiction)

        pairs = list(await self.rule_repository.get_programs_with_active_rules(code))
        if not pairs:
            raise NoRulesProvisionedError(code)
        return pairs

    def invalidate_cache_for_jurisdiction(self, jurisdiction: str) -> None:
        code = normalize_jurisdiction_code(jurisdiction)
        if not code:
            raise ValueError("Jurisdiction code cannot be empty")
        self.cache.invalidate_jurisdiction(code)

    async def refresh_all_jurisdictions(self) -> RefreshReport:
        """
        Reload rules for every supported jurisdiction

        A failure in one jurisdiction is logged and recorded in the report;
        the remaining jurisdictions are still refreshed.
        """
        report = RefreshReport()
        for code in self.supported_jurisdictions:
            try:
                self.cache.invalidate_jurisdiction(code)
                rules = await self.load_rules_for_jurisdiction(code)
                report.refreshed[code] = len(rules)
            except Exception as e:
                logger.warning(f"Failed to refresh rule cache for {code}: {e}")
                report.failed[code] = str(e)
        return report
