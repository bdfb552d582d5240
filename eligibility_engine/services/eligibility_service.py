"""
Eligibility service: rule-set resolution, rule evaluation, scoring and explanation
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..exceptions import FplNotFoundError, MalformedRuleError, NoEffectiveRuleSetError
from ..models.eligibility import EligibilityRequest, EligibilityResult, ProgramMatch
from ..models.rules import EligibilityRule, RuleSetVersion
from ..rules_evaluator import CriteriaOutcome, Expression, RuleParser, RulesEvaluator
from .explanation_builder import ExplanationBuilder
from .fpl_calculator import FplThresholdCalculator
from .repositories import RuleRepository, RuleSetRepository
from .scoring_policy import ConfidenceScoringPolicy
from .state_rule_loader import StateRuleLoader
from .version_selector import RuleSetVersionSelector

logger = logging.getLogger(__name__)

HOUSEHOLD_SIZE_KEY = "household_size"
ANNUAL_INCOME_KEY = "annual_income_cents"
INCOME_PERCENT_FPL_KEY = "household_income_percent_fpl"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EligibilityEvaluator:
    """Applies a resolved rule set to a request. Pure: no I/O, no shared state."""

    def __init__(
        self,
        scoring_policy: Optional[ConfidenceScoringPolicy] = None,
        explanation_builder: Optional[ExplanationBuilder] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.scoring_policy = scoring_policy or ConfidenceScoringPolicy()
        self.explanation_builder = explanation_builder or ExplanationBuilder()
        self._clock = clock

    def evaluate(
        self,
        request: EligibilityRequest,
        rule_set: RuleSetVersion,
        rules: Sequence[EligibilityRule]
    ) -> EligibilityResult:
        """
        Evaluate every rule of a rule set against the request answers

        Args:
            request: Eligibility request
            rule_set: Rule-set version the rules belong to
            rules: Rules to evaluate, in list order

        Returns:
            EligibilityResult

        Raises:
            MalformedRuleError: If any rule cannot be parsed; no partial result is produced
        """
        if request is None:
            raise ValueError("request is required")
        if rule_set is None:
            raise ValueError("rule_set is required")

        answers = request.answers
        matches: List[ProgramMatch] = []
        evaluated: List[Expression] = []
        matched: List[Expression] = []

        for rule in rules or []:
            try:
                expression = RuleParser.parse(rule.rule_logic, rule.id)
            except MalformedRuleError as e:
                logger.error(f"Aborting evaluation for {request.jurisdiction}: {e}")
                raise

            evaluated.append(expression)
            if not RulesEvaluator.is_truthy(RulesEvaluator.evaluate(expression, answers)):
                continue

            matched.append(expression)
            score = self.scoring_policy.calculate_score(answers, True)
            matches.append(ProgramMatch(
                program_code=rule.program_code,
                program_name=rule.program_name,
                confidence_score=score.value,
                explanation=f"Rule matched for {rule.program_name}."
            ))

        overall = self.scoring_policy.calculate_overall_score(answers, [m.confidence_score for m in matches])
        criteria = self.collect_criteria(matched or evaluated, answers)

        explanation_items = self.explanation_builder.build_explanation_items(*criteria)
        explanation = f"Matched {len(matches)} program(s)." if matches else "No matching programs were found."
        if explanation_items:
            explanation += " " + self.explanation_builder.generate_explanation(*criteria)

        logger.info(
            f"Evaluated {len(evaluated)} rules for {request.jurisdiction} "
            f"(version {rule_set.version}): {len(matches)} matched, confidence {overall.value}"
        )

        return EligibilityResult(
            status=overall.status,
            matched_programs=matches,
            confidence_score=overall.value,
            explanation=explanation,
            explanation_items=explanation_items,
            rule_version_used=rule_set.version,
            evaluated_at=self._clock()
        )

    @staticmethod
    def collect_criteria(expressions: Sequence[Expression], answers: Mapping[str, Any]) -> CriteriaOutcome:
        """Merge criteria across expressions; missing beats unmet beats met"""
        met, unmet, missing = set(), set(), set()
        for expression in expressions:
            outcome = RulesEvaluator.collect_criteria(expression, answers)
            met |= outcome.met
            unmet |= outcome.unmet
            missing |= outcome.missing

        unmet -= missing
        met -= missing | unmet
        return CriteriaOutcome(frozenset(met), frozenset(unmet), frozenset(missing))


class EligibilityService:
    """Resolves the rule set in force for a request and evaluates it"""

    def __init__(
        self,
        rule_set_repository: RuleSetRepository,
        rule_repository: RuleRepository,
        rule_loader: StateRuleLoader,
        evaluator: Optional[EligibilityEvaluator] = None,
        version_selector: Optional[RuleSetVersionSelector] = None,
        fpl_calculator: Optional[FplThresholdCalculator] = None
    ):
        self.rule_set_repository = rule_set_repository
        self.rule_repository = rule_repository
        self.rule_loader = rule_loader
        self.evaluator = evaluator or EligibilityEvaluator()
        self.version_selector = version_selector or RuleSetVersionSelector()
        self.fpl_calculator = fpl_calculator

    async def evaluate(self, request: EligibilityRequest) -> EligibilityResult:
        """
        Evaluate eligibility for a request

        Args:
            request: Jurisdiction, effective date and answers

        Returns:
            EligibilityResult

        Raises:
            UnsupportedJurisdictionError: Before any repository call
            NoEffectiveRuleSetError: If no Active version covers the effective date
            MalformedRuleError: If a rule in the selected version cannot be parsed
        """
        jurisdiction = self.rule_loader.validate_jurisdiction(request.jurisdiction)

        versions = await self.rule_set_repository.get_rule_set_versions(jurisdiction)
        rule_set = self.version_selector.select_rule_set_version(versions, request.effective_date)
        if rule_set is None:
            raise NoEffectiveRuleSetError(jurisdiction, request.effective_date)
        if not self.version_selector.is_effective_for_date(rule_set, request.effective_date):
            raise NoEffectiveRuleSetError(
                jurisdiction,
                request.effective_date,
                reason=f"version {rule_set.version} is {rule_set.status.value}"
            )

        rules = await self.rule_loader.load_rules_for_rule_set(rule_set, self.rule_set_repository)
        if _references_key(rules, INCOME_PERCENT_FPL_KEY):
            request = await self._enrich_with_fpl(request, jurisdiction)
        return self.evaluator.evaluate(request, rule_set, rules)

    async def refresh_rules(self):
        """Refresh cached rules for every supported jurisdiction"""
        return await self.rule_loader.refresh_all_jurisdictions()

    def invalidate_rules(self, jurisdiction: str) -> None:
        self.rule_loader.invalidate_cache_for_jurisdiction(jurisdiction)

    async def _enrich_with_fpl(self, request: EligibilityRequest, jurisdiction: str) -> EligibilityRequest:
        """
        Derive household_income_percent_fpl from household size and income when absent

        Without a baseline FPL table for the request year the request is left
        unchanged and the percentage is reported as missing.
        """
        answers: Dict[str, Any] = dict(request.answers)
        if self.fpl_calculator is None or answers.get(INCOME_PERCENT_FPL_KEY) is not None:
            return request

        household_size = answers.get(HOUSEHOLD_SIZE_KEY)
        income_cents = answers.get(ANNUAL_INCOME_KEY)
        if not _is_whole_number(household_size) or not _is_whole_number(income_cents):
            return request
        if household_size < 1 or income_cents < 0:
            return request

        year = request.effective_date.year
        try:
            percent = await self.fpl_calculator.get_income_percent_of_fpl(
                int(income_cents), year, int(household_size), jurisdiction
            )
        except FplNotFoundError:
            logger.warning(f"No {jurisdiction} FPL table for {year}, using baseline")
            try:
                percent = await self.fpl_calculator.get_income_percent_of_fpl(
                    int(income_cents), year, int(household_size)
                )
            except FplNotFoundError as e:
                logger.warning(f"Skipping FPL enrichment for {jurisdiction}: {e}")
                return request

        answers[INCOME_PERCENT_FPL_KEY] = percent
        return request.model_copy(update={"answers": answers})


def _references_key(rules: Sequence[EligibilityRule], key: str) -> bool:
    for rule in rules:
        expression = RuleParser.parse(rule.rule_logic, rule.id)
        if key in RulesEvaluator.referenced_keys(expression):
            return True
    return False


def _is_whole_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def create_eligibility_service(database) -> EligibilityService:
    """
    Wire an EligibilityService over a MongoDB database

    Args:
        database: motor AsyncIOMotorDatabase
    """
    from .fpl_cache import FplYearCache
    from .mongo_service import MongoFplRepository, MongoRuleRepository, MongoRuleSetRepository
    from .rule_cache import InMemoryRuleCache

    rule_repository = MongoRuleRepository(database)
    return EligibilityService(
        rule_set_repository=MongoRuleSetRepository(database),
        rule_repository=rule_repository,
        rule_loader=StateRuleLoader(rule_repository, InMemoryRuleCache()),
        fpl_calculator=FplThresholdCalculator(MongoFplRepository(database), FplYearCache())
    )
