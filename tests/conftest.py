"""Shared fixtures: in-memory repositories and a small IL rule catalogue."""

import json
from datetime import date
from typing import Dict, List, Optional

import pytest

from eligibility_engine.models import (
    EligibilityRule,
    FederalPovertyLevel,
    ProgramCategory,
    ProgramDefinition,
    RuleSetStatus,
    RuleSetVersion,
)
from eligibility_engine.services import (
    FplRepository,
    InMemoryRuleCache,
    RuleRepository,
    RuleSetRepository,
    RuleSetVersionSelector,
    StateRuleLoader,
)

BASELINE_FPL_2026 = [1458000, 1972000, 2486000, 3000000, 3514000, 4028000, 4542000, 6066000]
ALASKA_FPL_2026 = [1822500, 2465000, 3107500, 3750000, 4392500, 5035000, 5677500, 7582500]

MAGI_ADULT_LOGIC = json.dumps({
    "and": [
        {">=": [{"var": "age"}, 19]},
        {"<=": [{"var": "age"}, 64]},
        {"<=": [{"var": "household_income_percent_fpl"}, 138]},
    ]
})
PREGNANCY_LOGIC = json.dumps({
    "and": [
        {"==": [{"var": "is_pregnant"}, True]},
        {"<=": [{"var": "household_income_percent_fpl"}, 213]},
    ]
})


class InMemoryRuleSetRepository(RuleSetRepository):
    def __init__(self, versions: List[RuleSetVersion], rules: List[EligibilityRule]):
        self.versions = list(versions)
        self.rules = list(rules)
        self.rule_lookups = 0

    async def get_active_rule_set(self, jurisdiction, effective_date) -> Optional[RuleSetVersion]:
        active = [
            v for v in self.versions
            if v.jurisdiction == jurisdiction and v.status == RuleSetStatus.ACTIVE
        ]
        return RuleSetVersionSelector().select_rule_set_version(active, effective_date)

    async def get_rule_set_version(self, version_id) -> Optional[RuleSetVersion]:
        for version in self.versions:
            if version.id == version_id:
                return version
        return None

    async def get_rules_for_rule_set(self, version_id) -> List[EligibilityRule]:
        self.rule_lookups += 1
        return [r for r in self.rules if r.rule_set_version_id == version_id]

    async def get_rule_set_versions(self, jurisdiction) -> List[RuleSetVersion]:
        return [v for v in self.versions if v.jurisdiction == jurisdiction]


class InMemoryRuleRepository(RuleRepository):
    def __init__(
        self,
        versions: List[RuleSetVersion],
        rules: List[EligibilityRule],
        programs: List[ProgramDefinition] = ()
    ):
        self.versions = list(versions)
        self.rules = list(rules)
        self.programs = list(programs)

    async def get_rules_by_version(self, jurisdiction, version_id) -> List[EligibilityRule]:
        return [
            r for r in self.rules
            if r.jurisdiction == jurisdiction and r.rule_set_version_id == version_id
        ]

    async def get_active_rules_by_jurisdiction(self, jurisdiction) -> List[EligibilityRule]:
        active_ids = {
            v.id for v in self.versions
            if v.jurisdiction == jurisdiction and v.status == RuleSetStatus.ACTIVE
        }
        return [r for r in self.rules if r.jurisdiction == jurisdiction and r.rule_set_version_id in active_ids]

    async def get_programs_with_active_rules(self, jurisdiction):
        programs = {p.program_code: p for p in self.programs if p.jurisdiction == jurisdiction}
        return [
            (programs[r.program_code], r)
            for r in await self.get_active_rules_by_jurisdiction(jurisdiction)
            if r.program_code in programs
        ]


class InMemoryFplRepository(FplRepository):
    def __init__(self, records: List[FederalPovertyLevel]):
        self.records = list(records)
        self.year_lookups = 0

    async def get_by_year_and_household_size(self, year, household_size, jurisdiction=None):
        for record in self.records:
            if (record.year, record.household_size, record.jurisdiction) == (year, household_size, jurisdiction):
                return record
        return None

    async def get_by_year(self, year):
        self.year_lookups += 1
        return [r for r in self.records if r.year == year]


def make_rule(
    rule_id: str,
    program_code: str,
    rule_logic,
    version_id: str = "il-2026",
    jurisdiction: str = "IL",
    program: Optional[ProgramDefinition] = None
) -> EligibilityRule:
    return EligibilityRule(
        id=rule_id,
        rule_set_version_id=version_id,
        jurisdiction=jurisdiction,
        program_code=program_code,
        program=program,
        rule_logic=rule_logic,
    )


def make_version(
    version_id: str,
    version: str,
    effective_date: date,
    end_date: Optional[date] = None,
    status: RuleSetStatus = RuleSetStatus.ACTIVE,
    jurisdiction: str = "IL"
) -> RuleSetVersion:
    return RuleSetVersion(
        id=version_id,
        jurisdiction=jurisdiction,
        version=version,
        effective_date=effective_date,
        end_date=end_date,
        status=status,
    )


def make_fpl_rows(year: int, amounts: List[int], jurisdiction: Optional[str] = None,
                  multiplier: Optional[float] = None) -> List[FederalPovertyLevel]:
    return [
        FederalPovertyLevel(
            year=year,
            household_size=size,
            annual_income_cents=amount,
            jurisdiction=jurisdiction,
            adjustment_multiplier=multiplier,
        )
        for size, amount in enumerate(amounts, start=1)
    ]


@pytest.fixture
def il_programs() -> Dict[str, ProgramDefinition]:
    return {
        "MAGI_ADULT": ProgramDefinition(
            program_code="MAGI_ADULT",
            jurisdiction="IL",
            program_name="Adult Medicaid",
            category=ProgramCategory.MAGI,
        ),
        "PREGNANCY": ProgramDefinition(
            program_code="PREGNANCY",
            jurisdiction="IL",
            program_name="Pregnancy Medicaid",
            category=ProgramCategory.PREGNANCY,
        ),
    }


@pytest.fixture
def il_versions() -> List[RuleSetVersion]:
    return [
        make_version("il-2025", "2025.1", date(2025, 1, 1), date(2025, 12, 31), RuleSetStatus.RETIRED),
        make_version("il-2026", "2026.1", date(2026, 1, 1)),
    ]


@pytest.fixture
def il_rules(il_programs) -> List[EligibilityRule]:
    return [
        make_rule("il-magi-adult-2026", "MAGI_ADULT", MAGI_ADULT_LOGIC, program=il_programs["MAGI_ADULT"]),
        make_rule("il-pregnancy-2026", "PREGNANCY", PREGNANCY_LOGIC, program=il_programs["PREGNANCY"]),
        make_rule("il-magi-adult-2025", "MAGI_ADULT", MAGI_ADULT_LOGIC, version_id="il-2025"),
    ]


@pytest.fixture
def rule_set_repository(il_versions, il_rules):
    return InMemoryRuleSetRepository(il_versions, il_rules)


@pytest.fixture
def rule_repository(il_versions, il_rules, il_programs):
    return InMemoryRuleRepository(il_versions, il_rules, list(il_programs.values()))


@pytest.fixture
def fpl_records() -> List[FederalPovertyLevel]:
    return make_fpl_rows(2026, BASELINE_FPL_2026) + make_fpl_rows(2026, ALASKA_FPL_2026, "AK", 1.25)


@pytest.fixture
def fpl_repository(fpl_records):
    return InMemoryFplRepository(fpl_records)


@pytest.fixture
def rule_cache():
    return InMemoryRuleCache(ttl_minutes=60)


@pytest.fixture
def rule_loader(rule_repository, rule_cache):
    return StateRuleLoader(rule_repository, rule_cache, supported_jurisdictions=["IL", "CA", "NY", "TX", "FL"])
