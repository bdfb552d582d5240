"""
MongoDB repositories for the rule catalogue and FPL tables
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from ..models.rules import EligibilityRule, FederalPovertyLevel, ProgramDefinition, RuleSetStatus, RuleSetVersion
from ..utils.validators import normalize_jurisdiction_code
from .repositories import FplRepository, RuleRepository, RuleSetRepository
from .version_selector import RuleSetVersionSelector

logger = logging.getLogger(__name__)

RULE_SET_VERSIONS = "rule_set_versions"
ELIGIBILITY_RULES = "eligibility_rules"
PROGRAM_DEFINITIONS = "program_definitions"
FEDERAL_POVERTY_LEVELS = "federal_poverty_levels"


def _strip_object_id(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc = dict(doc)
    doc.pop("_id", None)
    return doc


async def _attach_programs(
    db: AsyncIOMotorDatabase,
    jurisdiction: str,
    rules: List[EligibilityRule]
) -> List[EligibilityRule]:
    """Join active program definitions onto rules by program code"""
    if not rules:
        return rules

    codes = sorted({rule.program_code for rule in rules})
    try:
        programs = {}
        async for doc in db[PROGRAM_DEFINITIONS].find(
            {"jurisdiction": jurisdiction, "program_code": {"$in": codes}, "is_active": True}
        ):
            program = ProgramDefinition(**_strip_object_id(doc))
            programs[program.program_code] = program
    except Exception as e:
        logger.error(f"Failed to get program definitions for {jurisdiction}: {e}")
        raise

    return [
        rule.model_copy(update={"program": programs[rule.program_code]})
        if rule.program_code in programs else rule
        for rule in rules
    ]


class MongoRuleSetRepository(RuleSetRepository):
    """Rule-set versions stored in the rule_set_versions collection"""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.db = database
        self.selector = RuleSetVersionSelector()

    async def get_rule_set_versions(self, jurisdiction: str) -> List[RuleSetVersion]:
        try:
            cursor = self.db[RULE_SET_VERSIONS].find(
                {"jurisdiction": normalize_jurisdiction_code(jurisdiction)}
            ).sort("effective_date", 1)
            versions = []
            async for doc in cursor:
                versions.append(RuleSetVersion(**_strip_object_id(doc)))
            return versions
        except Exception as e:
            logger.error(f"Failed to get rule set versions for {jurisdiction}: {e}")
            raise

    async def get_active_rule_set(self, jurisdiction: str, effective_date: date) -> Optional[RuleSetVersion]:
        versions = [
            v for v in await self.get_rule_set_versions(jurisdiction)
            if v.status == RuleSetStatus.ACTIVE
        ]
        return self.selector.select_rule_set_version(versions, effective_date)

    async def get_rule_set_version(self, version_id: str) -> Optional[RuleSetVersion]:
        try:
            doc = await self.db[RULE_SET_VERSIONS].find_one({"id": version_id})
            if doc is None:
                return None
            version = RuleSetVersion(**_strip_object_id(doc))
            rules = await self.get_rules_for_rule_set(version_id)
            return version.model_copy(update={"rules": rules})
        except Exception as e:
            logger.error(f"Failed to get rule set version {version_id}: {e}")
            raise

    async def get_rules_for_rule_set(self, version_id: str) -> List[EligibilityRule]:
        try:
            rules = []
            async for doc in self.db[ELIGIBILITY_RULES].find({"rule_set_version_id": version_id}):
                rules.append(EligibilityRule(**_strip_object_id(doc)))
        except Exception as e:
            logger.error(f"Failed to get rules for rule set {version_id}: {e}")
            raise

        if not rules:
            return rules
        return await _attach_programs(self.db, rules[0].jurisdiction, rules)


class MongoRuleRepository(RuleRepository):
    """Eligibility rules joined with program_definitions"""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.db = database

    async def get_rules_by_version(self, jurisdiction: str, version_id: str) -> List[EligibilityRule]:
        jurisdiction = normalize_jurisdiction_code(jurisdiction)
        rules = await self._find_rules({"jurisdiction": jurisdiction, "rule_set_version_id": version_id})
        return await _attach_programs(self.db, jurisdiction, rules)

    async def get_active_rules_by_jurisdiction(self, jurisdiction: str) -> List[EligibilityRule]:
        jurisdiction = normalize_jurisdiction_code(jurisdiction)
        try:
            version_ids = []
            async for doc in self.db[RULE_SET_VERSIONS].find(
                {"jurisdiction": jurisdiction, "status": RuleSetStatus.ACTIVE.value}
            ):
                version_ids.append(doc["id"])
        except Exception as e:
            logger.error(f"Failed to get active rule set versions for {jurisdiction}: {e}")
            raise

        if not version_ids:
            return []

        rules = await self._find_rules(
            {"jurisdiction": jurisdiction, "rule_set_version_id": {"$in": version_ids}}
        )
        return await _attach_programs(self.db, jurisdiction, rules)

    async def get_programs_with_active_rules(
        self,
        jurisdiction: str
    ) -> List[Tuple[ProgramDefinition, EligibilityRule]]:
        rules = await self.get_active_rules_by_jurisdiction(jurisdiction)
        return [(rule.program, rule) for rule in rules if rule.program is not None]

    async def _find_rules(self, query: Dict[str, Any]) -> List[EligibilityRule]:
        try:
            rules = []
            async for doc in self.db[ELIGIBILITY_RULES].find(query):
                rules.append(EligibilityRule(**_strip_object_id(doc)))
            return rules
        except Exception as e:
            logger.error(f"Failed to get eligibility rules: {e}")
            raise


class MongoFplRepository(FplRepository):
    """Federal Poverty Level rows; baseline rows have no jurisdiction"""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.db = database

    async def get_by_year_and_household_size(
        self,
        year: int,
        household_size: int,
        jurisdiction: Optional[str] = None
    ) -> Optional[FederalPovertyLevel]:
        query = {
            "year": year,
            "household_size": household_size,
            "jurisdiction": normalize_jurisdiction_code(jurisdiction) or None,
        }
        try:
            doc = await self.db[FEDERAL_POVERTY_LEVELS].find_one(query)
            if doc:
                return FederalPovertyLevel(**_strip_object_id(doc))
            return None
        except Exception as e:
            logger.error(f"Failed to get FPL for {year}, household size {household_size}: {e}")
            raise

    async def get_by_year(self, year: int) -> List[FederalPovertyLevel]:
        try:
            records = []
            async for doc in self.db[FEDERAL_POVERTY_LEVELS].find({"year": year}):
                records.append(FederalPovertyLevel(**_strip_object_id(doc)))
            return records
        except Exception as e:
            logger.error(f"Failed to get FPL table for {year}: {e}")
            raise
