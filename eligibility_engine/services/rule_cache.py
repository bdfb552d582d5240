"""
Rule cache keyed by (jurisdiction, program code), with whole rule sets keyed by version id
"""
import logging
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from ..config import settings
from ..models.eligibility import CacheStatistics
from ..models.rules import EligibilityRule
from ..utils.validators import normalize_jurisdiction_code
from .repositories import RuleRepository

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str]


class RuleCache(ABC):
    """Interface of the rule cache used by the state rule loader"""

    @abstractmethod
    def get_cached_rule(self, jurisdiction: str, program_code: str) -> Optional[EligibilityRule]:
        pass

    @abstractmethod
    def set_cached_rule(self, jurisdiction: str, program_code: str, rule: EligibilityRule) -> None:
        pass

    @abstractmethod
    def get_cached_rules_by_jurisdiction(self, jurisdiction: str) -> Optional[List[EligibilityRule]]:
        pass

    @abstractmethod
    def get_cached_rule_set(self, version_id: str) -> Optional[List[EligibilityRule]]:
        pass

    @abstractmethod
    def set_cached_rule_set(self, jurisdiction: str, version_id: str, rules: List[EligibilityRule]) -> None:
        pass

    @abstractmethod
    def invalidate_rule(self, jurisdiction: str, program_code: str) -> None:
        pass

    @abstractmethod
    def invalidate_program(self, program_code: str) -> None:
        pass

    @abstractmethod
    def invalidate_jurisdiction(self, jurisdiction: str) -> None:
        pass

    @abstractmethod
    def invalidate_all(self) -> None:
        pass

    @abstractmethod
    async def refresh(self, repository: RuleRepository, jurisdiction: Optional[str] = None) -> int:
        pass

    @abstractmethod
    def get_statistics(self) -> CacheStatistics:
        pass


class InMemoryRuleCache(RuleCache):
    """
    Process-local rule cache with a time-to-live.

    Program entries hold one rule per (jurisdiction, program code). Rule-set
    entries hold every rule of a version, in authoring order.

    Safe for concurrent readers and invalidators: every operation holds the
    lock for a short dictionary update only, and refresh fetches from the
    repository before taking it.
    """

    def __init__(self, ttl_minutes: int = None, clock: Callable[[], float] = time.monotonic):
        if ttl_minutes is None:
            ttl_minutes = settings.rule_cache_ttl_minutes
        if ttl_minutes <= 0:
            raise ValueError("Cache TTL must be positive")

        self.ttl_seconds = ttl_minutes * 60
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[CacheKey, Tuple[EligibilityRule, float]] = {}
        self._rule_sets: Dict[str, Tuple[str, Tuple[EligibilityRule, ...], float]] = {}
        self._hits = 0
        self._misses = 0
        self._last_refreshed: Optional[datetime] = None

    def get_cached_rule(self, jurisdiction: str, program_code: str) -> Optional[EligibilityRule]:
        key = (normalize_jurisdiction_code(jurisdiction), program_code)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and now < entry[1]:
                self._hits += 1
                return entry[0]
            if entry is not None:
                del self._entries[key]
            self._misses += 1
            return None

    def set_cached_rule(self, jurisdiction: str, program_code: str, rule: EligibilityRule) -> None:
        key = (normalize_jurisdiction_code(jurisdiction), program_code)
        expires_at = self._clock() + self.ttl_seconds
        with self._lock:
            self._entries[key] = (rule, expires_at)

    def get_cached_rules_by_jurisdiction(self, jurisdiction: str) -> Optional[List[EligibilityRule]]:
        """Unexpired rules cached for a jurisdiction, or None when there are none"""
        jurisdiction = normalize_jurisdiction_code(jurisdiction)
        now = self._clock()
        with self._lock:
            rules = [
                rule for (cached_jurisdiction, _), (rule, expires_at) in self._entries.items()
                if cached_jurisdiction == jurisdiction and now < expires_at
            ]
            if rules:
                self._hits += 1
                return rules
            self._misses += 1
            return None

    def get_cached_rule_set(self, version_id: str) -> Optional[List[EligibilityRule]]:
        """Every rule of a rule-set version, or None when not cached or expired"""
        now = self._clock()
        with self._lock:
            entry = self._rule_sets.get(version_id)
            if entry is not None and now < entry[2]:
                self._hits += 1
                return list(entry[1])
            if entry is not None:
                del self._rule_sets[version_id]
            self._misses += 1
            return None

    def set_cached_rule_set(self, jurisdiction: str, version_id: str, rules: List[EligibilityRule]) -> None:
        expires_at = self._clock() + self.ttl_seconds
        with self._lock:
            self._rule_sets[version_id] = (normalize_jurisdiction_code(jurisdiction), tuple(rules), expires_at)

    def invalidate_rule(self, jurisdiction: str, program_code: str) -> None:
        jurisdiction = normalize_jurisdiction_code(jurisdiction)
        with self._lock:
            self._entries.pop((jurisdiction, program_code), None)
            self._drop_rule_sets(
                lambda code, rules: code == jurisdiction and any(r.program_code == program_code for r in rules)
            )

    def invalidate_program(self, program_code: str) -> None:
        """Remove a program's rule in every jurisdiction"""
        with self._lock:
            for key in [k for k in self._entries if k[1] == program_code]:
                del self._entries[key]
            self._drop_rule_sets(lambda code, rules: any(r.program_code == program_code for r in rules))

    def invalidate_jurisdiction(self, jurisdiction: str) -> None:
        jurisdiction = normalize_jurisdiction_code(jurisdiction)
        with self._lock:
            for key in [k for k in self._entries if k[0] == jurisdiction]:
                del self._entries[key]
            self._drop_rule_sets(lambda code, rules: code == jurisdiction)
        logger.info(f"Invalidated rule cache for {jurisdiction}")

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()
            self._rule_sets.clear()
        logger.info("Invalidated entire rule cache")

    async def refresh(self, repository: RuleRepository, jurisdiction: Optional[str] = None) -> int:
        """
        Reload active rules from the repository

        Cached rule sets of a refreshed jurisdiction are dropped and reloaded
        on next use.

        Args:
            repository: Rule repository to read from
            jurisdiction: Jurisdiction to refresh; None refreshes every jurisdiction currently cached

        Returns:
            Number of rules loaded
        """
        if jurisdiction is None:
            with self._lock:
                jurisdictions = sorted(
                    {key[0] for key in self._entries} | {entry[0] for entry in self._rule_sets.values()}
                )
        else:
            jurisdictions = [normalize_jurisdiction_code(jurisdiction)]

        loaded = 0
        for code in jurisdictions:
            rules = await repository.get_active_rules_by_jurisdiction(code)
            expires_at = self._clock() + self.ttl_seconds
            fresh = {(code, rule.program_code): (rule, expires_at) for rule in rules}
            with self._lock:
                for key in [k for k in self._entries if k[0] == code]:
                    del self._entries[key]
                self._drop_rule_sets(lambda cached_code, _: cached_code == code)
                self._entries.update(fresh)
            loaded += len(fresh)
            logger.info(f"Refreshed {len(fresh)} cached rules for {code}")

        with self._lock:
            self._last_refreshed = datetime.now(timezone.utc)
        return loaded

    def get_statistics(self) -> CacheStatistics:
        now = self._clock()
        with self._lock:
            expiries = [expires_at for _, expires_at in self._entries.values()]
            expiries.extend(entry[2] for entry in self._rule_sets.values())
            total = len(expiries)
            valid = sum(1 for expires_at in expiries if now < expires_at)
            lookups = self._hits + self._misses
            return CacheStatistics(
                total_entries=total,
                valid_entries=valid,
                expired_entries=total - valid,
                hit_rate=self._hits / lookups if lookups else 0.0,
                last_refreshed=self._last_refreshed
            )

    def _drop_rule_sets(self, predicate: Callable[[str, Tuple[EligibilityRule, ...]], bool]) -> None:
        """Remove rule-set entries matching predicate(jurisdiction, rules). Caller holds the lock."""
        for version_id in [v for v, (code, rules, _) in self._rule_sets.items() if predicate(code, rules)]:
            del self._rule_sets[version_id]
