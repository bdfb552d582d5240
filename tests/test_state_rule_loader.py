"""Unit tests for StateRuleLoader."""

from unittest.mock import AsyncMock

import pytest

from eligibility_engine.exceptions import NoRulesProvisionedError, UnsupportedJurisdictionError
from eligibility_engine.services import InMemoryRuleCache, StateRuleLoader

from conftest import MAGI_ADULT_LOGIC, InMemoryRuleSetRepository, make_rule


@pytest.fixture
def mock_repository(il_rules, il_programs):
    repository = AsyncMock()
    active = [r for r in il_rules if r.rule_set_version_id == "il-2026"]

    async def active_rules(jurisdiction):
        return active if jurisdiction == "IL" else []

    async def programs_with_rules(jurisdiction):
        if jurisdiction != "IL":
            return []
        return [(il_programs[r.program_code], r) for r in active]

    repository.get_active_rules_by_jurisdiction.side_effect = active_rules
    repository.get_programs_with_active_rules.side_effect = programs_with_rules
    return repository


@pytest.fixture
def loader(mock_repository):
    return StateRuleLoader(mock_repository, InMemoryRuleCache(ttl_minutes=60))


class TestValidation:
    """Tests for the jurisdiction allow-list."""

    @pytest.mark.asyncio
    async def test_unsupported_rejected_before_repository(self, loader, mock_repository):
        with pytest.raises(UnsupportedJurisdictionError) as exc_info:
            await loader.load_rules_for_jurisdiction("ZZ")

        assert exc_info.value.jurisdiction == "ZZ"
        assert "IL" in exc_info.value.supported
        mock_repository.get_active_rules_by_jurisdiction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_blank_rejected(self, loader):
        with pytest.raises(ValueError):
            await loader.load_rules_for_jurisdiction("  ")

    def test_default_allow_list(self, mock_repository):
        loader = StateRuleLoader(mock_repository, InMemoryRuleCache(ttl_minutes=60))
        assert loader.supported_jurisdictions == ("IL", "CA", "NY", "TX", "FL")

    def test_configured_allow_list(self, mock_repository):
        loader = StateRuleLoader(mock_repository, InMemoryRuleCache(ttl_minutes=60), ["ak", "HI"])
        assert loader.validate_jurisdiction("ak") == "AK"
        with pytest.raises(UnsupportedJurisdictionError):
            loader.validate_jurisdiction("IL")


class TestLoadRules:
    """Tests for cache-first loading."""

    @pytest.mark.asyncio
    async def test_loads_and_caches(self, loader, mock_repository):
        rules = await loader.load_rules_for_jurisdiction("il")
        assert {r.program_code for r in rules} == {"MAGI_ADULT", "PREGNANCY"}

        await loader.load_rules_for_jurisdiction("IL")
        assert mock_repository.get_active_rules_by_jurisdiction.await_count == 1

    @pytest.mark.asyncio
    async def test_invalidate_then_load_fetches_once(self, loader, mock_repository):
        """Invalidation forces exactly one new fetch, and the fetched rules replace the cached ones."""
        await loader.load_rules_for_jurisdiction("IL")
        loader.invalidate_cache_for_jurisdiction("IL")
        updated = make_rule("il-magi-adult-2026b", "MAGI_ADULT", MAGI_ADULT_LOGIC)
        mock_repository.get_active_rules_by_jurisdiction.side_effect = None
        mock_repository.get_active_rules_by_jurisdiction.return_value = [updated]

        fetched = await loader.load_rules_for_jurisdiction("IL")
        cached = await loader.load_rules_for_jurisdiction("IL")

        assert fetched == [updated]
        assert cached == [updated]
        assert loader.cache.get_cached_rule("IL", "MAGI_ADULT") is updated
        assert loader.cache.get_cached_rule("IL", "PREGNANCY") is None
        assert mock_repository.get_active_rules_by_jurisdiction.await_count == 2

    @pytest.mark.asyncio
    async def test_shared_program_code_same_cold_and_warm(self, loader, mock_repository):
        """Rules sharing a program code collapse to the last one on every load."""
        first = make_rule("il-magi-a", "MAGI_ADULT", MAGI_ADULT_LOGIC)
        second = make_rule("il-magi-b", "MAGI_ADULT", MAGI_ADULT_LOGIC)
        mock_repository.get_active_rules_by_jurisdiction.side_effect = None
        mock_repository.get_active_rules_by_jurisdiction.return_value = [first, second]

        cold = await loader.load_rules_for_jurisdiction("IL")
        warm = await loader.load_rules_for_jurisdiction("IL")

        assert cold == [second]
        assert warm == cold

    @pytest.mark.asyncio
    async def test_no_rules_provisioned(self, loader):
        with pytest.raises(NoRulesProvisionedError) as exc_info:
            await loader.load_rules_for_jurisdiction("CA")
        assert exc_info.value.jurisdiction == "CA"


class TestLoadProgramsWithRules:
    """Tests for program-joined loading."""

    @pytest.mark.asyncio
    async def test_pairs_are_returned_uncached(self, loader, mock_repository):
        pairs = await loader.load_programs_with_rules("IL")

        assert [(p.program_name, r.program_code) for p, r in pairs] == [
            ("Adult Medicaid", "MAGI_ADULT"),
            ("Pregnancy Medicaid", "PREGNANCY"),
        ]
        assert loader.cache.get_cached_rules_by_jurisdiction("IL") is None
        await loader.load_rules_for_jurisdiction("IL")
        mock_repository.get_active_rules_by_jurisdiction.assert_awaited_once_with("IL")

    @pytest.mark.asyncio
    async def test_no_programs(self, loader):
        with pytest.raises(NoRulesProvisionedError):
            await loader.load_programs_with_rules("NY")


class TestRefreshAll:
    """Tests for refreshing every supported jurisdiction."""

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self, loader, mock_repository):
        report = await loader.refresh_all_jurisdictions()

        assert report.refreshed == {"IL": 2}
        assert set(report.failed) == {"CA", "NY", "TX", "FL"}
        assert not report.all_succeeded
        assert mock_repository.get_active_rules_by_jurisdiction.await_count == 5

    @pytest.mark.asyncio
    async def test_repository_errors_are_isolated(self, loader, mock_repository, il_rules):
        async def flaky(jurisdiction):
            if jurisdiction == "CA":
                raise ConnectionError("connection reset")
            return il_rules[:1] if jurisdiction == "IL" else []

        mock_repository.get_active_rules_by_jurisdiction.side_effect = flaky

        report = await loader.refresh_all_jurisdictions()

        assert report.refreshed == {"IL": 1}
        assert report.failed["CA"] == "connection reset"

    @pytest.mark.asyncio
    async def test_refresh_reloads_cached_jurisdiction(self, loader, mock_repository):
        await loader.load_rules_for_jurisdiction("IL")
        await loader.refresh_all_jurisdictions()
        il_calls = [c for c in mock_repository.get_active_rules_by_jurisdiction.await_args_list if c.args[0] == "IL"]
        assert len(il_calls) == 2


class TestLoadRulesForRuleSet:
    """Tests for loading every rule of one rule-set version."""

    @pytest.mark.asyncio
    async def test_loads_all_rules_and_caches_by_version(self, loader, mock_repository, il_versions, il_rules):
        rule_set_repository = InMemoryRuleSetRepository(il_versions, il_rules)

        first = await loader.load_rules_for_rule_set(il_versions[1], rule_set_repository)
        second = await loader.load_rules_for_rule_set(il_versions[1], rule_set_repository)

        assert [r.id for r in first] == ["il-magi-adult-2026", "il-pregnancy-2026"]
        assert second == first
        assert rule_set_repository.rule_lookups == 1
        mock_repository.get_rules_by_version.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_falls_back_to_rule_repository(self, loader, mock_repository, il_versions, il_rules):
        mock_repository.get_rules_by_version.return_value = il_rules[:1]
        rule_set_repository = InMemoryRuleSetRepository(il_versions, [])

        rules = await loader.load_rules_for_rule_set(il_versions[1], rule_set_repository)

        assert rules == il_rules[:1]
        mock_repository.get_rules_by_version.assert_awaited_once_with("IL", "il-2026")

    @pytest.mark.asyncio
    async def test_empty_version_not_cached(self, loader, mock_repository, il_versions):
        mock_repository.get_rules_by_version.return_value = []
        rule_set_repository = InMemoryRuleSetRepository(il_versions, [])

        assert await loader.load_rules_for_rule_set(il_versions[1], rule_set_repository) == []
        assert await loader.load_rules_for_rule_set(il_versions[1], rule_set_repository) == []
        assert rule_set_repository.rule_lookups == 2

    @pytest.mark.asyncio
    async def test_invalidation_drops_version_entry(self, loader, il_versions, il_rules):
        rule_set_repository = InMemoryRuleSetRepository(il_versions, il_rules)
        await loader.load_rules_for_rule_set(il_versions[1], rule_set_repository)

        loader.invalidate_cache_for_jurisdiction("IL")
        await loader.load_rules_for_rule_set(il_versions[1], rule_set_repository)

        assert rule_set_repository.rule_lookups == 2
