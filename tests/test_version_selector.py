"""Unit tests for RuleSetVersionSelector."""

from datetime import date

import pytest

from eligibility_engine.models import RuleSetStatus
from eligibility_engine.services import RuleSetVersionSelector

from conftest import make_version


@pytest.fixture
def selector():
    return RuleSetVersionSelector()


class TestSelectRuleSetVersion:
    """Tests for selecting the version in force on a date."""

    def test_latest_effective_wins(self, selector):
        """Of several covering versions the latest effective date wins."""
        versions = [
            make_version("v1", "2025.1", date(2025, 1, 1)),
            make_version("v3", "2026.2", date(2026, 7, 1)),
            make_version("v2", "2026.1", date(2026, 1, 1)),
        ]
        assert selector.select_rule_set_version(versions, date(2026, 3, 1)).id == "v2"
        assert selector.select_rule_set_version(versions, date(2026, 7, 1)).id == "v3"

    def test_end_date_is_inclusive(self, selector):
        """A version applies through its end date."""
        versions = [make_version("v1", "2025.1", date(2025, 1, 1), date(2025, 12, 31))]
        assert selector.select_rule_set_version(versions, date(2025, 12, 31)).id == "v1"
        assert selector.select_rule_set_version(versions, date(2026, 1, 1)) is None

    def test_before_first_version(self, selector):
        """No version covers a date before every effective date."""
        versions = [make_version("v1", "2026.1", date(2026, 1, 1))]
        assert selector.select_rule_set_version(versions, date(2025, 6, 1)) is None

    def test_empty_versions(self, selector):
        assert selector.select_rule_set_version([], date(2026, 1, 1)) is None

    def test_none_versions_raises(self, selector):
        with pytest.raises(ValueError):
            selector.select_rule_set_version(None, date(2026, 1, 1))

    def test_ties_keep_first(self, selector):
        """Equally dated versions resolve to the first one listed."""
        versions = [
            make_version("first", "2026.1", date(2026, 1, 1)),
            make_version("second", "2026.1b", date(2026, 1, 1)),
        ]
        assert selector.select_rule_set_version(versions, date(2026, 2, 1)).id == "first"

    def test_status_is_not_filtered(self, selector):
        """Retired versions can still be selected; callers check status."""
        versions = [make_version("old", "2026.0", date(2026, 1, 1), status=RuleSetStatus.RETIRED)]
        assert selector.select_rule_set_version(versions, date(2026, 2, 1)).id == "old"


class TestIsEffectiveForDate:
    """Tests for the effectiveness check."""

    def test_active_and_covering(self, selector):
        version = make_version("v1", "2026.1", date(2026, 1, 1))
        assert selector.is_effective_for_date(version, date(2026, 5, 1))

    def test_retired(self, selector):
        version = make_version("v1", "2026.1", date(2026, 1, 1), status=RuleSetStatus.RETIRED)
        assert not selector.is_effective_for_date(version, date(2026, 5, 1))

    def test_none(self, selector):
        assert not selector.is_effective_for_date(None, date(2026, 5, 1))
