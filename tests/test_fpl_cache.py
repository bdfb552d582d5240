"""Unit tests for FplYearCache."""

from datetime import datetime, timezone

from eligibility_engine.services import FplYearCache

from conftest import BASELINE_FPL_2026, make_fpl_rows


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class TestFplYearCache:
    """Tests for year-scoped FPL caching."""

    def test_get_after_set(self):
        cache = FplYearCache(FakeClock(datetime(2026, 3, 1, tzinfo=timezone.utc)))
        cache.set_year(2026, make_fpl_rows(2026, BASELINE_FPL_2026))

        records = cache.get_year(2026)
        assert len(records) == 8
        assert records[0].annual_income_cents == 1458000

    def test_absent_year(self):
        cache = FplYearCache()
        assert cache.get_year(2030) is None

    def test_expires_at_new_year(self):
        """Rows for a year expire on 1 January of the next year (UTC)."""
        clock = FakeClock(datetime(2026, 12, 31, 23, 59, tzinfo=timezone.utc))
        cache = FplYearCache(clock)
        cache.set_year(2026, make_fpl_rows(2026, BASELINE_FPL_2026))
        assert cache.get_year(2026) is not None

        clock.now = datetime(2027, 1, 1, tzinfo=timezone.utc)
        assert cache.get_year(2026) is None
        assert cache.get_stats() == (0, 0)

    def test_returned_list_is_a_copy(self):
        cache = FplYearCache(FakeClock(datetime(2026, 3, 1, tzinfo=timezone.utc)))
        cache.set_year(2026, make_fpl_rows(2026, BASELINE_FPL_2026))
        cache.get_year(2026).clear()
        assert len(cache.get_year(2026)) == 8

    def test_invalidation(self):
        cache = FplYearCache(FakeClock(datetime(2026, 3, 1, tzinfo=timezone.utc)))
        for year in (2026, 2027, 2028):
            cache.set_year(year, make_fpl_rows(year, BASELINE_FPL_2026[:2]))

        cache.invalidate_year(2026)
        assert cache.get_year(2026) is None
        assert cache.get_stats() == (2, 4)

        cache.invalidate_years(2027, 2028)
        assert cache.get_stats() == (0, 0)

    def test_clear(self):
        cache = FplYearCache(FakeClock(datetime(2026, 3, 1, tzinfo=timezone.utc)))
        cache.set_year(2026, make_fpl_rows(2026, BASELINE_FPL_2026))
        cache.clear()
        assert cache.get_year(2026) is None
