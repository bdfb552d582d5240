"""
Year-scoped cache for Federal Poverty Level tables
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..models.rules import FederalPovertyLevel

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FplYearCache:
    """
    Caches every FPL row of a year.

    FPL tables are published once a year, so a year's rows stay valid until
    1 January of the following year (UTC).
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[int, Tuple[List[FederalPovertyLevel], datetime]] = {}

    def get_year(self, year: int) -> Optional[List[FederalPovertyLevel]]:
        """Cached rows for a year, or None when absent or expired"""
        with self._lock:
            entry = self._entries.get(year)
            if entry is None:
                return None
            records, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[year]
                return None
            return list(records)

    def set_year(self, year: int, records: Iterable[FederalPovertyLevel]) -> None:
        expires_at = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
        with self._lock:
            self._entries[year] = (list(records), expires_at)
        logger.debug(f"Cached FPL rows for {year} until {expires_at.isoformat()}")

    def invalidate_year(self, year: int) -> None:
        with self._lock:
            self._entries.pop(year, None)

    def invalidate_years(self, *years: int) -> None:
        for year in years:
            self.invalidate_year(year)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_stats(self) -> Tuple[int, int]:
        """(cached years, cached rows) counting unexpired entries only"""
        now = self._clock()
        with self._lock:
            live = [records for records, expires_at in self._entries.values() if now < expires_at]
        return len(live), sum(len(records) for records in live)
