"""
Federal Poverty Level threshold calculations
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

from ..exceptions import FplNotFoundError
from ..models.rules import FederalPovertyLevel
from ..utils.rounding import round_half_away_from_zero
from ..utils.validators import (
    MAX_TABULATED_HOUSEHOLD_SIZE,
    normalize_jurisdiction_code,
    validate_household_size,
    validate_year,
)
from .fpl_cache import FplYearCache
from .repositories import FplRepository

logger = logging.getLogger(__name__)

MAX_PERCENTAGE_MULTIPLIER = 1000


class FplThresholdCalculator:
    """
    Resolves FPL amounts and income thresholds.

    Household sizes 1-8 are read from the published tables. Larger households
    are extrapolated from the same year and jurisdiction:
    FPL(n) = FPL(8) + (n - 8) * (FPL(8) - FPL(7)).
    """

    def __init__(
        self,
        fpl_repository: FplRepository,
        fpl_cache: Optional[FplYearCache] = None,
        clock: Callable[[], datetime] = None
    ):
        if fpl_repository is None:
            raise ValueError("fpl_repository is required")
        self.fpl_repository = fpl_repository
        self.fpl_cache = fpl_cache
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def calculate_threshold(self, fpl_cents: int, percentage_multiplier: int) -> int:
        """
        Calculate an income threshold as a percentage of an FPL amount

        Args:
            fpl_cents: FPL amount in cents (e.g. 1458000 for $14,580)
            percentage_multiplier: Percentage of FPL (e.g. 138 for 138% FPL)

        Returns:
            Threshold in cents, rounded half away from zero
        """
        if fpl_cents < 0:
            raise ValueError("FPL amount must be non-negative")
        if percentage_multiplier < 0 or percentage_multiplier > MAX_PERCENTAGE_MULTIPLIER:
            raise ValueError(f"Percentage multiplier must be between 0-{MAX_PERCENTAGE_MULTIPLIER}")

        threshold = Decimal(fpl_cents) * (Decimal(percentage_multiplier) / Decimal(100))
        return round_half_away_from_zero(threshold)

    async def get_baseline_fpl(self, year: int, household_size: int) -> int:
        """
        Get the baseline (nationwide) FPL in cents

        Raises:
            ValueError: If year or household size is out of range
            FplNotFoundError: If no baseline row exists
        """
        validate_year(year)
        validate_household_size(household_size)

        record = await self._lookup(year, household_size, None)
        if record is None:
            raise FplNotFoundError(year, household_size)
        return record.annual_income_cents

    async def get_state_fpl(self, year: int, household_size: int, jurisdiction: str) -> int:
        """
        Get the jurisdiction-adjusted FPL in cents

        Never falls back to the baseline; callers that want a fallback catch
        FplNotFoundError and ask for the baseline themselves.

        Raises:
            ValueError: If year, household size or jurisdiction is invalid
            FplNotFoundError: If no row exists for the jurisdiction
        """
        validate_year(year)
        validate_household_size(household_size)
        jurisdiction = normalize_jurisdiction_code(jurisdiction)
        if not jurisdiction:
            raise ValueError("Jurisdiction is required")

        record = await self._lookup(year, household_size, jurisdiction)
        if record is None:
            raise FplNotFoundError(year, household_size, jurisdiction)
        return record.annual_income_cents

    async def get_per_person_increment(self, year: int, jurisdiction: Optional[str] = None) -> int:
        """Difference between FPL for household sizes 8 and 7"""
        fpl_7 = await self._get_tabulated_fpl(year, MAX_TABULATED_HOUSEHOLD_SIZE - 1, jurisdiction)
        fpl_8 = await self._get_tabulated_fpl(year, MAX_TABULATED_HOUSEHOLD_SIZE, jurisdiction)
        return fpl_8 - fpl_7

    async def get_fpl_for_household(
        self,
        year: int,
        household_size: int,
        jurisdiction: Optional[str] = None
    ) -> int:
        """
        Get FPL for any household size

        Args:
            year: FPL table year
            household_size: Number of people, 1 or more
            jurisdiction: Jurisdiction code for adjusted tables, None for baseline

        Returns:
            FPL in cents; sizes above 8 are extrapolated with the per-person increment
        """
        validate_household_size(household_size, max_size=None)

        if household_size <= MAX_TABULATED_HOUSEHOLD_SIZE:
            return await self._get_tabulated_fpl(year, household_size, jurisdiction)

        fpl_8 = await self._get_tabulated_fpl(year, MAX_TABULATED_HOUSEHOLD_SIZE, jurisdiction)
        increment = await self.get_per_person_increment(year, jurisdiction)
        return fpl_8 + (household_size - MAX_TABULATED_HOUSEHOLD_SIZE) * increment

    async def calculate_threshold_for(
        self,
        year: int,
        household_size: int,
        percentage_multiplier: int,
        jurisdiction: Optional[str] = None
    ) -> int:
        """Look up the household FPL and apply a percentage in one step"""
        fpl_cents = await self.get_fpl_for_household(year, household_size, jurisdiction)
        return self.calculate_threshold(fpl_cents, percentage_multiplier)

    async def get_current_year_fpl(self, household_size: int, jurisdiction: Optional[str] = None) -> int:
        return await self.get_fpl_for_household(self._clock().year, household_size, jurisdiction)

    async def get_income_percent_of_fpl(
        self,
        annual_income_cents: int,
        year: int,
        household_size: int,
        jurisdiction: Optional[str] = None
    ) -> int:
        """
        Express an annual income as a whole percentage of the household FPL

        Returns:
            Percentage rounded half away from zero (e.g. 212 for 212% FPL)
        """
        if annual_income_cents < 0:
            raise ValueError("Annual income must be non-negative")

        fpl_cents = await self.get_fpl_for_household(year, household_size, jurisdiction)
        if fpl_cents <= 0:
            raise ValueError(f"FPL amount for year {year}, household size {household_size} is not positive")

        percent = Decimal(annual_income_cents) * Decimal(100) / Decimal(fpl_cents)
        return round_half_away_from_zero(percent)

    async def _get_tabulated_fpl(self, year: int, household_size: int, jurisdiction: Optional[str]) -> int:
        jurisdiction = normalize_jurisdiction_code(jurisdiction)
        if jurisdiction:
            return await self.get_state_fpl(year, household_size, jurisdiction)
        return await self.get_baseline_fpl(year, household_size)

    async def _lookup(
        self,
        year: int,
        household_size: int,
        jurisdiction: Optional[str]
    ) -> Optional[FederalPovertyLevel]:
        if self.fpl_cache is None:
            return await self.fpl_repository.get_by_year_and_household_size(year, household_size, jurisdiction)

        records = self.fpl_cache.get_year(year)
        if records is None:
            records = await self.fpl_repository.get_by_year(year)
            self.fpl_cache.set_year(year, records)
            logger.info(f"Loaded {len(records)} FPL rows for {year}")

        for record in records:
            if record.household_size == household_size and record.jurisdiction == jurisdiction:
                return record
        return None
