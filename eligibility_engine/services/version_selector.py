"""
Rule-set version selection by effective date
"""
from datetime import date
from typing import Iterable, Optional

from ..models.rules import RuleSetStatus, RuleSetVersion


class RuleSetVersionSelector:
    """
    Selects the rule-set version in force on a date.

    Selection does not filter on status. Callers check the returned
    candidate with is_effective_for_date before using it.
    """

    @staticmethod
    def covers_date(version: RuleSetVersion, request_date: date) -> bool:
        return version.effective_date <= request_date and (
            version.end_date is None or version.end_date >= request_date
        )

    def select_rule_set_version(
        self,
        versions: Iterable[RuleSetVersion],
        request_date: date
    ) -> Optional[RuleSetVersion]:
        """
        Select the most recent version effective on the request date

        Args:
            versions: Rule-set versions of one jurisdiction
            request_date: Date the rules must be in force

        Returns:
            The version with the latest effective date covering request_date,
            or None if no version qualifies
        """
        if versions is None:
            raise ValueError("versions is required")

        selected = None
        for version in versions:
            if not self.covers_date(version, request_date):
                continue
            # Strict comparison keeps the first of equally dated versions
            if selected is None or version.effective_date > selected.effective_date:
                selected = version
        return selected

    def is_effective_for_date(self, version: Optional[RuleSetVersion], request_date: date) -> bool:
        """True if the version is Active and covers the request date"""
        if version is None:
            return False
        return self.covers_date(version, request_date) and version.status == RuleSetStatus.ACTIVE
