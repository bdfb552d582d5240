"""
Confidence scoring policy for eligibility results
"""
from typing import Any, Iterable, Mapping, Optional

from ..models.eligibility import ConfidenceScore, EligibilityStatus
from ..utils.rounding import round_half_away_from_zero

DEFAULT_COMPLETENESS = 0.5
MATCHED_CERTAINTY = 1.0
UNMATCHED_CERTAINTY = 0.5


class ConfidenceScoringPolicy:
    """Turns answer completeness and rule-match outcome into a 0-100 score"""

    def calculate_score(self, answers: Optional[Mapping[str, Any]], rule_matched: bool) -> ConfidenceScore:
        """
        Calculate confidence for one rule outcome

        Args:
            answers: Answer map used for the evaluation
            rule_matched: Whether the evaluated rule matched

        Returns:
            ConfidenceScore clamped to 0-100
        """
        completeness = self.calculate_completeness(answers)
        certainty = MATCHED_CERTAINTY if rule_matched else UNMATCHED_CERTAINTY
        return ConfidenceScore(value=round_half_away_from_zero(100 * completeness * certainty))

    def calculate_overall_score(
        self,
        answers: Optional[Mapping[str, Any]],
        program_scores: Iterable[int]
    ) -> ConfidenceScore:
        """Best program score, or the unmatched score when nothing matched"""
        program_scores = list(program_scores)
        if program_scores:
            return ConfidenceScore(value=max(program_scores))
        return self.calculate_score(answers, False)

    def get_status(self, confidence_score: int) -> EligibilityStatus:
        return EligibilityStatus.from_score(confidence_score)

    @staticmethod
    def calculate_completeness(answers: Optional[Mapping[str, Any]]) -> float:
        # Any non-null answer counts as complete; not a fraction of expected fields
        if not answers:
            return DEFAULT_COMPLETENESS
        has_value = any(value is not None for value in answers.values())
        return 1.0 if has_value else DEFAULT_COMPLETENESS
