"""
Plain-language explanations for eligibility results
"""
import re
from typing import Iterable, List, Optional

from ..models.eligibility import ExplanationItem, ExplanationItemStatus

CRITERION_GLOSSARY = {
    "citizenship_requirement": "You must be a U.S. citizen or qualified immigrant.",
    "income_threshold": "Your household income must be below the limit for your household size.",
    "asset_limit": "Your household assets must be below the program limit.",
    "residency_requirement": "You must be a resident of this state.",
    "age_requirement": "You must meet the age requirement for the program.",
    "employment_status": "Your employment status affects your eligibility.",
    "family_structure": "Your family structure affects the benefits you receive.",
    "medical_status": "Certain medical conditions may affect your eligibility.",
}

CRITERION_SHORT_NAMES = {
    "citizenship_requirement": "Citizenship",
    "income_threshold": "Income Limit",
    "asset_limit": "Asset Limit",
    "residency_requirement": "State Residency",
    "age_requirement": "Age",
    "employment_status": "Employment Status",
    "family_structure": "Family Structure",
    "medical_status": "Medical Status",
}

UNDETERMINED_EXPLANATION = "Unable to determine eligibility with the provided information."
PARTIAL_SUFFIX = " Please review the details above for more information about each requirement."

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class ExplanationBuilder:
    """Builds per-criterion explanation items and a summary sentence"""

    def build_explanation_items(
        self,
        met: Iterable[str],
        unmet: Iterable[str],
        missing: Iterable[str]
    ) -> List[ExplanationItem]:
        """
        Build explanation items: met, then unmet, then missing, each sorted by criterion id

        Args:
            met: Criteria that were satisfied
            unmet: Criteria that were not satisfied
            missing: Criteria that could not be evaluated for lack of answers

        Returns:
            List of ExplanationItem
        """
        groups = (
            (met, ExplanationItemStatus.MET, "{name}: Requirement met", "✓"),
            (unmet, ExplanationItemStatus.UNMET, "{name}: Requirement not met", "✗"),
            (missing, ExplanationItemStatus.MISSING, "{name}: Cannot determine (missing information)", "?"),
        )

        items = []
        for criteria, status, template, marker in groups:
            for criterion_id in sorted(criteria):
                message = f"{marker} " + template.format(name=self.get_short_name(criterion_id))
                items.append(ExplanationItem(
                    criterion_id=criterion_id,
                    message=message,
                    status=status,
                    glossary_reference=self.get_glossary_reference(criterion_id)
                ))
        return items

    def generate_explanation(self, met: Iterable[str], unmet: Iterable[str], missing: Iterable[str]) -> str:
        """
        Summarize the criteria outcome in one or more sentences

        Missing answers take precedence over unmet criteria: a partial
        explanation is produced whenever anything is missing.
        """
        met, unmet, missing = list(met), list(unmet), list(missing)

        if met and not unmet and not missing:
            return (
                "Based on the information provided, you appear to be eligible. "
                f"You meet all the requirements, including {self._join_names(met, ', ')}."
            )

        if unmet and not missing:
            noun = "requirements" if len(unmet) > 1 else "requirement"
            return (
                "Based on the information provided, you do not appear to be eligible. "
                f"You do not meet the {self._join_names(unmet, ' and ')} {noun}."
            )

        if missing:
            parts = []
            if met:
                parts.append(f"You meet the {self._join_names(met, ', ')} requirement(s).")
            if unmet:
                parts.append(f"You do not meet the {self._join_names(unmet, ', ')} requirement(s).")
            parts.append(
                f"We could not evaluate your {self._join_names(missing, ', ')} requirement(s) "
                "due to missing information."
            )
            return " ".join(parts) + PARTIAL_SUFFIX

        return UNDETERMINED_EXPLANATION

    def get_short_name(self, criterion_id: str) -> str:
        if criterion_id in CRITERION_SHORT_NAMES:
            return CRITERION_SHORT_NAMES[criterion_id]
        return humanize_criterion_id(criterion_id)

    def get_glossary_reference(self, criterion_id: str) -> Optional[str]:
        return CRITERION_GLOSSARY.get(criterion_id)

    def _join_names(self, criteria: List[str], separator: str) -> str:
        return separator.join(sorted(self.get_short_name(c) for c in criteria))


def humanize_criterion_id(criterion_id: str) -> str:
    """
    Turn a camelCase or snake_case identifier into words

    >>> humanize_criterion_id("someRequirement")
    'Some Requirement'
    >>> humanize_criterion_id("household_size")
    'Household Size'
    """
    spaced = _CAMEL_BOUNDARY.sub(" ", criterion_id.replace("_", " "))
    words = [word[0].upper() + word[1:] for word in spaced.split()]
    return " ".join(words) if words else criterion_id
