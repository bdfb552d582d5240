"""
Readability checks for explanation text
"""
import re
from enum import Enum
from typing import Iterable, List
from pydantic import BaseModel, Field

from ..models.eligibility import ExplanationItem

JARGON_TERMS = {
    term.lower() for term in (
        "algorithm", "regex", "JSONLogic", "MAGI", "FPIG", "AMI", "FPL", "XML", "JSON", "API",
        "payload", "schema", "normalized", "serialized", "deterministic", "cardinality",
        "relational", "denormalized",
    )
}

MAX_AVERAGE_SENTENCE_LENGTH = 20
MAX_AVERAGE_WORD_LENGTH = 6

_WORD_DELIMITERS = re.compile(r"[ .,!?;:\n\r]+")
_SENTENCE_DELIMITERS = re.compile(r"[.!?]+")


class ReadabilityIssueType(str, Enum):
    NONE = "None"
    JARGON_DETECTED = "JargonDetected"
    COMPLEX_SENTENCE_STRUCTURE = "ComplexSentenceStructure"
    COMPLEX_VOCABULARY = "ComplexVocabulary"


class ReadabilityValidation(BaseModel):
    """Readability outcome for one explanation item"""
    criterion_id: str
    is_readable: bool = True
    issue_type: ReadabilityIssueType = ReadabilityIssueType.NONE
    jargon_terms_found: List[str] = Field(default_factory=list)
    average_word_length: float = 0.0
    average_sentence_length: float = 0.0


class ExplanationReadability:
    """
    Flags explanation items that use technical jargon, long sentences or long words.

    When several issues apply, the last check wins the issue_type:
    vocabulary over sentence structure over jargon.
    """

    def validate(self, item: ExplanationItem) -> ReadabilityValidation:
        if item is None:
            raise ValueError("item is required")

        result = ReadabilityValidation(criterion_id=item.criterion_id)

        jargon = self.find_jargon(item.message)
        if jargon:
            result.is_readable = False
            result.jargon_terms_found = jargon
            result.issue_type = ReadabilityIssueType.JARGON_DETECTED

        average_word_length, average_sentence_length = self.calculate_metrics(item.message)
        result.average_word_length = average_word_length
        result.average_sentence_length = average_sentence_length

        if average_sentence_length > MAX_AVERAGE_SENTENCE_LENGTH:
            result.is_readable = False
            result.issue_type = ReadabilityIssueType.COMPLEX_SENTENCE_STRUCTURE

        if average_word_length > MAX_AVERAGE_WORD_LENGTH:
            result.is_readable = False
            result.issue_type = ReadabilityIssueType.COMPLEX_VOCABULARY

        return result

    def validate_all(self, items: Iterable[ExplanationItem]) -> List[ReadabilityValidation]:
        """Validations of the items that are not readable"""
        return [v for v in (self.validate(item) for item in items) if not v.is_readable]

    @staticmethod
    def find_jargon(text: str) -> List[str]:
        """Jargon terms in the text, first occurrence order, case-insensitively unique"""
        if not text or not text.strip():
            return []

        found = []
        seen = set()
        for word in _WORD_DELIMITERS.split(text):
            key = word.lower()
            if key in JARGON_TERMS and key not in seen:
                seen.add(key)
                found.append(word)
        return found

    @staticmethod
    def calculate_metrics(text: str):
        """(average word length, average sentence length in words)"""
        if not text or not text.strip():
            return 0.0, 0.0

        words = text.split()
        sentences = [s for s in _SENTENCE_DELIMITERS.split(text) if s.strip()]

        average_word_length = sum(len(w) for w in words) / len(words) if words else 0.0
        average_sentence_length = len(words) / len(sentences) if sentences else 0.0
        return average_word_length, average_sentence_length
