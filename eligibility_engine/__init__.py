"""
Benefits Eligibility Rules Engine

Evaluates a person's answers against dated, jurisdiction-scoped eligibility
rule sets and explains the outcome in plain language.
"""
import logging

__version__ = "1.0.0"
__author__ = "Benefits Eligibility Team"
__description__ = "Rules engine for government benefit program eligibility"


def configure_logging(level: str = None) -> None:
    """Configure root logging from settings (or an explicit level)"""
    from .config import settings

    logging.basicConfig(level=(level or settings.log_level).upper())
