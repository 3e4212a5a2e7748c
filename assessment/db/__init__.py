"""
Query adapters over the persistent stores.
"""
from .queries import (
    CompetencyQueries,
    IndicatorQueries,
    QuestionQueries,
    SessionStore,
    TemplateStore,
)

__all__ = [
    "CompetencyQueries",
    "IndicatorQueries",
    "QuestionQueries",
    "SessionStore",
    "TemplateStore",
]
