"""Data models for blogpulse."""

from .company import CompanyReference
from .post import (
    ANALYSIS_CLASSIFICATIONS,
    Classification,
    CompanyMatch,
    EnrichedPost,
    Sentiment,
)
from .run import Run
from .source import Source
from .tracking import Notification, Tracker

__all__ = [
    "ANALYSIS_CLASSIFICATIONS",
    "Classification",
    "CompanyMatch",
    "CompanyReference",
    "EnrichedPost",
    "Notification",
    "Run",
    "Sentiment",
    "Source",
    "Tracker",
]
