"""Configuration-driven application posture summary for Excel workbooks."""

from posture_review.errors import ConfigError, PostureReviewError, RegistryError, WorkbookError
from posture_review.pipeline import ReviewResult, ReviewSettings, run_posture_review
from posture_review.rules import AggregationRule, EntityAttributeStore, Strategy
from posture_review.workbook import Workbook

__version__ = "0.1.0"

__all__ = [
    "AggregationRule",
    "ConfigError",
    "EntityAttributeStore",
    "PostureReviewError",
    "RegistryError",
    "ReviewResult",
    "ReviewSettings",
    "Strategy",
    "Workbook",
    "WorkbookError",
    "run_posture_review",
]
