"""
Exceptions that stop a posture review run before anything is written.

Rule-level and cell-level problems never raise: they are logged and returned
as warnings next to the result that survived them.
"""

from __future__ import annotations

from typing import List, Optional


class PostureReviewError(Exception):
    """Base class for fatal run errors. Carries every message collected."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors: List[str] = list(errors) if errors else [message]


class WorkbookError(PostureReviewError):
    """Workbook could not be opened or a required sheet is absent."""


class ConfigError(PostureReviewError):
    """Config sheet is missing, malformed or holds invalid rows."""


class RegistryError(PostureReviewError):
    """Master registry sheet or its identifier column is missing."""
