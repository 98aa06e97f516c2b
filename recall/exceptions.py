"""
Exception hierarchy for bookmark-recall.

"No data" is never an error: scheduling and analytics return empty or
zero-valued results instead of raising.
"""

from __future__ import annotations


class RecallError(Exception):
    """Base class for all errors raised by the core."""


class NotFoundError(RecallError):
    """A bookmark, category, question or attempt id does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class SubmissionValidationError(RecallError):
    """A quiz submission is malformed and was rejected before any write."""


class StoreFailure(RecallError):
    """The content store failed to read or write. Not retried by the core."""
