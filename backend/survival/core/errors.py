"""Error taxonomy for the progression core.

Stores translate their backend failures into these; the HTTP layer maps
them onto status codes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from survival.schemas.progress import TransitionRecord


class ProgressionError(Exception):
    """Base class for all progression failures."""


class NotFound(ProgressionError):
    """Unknown decision key or record id. Not retried."""


class InvalidChoice(ProgressionError):
    """The submitted choice is not an outgoing edge of the given node."""


class StoreUnavailable(ProgressionError):
    """The graph or ledger backend failed. The caller may retry the action."""


class IncompleteTransition(StoreUnavailable):
    """The new record was written but the previous one was not marked complete.

    Only raised for ledgers whose writes are not rolled back together.
    Retrying is safe: the new record already answers
    ``choice_already_made_from`` for the source node.
    """

    def __init__(self, message: str, record: TransitionRecord):
        super().__init__(message)
        self.record = record


class PartialCleanupFailure(ProgressionError):
    """Restart deleted some, but not all, of the player's records."""

    def __init__(self, message: str, failed_ids: list[int], deleted: int):
        super().__init__(message)
        self.failed_ids = failed_ids
        self.deleted = deleted


class StoryValidationError(ProgressionError):
    """A story file describes a malformed decision graph."""
