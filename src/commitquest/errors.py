"""Engine error taxonomy.

Routers translate these into HTTP responses in middleware/error_handler.py.
"""

from __future__ import annotations


class CommitQuestError(Exception):
    """Base class for engine errors."""


class NotFoundError(CommitQuestError, LookupError):
    """Referenced entity does not exist or does not belong to the caller."""


class InvalidStateError(CommitQuestError, ValueError):
    """Operation attempted on an entity not in the required state."""


class AlreadyClaimedError(InvalidStateError):
    """Challenge reward has already been claimed."""


class AlreadyUnlockedError(InvalidStateError):
    """Achievement is already unlocked for the user."""


class PersistenceError(CommitQuestError):
    """The underlying store failed; nothing was committed."""
