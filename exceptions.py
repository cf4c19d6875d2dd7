"""
Custom exceptions for the Draft Assistant

Engine errors are raised to the caller layer, which maps them to user-facing
messages. Provider errors never leave the recommendation service.
"""
from typing import Optional


class DraftAssistantException(Exception):
    """Base exception for all draft assistant errors."""
    pass


class NotFoundError(DraftAssistantException):
    """Raised when a requested entity does not exist."""
    pass


class DraftNotFoundError(NotFoundError):
    """Raised when a requested draft cannot be found."""
    pass


class PlayerNotFoundError(NotFoundError):
    """Raised when a requested player cannot be found."""
    pass


class AlreadyDraftedError(DraftAssistantException):
    """Raised when a player already has a pick in the draft."""
    pass


class DraftCompleteError(DraftAssistantException):
    """Raised when an operation targets a draft that is completed or abandoned."""
    pass


class OutOfTurnError(DraftAssistantException):
    """Raised when a seat submits a pick that belongs to another seat."""

    def __init__(self, message: str = "", expected_team: Optional[int] = None):
        super().__init__(message)
        self.expected_team = expected_team


class ConflictError(DraftAssistantException):
    """Raised when a concurrent write won the race for the same pick or player."""
    pass


class NoPicksToUndoError(DraftAssistantException):
    """Raised when undo is requested on a draft with no picks."""
    pass


class ForbiddenUndoError(DraftAssistantException):
    """Raised when the most recent pick belongs to another seat."""
    pass


class InvalidInputError(DraftAssistantException):
    """Exception for malformed arguments or draft state."""
    pass


class ProviderUnavailableError(DraftAssistantException):
    """Generation provider failed, timed out or is not configured. Internal only."""
    pass


class RateLimitExceededError(DraftAssistantException):
    """Raised when a rate-limited identifier is out of budget."""

    def __init__(self, message: str = "", retry_after: int = 0):
        super().__init__(message)
        self.retry_after = retry_after
