"""
Tests for custom exceptions

Ensures exception hierarchy and behavior work correctly.
"""
import pytest

from exceptions import (
    AlreadyDraftedError,
    ConflictError,
    DraftAssistantException,
    DraftCompleteError,
    DraftNotFoundError,
    ForbiddenUndoError,
    InvalidInputError,
    NoPicksToUndoError,
    NotFoundError,
    OutOfTurnError,
    PlayerNotFoundError,
    ProviderUnavailableError,
    RateLimitExceededError,
)

ALL_EXCEPTIONS = [
    NotFoundError, DraftNotFoundError, PlayerNotFoundError, AlreadyDraftedError,
    DraftCompleteError, OutOfTurnError, ConflictError, NoPicksToUndoError,
    ForbiddenUndoError, InvalidInputError, ProviderUnavailableError,
    RateLimitExceededError,
]


class TestExceptionHierarchy:
    """Test that exceptions inherit correctly."""

    @pytest.mark.parametrize("exc_class", ALL_EXCEPTIONS)
    def test_inherits_from_base(self, exc_class):
        assert issubclass(exc_class, DraftAssistantException)

    def test_base_inherits_from_exception(self):
        assert issubclass(DraftAssistantException, Exception)

    def test_not_found_family(self):
        assert issubclass(DraftNotFoundError, NotFoundError)
        assert issubclass(PlayerNotFoundError, NotFoundError)

    @pytest.mark.parametrize("exc_class", ALL_EXCEPTIONS)
    def test_message_preserved(self, exc_class):
        assert str(exc_class("Test error message")) == "Test error message"


class TestExceptionPayloads:
    """Test exceptions that carry extra data."""

    def test_out_of_turn_carries_expected_team(self):
        error = OutOfTurnError("Pick 19 belongs to team 6", expected_team=6)

        assert error.expected_team == 6
        assert OutOfTurnError("no seat").expected_team is None

    def test_rate_limit_carries_retry_after(self):
        error = RateLimitExceededError("slow down", retry_after=42)

        assert error.retry_after == 42
        assert RateLimitExceededError().retry_after == 0

    def test_catchable_as_base(self):
        with pytest.raises(DraftAssistantException):
            raise ConflictError("lost the race")
