"""Exceptions raised by the learning engine."""
from typing import Optional


class EngineError(Exception):
    """Base class for engine errors.

    Carries the identifiers of the failing user and word when known so callers
    can report them without parsing the message.
    """

    http_status = 400
    retryable = False

    def __init__(self, message: str, user_id: Optional[str] = None, word_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.word_id = word_id

    def __str__(self) -> str:
        parts = []
        if self.user_id is not None:
            parts.append(f"user={self.user_id}")
        if self.word_id is not None:
            parts.append(f"word={self.word_id}")
        if parts:
            return f"{self.message} ({', '.join(parts)})"
        return self.message


class NotFound(EngineError):
    """Unknown user, word, question or session."""

    http_status = 404


class UnknownWord(NotFound):
    """A word was scheduled before its learning record was created."""


class InvalidState(EngineError):
    """The request does not fit the current state."""


class ConcurrencyConflict(EngineError):
    """A per-key lock could not be acquired in time. Safe to retry."""

    http_status = 503
    retryable = True


class ConfigurationError(EngineError):
    """Engine configuration is unusable."""
