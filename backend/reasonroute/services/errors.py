"""
Error taxonomy for routing and reasoning.

Only GenerationError ever escapes a public entry point; the others are
raised internally and recovered where they are caught.
"""
from typing import Optional


class ReasonRouteError(Exception):
    """Base class for all routing/reasoning errors."""


class ConfigLoadError(ReasonRouteError):
    """Raised when the keyword configuration cannot be read or validated."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ClassificationError(ReasonRouteError):
    """Raised when keyword analysis fails for a message."""


class CacheError(ReasonRouteError):
    """Raised by cache bookkeeping; callers treat it as a miss."""


class GenerationError(ReasonRouteError):
    """Raised when every generation attempt for a request has failed."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts
