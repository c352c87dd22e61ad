# app/errors.py
"""
Error taxonomy for the recommendation engine.

Only NotFound escapes to callers. Everything under SourceUnavailable is
absorbed by the engine: the failing source contributes zero candidates and
its name is recorded on the category result.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for recommendation engine errors."""


class NotFound(EngineError):
    pass


class UserNotFound(NotFound):
    def __init__(self, user_id: int) -> None:
        super().__init__(f"user {user_id} not found")
        self.user_id = user_id


class SourceUnavailable(EngineError):
    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class GenerativeUnavailable(SourceUnavailable):
    def __init__(self, reason: str) -> None:
        super().__init__("generative", reason)


class RateLimited(GenerativeUnavailable):
    def __init__(self, reason: str = "rate limited") -> None:
        super().__init__(reason)


class GenerativeResponseInvalid(GenerativeUnavailable):
    """The text service answered, but not with JSON matching the category schema."""
