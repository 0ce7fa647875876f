"""Exception hierarchy of the calendar sync engine."""
from __future__ import annotations

from typing import Optional


class SyncEngineError(Exception):
    """Base class for errors raised by the sync engine."""


class AuthError(SyncEngineError):
    """The remote calendar cannot be reached on behalf of the user."""


class NoLinkedAccount(AuthError):
    def __init__(self, user_id: str):
        super().__init__(f"No Google account linked for user {user_id}")
        self.user_id = user_id


class NoRefreshToken(AuthError):
    def __init__(self, user_id: str):
        super().__init__(
            f"No refresh token available for user {user_id}; re-authorization required"
        )
        self.user_id = user_id


class TokenRefreshError(AuthError):
    """The token endpoint rejected or failed the refresh request."""


class RemoteApiError(SyncEngineError):
    """Non-2xx answer or transport failure of the remote calendar API.

    ``status`` is ``None`` when no HTTP response was received (timeouts,
    connection errors).
    """

    def __init__(self, status: Optional[int], body: str = "", operation: str = ""):
        self.status = status
        self.body = body or ""
        self.operation = operation
        label = f"{operation} failed" if operation else "Google Calendar request failed"
        code = status if status is not None else "no response"
        super().__init__(f"{label}: {code} {self.body}".rstrip())


class PersistenceError(SyncEngineError):
    """A local store read or write failed."""


__all__ = [
    "SyncEngineError",
    "AuthError",
    "NoLinkedAccount",
    "NoRefreshToken",
    "TokenRefreshError",
    "RemoteApiError",
    "PersistenceError",
]
