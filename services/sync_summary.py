"""Result records of sync runs."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.errors import AuthError, PersistenceError, RemoteApiError


KIND_AUTH = "auth"
KIND_REMOTE_API = "remote_api"
KIND_PERSISTENCE = "persistence"
KIND_UNEXPECTED = "unexpected"


def error_kind(exc: BaseException) -> str:
    if isinstance(exc, AuthError):
        return KIND_AUTH
    if isinstance(exc, RemoteApiError):
        return KIND_REMOTE_API
    if isinstance(exc, PersistenceError):
        return KIND_PERSISTENCE
    return KIND_UNEXPECTED


@dataclass(frozen=True)
class SyncError:
    """One failure of a sync phase; ``event_id`` is ``None`` for phase-wide errors."""

    phase: str
    event_id: Optional[str]
    kind: str
    message: str

    def __str__(self) -> str:
        if self.event_id is None:
            return f"{self.phase}: {self.message}"
        return f"{self.phase} event {self.event_id}: {self.message}"


@dataclass
class SyncSummary:
    pulled: int = 0
    pushed: int = 0
    updated: int = 0
    deleted: int = 0
    errors: List[SyncError] = field(default_factory=list)
    aborted: bool = False

    def record_error(self, phase: str, exc: BaseException, event_id: Optional[str] = None) -> SyncError:
        error = SyncError(
            phase=phase,
            event_id=event_id,
            kind=error_kind(exc),
            message=str(exc) or type(exc).__name__,
        )
        self.errors.append(error)
        return error

    def abort(self, phase: str, exc: BaseException) -> SyncError:
        self.aborted = True
        return self.record_error(phase, exc)

    @property
    def changed(self) -> int:
        return self.pulled + self.pushed + self.updated + self.deleted

    def error_messages(self) -> List[str]:
        return [str(error) for error in self.errors]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pulled": self.pulled,
            "pushed": self.pushed,
            "updated": self.updated,
            "deleted": self.deleted,
            "errors": self.error_messages(),
        }

    @classmethod
    def merge(cls, pull: "SyncSummary", push: "SyncSummary") -> "SyncSummary":
        return cls(
            pulled=pull.pulled,
            pushed=push.pushed,
            updated=pull.updated + push.updated,
            deleted=pull.deleted + push.deleted,
            errors=list(pull.errors) + list(push.errors),
            aborted=pull.aborted or push.aborted,
        )


__all__ = [
    "KIND_AUTH",
    "KIND_REMOTE_API",
    "KIND_PERSISTENCE",
    "KIND_UNEXPECTED",
    "SyncError",
    "SyncSummary",
    "error_kind",
]
