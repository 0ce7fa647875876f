from __future__ import annotations
import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional

from core.settings import GOOGLE_SYNC
from datetime_utils import utc_now
from services.google_auth import TokenProvider
from services.google_calendar import CalendarClient
from services.event_repository import EventRepository
from services.locks import KeyedLock
from services.ports import AccountStore, ConnectionConfigStore, EventMappingStore, LocalEventStore
from services.sync_pull import PullEngine
from services.sync_push import PushEngine
from services.sync_store import SqlAccountStore, SqlConnectionStore, SqlMappingStore
from services.sync_summary import SyncSummary


def _ensure_logger(log_path: Optional[Path] = None) -> logging.Logger:
    logger = logging.getLogger("calsync.sync")
    if not logger.handlers:
        path = Path(log_path or GOOGLE_SYNC.log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    return logger


class SyncOrchestrator:
    """Runs pull then push for a user and records the attempt.

    Runs for the same user are serialized; a second trigger waits for the
    first to finish and then finds nothing left to do.
    """

    def __init__(
        self,
        pull_engine: PullEngine,
        push_engine: PushEngine,
        connections: ConnectionConfigStore,
        mappings: EventMappingStore,
        accounts: Optional[AccountStore] = None,
        *,
        clock: Callable[[], datetime] = utc_now,
        log_path: Optional[Path] = None,
        enabled: Optional[bool] = None,
    ) -> None:
        self.pull_engine = pull_engine
        self.push_engine = push_engine
        self.connections = connections
        self.mappings = mappings
        self.accounts = accounts
        self._clock = clock
        self.enabled = GOOGLE_SYNC.enabled if enabled is None else enabled
        self._locks = KeyedLock()
        self.logger = _ensure_logger(log_path)

    @classmethod
    def create(
        cls,
        *,
        accounts: Optional[AccountStore] = None,
        connections: Optional[ConnectionConfigStore] = None,
        mappings: Optional[EventMappingStore] = None,
        events: Optional[LocalEventStore] = None,
        client: Optional[CalendarClient] = None,
    ) -> "SyncOrchestrator":
        """Wire the engine against the SQLModel stores and the real Google client."""

        accounts = accounts or SqlAccountStore()
        connections = connections or SqlConnectionStore()
        mappings = mappings or SqlMappingStore()
        events = events or EventRepository()
        client = client or CalendarClient(TokenProvider(accounts))
        return cls(
            PullEngine(client, connections, mappings, events),
            PushEngine(client, connections, mappings, events),
            connections,
            mappings,
            accounts,
        )

    # ------------------------------------------------------------------
    # Public API
    def run(self, user_id: str) -> SyncSummary:
        if not self.enabled:
            self.logger.info("[%s] Google sync disabled, skipping run", user_id)
            return SyncSummary()
        with self._locks.hold(user_id):
            self.logger.info("[%s] Sync run started", user_id)
            pull = self.pull_engine.pull(user_id)
            if pull.aborted:
                # Local state may be stale relative to unseen remote edits.
                self.logger.warning("[%s] Pull aborted, skipping push", user_id)
                push = SyncSummary()
            else:
                push = self.push_engine.push(user_id)

            summary = SyncSummary.merge(pull, push)
            try:
                self.connections.upsert(user_id, last_synced_at=self._clock())
            except Exception as exc:
                self.logger.error("[%s] Failed to record last sync time: %s", user_id, exc)
                summary.record_error("sync", exc)

            self.logger.info(
                "[%s] Sync run finished: pulled=%d pushed=%d updated=%d deleted=%d errors=%d",
                user_id,
                summary.pulled,
                summary.pushed,
                summary.updated,
                summary.deleted,
                len(summary.errors),
            )
            return summary

    def disconnect(self, user_id: str) -> int:
        """Stop syncing ``user_id``; imported events stay as plain local events.

        Returns the number of mappings removed.
        """

        with self._locks.hold(user_id):
            removed = self.mappings.delete_for_user(user_id)
            self.connections.delete(user_id)
            if self.accounts is not None:
                self.accounts.delete_google_account(user_id)
            self.logger.info("[%s] Disconnected, %d mappings removed", user_id, removed)
            return removed


_default_orchestrator: Optional[SyncOrchestrator] = None


def get_orchestrator() -> SyncOrchestrator:
    global _default_orchestrator
    if _default_orchestrator is None:
        _default_orchestrator = SyncOrchestrator.create()
    return _default_orchestrator


def run_sync(user_id: str, orchestrator: Optional[SyncOrchestrator] = None) -> Dict:
    """Entry point for "Sync Now" and the scheduled job."""

    return (orchestrator or get_orchestrator()).run(user_id).to_dict()


__all__ = ["SyncOrchestrator", "get_orchestrator", "run_sync"]
