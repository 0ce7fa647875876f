"""Google Calendar → local events."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Tuple

from core.settings import GOOGLE_SYNC
from datetime_utils import utc_now
from models.event import SOURCE_REMOTE, VISIBILITY_PRIVATE
from services.google_events import RemoteEvent, local_fields
from services.ports import ConnectionConfigStore, EventMappingStore, LocalEventStore
from services.sync_summary import SyncSummary


logger = logging.getLogger("calsync.sync.pull")

PHASE = "pull"


class PullEngine:
    """Imports and updates local events from the user's remote calendar.

    The remote side wins: a changed etag overwrites the local copy. An
    unchanged etag is a no-op, which is what keeps a pushed event from being
    written back locally on the next run.
    """

    def __init__(
        self,
        client,
        connections: ConnectionConfigStore,
        mappings: EventMappingStore,
        events: LocalEventStore,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.client = client
        self.connections = connections
        self.mappings = mappings
        self.events = events
        self._clock = clock

    def sync_window(self, user_id: str) -> Tuple[datetime, datetime]:
        connection = self.connections.get(user_id)
        past_days = GOOGLE_SYNC.default_past_days
        future_days = GOOGLE_SYNC.default_future_days
        if connection is not None:
            past_days = connection.sync_window_past_days or past_days
            future_days = connection.sync_window_future_days or future_days
        now = self._clock()
        return now - timedelta(days=past_days), now + timedelta(days=future_days)

    def pull(self, user_id: str) -> SyncSummary:
        summary = SyncSummary()
        try:
            time_min, time_max = self.sync_window(user_id)
            remote_events = self.client.list_all_events(user_id, time_min, time_max)
        except Exception as exc:
            # A partial page set is indistinguishable from a complete one.
            logger.warning("[%s] Pull aborted, listing failed: %s", user_id, exc)
            summary.abort(PHASE, exc)
            return summary

        for remote in remote_events:
            try:
                self._apply(user_id, remote, summary)
            except Exception as exc:
                logger.warning("[%s] Failed to pull event %s: %s", user_id, remote.id, exc)
                summary.record_error(PHASE, exc, event_id=remote.id)

        logger.info(
            "[%s] Pull complete: %d new, %d updated, %d deleted, %d errors",
            user_id,
            summary.pulled,
            summary.updated,
            summary.deleted,
            len(summary.errors),
        )
        return summary

    def _apply(self, user_id: str, remote: RemoteEvent, summary: SyncSummary) -> None:
        if not remote.id:
            return

        mapping = self.mappings.find_by_external(user_id, remote.id)

        if remote.cancelled:
            if mapping is None:
                return
            self.events.delete(mapping.local_event_id)
            self.mappings.delete(mapping.id)
            summary.deleted += 1
            logger.info("[%s] Remote event %s cancelled -> local event deleted", user_id, remote.id)
            return

        if remote.time_range is None:
            logger.debug("[%s] Skipping remote event %s without usable times", user_id, remote.id)
            return

        if mapping is not None:
            if mapping.external_etag and remote.etag and mapping.external_etag == remote.etag:
                return
            if self.events.get(mapping.local_event_id) is None:
                logger.info(
                    "[%s] Local copy of remote event %s is gone, importing it again",
                    user_id,
                    remote.id,
                )
                self.mappings.delete(mapping.id)
                mapping = None

        if mapping is not None:
            self.events.update(mapping.local_event_id, **local_fields(remote))
            self.mappings.update(
                mapping.id,
                external_etag=remote.etag,
                external_updated_at=remote.updated,
                last_pulled_at=self._clock(),
            )
            summary.updated += 1
            logger.info("[%s] Remote event %s changed -> local event updated", user_id, remote.id)
            return

        event = self.events.create(
            owner_id=user_id,
            source=SOURCE_REMOTE,
            external_id=remote.id,
            visibility=VISIBILITY_PRIVATE,
            **local_fields(remote),
        )
        try:
            self.mappings.create(
                user_id=user_id,
                local_event_id=event.id,
                external_event_id=remote.id,
                external_etag=remote.etag,
                external_updated_at=remote.updated,
                last_pulled_at=self._clock(),
            )
        except Exception:
            # An imported event never exists without its mapping.
            self.events.delete(event.id)
            raise
        summary.pulled += 1
        logger.info("[%s] New remote event %s -> local event %s", user_id, remote.id, event.id)


__all__ = ["PullEngine"]
