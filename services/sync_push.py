"""Local events → Google Calendar."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from core.errors import AuthError
from datetime_utils import ensure_utc, utc_now
from models import Event
from models.event import SOURCE_LOCAL
from services.google_events import build_event_payload
from services.ports import ConnectionConfigStore, EventMappingStore, LocalEventStore
from services.sync_summary import SyncSummary


logger = logging.getLogger("calsync.sync.push")

PHASE = "push"


def is_push_candidate(event: Event, push_enabled: bool) -> bool:
    """Only locally-owned events are pushed; imported ones never go back."""

    if event.source != SOURCE_LOCAL:
        return False
    return bool(push_enabled or event.sync_to_google)


class PushEngine:
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

    def push(self, user_id: str) -> SyncSummary:
        summary = SyncSummary()
        try:
            connection = self.connections.get(user_id)
            push_enabled = bool(connection.push_enabled) if connection else False
            candidates = self.events.find_for_push(user_id, push_enabled=push_enabled)
        except Exception as exc:
            logger.warning("[%s] Push aborted, candidate lookup failed: %s", user_id, exc)
            summary.abort(PHASE, exc)
            return summary

        for event in candidates:
            # The store filter may be coarser than the rule.
            if not is_push_candidate(event, push_enabled):
                continue
            try:
                self._push_event(user_id, event, summary)
            except AuthError as exc:
                logger.warning("[%s] Push aborted, no usable token: %s", user_id, exc)
                summary.abort(PHASE, exc)
                break
            except Exception as exc:
                logger.warning("[%s] Failed to push event %s: %s", user_id, event.id, exc)
                summary.record_error(PHASE, exc, event_id=event.id)

        logger.info(
            "[%s] Push complete: %d new, %d updated, %d errors",
            user_id,
            summary.pushed,
            summary.updated,
            len(summary.errors),
        )
        return summary

    def _push_event(self, user_id: str, event: Event, summary: SyncSummary) -> None:
        payload = build_event_payload(event)
        mapping = self.mappings.find_by_local(event.id)

        if mapping is not None:
            last_pushed = ensure_utc(mapping.last_pushed_at)
            if last_pushed and ensure_utc(event.updated_at) <= last_pushed:
                return
            remote = self.client.update_event(user_id, mapping.external_event_id, payload)
            self.mappings.update(
                mapping.id,
                external_etag=remote.etag,
                external_updated_at=remote.updated,
                last_pushed_at=self._clock(),
            )
            summary.updated += 1
            logger.info("[%s] Local event %s -> remote event %s updated", user_id, event.id, mapping.external_event_id)
            return

        remote = self.client.insert_event(user_id, payload)
        if not remote.id:
            raise ValueError("Google Calendar returned an event without id")
        try:
            self.mappings.create(
                user_id=user_id,
                local_event_id=event.id,
                external_event_id=remote.id,
                external_etag=remote.etag,
                external_updated_at=remote.updated,
                last_pushed_at=self._clock(),
            )
        except Exception:
            # A pushed event never exists remotely without its mapping.
            self._discard_remote(user_id, remote.id)
            raise
        summary.pushed += 1
        logger.info("[%s] Local event %s -> new remote event %s", user_id, event.id, remote.id)

    def _discard_remote(self, user_id: str, external_id: str) -> None:
        try:
            self.client.delete_event(user_id, external_id)
        except Exception as exc:
            logger.error(
                "[%s] Could not remove unmapped remote event %s: %s", user_id, external_id, exc
            )


__all__ = ["PushEngine", "is_push_candidate"]
