from __future__ import annotations

from typing import Callable, List, Optional

from sqlmodel import Session, select

from datetime_utils import ensure_utc, utc_now
from models.event import SOURCE_LOCAL, Event
from models.event_mapping import EventMapping
from storage.db import get_session, session_scope


_DATETIME_FIELDS = ("start_at", "end_at")


def _normalise(fields: dict) -> dict:
    for key in _DATETIME_FIELDS:
        if fields.get(key) is not None:
            fields[key] = ensure_utc(fields[key])
    return fields


class EventRepository:
    """Local event storage as seen by the sync engine."""

    def __init__(self, session_factory: Callable[[], Session] = get_session) -> None:
        self._session_factory = session_factory

    def get(self, event_id: str) -> Optional[Event]:
        with session_scope(self._session_factory) as session:
            return session.get(Event, event_id)

    def find_for_push(self, owner_id: str, *, push_enabled: bool) -> List[Event]:
        with session_scope(self._session_factory) as session:
            stmt = select(Event).where(
                Event.owner_id == owner_id,
                Event.source == SOURCE_LOCAL,
            )
            if not push_enabled:
                stmt = stmt.where(Event.sync_to_google == True)  # noqa: E712
            stmt = stmt.order_by(Event.start_at.asc())
            return list(session.exec(stmt))

    def create(self, **fields) -> Event:
        fields = _normalise(dict(fields))
        with session_scope(self._session_factory) as session:
            event = Event(**fields)
            session.add(event)
            session.commit()
            session.refresh(event)
            return event

    def update(self, event_id: str, **fields) -> Event:
        fields = _normalise(dict(fields))
        with session_scope(self._session_factory) as session:
            obj = session.get(Event, event_id)
            if not obj:
                raise ValueError(f"Event {event_id} not found")
            for key, value in fields.items():
                setattr(obj, key, value)
            obj.updated_at = utc_now()
            session.add(obj)
            session.commit()
            session.refresh(obj)
            return obj

    def delete(self, event_id: str) -> None:
        """Remove the event together with its remote mapping, if any."""

        with session_scope(self._session_factory) as session:
            stmt = select(EventMapping).where(EventMapping.local_event_id == event_id)
            for mapping in session.exec(stmt).all():
                session.delete(mapping)
            obj = session.get(Event, event_id)
            if obj:
                session.delete(obj)
            session.commit()


__all__ = ["EventRepository"]
