from datetime import datetime, timedelta, timezone
from pathlib import Path
import itertools
import sys

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import models  # noqa: F401
from core.errors import RemoteApiError
from services.event_repository import EventRepository
from services.google_events import RemoteEvent
from services.sync_store import SqlAccountStore, SqlConnectionStore, SqlMappingStore


NOW = datetime(2026, 2, 10, 8, 0, tzinfo=timezone.utc)


class FakeCalendarClient:
    """In-memory stand-in for :class:`services.google_calendar.CalendarClient`.

    ``remote`` holds API-shaped dicts keyed by event id; inserts and updates
    bump the etag the way Google does.
    """

    def __init__(self, items=None):
        self.remote = {item["id"]: dict(item) for item in (items or [])}
        self.list_error = None
        self.fail_on = {}
        self.inserted = []
        self.updated = []
        self.deleted = []
        self.list_calls = []
        self._ids = itertools.count(1)
        self._etags = itertools.count(100)

    def _next_etag(self):
        return f'"etag-{next(self._etags)}"'

    def list_all_events(self, user_id, time_min, time_max):
        self.list_calls.append((user_id, time_min, time_max))
        if self.list_error is not None:
            raise self.list_error
        return [RemoteEvent.from_api(item) for item in self.remote.values()]

    def insert_event(self, user_id, payload):
        error = self.fail_on.get(payload.get("summary"))
        if error is not None:
            raise error
        event_id = f"g-new-{next(self._ids)}"
        item = dict(payload, id=event_id, etag=self._next_etag(), status="confirmed")
        self.remote[event_id] = item
        self.inserted.append((user_id, payload))
        return RemoteEvent.from_api(item)

    def update_event(self, user_id, external_id, payload):
        error = self.fail_on.get(payload.get("summary"))
        if error is not None:
            raise error
        if external_id not in self.remote:
            raise RemoteApiError(404, "Not Found", "updateEvent")
        item = dict(payload, id=external_id, etag=self._next_etag(), status="confirmed")
        self.remote[external_id] = item
        self.updated.append((user_id, external_id, payload))
        return RemoteEvent.from_api(item)

    def delete_event(self, user_id, external_id):
        self.remote.pop(external_id, None)
        self.deleted.append((user_id, external_id))


def timed_item(event_id, summary="Standup", etag='"e1"', status="confirmed", **extra):
    item = {
        "id": event_id,
        "summary": summary,
        "start": {"dateTime": "2026-02-10T09:00:00Z", "timeZone": "UTC"},
        "end": {"dateTime": "2026-02-10T09:30:00Z", "timeZone": "UTC"},
        "etag": etag,
        "status": status,
        "updated": "2026-02-10T08:00:00Z",
    }
    item.update(extra)
    return item


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)

    def factory():
        return Session(engine)

    return factory


@pytest.fixture()
def accounts(session_factory):
    return SqlAccountStore(session_factory)


@pytest.fixture()
def connections(session_factory):
    return SqlConnectionStore(session_factory)


@pytest.fixture()
def mappings(session_factory):
    return SqlMappingStore(session_factory)


@pytest.fixture()
def events(session_factory):
    return EventRepository(session_factory)


@pytest.fixture()
def client():
    return FakeCalendarClient()


@pytest.fixture()
def clock():
    return lambda: NOW


@pytest.fixture()
def local_event(events):
    def _create(owner_id="user-1", **fields):
        defaults = dict(
            title="Dinner",
            start_at=NOW + timedelta(days=1),
            end_at=NOW + timedelta(days=1, hours=2),
            timezone="Europe/Berlin",
            source="LOCAL",
            sync_to_google=True,
        )
        defaults.update(fields)
        return events.create(owner_id=owner_id, **defaults)

    return _create
