from datetime import timedelta
from urllib.parse import parse_qs, urlparse
import json

import pytest
from googleapiclient.http import HttpMockSequence

from conftest import NOW, timed_item
from core.errors import RemoteApiError
from services.google_calendar import CalendarClient
from services.google_events import AllDayRange, TimedRange


class StaticTokens:
    def __init__(self, token="access-1"):
        self.token = token
        self.calls = []

    def get_access_token(self, user_id):
        self.calls.append(user_id)
        return self.token


class RecordingHttp(HttpMockSequence):
    def __init__(self, iterable):
        super().__init__(iterable)
        self.requests = []

    def request(self, uri, method="GET", body=None, headers=None, *args, **kwargs):
        self.requests.append((uri, method, body))
        return super().request(uri, method, body, headers, *args, **kwargs)


class TimeoutHttp:
    def request(self, *args, **kwargs):
        raise TimeoutError("timed out")


def _ok(payload, status="200"):
    return ({"status": status}, json.dumps(payload))


def _client(http, tokens=None, seen=None):
    tokens = tokens or StaticTokens()

    def factory(token):
        if seen is not None:
            seen.append(token)
        return http

    return CalendarClient(tokens, http_factory=factory)


def _query(uri):
    return {key: values[0] for key, values in parse_qs(urlparse(uri).query).items()}


def test_list_follows_page_tokens():
    http = RecordingHttp(
        [
            _ok({"items": [timed_item("g1")], "nextPageToken": "page-2"}),
            _ok({"items": [timed_item("g2", summary="Lunch")]}),
        ]
    )
    seen = []
    client = _client(http, seen=seen)

    events = client.list_all_events("user-1", NOW - timedelta(days=30), NOW + timedelta(days=90))

    assert [e.id for e in events] == ["g1", "g2"]
    assert seen == ["access-1", "access-1"]
    first, second = (_query(uri) for uri, _, _ in http.requests)
    assert first["timeMin"] == "2026-01-11T08:00:00Z"
    assert first["timeMax"] == "2026-05-11T08:00:00Z"
    assert first["singleEvents"] == "true"
    assert first["orderBy"] == "startTime"
    assert first["maxResults"] == "250"
    assert "pageToken" not in first
    assert second["pageToken"] == "page-2"
    assert "/calendars/primary/events" in http.requests[0][0]


def test_list_parses_timed_and_all_day_items():
    http = RecordingHttp(
        [
            _ok(
                {
                    "items": [
                        timed_item("g1", etag='"e1"', htmlLink="https://calendar.google.com/e/g1"),
                        {
                            "id": "g2",
                            "summary": "Holiday",
                            "status": "confirmed",
                            "start": {"date": "2026-02-12"},
                            "end": {"date": "2026-02-13"},
                        },
                        {"id": "g3", "status": "cancelled"},
                    ]
                }
            )
        ]
    )

    timed, all_day, cancelled = _client(http).list_all_events("user-1", NOW, NOW + timedelta(days=1))

    assert isinstance(timed.time_range, TimedRange)
    assert timed.time_range.start == NOW + timedelta(hours=1)
    assert timed.etag == '"e1"'
    assert timed.html_link == "https://calendar.google.com/e/g1"
    assert isinstance(all_day.time_range, AllDayRange)
    assert cancelled.cancelled is True
    assert cancelled.time_range is None


def test_insert_posts_payload_and_returns_created_event():
    http = RecordingHttp([_ok(timed_item("g-new", etag='"e5"'))])
    payload = {"summary": "Standup", "start": {"dateTime": "2026-02-10T09:00:00Z"}}

    created = _client(http).insert_event("user-1", payload)

    assert (created.id, created.etag) == ("g-new", '"e5"')
    uri, method, body = http.requests[0]
    assert method == "POST"
    assert json.loads(body) == payload


def test_update_replaces_remote_event():
    http = RecordingHttp([_ok(timed_item("g1", etag='"e6"'))])

    updated = _client(http).update_event("user-1", "g1", {"summary": "Standup"})

    uri, method, _ = http.requests[0]
    assert method == "PUT"
    assert urlparse(uri).path.endswith("/events/g1")
    assert updated.etag == '"e6"'


@pytest.mark.parametrize("status", ["204", "404", "410"])
def test_delete_treats_missing_event_as_success(status):
    http = RecordingHttp([({"status": status}, "")])

    assert _client(http).delete_event("user-1", "g1") is None
    assert http.requests[0][1] == "DELETE"


def test_delete_propagates_other_failures():
    http = RecordingHttp([({"status": "403"}, '{"error": {"message": "forbidden"}}')])

    with pytest.raises(RemoteApiError) as excinfo:
        _client(http).delete_event("user-1", "g1")

    assert excinfo.value.status == 403


def test_server_error_carries_status_and_body():
    http = RecordingHttp([({"status": "500"}, '{"error": {"message": "Backend Error"}}')])

    with pytest.raises(RemoteApiError) as excinfo:
        _client(http).list_events_page("user-1", NOW, NOW + timedelta(days=1))

    error = excinfo.value
    assert error.status == 500
    assert "Backend Error" in error.body
    assert error.operation == "listEvents"


def test_timeout_is_reported_without_status():
    with pytest.raises(RemoteApiError) as excinfo:
        _client(TimeoutHttp()).insert_event("user-1", {"summary": "x"})

    assert excinfo.value.status is None
    assert "timed out" in str(excinfo.value)


def test_token_is_requested_for_every_call():
    tokens = StaticTokens("access-9")
    http = RecordingHttp([_ok(timed_item("g1")), ({"status": "204"}, "")])
    seen = []
    client = _client(http, tokens=tokens, seen=seen)

    client.insert_event("user-7", {"summary": "Standup"})
    client.delete_event("user-7", "g1")

    assert tokens.calls == ["user-7", "user-7"]
    assert seen == ["access-9", "access-9"]
