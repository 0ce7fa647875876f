from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

import httplib2
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import build_http

from core.errors import RemoteApiError
from core.settings import GOOGLE_SYNC
from datetime_utils import to_rfc3339_utc
from services.google_events import RemoteEvent


logger = logging.getLogger("calsync.sync.calendar")

GONE_STATUSES = {404, 410}


def _error_body(exc: HttpError) -> str:
    content = getattr(exc, "content", b"") or b""
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    return " ".join(str(content).split())[:1000]


class CalendarClient:
    """Typed wrapper over the events collection of the user's primary calendar."""

    def __init__(
        self,
        tokens,
        *,
        calendar_id: Optional[str] = None,
        timeout: Optional[float] = None,
        page_size: Optional[int] = None,
        http_factory: Optional[Callable[[str], Any]] = None,
    ):
        self.tokens = tokens
        self.calendar_id = calendar_id or GOOGLE_SYNC.calendar_id
        self.timeout = timeout or GOOGLE_SYNC.request_timeout_sec
        self.page_size = page_size or GOOGLE_SYNC.page_size
        self._http_factory = http_factory or self._authorized_http
        self._service = None

    # ----- transport -----
    def _authorized_http(self, access_token: str):
        # A 401 is reported to the caller; refreshing is the TokenProvider's job.
        return AuthorizedHttp(
            Credentials(token=access_token),
            http=httplib2.Http(timeout=self.timeout),
            refresh_status_codes=(),
        )

    def _get_service(self):
        if self._service is None:
            self._service = build(
                "calendar",
                "v3",
                http=build_http(),
                cache_discovery=False,
                static_discovery=True,
            )
        return self._service

    def _execute(self, user_id: str, request, operation: str) -> Dict[str, Any]:
        http = self._http_factory(self.tokens.get_access_token(user_id))
        try:
            return request.execute(http=http) or {}
        except HttpError as exc:
            status = int(getattr(exc.resp, "status", 0) or 0)
            raise RemoteApiError(status, _error_body(exc), operation) from exc
        except (httplib2.HttpLib2Error, OSError) as exc:
            # socket timeouts land here as TimeoutError
            raise RemoteApiError(None, str(exc) or type(exc).__name__, operation) from exc

    # ----- operations -----
    def list_events_page(
        self,
        user_id: str,
        time_min: datetime,
        time_max: datetime,
        page_token: Optional[str] = None,
    ) -> Tuple[List[RemoteEvent], Optional[str]]:
        request = self._get_service().events().list(
            calendarId=self.calendar_id,
            timeMin=to_rfc3339_utc(time_min),
            timeMax=to_rfc3339_utc(time_max),
            singleEvents=True,
            orderBy="startTime",
            maxResults=self.page_size,
            pageToken=page_token,
        )
        data = self._execute(user_id, request, "listEvents")
        events = [RemoteEvent.from_api(item) for item in data.get("items", []) or []]
        return events, data.get("nextPageToken") or None

    def list_all_events(
        self, user_id: str, time_min: datetime, time_max: datetime
    ) -> List[RemoteEvent]:
        events: List[RemoteEvent] = []
        page_token = None
        pages = 0
        while True:
            page, page_token = self.list_events_page(user_id, time_min, time_max, page_token)
            events.extend(page)
            pages += 1
            if not page_token:
                break
        logger.debug("[%s] Listed %d events in %d page(s)", user_id, len(events), pages)
        return events

    def insert_event(self, user_id: str, payload: Dict[str, Any]) -> RemoteEvent:
        request = self._get_service().events().insert(
            calendarId=self.calendar_id, body=payload
        )
        return RemoteEvent.from_api(self._execute(user_id, request, "insertEvent"))

    def update_event(self, user_id: str, external_id: str, payload: Dict[str, Any]) -> RemoteEvent:
        request = self._get_service().events().update(
            calendarId=self.calendar_id, eventId=external_id, body=payload
        )
        return RemoteEvent.from_api(self._execute(user_id, request, "updateEvent"))

    def delete_event(self, user_id: str, external_id: str) -> None:
        request = self._get_service().events().delete(
            calendarId=self.calendar_id, eventId=external_id
        )
        try:
            self._execute(user_id, request, "deleteEvent")
        except RemoteApiError as exc:
            if exc.status in GONE_STATUSES:
                logger.debug("[%s] Event %s already gone", user_id, external_id)
                return
            raise


__all__ = ["CalendarClient", "GONE_STATUSES"]
