"""Remote calendar event DTOs and local ↔ remote field mapping."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from datetime_utils import ensure_utc, midnight_utc, parse_date, parse_rfc3339, to_rfc3339_utc


STATUS_CANCELLED = "cancelled"
UNTITLED = "Untitled"


@dataclass(frozen=True)
class TimedRange:
    start: datetime
    end: datetime
    timezone: Optional[str] = None


@dataclass(frozen=True)
class AllDayRange:
    start_date: date
    end_date: date


TimeRange = Union[TimedRange, AllDayRange]


def parse_time_range(start: Optional[Dict[str, Any]], end: Optional[Dict[str, Any]]) -> Optional[TimeRange]:
    """Build the time range of an API event, ``None`` when it is unusable."""

    start = start or {}
    end = end or {}
    if start.get("dateTime") and end.get("dateTime"):
        start_dt = parse_rfc3339(start["dateTime"])
        end_dt = parse_rfc3339(end["dateTime"])
        if start_dt is None or end_dt is None:
            return None
        return TimedRange(start_dt, end_dt, start.get("timeZone"))
    if start.get("date") and end.get("date"):
        start_day = parse_date(start["date"])
        end_day = parse_date(end["date"])
        if start_day is None or end_day is None:
            return None
        return AllDayRange(start_day, end_day)
    return None


@dataclass(frozen=True)
class RemoteEvent:
    id: Optional[str]
    summary: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    time_range: Optional[TimeRange] = None
    status: str = "confirmed"
    etag: Optional[str] = None
    updated: Optional[datetime] = None
    html_link: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self.status == STATUS_CANCELLED

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "RemoteEvent":
        return cls(
            id=item.get("id") or None,
            summary=item.get("summary"),
            description=item.get("description"),
            location=item.get("location"),
            time_range=parse_time_range(item.get("start"), item.get("end")),
            status=item.get("status") or "confirmed",
            etag=item.get("etag"),
            updated=parse_rfc3339(item.get("updated")),
            html_link=item.get("htmlLink"),
        )


def local_fields(remote: RemoteEvent) -> Dict[str, Any]:
    """Fields of a local event carrying the content of ``remote``."""

    time_range = remote.time_range
    if isinstance(time_range, AllDayRange):
        start_at = midnight_utc(time_range.start_date)
        end_at = midnight_utc(time_range.end_date)
        timezone_name = "UTC"
        all_day = True
    elif isinstance(time_range, TimedRange):
        start_at = time_range.start
        end_at = time_range.end
        timezone_name = time_range.timezone or "UTC"
        all_day = False
    else:
        raise ValueError(f"Remote event {remote.id} has no usable time range")
    return {
        "title": remote.summary or UNTITLED,
        "description": remote.description or None,
        "location_name": remote.location or None,
        "start_at": start_at,
        "end_at": end_at,
        "timezone": timezone_name,
        "all_day": all_day,
    }


def build_event_payload(event) -> Dict[str, Any]:
    """Request body for inserting or replacing the remote copy of a local event."""

    timezone_name = getattr(event, "timezone", None) or "UTC"
    if getattr(event, "all_day", False):
        start: Dict[str, Any] = {"date": ensure_utc(event.start_at).date().isoformat()}
        end: Dict[str, Any] = {"date": ensure_utc(event.end_at).date().isoformat()}
    else:
        start = {"dateTime": to_rfc3339_utc(event.start_at), "timeZone": timezone_name}
        end = {"dateTime": to_rfc3339_utc(event.end_at), "timeZone": timezone_name}
    body: Dict[str, Any] = {
        "summary": event.title,
        "start": start,
        "end": end,
    }
    if getattr(event, "description", None):
        body["description"] = event.description
    if getattr(event, "location_name", None):
        body["location"] = event.location_name
    return body


__all__ = [
    "STATUS_CANCELLED",
    "TimedRange",
    "AllDayRange",
    "TimeRange",
    "RemoteEvent",
    "parse_time_range",
    "local_fields",
    "build_event_payload",
]
