# models/event.py
from __future__ import annotations

from datetime import datetime
from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from datetime_utils import utc_now


SOURCE_LOCAL = "LOCAL"
SOURCE_REMOTE = "REMOTE"

VISIBILITY_PRIVATE = "PRIVATE"


class Event(SQLModel, table=True):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    owner_id: str = Field(index=True)
    title: str
    description: Optional[str] = None
    location_name: Optional[str] = None
    start_at: datetime
    end_at: datetime
    timezone: str = "UTC"
    all_day: bool = False
    visibility: str = VISIBILITY_PRIVATE
    source: str = Field(default=SOURCE_LOCAL, index=True)   # LOCAL / REMOTE
    external_id: Optional[str] = None
    sync_to_google: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


__all__ = ["Event", "SOURCE_LOCAL", "SOURCE_REMOTE", "VISIBILITY_PRIVATE"]
