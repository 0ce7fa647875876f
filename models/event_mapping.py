"""Mapping table between local events and remote calendar events."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from datetime_utils import utc_now


class EventMapping(SQLModel, table=True):
    """Correspondence of one local event and one remote event plus sync bookkeeping."""

    __tablename__ = "event_mapping"
    __table_args__ = (UniqueConstraint("user_id", "external_event_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    local_event_id: str = Field(unique=True, index=True)
    external_event_id: str = Field(index=True)
    external_etag: Optional[str] = None
    external_updated_at: Optional[datetime] = None
    last_pulled_at: Optional[datetime] = None
    last_pushed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)


__all__ = ["EventMapping"]
