"""Per-user calendar sync configuration."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from datetime_utils import utc_now


class CalendarConnection(SQLModel, table=True):
    """Sync preferences and status for a user's primary remote calendar."""

    __tablename__ = "calendar_connection"

    user_id: str = Field(primary_key=True)
    enabled: bool = Field(default=True, index=True)
    push_enabled: bool = False
    sync_window_past_days: int = 30
    sync_window_future_days: int = 90
    last_synced_at: Optional[datetime] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


__all__ = ["CalendarConnection"]
