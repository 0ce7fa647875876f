"""Linked OAuth account credentials used by the sync engine."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from datetime_utils import utc_now


GOOGLE_PROVIDER = "google"


class LinkedAccount(SQLModel, table=True):
    """OAuth credentials of one user for one provider."""

    __tablename__ = "linked_account"
    __table_args__ = (UniqueConstraint("user_id", "provider"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    provider: str = Field(default=GOOGLE_PROVIDER)
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = Field(default=None, description="Epoch seconds")
    scope: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


__all__ = ["LinkedAccount", "GOOGLE_PROVIDER"]
