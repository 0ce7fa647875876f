"""Linking state and sync preferences of a user's Google Calendar."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from core.settings import GOOGLE_SYNC
from models import CalendarConnection
from services.ports import AccountStore, ConnectionConfigStore, EventMappingStore


logger = logging.getLogger("calsync.sync.connection")


def _validate_window(name: str, value: Optional[int]) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if not 1 <= value <= GOOGLE_SYNC.max_window_days:
        raise ValueError(f"{name} must be between 1 and {GOOGLE_SYNC.max_window_days}")


class ConnectionService:
    def __init__(
        self,
        accounts: AccountStore,
        connections: ConnectionConfigStore,
        mappings: EventMappingStore,
    ) -> None:
        self.accounts = accounts
        self.connections = connections
        self.mappings = mappings

    def connect(
        self,
        user_id: str,
        *,
        access_token: Optional[str],
        refresh_token: Optional[str],
        expires_at: Optional[int],
        scope: Optional[str] = None,
    ) -> CalendarConnection:
        """Store freshly granted credentials and enable syncing for ``user_id``."""

        self.accounts.link_google_account(
            user_id,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            scope=scope,
        )
        existing = self.connections.get(user_id)
        if existing is not None:
            return existing
        logger.info("[%s] Google Calendar connected", user_id)
        return self.connections.upsert(user_id, enabled=True)

    def update_preferences(
        self,
        user_id: str,
        *,
        enabled: Optional[bool] = None,
        push_enabled: Optional[bool] = None,
        sync_window_past_days: Optional[int] = None,
        sync_window_future_days: Optional[int] = None,
    ) -> CalendarConnection:
        _validate_window("sync_window_past_days", sync_window_past_days)
        _validate_window("sync_window_future_days", sync_window_future_days)
        fields: Dict[str, Any] = {
            key: value
            for key, value in (
                ("enabled", enabled),
                ("push_enabled", push_enabled),
                ("sync_window_past_days", sync_window_past_days),
                ("sync_window_future_days", sync_window_future_days),
            )
            if value is not None
        }
        return self.connections.upsert(user_id, **fields)

    def status(self, user_id: str) -> Dict[str, Any]:
        account = self.accounts.get_google_account(user_id)
        connection = self.connections.get(user_id)
        return {
            "isConnected": account is not None,
            "connection": {
                "isEnabled": connection.enabled,
                "pushEnabled": connection.push_enabled,
                "lastSyncedAt": connection.last_synced_at,
                "syncWindowPastDays": connection.sync_window_past_days,
                "syncWindowFutureDays": connection.sync_window_future_days,
            }
            if connection is not None
            else None,
            "mappedEvents": self.mappings.count_for_user(user_id),
        }


__all__ = ["ConnectionService"]
