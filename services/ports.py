"""Persistence interfaces consumed by the sync engine.

The engine components receive these at construction time; the SQLModel
implementations live in :mod:`services.sync_store` and
:mod:`services.event_repository`.
"""
from __future__ import annotations

from typing import List, Optional, Protocol

from models import CalendarConnection, Event, EventMapping, LinkedAccount


class AccountStore(Protocol):
    def get_google_account(self, user_id: str) -> Optional[LinkedAccount]: ...

    def save_tokens(
        self, account_id: int, *, access_token: str, expires_at: Optional[int]
    ) -> LinkedAccount: ...

    def link_google_account(
        self,
        user_id: str,
        *,
        access_token: Optional[str],
        refresh_token: Optional[str],
        expires_at: Optional[int],
        scope: Optional[str] = None,
    ) -> LinkedAccount: ...

    def delete_google_account(self, user_id: str) -> None: ...

    def list_unconnected_google_user_ids(self, *, limit: int) -> List[str]: ...


class ConnectionConfigStore(Protocol):
    def get(self, user_id: str) -> Optional[CalendarConnection]: ...

    def upsert(self, user_id: str, **fields) -> CalendarConnection: ...

    def delete(self, user_id: str) -> None: ...

    def list_enabled(self, limit: int) -> List[CalendarConnection]: ...


class EventMappingStore(Protocol):
    def find_by_external(self, user_id: str, external_event_id: str) -> Optional[EventMapping]: ...

    def find_by_local(self, local_event_id: str) -> Optional[EventMapping]: ...

    def create(self, **fields) -> EventMapping: ...

    def update(self, mapping_id: int, **fields) -> EventMapping: ...

    def delete(self, mapping_id: int) -> None: ...

    def delete_for_user(self, user_id: str) -> int: ...

    def count_for_user(self, user_id: str) -> int: ...


class LocalEventStore(Protocol):
    def get(self, event_id: str) -> Optional[Event]: ...

    def find_for_push(self, owner_id: str, *, push_enabled: bool) -> List[Event]: ...

    def create(self, **fields) -> Event: ...

    def update(self, event_id: str, **fields) -> Event: ...

    def delete(self, event_id: str) -> None: ...


__all__ = [
    "AccountStore",
    "ConnectionConfigStore",
    "EventMappingStore",
    "LocalEventStore",
]
