"""Persistence helpers for calendar synchronization state."""

from __future__ import annotations

from typing import Callable, List, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from datetime_utils import ensure_utc, utc_now
from models import CalendarConnection, EventMapping, LinkedAccount
from models.account import GOOGLE_PROVIDER
from storage.db import get_session, session_scope


class SqlAccountStore:
    """OAuth credentials of linked Google accounts."""

    def __init__(self, session_factory: Callable[[], Session] = get_session) -> None:
        self._session_factory = session_factory

    def get_google_account(self, user_id: str) -> Optional[LinkedAccount]:
        with session_scope(self._session_factory) as session:
            stmt = select(LinkedAccount).where(
                LinkedAccount.user_id == user_id,
                LinkedAccount.provider == GOOGLE_PROVIDER,
            )
            return session.exec(stmt).first()

    def save_tokens(
        self, account_id: int, *, access_token: str, expires_at: Optional[int]
    ) -> LinkedAccount:
        with session_scope(self._session_factory) as session:
            account = session.get(LinkedAccount, account_id)
            if account is None:
                raise ValueError(f"Linked account {account_id} not found")
            account.access_token = access_token
            account.expires_at = expires_at
            account.updated_at = utc_now()
            session.add(account)
            session.commit()
            session.refresh(account)
            return account

    def link_google_account(
        self,
        user_id: str,
        *,
        access_token: Optional[str],
        refresh_token: Optional[str],
        expires_at: Optional[int],
        scope: Optional[str] = None,
    ) -> LinkedAccount:
        with session_scope(self._session_factory) as session:
            stmt = select(LinkedAccount).where(
                LinkedAccount.user_id == user_id,
                LinkedAccount.provider == GOOGLE_PROVIDER,
            )
            account = session.exec(stmt).first()
            if account is None:
                account = LinkedAccount(user_id=user_id, provider=GOOGLE_PROVIDER)
            account.access_token = access_token
            # Google omits the refresh token on re-consent; keep the stored one.
            if refresh_token:
                account.refresh_token = refresh_token
            account.expires_at = expires_at
            account.scope = scope
            account.updated_at = utc_now()
            session.add(account)
            session.commit()
            session.refresh(account)
            return account

    def delete_google_account(self, user_id: str) -> None:
        with session_scope(self._session_factory) as session:
            stmt = select(LinkedAccount).where(
                LinkedAccount.user_id == user_id,
                LinkedAccount.provider == GOOGLE_PROVIDER,
            )
            for account in session.exec(stmt).all():
                session.delete(account)
            session.commit()

    def list_unconnected_google_user_ids(self, *, limit: int) -> List[str]:
        """Linked users that have no sync connection row yet, oldest link first."""

        if limit <= 0:
            return []
        with session_scope(self._session_factory) as session:
            connected = select(CalendarConnection.user_id)
            stmt = select(LinkedAccount.user_id).where(
                LinkedAccount.provider == GOOGLE_PROVIDER,
                LinkedAccount.user_id.not_in(connected),
            )
            stmt = stmt.order_by(LinkedAccount.created_at.asc()).limit(limit)
            return list(session.exec(stmt))


class SqlConnectionStore:
    """Per-user sync configuration rows."""

    def __init__(self, session_factory: Callable[[], Session] = get_session) -> None:
        self._session_factory = session_factory

    def get(self, user_id: str) -> Optional[CalendarConnection]:
        with session_scope(self._session_factory) as session:
            return session.get(CalendarConnection, user_id)

    def upsert(self, user_id: str, **fields) -> CalendarConnection:
        with session_scope(self._session_factory) as session:
            connection = session.get(CalendarConnection, user_id)
            if connection is None:
                connection = CalendarConnection(user_id=user_id)
            for key, value in fields.items():
                setattr(connection, key, value)
            connection.updated_at = utc_now()
            session.add(connection)
            session.commit()
            session.refresh(connection)
            return connection

    def delete(self, user_id: str) -> None:
        with session_scope(self._session_factory) as session:
            connection = session.get(CalendarConnection, user_id)
            if connection:
                session.delete(connection)
                session.commit()

    def list_enabled(self, limit: int) -> List[CalendarConnection]:
        """Enabled connections, least recently synced first."""

        with session_scope(self._session_factory) as session:
            stmt = (
                select(CalendarConnection)
                .where(CalendarConnection.enabled == True)  # noqa: E712
                .order_by(
                    CalendarConnection.last_synced_at.is_not(None),
                    CalendarConnection.last_synced_at.asc(),
                )
                .limit(limit)
            )
            return list(session.exec(stmt))


class SqlMappingStore:
    """Wrapper around SQLModel session for local/remote event mappings."""

    def __init__(self, session_factory: Callable[[], Session] = get_session) -> None:
        self._session_factory = session_factory

    def find_by_external(self, user_id: str, external_event_id: str) -> Optional[EventMapping]:
        if not external_event_id:
            return None
        with session_scope(self._session_factory) as session:
            stmt = select(EventMapping).where(
                EventMapping.user_id == user_id,
                EventMapping.external_event_id == external_event_id,
            )
            return session.exec(stmt).first()

    def find_by_local(self, local_event_id: str) -> Optional[EventMapping]:
        with session_scope(self._session_factory) as session:
            stmt = select(EventMapping).where(EventMapping.local_event_id == local_event_id)
            return session.exec(stmt).first()

    def create(self, **fields) -> EventMapping:
        fields = _utc_fields(fields)
        with session_scope(self._session_factory) as session:
            mapping = EventMapping(**fields)
            session.add(mapping)
            session.commit()
            session.refresh(mapping)
            return mapping

    def update(self, mapping_id: int, **fields) -> EventMapping:
        fields = _utc_fields(fields)
        with session_scope(self._session_factory) as session:
            mapping = session.get(EventMapping, mapping_id)
            if mapping is None:
                raise ValueError(f"Mapping {mapping_id} not found")
            for key, value in fields.items():
                setattr(mapping, key, value)
            session.add(mapping)
            session.commit()
            session.refresh(mapping)
            return mapping

    def delete(self, mapping_id: int) -> None:
        with session_scope(self._session_factory) as session:
            mapping = session.get(EventMapping, mapping_id)
            if mapping:
                session.delete(mapping)
                session.commit()

    def delete_for_user(self, user_id: str) -> int:
        with session_scope(self._session_factory) as session:
            stmt = select(EventMapping).where(EventMapping.user_id == user_id)
            mappings = session.exec(stmt).all()
            for mapping in mappings:
                session.delete(mapping)
            session.commit()
            return len(mappings)

    def count_for_user(self, user_id: str) -> int:
        with session_scope(self._session_factory) as session:
            stmt = select(func.count()).select_from(EventMapping).where(
                EventMapping.user_id == user_id
            )
            return int(session.exec(stmt).one())


def _utc_fields(fields: dict) -> dict:
    return {
        key: ensure_utc(value) if key.endswith("_at") else value
        for key, value in fields.items()
    }


__all__ = ["SqlAccountStore", "SqlConnectionStore", "SqlMappingStore"]
