# services/google_auth.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from core.errors import NoLinkedAccount, NoRefreshToken, TokenRefreshError
from core.settings import CLIENT_SECRET_PATH, GOOGLE_SYNC
from datetime_utils import epoch_seconds, utc_now
from models import LinkedAccount
from services.locks import KeyedLock
from services.ports import AccountStore


logger = logging.getLogger("calsync.sync.auth")


class TimeoutRequest(Request):
    """``requests`` transport that applies a fixed timeout to every call."""

    def __init__(self, timeout: float, session=None):
        super().__init__(session=session)
        self.timeout = timeout

    def __call__(self, url, method="GET", body=None, headers=None, timeout=None, **kwargs):
        return super().__call__(
            url,
            method=method,
            body=body,
            headers=headers,
            timeout=timeout or self.timeout,
            **kwargs,
        )


class TokenProvider:
    """Hands out valid Google access tokens, refreshing them when close to expiry.

    Refreshes are single-flighted per user: concurrent callers wait for the
    refresh in progress and then reuse the token it persisted.
    """

    def __init__(
        self,
        accounts: AccountStore,
        *,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        token_uri: Optional[str] = None,
        timeout: Optional[float] = None,
        expiry_buffer_sec: Optional[int] = None,
        request_factory: Optional[Callable[[], Request]] = None,
        clock: Callable = utc_now,
    ) -> None:
        self.accounts = accounts
        self.client_id = client_id if client_id is not None else GOOGLE_SYNC.client_id
        self.client_secret = (
            client_secret if client_secret is not None else GOOGLE_SYNC.client_secret
        )
        self.token_uri = token_uri or GOOGLE_SYNC.token_uri
        self.timeout = timeout or GOOGLE_SYNC.request_timeout_sec
        self.expiry_buffer_sec = (
            expiry_buffer_sec if expiry_buffer_sec is not None else GOOGLE_SYNC.token_expiry_buffer_sec
        )
        self._request_factory = request_factory or (lambda: TimeoutRequest(self.timeout))
        self._clock = clock
        self._locks = KeyedLock()

    def get_access_token(self, user_id: str) -> str:
        account = self._load(user_id)
        if self._is_fresh(account):
            return account.access_token

        with self._locks.hold(user_id):
            # Another caller may have refreshed while we waited.
            account = self._load(user_id)
            if self._is_fresh(account):
                return account.access_token
            return self._refresh(user_id, account)

    # ----- helpers -----
    def _load(self, user_id: str) -> LinkedAccount:
        account = self.accounts.get_google_account(user_id)
        if account is None:
            raise NoLinkedAccount(user_id)
        return account

    def _is_fresh(self, account: LinkedAccount) -> bool:
        if not account.access_token or not account.expires_at:
            return False
        now = epoch_seconds(self._clock())
        return account.expires_at > now + self.expiry_buffer_sec

    def _refresh(self, user_id: str, account: LinkedAccount) -> str:
        if not account.refresh_token:
            logger.error("[%s] No refresh token stored; re-authorization required", user_id)
            raise NoRefreshToken(user_id)

        creds = Credentials(
            token=None,
            refresh_token=account.refresh_token,
            token_uri=self.token_uri,
            client_id=self.client_id,
            client_secret=self.client_secret,
        )
        logger.info("[%s] Access token expired, refreshing", user_id)
        try:
            creds.refresh(self._request_factory())
        except (RefreshError, TransportError) as exc:
            logger.error("[%s] Token refresh failed: %s", user_id, exc)
            raise TokenRefreshError(f"Failed to refresh Google token: {exc}") from exc

        if not creds.token:
            raise TokenRefreshError("Token endpoint returned no access token")

        expires_at = epoch_seconds(creds.expiry) if creds.expiry else None
        self.accounts.save_tokens(account.id, access_token=creds.token, expires_at=expires_at)
        logger.info("[%s] Credentials refreshed successfully", user_id)
        return creds.token


def link_account_interactive(
    user_id: str,
    accounts: AccountStore,
    secrets_path: str | Path = CLIENT_SECRET_PATH,
) -> LinkedAccount:
    """Run the local consent flow and store the granted credentials for ``user_id``."""

    secrets_path = Path(secrets_path)
    if not secrets_path.exists():
        raise FileNotFoundError(
            f"Client secrets not found at {secrets_path}. "
            "Create a Desktop OAuth client in Google Cloud and download its JSON."
        )
    flow = InstalledAppFlow.from_client_secrets_file(
        str(secrets_path), list(GOOGLE_SYNC.scopes)
    )
    logger.info("[%s] Running OAuth consent flow (local server)", user_id)
    creds = flow.run_local_server(
        port=0,
        access_type="offline",
        prompt="consent",
        include_granted_scopes=True,
    )
    return accounts.link_google_account(
        user_id,
        access_token=creds.token,
        refresh_token=creds.refresh_token,
        expires_at=epoch_seconds(creds.expiry) if creds.expiry else None,
        scope=" ".join(sorted(creds.scopes or [])),
    )


__all__ = ["TokenProvider", "TimeoutRequest", "link_account_interactive"]
