"""
DocuSign OAuth JWT grant with a shared, refresh-on-expiry token cache.

The cache is shared by every concurrent fulfillment. A refresh runs under a
lock; a failed refresh raises to its caller and leaves the cache empty so
the next caller tries again on its own.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import quote

import jwt
import requests

from connect_worker.auth.errors import ConfigMissingError, ConsentRequiredError, TokenApiError, response_body
from connect_worker.common.logging import log_event
from connect_worker.config import WorkerConfig

logger = logging.getLogger(__name__)

SCOPES = "signature impersonation"
JWT_LIFETIME_S = 3600
# Replace the token when fewer than this many seconds remain.
TOKEN_REFRESH_BUFFER_S = 600


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def consent_url(config: WorkerConfig) -> str:
    return (
        f"https://{config.auth_server}/oauth/auth?response_type=code&"
        f"scope={quote(SCOPES)}&client_id={config.client_id}&"
        f"redirect_uri={config.consent_redirect_uri}"
    )


@dataclass(frozen=True)
class Token:
    value: str
    expires_at: datetime

    def expires_within(self, seconds: float, *, now: Optional[datetime] = None) -> bool:
        return (now or _utc_now()) + timedelta(seconds=seconds) >= self.expires_at


@dataclass(frozen=True)
class AccountInfo:
    account_id: str
    account_name: str
    base_path: str


class JwtTokenProvider:
    def __init__(self, config: WorkerConfig, *, session: Any = None) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._lock = threading.Lock()
        self._token: Optional[Token] = None
        self._account: Optional[AccountInfo] = None

    @property
    def access_token(self) -> Optional[str]:
        t = self._token
        return t.value if t else None

    @property
    def account_id(self) -> Optional[str]:
        a = self._account
        return a.account_id if a else None

    @property
    def base_path(self) -> Optional[str]:
        a = self._account
        return a.base_path if a else None

    def _oauth_url(self, path: str) -> str:
        return f"https://{self._config.auth_server}{path}"

    def _assertion(self) -> str:
        now = int(time.time())
        claims = {
            "iss": self._config.client_id,
            "sub": self._config.impersonated_user_guid,
            "aud": self._config.auth_server,
            "iat": now,
            "exp": now + JWT_LIFETIME_S,
            "scope": SCOPES,
        }
        return jwt.encode(claims, self._config.private_key, algorithm="RS256")

    def _request_token(self) -> Token:
        resp = self._session.post(
            self._oauth_url("/oauth/token"),
            data={"grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer", "assertion": self._assertion()},
            timeout=self._config.http_timeout_s,
        )
        if resp.status_code >= 300:
            body = response_body(resp)
            if isinstance(body, dict) and body.get("error") == "consent_required":
                raise ConsentRequiredError(consent_url(self._config))
            raise TokenApiError(resp.status_code, body, url=self._oauth_url("/oauth/token"))
        body = resp.json()
        expires_in = int(body.get("expires_in") or JWT_LIFETIME_S)
        return Token(value=str(body["access_token"]), expires_at=_utc_now() + timedelta(seconds=expires_in))

    def _request_account(self, token: Token) -> AccountInfo:
        url = self._oauth_url("/oauth/userinfo")
        resp = self._session.get(
            url,
            headers={"Authorization": f"Bearer {token.value}"},
            timeout=self._config.http_timeout_s,
        )
        if resp.status_code >= 300:
            raise TokenApiError(resp.status_code, response_body(resp), url=url)
        accounts = resp.json().get("accounts") or []
        target = self._config.target_account_id
        if target:
            chosen = next((a for a in accounts if a.get("account_id") == target), None)
            if chosen is None:
                raise ConfigMissingError(f"user has no access to target account {target}")
        else:
            chosen = next((a for a in accounts if a.get("is_default")), None)
            if chosen is None:
                raise TokenApiError(resp.status_code, {"error": "no_default_account"}, url=url)
        return AccountInfo(
            account_id=str(chosen["account_id"]),
            account_name=str(chosen.get("account_name") or ""),
            base_path=f"{str(chosen['base_uri']).rstrip('/')}/restapi",
        )

    def get_valid_token(self) -> Token:
        """
        Return a token with at least the refresh buffer of life left,
        refreshing it first when needed.
        """
        if not self._config.is_docusign_configured:
            raise ConfigMissingError("DocuSign integration key, impersonated user or private key is not configured")

        current = self._token
        if current is not None and not current.expires_within(TOKEN_REFRESH_BUFFER_S):
            return current

        with self._lock:
            current = self._token
            if current is not None and not current.expires_within(TOKEN_REFRESH_BUFFER_S):
                return current
            self._token = None
            token = self._request_token()
            if self._account is None:
                self._account = self._request_account(token)
            self._token = token
            log_event(
                logger,
                "auth.token_refreshed",
                expiresAt=token.expires_at.isoformat(),
                accountId=self._account.account_id,
            )
            return token

    def check_token(self) -> None:
        self.get_valid_token()
