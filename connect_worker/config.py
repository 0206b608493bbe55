"""
Process-wide worker configuration.

Built once at startup (`WorkerConfig.from_env()`) and passed by reference into
every component. Nothing else in the package reads the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from connect_worker.common.secrets import get_secret, resolve_project_id

# Values shipped in the sample configuration; treated as "not configured".
CLIENT_ID_PLACEHOLDER = "{CLIENT_ID}"
IMPERSONATED_USER_PLACEHOLDER = "{IMPERSONATED_USER_GUID}"
LIFX_TOKEN_PLACEHOLDER = "{LIFX_ACCESS_TOKEN}"

DEFAULT_AUTH_SERVER = "account-d.docusign.com"
DEFAULT_CONSENT_REDIRECT_URI = "https://www.docusign.com"
DEFAULT_KEY_FIELD = "Sales order"
DEFAULT_COLOR_FIELD = "Light color"
BREAK_MARKER = "/break"


def _parse_bool(v: object | None, *, default: bool = False) -> bool:
    if v is None:
        return default
    s = str(v).strip().lower()
    if not s:
        return default
    return s in {"1", "true", "t", "yes", "y", "on"}


def _str_env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    if v is None or not str(v).strip():
        return default
    return str(v).strip()


def _float_env(name: str, *, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"Invalid float for env var {name}: {raw!r}") from e


def _int_env(name: str, *, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"Invalid integer for env var {name}: {raw!r}") from e


def is_placeholder(value: Optional[str], placeholder: str) -> bool:
    s = (value or "").strip()
    return not s or s == placeholder


def _load_private_key() -> str:
    """
    RSA private key for the JWT grant.

    DS_PRIVATE_KEY_PATH (a PEM file) wins over the DS_PRIVATE_KEY secret.
    A missing key is reported by the token provider at startup, not here.
    """
    path = _str_env("DS_PRIVATE_KEY_PATH")
    if path:
        p = Path(path)
        return p.read_text(encoding="utf-8") if p.is_file() else ""
    if not resolve_project_id() and not _parse_bool(os.getenv("ALLOW_ENV_SECRET_FALLBACK")):
        return ""
    return get_secret("DS_PRIVATE_KEY", required=False) or ""


@dataclass(frozen=True)
class WorkerConfig:
    project_id: str = ""
    subscription_id: str = ""
    topic_id: str = ""

    # DocuSign JWT grant
    client_id: str = ""
    impersonated_user_guid: str = ""
    target_account_id: Optional[str] = None
    auth_server: str = DEFAULT_AUTH_SERVER
    consent_redirect_uri: str = DEFAULT_CONSENT_REDIRECT_URI
    private_key: str = field(default="", repr=False)

    # Envelope filtering
    key_field: str = DEFAULT_KEY_FIELD
    color_field: str = DEFAULT_COLOR_FIELD

    # Output
    output_dir: Path = Path("output")
    output_file_prefix: str = "order_"
    test_output_dir: Path = Path("test_messages")
    test_ring_size: int = 20
    enable_break_test: bool = False

    # LIFX
    lifx_access_token: str = field(default="", repr=False)
    lifx_selector: str = "all"

    debug: bool = False
    reconnect_cooldown_s: float = 5.0
    max_in_flight: int = 10
    http_timeout_s: float = 30.0

    @property
    def is_docusign_configured(self) -> bool:
        return not (
            is_placeholder(self.client_id, CLIENT_ID_PLACEHOLDER)
            or is_placeholder(self.impersonated_user_guid, IMPERSONATED_USER_PLACEHOLDER)
            or not self.private_key.strip()
        )

    @property
    def is_lifx_configured(self) -> bool:
        return not is_placeholder(self.lifx_access_token, LIFX_TOKEN_PLACEHOLDER)

    @staticmethod
    def from_env() -> "WorkerConfig":
        cwd = Path.cwd()
        lifx_token = ""
        if resolve_project_id() or _parse_bool(os.getenv("ALLOW_ENV_SECRET_FALLBACK")):
            lifx_token = get_secret("LIFX_ACCESS_TOKEN", required=False) or ""

        return WorkerConfig(
            project_id=resolve_project_id() or "",
            subscription_id=_str_env("PUBSUB_SUBSCRIPTION_ID"),
            topic_id=_str_env("PUBSUB_TOPIC_ID"),
            client_id=_str_env("DS_CLIENT_ID"),
            impersonated_user_guid=_str_env("DS_IMPERSONATED_USER_GUID"),
            target_account_id=_str_env("DS_TARGET_ACCOUNT_ID") or None,
            auth_server=_str_env("DS_AUTH_SERVER", DEFAULT_AUTH_SERVER),
            consent_redirect_uri=_str_env("DS_OAUTH_CONSENT_REDIRECT_URI", DEFAULT_CONSENT_REDIRECT_URI),
            private_key=_load_private_key(),
            key_field=_str_env("ENVELOPE_CUSTOM_FIELD", DEFAULT_KEY_FIELD),
            color_field=_str_env("ENVELOPE_COLOR_CUSTOM_FIELD", DEFAULT_COLOR_FIELD),
            output_dir=cwd / _str_env("OUTPUT_DIR", "output"),
            output_file_prefix=_str_env("OUTPUT_FILE_PREFIX", "order_"),
            test_output_dir=cwd / _str_env("TEST_OUTPUT_DIR", "test_messages"),
            test_ring_size=max(1, _int_env("TEST_RING_SIZE", default=20)),
            enable_break_test=_parse_bool(os.getenv("ENABLE_BREAK_TEST")),
            lifx_access_token=lifx_token,
            lifx_selector=_str_env("LIFX_SELECTOR", "all"),
            debug=_parse_bool(os.getenv("DEBUG")),
            reconnect_cooldown_s=max(0.0, _float_env("RECONNECT_COOLDOWN_S", default=5.0)),
            max_in_flight=max(1, _int_env("MAX_IN_FLIGHT", default=10)),
            http_timeout_s=max(0.1, _float_env("HTTP_TIMEOUT_S", default=30.0)),
        )
