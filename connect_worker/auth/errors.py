from __future__ import annotations

from typing import Any, Optional


class AuthError(RuntimeError):
    """Base class for token-acquisition failures."""


class ConfigMissingError(AuthError):
    """Integration key, impersonated user or private key not configured."""


class ConsentRequiredError(AuthError):
    def __init__(self, consent_url: str) -> None:
        super().__init__("consent_required")
        self.consent_url = consent_url


class ApiError(RuntimeError):
    """
    Non-2xx response from a DocuSign endpoint.

    Carries the HTTP status and the parsed body (JSON when possible, text
    otherwise) so operators get actionable detail.
    """

    def __init__(self, status_code: int, body: Any, *, url: Optional[str] = None) -> None:
        super().__init__(f"DocuSign API error: status={status_code} url={url or ''}")
        self.status_code = int(status_code)
        self.body = body
        self.url = url


class TokenApiError(ApiError, AuthError):
    """Non-2xx response from the OAuth token or userinfo endpoint."""


def response_body(resp: Any) -> Any:
    try:
        return resp.json()
    except ValueError:
        return getattr(resp, "text", "")
