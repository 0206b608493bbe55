from __future__ import annotations

from typing import Any

import requests

from connect_worker.auth.errors import ApiError, response_body
from connect_worker.auth.jwt_auth import Token


class DocumentStore:
    """
    EnvelopeDocuments::get against the eSignature REST API.

    `combined` returns every document of the envelope as one PDF (plus the
    certificate of completion when the account is set to attach it).
    """

    def __init__(self, *, session: Any = None, timeout_s: float = 30.0) -> None:
        self._session = session or requests.Session()
        self._timeout_s = float(timeout_s)

    def get_document(self, *, token: Token, base_path: str, account_id: str, envelope_id: str, document_id: str) -> bytes:
        url = f"{base_path}/v2.1/accounts/{account_id}/envelopes/{envelope_id}/documents/{document_id}"
        resp = self._session.get(
            url,
            headers={"Authorization": f"Bearer {token.value}", "Accept": "application/pdf"},
            timeout=self._timeout_s,
        )
        if resp.status_code >= 300:
            raise ApiError(resp.status_code, response_body(resp), url=url)
        return resp.content

    def get_combined_document(self, *, token: Token, base_path: str, account_id: str, envelope_id: str) -> bytes:
        return self.get_document(
            token=token,
            base_path=base_path,
            account_id=account_id,
            envelope_id=envelope_id,
            document_id="combined",
        )
