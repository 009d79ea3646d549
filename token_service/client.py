from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from assistant.core.errors import TokenExchangeError


@dataclass(frozen=True)
class TokenGrant:
    token: str
    expires_at: str


class TokenServiceClient:
    """Calls a running token service's ``/generate-token`` endpoint."""

    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def generate_token(self, api_key: str) -> TokenGrant:
        """Exchange ``api_key`` for an ephemeral token.

        The chat app only uses this to validate the key before accepting it
        and to report the expiry; model calls keep using the key itself, so
        ``TokenGrant.token`` is not stored.
        """
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(f"{self.base_url}/generate-token", json={"apiKey": api_key})
        except httpx.HTTPError as exc:
            raise TokenExchangeError(
                "Token service is unreachable", status_code=502, details=str(exc)
            ) from exc

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_error or not data.get("success"):
            raise TokenExchangeError(
                data.get("error") or "Failed to generate ephemeral token",
                status_code=response.status_code if response.is_error else 502,
                details=data.get("details"),
            )

        return TokenGrant(token=data["token"], expires_at=data["expiresAt"])
