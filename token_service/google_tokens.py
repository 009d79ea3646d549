from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import httpx

from assistant.core.errors import TokenExchangeError
from config.settings import get_settings


logger = logging.getLogger("talktopic.token")


def default_expiry(ttl_seconds: int, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    expires = now + timedelta(seconds=ttl_seconds)
    return expires.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_ephemeral_token(api_key: str, client: Optional[httpx.Client] = None) -> Dict[str, Any]:
    """Ask Google for a short-lived Live API token on behalf of ``api_key``.

    Returns ``{"token", "expiresAt"}``. A non-2xx upstream answer raises
    ``TokenExchangeError`` carrying the upstream status; transport failures
    raise ``httpx.HTTPError``.
    """
    settings = get_settings()
    payload = {
        "ttlSeconds": settings.token_ttl_seconds,
        "scopes": [settings.token_scope],
    }
    headers = {"Content-Type": "application/json", "x-goog-api-key": api_key}

    if client is None:
        with httpx.Client(timeout=10.0) as owned:
            response = owned.post(settings.token_endpoint_url, json=payload, headers=headers)
    else:
        response = client.post(settings.token_endpoint_url, json=payload, headers=headers)

    if response.is_error:
        logger.error(
            "Failed to generate ephemeral token: status=%s body=%s",
            response.status_code,
            response.text[:500],
        )
        raise TokenExchangeError(
            "Failed to generate ephemeral token",
            status_code=response.status_code,
            details="Please check your API key and try again",
        )

    data = response.json()
    return {
        "token": data.get("token"),
        "expiresAt": data.get("expiresAt") or default_expiry(settings.token_ttl_seconds),
    }
