"""OAuth credential loading and refresh.

Claude Code keeps its OAuth pair in ``~/.claude/.credentials.json``, either
at the top level or nested under ``claudeAiOauth``::

    {"claudeAiOauth": {"accessToken": "...", "refreshToken": "...",
                       "expiresAt": 1760000000000, "scopes": [...]}}

Only ``accessToken``, ``refreshToken`` and ``expiresAt`` are read or written;
every other key in the document is preserved on write-back.
"""

import json
import logging
import time
from pathlib import Path
from typing import Any, Callable

import httpx

from ..config import API_TIMEOUT, OAUTH_CLIENT_ID, OAUTH_TOKEN_URL, get_credentials_path
from ..core import Credentials
from ..store import write_json_atomic

logger = logging.getLogger(__name__)

WRAPPER_KEY = "claudeAiOauth"


class RefreshError(RuntimeError):
    """Raised when the refresh-token exchange does not yield a new access token."""


class CredentialStore:
    """Loads the OAuth pair and refreshes it when expired."""

    def __init__(
        self,
        path: Path | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.path = Path(path) if path else get_credentials_path()
        self._transport = transport
        self._clock = clock

    def load(self) -> Credentials | None:
        """Return the stored credentials, or None if missing or malformed."""
        document = self._read_document()
        if document is None:
            return None

        record = _record(document)
        token = record.get("accessToken")
        if not token or not isinstance(token, str):
            return None

        refresh = record.get("refreshToken")
        expires = record.get("expiresAt")
        return Credentials(
            access_token=token,
            refresh_token=refresh if isinstance(refresh, str) and refresh else None,
            expires_at=_as_epoch_ms(expires),
        )

    async def ensure_fresh(self, creds: Credentials) -> Credentials | None:
        """Return credentials usable right now, refreshing if they have expired.

        Returns None when the token is expired and cannot be refreshed. Nothing
        is written unless the exchange succeeds.
        """
        now_ms = int(self._clock() * 1000)
        if not creds.is_expired(now_ms):
            return creds

        if not creds.refresh_token:
            logger.debug("Access token expired and no refresh token is stored")
            return None

        try:
            refreshed = await self._exchange(creds.refresh_token)
        except RefreshError as e:
            logger.debug("Token refresh failed: %s", e)
            return None

        try:
            self._persist(refreshed)
        except (OSError, ValueError) as e:
            logger.warning("Refreshed token could not be saved to %s: %s", self.path, e)
        return refreshed

    # ── Private helpers ──────────────────────────────────────────────

    async def _exchange(self, refresh_token: str) -> Credentials:
        form = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": OAUTH_CLIENT_ID,
        }
        try:
            async with httpx.AsyncClient(timeout=API_TIMEOUT, transport=self._transport) as client:
                response = await client.post(OAUTH_TOKEN_URL, data=form)
        except httpx.HTTPError as e:
            raise RefreshError(f"token endpoint unreachable: {e}") from e

        if response.status_code != 200:
            raise RefreshError(f"token endpoint returned {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise RefreshError("token endpoint returned malformed JSON") from e

        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise RefreshError("token response has no access_token")

        expires_in = payload.get("expires_in")
        if isinstance(expires_in, (int, float)) and not isinstance(expires_in, bool):
            expires_at = int(self._clock() * 1000 + expires_in * 1000)
        else:
            expires_at = _as_epoch_ms(payload.get("expires_at"))

        return Credentials(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or refresh_token,
            expires_at=expires_at,
        )

    def _persist(self, creds: Credentials) -> None:
        document = self._read_document()
        if document is None:
            # The file vanished or was corrupted since load(); don't recreate it.
            raise ValueError("credential document is no longer readable")

        record = _record(document)
        record["accessToken"] = creds.access_token
        if creds.refresh_token:
            record["refreshToken"] = creds.refresh_token
        if creds.expires_at is not None:
            record["expiresAt"] = creds.expires_at
        write_json_atomic(self.path, document, indent=2)

    def _read_document(self) -> dict[str, Any] | None:
        try:
            if not self.path.exists():
                return None
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.debug("Ignoring unreadable credentials %s: %s", self.path, e)
            return None
        return document if isinstance(document, dict) else None


def _record(document: dict[str, Any]) -> dict[str, Any]:
    """Return the dict holding the token fields, nested or top-level."""
    nested = document.get(WRAPPER_KEY)
    return nested if isinstance(nested, dict) else document


def _as_epoch_ms(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)
