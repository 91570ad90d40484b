"""Claude.ai usage endpoint client.

Flow
----
1. Resolve the session key (configured value, else ``CLAUDE_SESSION_KEY``).
2. Resolve the organization id: use the configured one, otherwise list
   ``/api/organizations`` and take the first entry's ``uuid``.
3. ``GET /api/organizations/{org}/usage`` with the key sent as the
   ``sessionKey`` cookie.
4. Decode the JSON body into a ``QuotaSnapshot``.

Response body looks like::

    {
      "five_hour": {"utilization": 42.0, "resets_at": "2025-01-10T15:00:00.123456+00:00"},
      "seven_day": {"utilization": 18.0, "resets_at": "2025-01-14T09:00:00.000000+00:00"},
      "seven_day_opus": null,
      "seven_day_sonnet": {"utilization": 3.0, "resets_at": "..."}
    }

Blocking ``urllib`` calls run in the default executor so the event loop
that owns the monitor state is never blocked.
"""

from __future__ import annotations

import asyncio
import json
import os
import urllib.error
import urllib.request
from typing import Any

from loguru import logger
from pydantic import ValidationError

from usage_pace.usage.models import QuotaSnapshot

DEFAULT_BASE_URL = "https://claude.ai"
SESSION_KEY_ENV = "CLAUDE_SESSION_KEY"

_ORGANIZATIONS_PATH = "/api/organizations"
_USAGE_PATH = "/api/organizations/{org_id}/usage"


class UsageFetchError(RuntimeError):
    """Fetching or decoding the usage payload failed."""

    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)

    @property
    def is_auth_error(self) -> bool:
        return self.status in (401, 403)


class MissingSessionKeyError(UsageFetchError):
    """No session key configured or present in the environment."""

    def __init__(self) -> None:
        super().__init__(
            f"No session key found. Set it with `usage-pace set-key` "
            f"or the {SESSION_KEY_ENV} environment variable"
        )


def resolve_session_key(configured: str | None = None) -> str | None:
    """Return the configured session key, falling back to the environment."""
    value = (configured or "").strip()
    if value:
        return value
    return os.environ.get(SESSION_KEY_ENV, "").strip() or None


def _load_json(payload: bytes | str) -> Any:
    try:
        return json.loads(payload)
    except (TypeError, ValueError) as exc:
        raise UsageFetchError(f"Invalid JSON in usage response: {exc}") from exc


def decode_usage(payload: bytes | str | dict[str, Any]) -> QuotaSnapshot:
    """Decode a usage response body into a ``QuotaSnapshot``."""
    data = payload if isinstance(payload, dict) else _load_json(payload)
    if not isinstance(data, dict):
        raise UsageFetchError(f"Unexpected usage payload type: {type(data).__name__}")
    try:
        return QuotaSnapshot.model_validate(data)
    except ValidationError as exc:
        raise UsageFetchError(f"Malformed usage payload: {exc.error_count()} error(s)") from exc


class ClaudeUsageClient:
    """Fetch quota snapshots from the claude.ai web API."""

    def __init__(
        self,
        session_key: str | None = None,
        organization_id: str = "",
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float = 15.0,
    ) -> None:
        self.session_key = session_key
        self.organization_id = (organization_id or "").strip()
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout_s = float(max(1.0, timeout_s))

    @property
    def has_credentials(self) -> bool:
        return resolve_session_key(self.session_key) is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_usage(self) -> QuotaSnapshot:
        """Fetch and decode the current usage snapshot.

        Raises ``UsageFetchError`` (or ``MissingSessionKeyError``) on failure.
        """
        session_key = resolve_session_key(self.session_key)
        if session_key is None:
            raise MissingSessionKeyError()

        org_id = await self.resolve_organization_id()
        body = await asyncio.get_running_loop().run_in_executor(
            None,
            lambda: self._get(_USAGE_PATH.format(org_id=org_id), session_key),
        )
        snapshot = decode_usage(body)
        logger.debug(
            "[usage] Claude usage: "
            + ", ".join(
                f"{name} {limit.utilization:.0f}%"
                for name, limit in snapshot.reported().items()
            )
        )
        return snapshot

    async def resolve_organization_id(self) -> str:
        """Return the configured organization id or discover the first one."""
        if self.organization_id:
            return self.organization_id

        session_key = resolve_session_key(self.session_key)
        if session_key is None:
            raise MissingSessionKeyError()

        body = await asyncio.get_running_loop().run_in_executor(
            None,
            lambda: self._get(_ORGANIZATIONS_PATH, session_key),
        )
        orgs = _load_json(body)
        if not isinstance(orgs, list) or not orgs:
            raise UsageFetchError("No organizations returned for this session key")
        first = orgs[0]
        org_id = str(first.get("uuid", "")).strip() if isinstance(first, dict) else ""
        if not org_id:
            raise UsageFetchError("Organization entry has no uuid")

        logger.info(f"[usage] Using organization {org_id}")
        self.organization_id = org_id
        return org_id

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get(self, path: str, session_key: str) -> bytes:
        req = urllib.request.Request(
            url=f"{self.base_url}{path}",
            method="GET",
            headers={
                "Cookie": f"sessionKey={session_key}",
                "Accept": "application/json",
            },
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_s) as resp:
                return resp.read()
        except urllib.error.HTTPError as exc:
            detail = ""
            try:
                detail = exc.read().decode("utf-8", errors="ignore")[:200]
            except Exception:
                pass
            message = f"HTTP {exc.code} from {path}"
            if exc.code in (401, 403):
                message += " (session key rejected or expired)"
            if detail:
                message += f": {detail}"
            raise UsageFetchError(message, status=exc.code) from exc
        except urllib.error.URLError as exc:
            raise UsageFetchError(f"Network error: {exc.reason}") from exc
        except TimeoutError as exc:
            raise UsageFetchError(f"Request timed out after {self.timeout_s:.0f}s") from exc
