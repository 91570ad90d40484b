"""Claude usage endpoint client tests."""

import io
import json
import urllib.error
import urllib.request

import pytest

from usage_pace.usage.claude_api import (
    SESSION_KEY_ENV,
    ClaudeUsageClient,
    MissingSessionKeyError,
    UsageFetchError,
    decode_usage,
    resolve_session_key,
)
from usage_pace.usage.models import MetricKind

USAGE_BODY = {
    "five_hour": {"utilization": 42.0, "resets_at": "2025-01-10T15:00:00.123456+00:00"},
    "seven_day": {"utilization": 18.5, "resets_at": "2025-01-14T09:00:00.000000+00:00"},
    "seven_day_oauth_apps": None,
    "seven_day_opus": None,
    "seven_day_sonnet": {"utilization": 3.0, "resets_at": "2025-01-14T09:00:00.000000+00:00"},
    "some_future_slot": {"utilization": 1.0, "resets_at": None},
}


class _FakeResponse:
    def __init__(self, payload: object) -> None:
        self._body = json.dumps(payload).encode("utf-8")

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "_FakeResponse":
        return self

    def __exit__(self, *exc: object) -> None:
        return None


@pytest.fixture
def requests_seen(monkeypatch: pytest.MonkeyPatch) -> list[urllib.request.Request]:
    seen: list[urllib.request.Request] = []
    routes = {
        "/api/organizations": [{"uuid": "org-123", "name": "Personal"}],
        "/api/organizations/org-123/usage": USAGE_BODY,
    }

    def fake_urlopen(req: urllib.request.Request, timeout: float = 0) -> _FakeResponse:
        seen.append(req)
        path = req.full_url.removeprefix("https://claude.ai")
        if path not in routes:
            raise urllib.error.HTTPError(req.full_url, 404, "Not Found", None, io.BytesIO(b""))
        return _FakeResponse(routes[path])

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    return seen


def test_resolve_session_key_prefers_configured(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(SESSION_KEY_ENV, "from-env")
    assert resolve_session_key("  from-config ") == "from-config"


def test_resolve_session_key_env_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(SESSION_KEY_ENV, "from-env")
    assert resolve_session_key("") == "from-env"
    assert resolve_session_key(None) == "from-env"


def test_resolve_session_key_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(SESSION_KEY_ENV, raising=False)
    assert resolve_session_key("") is None


def test_decode_usage_ignores_unknown_slots() -> None:
    snapshot = decode_usage(json.dumps(USAGE_BODY).encode("utf-8"))
    assert snapshot.limit_for(MetricKind.FIVE_HOUR).utilization == 42.0
    assert snapshot.limit_for(MetricKind.SEVEN_DAY_OPUS) is None
    assert set(snapshot.reported()) == {"five_hour", "seven_day", "seven_day_sonnet"}


def test_decode_usage_accepts_dict() -> None:
    assert decode_usage({}).five_hour is None


@pytest.mark.parametrize(
    "payload",
    [
        b"<html>Just a moment...</html>",
        b"[1, 2, 3]",
        json.dumps({"five_hour": {"resets_at": "2025-01-10T15:00:00Z"}}),
    ],
)
def test_decode_usage_rejects_bad_payloads(payload: bytes | str) -> None:
    with pytest.raises(UsageFetchError):
        decode_usage(payload)


async def test_fetch_usage_sends_session_cookie(requests_seen: list) -> None:
    client = ClaudeUsageClient(session_key="sk-test", organization_id="org-123")
    snapshot = await client.fetch_usage()

    assert snapshot.seven_day.utilization == 18.5
    assert len(requests_seen) == 1
    req = requests_seen[0]
    assert req.full_url == "https://claude.ai/api/organizations/org-123/usage"
    assert req.get_method() == "GET"
    assert req.get_header("Cookie") == "sessionKey=sk-test"
    assert req.get_header("Accept") == "application/json"


async def test_fetch_usage_discovers_organization_once(requests_seen: list) -> None:
    client = ClaudeUsageClient(session_key="sk-test")
    await client.fetch_usage()
    await client.fetch_usage()

    paths = [r.full_url.removeprefix("https://claude.ai") for r in requests_seen]
    assert paths == [
        "/api/organizations",
        "/api/organizations/org-123/usage",
        "/api/organizations/org-123/usage",
    ]
    assert client.organization_id == "org-123"


async def test_fetch_usage_without_key(monkeypatch: pytest.MonkeyPatch, requests_seen: list) -> None:
    monkeypatch.delenv(SESSION_KEY_ENV, raising=False)
    client = ClaudeUsageClient(organization_id="org-123")
    assert client.has_credentials is False
    with pytest.raises(MissingSessionKeyError):
        await client.fetch_usage()
    assert requests_seen == []


async def test_http_error_is_wrapped(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(req: urllib.request.Request, timeout: float = 0) -> _FakeResponse:
        raise urllib.error.HTTPError(
            req.full_url, 401, "Unauthorized", None, io.BytesIO(b'{"error": "invalid session"}')
        )

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    client = ClaudeUsageClient(session_key="expired", organization_id="org-123")

    with pytest.raises(UsageFetchError) as excinfo:
        await client.fetch_usage()
    assert excinfo.value.status == 401
    assert excinfo.value.is_auth_error
    assert "invalid session" in str(excinfo.value)


async def test_network_error_is_wrapped(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(req: urllib.request.Request, timeout: float = 0) -> _FakeResponse:
        raise urllib.error.URLError("name resolution failed")

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    client = ClaudeUsageClient(session_key="sk", organization_id="org-123")

    with pytest.raises(UsageFetchError, match="Network error"):
        await client.fetch_usage()


async def test_empty_organization_list(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(urllib.request, "urlopen", lambda req, timeout=0: _FakeResponse([]))
    client = ClaudeUsageClient(session_key="sk")

    with pytest.raises(UsageFetchError, match="No organizations"):
        await client.resolve_organization_id()
