"""
Pytest config.

Pins the repo root on sys.path so `import portal` works from any pytest entrypoint,
and provides fakes for the two external collaborators (Discord API, webhook sink).
No test touches the network.
"""

from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()

from fastapi.testclient import TestClient  # noqa: E402

import portal.auth.discord as discord_client  # noqa: E402
import portal.relay.notify as notify  # noqa: E402
from portal.api.server import create_app  # noqa: E402
from portal.auth.config import AuthConfig, load_auth_config  # noqa: E402
from portal.relay.config import RelayConfig, load_relay_config  # noqa: E402

API_BASE = "https://discord.test/api"
GUILD_ID = "111111111111111111"
USER_ID = "222222222222222222"
WEBHOOK_URL = "https://hooks.test/webhook/abc"
SESSION_SECRET = "test-secret-key-for-testing-purposes-only"

_NOT_JSON = object()


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None) -> None:
        self.status_code = status_code
        self._body = body

    def json(self) -> Any:
        if self._body is _NOT_JSON:
            raise ValueError("not json")
        return self._body


class FakeDiscord:
    """Stands in for `requests.request` in portal.auth.discord."""

    user_id = USER_ID
    username = "loanseeker"

    def __init__(self, api_base: str = API_BASE) -> None:
        self.api_base = api_base
        self.routes: Dict[Tuple[str, str], Any] = {}
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []

    def on(self, method: str, path: str, status: int = 200, body: Any = None, exc: Optional[Exception] = None) -> None:
        self.routes[(method, path)] = exc if exc is not None else FakeResponse(status, body)

    def not_json(self, method: str, path: str) -> None:
        self.routes[(method, path)] = FakeResponse(200, _NOT_JSON)

    def happy_path(self, *, guilds: Optional[list] = None) -> None:
        """Token, profile and a guild list that contains the target guild."""
        self.on("POST", "/oauth2/token", body={"access_token": "user-token", "token_type": "Bearer"})
        self.on(
            "GET",
            "/users/@me",
            body={"id": self.user_id, "username": self.username, "avatar": "a1b2c3", "discriminator": "0"},
        )
        self.on("GET", "/users/@me/guilds", body=guilds if guilds is not None else [{"id": "999"}, {"id": GUILD_ID}])

    def paths(self) -> List[str]:
        return [url[len(self.api_base) :] for _, url, _ in self.calls]

    def __call__(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        hit = self.routes.get((method, url[len(self.api_base) :]))
        if isinstance(hit, Exception):
            raise hit
        if hit is None:
            return FakeResponse(404, {"message": "404: Not Found", "code": 0})
        return hit


class FakeWebhook:
    """Stands in for `requests.post` in portal.relay.notify."""

    def __init__(self, status_code: int = 204, exc: Optional[Exception] = None) -> None:
        self.status_code = status_code
        self.exc = exc
        self.posts: List[Dict[str, Any]] = []

    def __call__(self, url: str, json: Any = None, timeout: Any = None, **kwargs: Any) -> FakeResponse:
        self.posts.append({"url": url, "json": json, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return FakeResponse(self.status_code, None)


@pytest.fixture(autouse=True)
def _clear_config_caches() -> None:
    load_auth_config.cache_clear()
    load_relay_config.cache_clear()
    yield
    load_auth_config.cache_clear()
    load_relay_config.cache_clear()


@pytest.fixture
def auth_cfg() -> AuthConfig:
    return AuthConfig(
        client_id="test-client-id",
        client_secret="test-client-secret",
        redirect_uri="http://testserver/auth/discord/callback",
        api_base=API_BASE,
        guild_id=GUILD_ID,
        bot_token=None,
        membership_check="self",
        public_base_url="http://testserver",
        session_secret=SESSION_SECRET,
        session_ttl_seconds=24 * 60 * 60,
        cookie_secure=False,
    )


@pytest.fixture
def bot_auth_cfg(auth_cfg: AuthConfig) -> AuthConfig:
    return replace(auth_cfg, bot_token="test-bot-token", membership_check="bot")


@pytest.fixture
def relay_cfg() -> RelayConfig:
    return RelayConfig(webhook_url=WEBHOOK_URL)


@pytest.fixture
def fake_discord(monkeypatch: pytest.MonkeyPatch) -> FakeDiscord:
    fake = FakeDiscord()
    monkeypatch.setattr(discord_client.requests, "request", fake)
    return fake


@pytest.fixture
def fake_webhook(monkeypatch: pytest.MonkeyPatch) -> FakeWebhook:
    fake = FakeWebhook()
    monkeypatch.setattr(notify.requests, "post", fake)
    return fake


@pytest.fixture
def make_client(tmp_path: Path, auth_cfg: AuthConfig, relay_cfg: RelayConfig):
    """Build a TestClient; static files are disabled unless a directory is passed."""

    def _make(
        auth: Optional[AuthConfig] = None, relay: Optional[RelayConfig] = None, static_dir: Optional[str] = None
    ) -> TestClient:
        app = create_app(auth or auth_cfg, relay or relay_cfg, static_dir=static_dir or str(tmp_path / "no-static"))
        return TestClient(app)

    return _make

