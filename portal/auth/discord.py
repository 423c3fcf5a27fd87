"""
Discord OAuth2 / REST client.

Every call returns a `ProviderResult` instead of raising, so the auth gate can
classify failures in one place (see `portal.auth.membership`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional
from urllib.parse import urlencode

import requests

from portal.auth.config import AuthConfig

logger = logging.getLogger(__name__)

DISCORD_AUTHORIZE_URL = "https://discord.com/api/oauth2/authorize"

ErrorKind = Literal[
    "unauthorized",  # 401
    "forbidden",  # 403
    "not_found",  # 404
    "bad_request",  # other 4xx (e.g. invalid_grant)
    "upstream",  # 5xx
    "transport",  # connection error / timeout
    "invalid_response",  # 2xx but not the JSON shape we expect
]

# Discord JSON error codes we care about.
UNKNOWN_GUILD = 10004
UNKNOWN_MEMBER = 10007


@dataclass(frozen=True)
class ProviderError:
    kind: ErrorKind
    status: Optional[int] = None
    code: Optional[int] = None  # Discord error code from the JSON body, when present
    message: str = ""


@dataclass(frozen=True)
class ProviderResult:
    payload: Any = None
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, payload: Any) -> "ProviderResult":
        return cls(payload=payload)

    @classmethod
    def failure(
        cls, kind: ErrorKind, *, status: Optional[int] = None, code: Optional[int] = None, message: str = ""
    ) -> "ProviderResult":
        return cls(error=ProviderError(kind=kind, status=status, code=code, message=message))


def _kind_for_status(status: int) -> ErrorKind:
    if status == 401:
        return "unauthorized"
    if status == 403:
        return "forbidden"
    if status == 404:
        return "not_found"
    if status >= 500:
        return "upstream"
    return "bad_request"


def _error_details(r: requests.Response) -> tuple[Optional[int], str]:
    """Pull Discord's `code`/`message` (REST) or `error` (OAuth) out of an error body."""
    try:
        body = r.json()
    except ValueError:
        return None, ""
    if not isinstance(body, dict):
        return None, ""
    code = body.get("code")
    message = body.get("message") or body.get("error_description") or body.get("error") or ""
    return (code if isinstance(code, int) else None), str(message)


def _send(cfg: AuthConfig, method: str, path: str, **kwargs: Any) -> ProviderResult:
    url = f"{cfg.api_base}{path}"
    try:
        r = requests.request(method, url, timeout=cfg.http_timeout_seconds, **kwargs)
    except requests.RequestException as e:
        logger.warning("Discord %s %s failed: %s", method, path, type(e).__name__)
        return ProviderResult.failure("transport", message=str(e))

    if r.status_code >= 400:
        code, message = _error_details(r)
        logger.info("Discord %s %s -> status=%d code=%s", method, path, r.status_code, code)
        return ProviderResult.failure(_kind_for_status(r.status_code), status=r.status_code, code=code, message=message)

    try:
        return ProviderResult.success(r.json())
    except ValueError:
        return ProviderResult.failure("invalid_response", status=r.status_code, message="Response is not JSON")


def build_authorize_url(cfg: AuthConfig) -> str:
    """Discord authorization URL for the code flow, with the configured scope."""
    if not cfg.client_id:
        raise ValueError("Discord client ID not configured")
    params = {
        "client_id": cfg.client_id,
        "redirect_uri": cfg.redirect_uri,
        "response_type": "code",
        "scope": cfg.oauth_scope,
    }
    return f"{DISCORD_AUTHORIZE_URL}?{urlencode(params)}"


def exchange_code(cfg: AuthConfig, code: str) -> ProviderResult:
    """Exchange an authorization code for a user access token."""
    payload = {
        "client_id": cfg.client_id or "",
        "client_secret": cfg.client_secret or "",
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": cfg.redirect_uri,
    }
    res = _send(
        cfg,
        "POST",
        "/oauth2/token",
        data=payload,
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    if not res.ok:
        return res
    data = res.payload
    if not isinstance(data, dict) or not str(data.get("access_token") or "").strip():
        return ProviderResult.failure("invalid_response", message="Token response missing access_token")
    return res


def fetch_profile(cfg: AuthConfig, access_token: str) -> ProviderResult:
    res = _send(cfg, "GET", "/users/@me", headers={"Authorization": f"Bearer {access_token}"})
    if not res.ok:
        return res
    data = res.payload
    if not isinstance(data, dict) or not str(data.get("id") or "").strip():
        return ProviderResult.failure("invalid_response", message="Profile missing id")
    return res


def fetch_user_guilds(cfg: AuthConfig, access_token: str) -> ProviderResult:
    """Guilds the user reports being in (needs the `guilds` scope)."""
    res = _send(cfg, "GET", "/users/@me/guilds", headers={"Authorization": f"Bearer {access_token}"})
    if res.ok and not isinstance(res.payload, list):
        return ProviderResult.failure("invalid_response", message="Guild list is not a list")
    return res


def fetch_guild_member(cfg: AuthConfig, user_id: str) -> ProviderResult:
    """Privileged member lookup; 404 means the user is not in the guild."""
    res = _send(
        cfg,
        "GET",
        f"/guilds/{cfg.guild_id}/members/{user_id}",
        headers={"Authorization": f"Bot {cfg.bot_token}"},
    )
    if res.ok and not isinstance(res.payload, dict):
        return ProviderResult.failure("invalid_response", message="Member is not an object")
    return res


def profile_fields(profile: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Subset of the Discord user object kept in the session."""
    avatar = profile.get("avatar")
    discriminator = profile.get("discriminator")
    return {
        "id": str(profile.get("id") or "").strip(),
        "username": str(profile.get("username") or ""),
        "avatar": str(avatar) if avatar else None,
        "discriminator": str(discriminator) if discriminator else None,
    }
