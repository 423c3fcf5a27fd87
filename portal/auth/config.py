from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

DISCORD_API_BASE_DEFAULT = "https://discord.com/api"
SESSION_TTL_DEFAULT = 24 * 60 * 60

MEMBERSHIP_SELF = "self"  # GET /users/@me/guilds with the user's token
MEMBERSHIP_BOT = "bot"  # GET /guilds/{id}/members/{user} with a bot token


def _env(*names: str) -> Optional[str]:
    """First non-empty value among `names` (primary name first, then aliases)."""
    for name in names:
        value = (os.getenv(name, "") or "").strip()
        if value:
            return value
    return None


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class AuthConfig:
    # Discord OAuth application
    client_id: Optional[str]
    client_secret: Optional[str]
    redirect_uri: str
    api_base: str

    # Guild gate
    guild_id: Optional[str]
    bot_token: Optional[str]  # Privileged credential for the member lookup
    membership_check: str  # self|bot

    # Session configuration
    public_base_url: str
    session_secret: Optional[str]  # Required for session signing
    session_ttl_seconds: int
    cookie_secure: bool

    http_timeout_seconds: float = 10.0

    @property
    def oauth_scope(self) -> str:
        """Scope requested at login; the guild list needs `guilds`, the bot lookup does not."""
        if self.membership_check == MEMBERSHIP_BOT:
            return "identify"
        return "identify guilds"

    @property
    def oauth_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @property
    def gate_configured(self) -> bool:
        if not self.guild_id:
            return False
        if self.membership_check == MEMBERSHIP_BOT and not self.bot_token:
            return False
        return True


@lru_cache(maxsize=1)
def load_auth_config() -> AuthConfig:
    """
    Load authentication configuration from environment variables.

    The callback URL defaults to `<APP_URL>/auth/discord/callback`; APP_URL itself
    falls back to `http://localhost:<PORT>` for local runs.
    """
    port = (os.getenv("PORT", "") or "").strip() or "3000"
    public_base_url = (_env("APP_URL", "AUTH_PUBLIC_BASE_URL") or f"http://localhost:{port}").rstrip("/")

    cookie_secure_env = (os.getenv("SESSION_COOKIE_SECURE", "") or "").strip().lower()
    if cookie_secure_env in ("1", "true", "yes", "on"):
        cookie_secure = True
    elif cookie_secure_env in ("0", "false", "no", "off"):
        cookie_secure = False
    else:
        # Default: secure cookies when base URL is https; otherwise allow local dev.
        cookie_secure = public_base_url.startswith("https://")

    ttl = int(float((os.getenv("SESSION_TTL_SECONDS", "") or str(SESSION_TTL_DEFAULT)).strip() or SESSION_TTL_DEFAULT))
    if ttl <= 60:
        ttl = 60

    bot_token = _env("DISCORD_BOT_TOKEN", "BOT_TOKEN")
    membership_check = (os.getenv("MEMBERSHIP_CHECK", "") or "").strip().lower()
    if membership_check not in (MEMBERSHIP_SELF, MEMBERSHIP_BOT):
        membership_check = MEMBERSHIP_BOT if bot_token else MEMBERSHIP_SELF

    return AuthConfig(
        client_id=_env("CLIENT_ID", "DISCORD_CLIENT_ID"),
        client_secret=_env("CLIENT_SECRET", "DISCORD_CLIENT_SECRET"),
        redirect_uri=_env("DISCORD_REDIRECT_URI") or f"{public_base_url}/auth/discord/callback",
        api_base=(_env("DISCORD_API_BASE") or DISCORD_API_BASE_DEFAULT).rstrip("/"),
        guild_id=_env("RGWO_GUILD_ID", "DISCORD_GUILD_ID"),
        bot_token=bot_token,
        membership_check=membership_check,
        public_base_url=public_base_url,
        session_secret=_env("SESSION_SECRET"),
        session_ttl_seconds=ttl,
        cookie_secure=cookie_secure,
        http_timeout_seconds=_env_float("HTTP_TIMEOUT_SECONDS", 10.0),
    )
