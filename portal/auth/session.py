"""
Signed session cookie.

The cookie holds `SessionUser.to_claims()` signed with itsdangerous; the
signature timestamp enforces the TTL on read. No Discord tokens are stored.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from itsdangerous import BadData, URLSafeTimedSerializer

from portal.auth.config import AuthConfig
from portal.auth.models import SessionUser

SESSION_SALT = "guild-portal-session-v1"
COOKIE_NAME = "portal_session"


def session_cookie_name(cfg: AuthConfig) -> str:
    # `__Host-` requires Secure + Path=/ + no Domain, so only use it over HTTPS.
    return f"__Host-{COOKIE_NAME}" if cfg.cookie_secure else COOKIE_NAME


def _signer(cfg: AuthConfig) -> Optional[URLSafeTimedSerializer]:
    if not cfg.session_secret:
        return None
    return URLSafeTimedSerializer(cfg.session_secret, salt=SESSION_SALT)


def encode_session(cfg: AuthConfig, user: SessionUser) -> Optional[str]:
    signer = _signer(cfg)
    return signer.dumps(user.to_claims()) if signer else None


def decode_session(cfg: AuthConfig, value: Optional[str]) -> Optional[SessionUser]:
    signer = _signer(cfg)
    if not value or signer is None:
        return None
    try:
        claims = signer.loads(value, max_age=cfg.session_ttl_seconds)
    except BadData:
        # Bad signature, expired timestamp, or undecodable payload.
        return None
    return SessionUser.from_claims(claims)


def _cookie(cfg: AuthConfig, value: str, max_age: int) -> Dict[str, Any]:
    return {
        "key": session_cookie_name(cfg),
        "value": value,
        "max_age": max_age,
        "httponly": True,
        "secure": cfg.cookie_secure,
        "samesite": "lax",
        "path": "/",
    }


def session_cookie_kwargs(cfg: AuthConfig, value: str) -> Dict[str, Any]:
    return _cookie(cfg, value, cfg.session_ttl_seconds)


def clear_session_cookie_kwargs(cfg: AuthConfig) -> Dict[str, Any]:
    return _cookie(cfg, "", 0)
