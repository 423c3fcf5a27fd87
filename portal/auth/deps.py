from __future__ import annotations

from typing import Optional

from fastapi import Request

from portal.auth.config import AuthConfig
from portal.auth.models import SessionUser
from portal.auth.session import decode_session, session_cookie_name
from portal.errors import Unauthenticated


def _auth_config(request: Request) -> AuthConfig:
    return request.app.state.auth_config


def authenticate_request(request: Request) -> Optional[SessionUser]:
    """
    Return the SessionUser carried by the request's session cookie, if present/valid.

    Only verified guild members are ever written to the cookie; anything else
    (missing, forged, expired, non-member) is treated as anonymous.
    """
    cfg = _auth_config(request)
    user = decode_session(cfg, request.cookies.get(session_cookie_name(cfg)))
    if user is None or not user.is_member:
        return None
    return user


def require_user(request: Request) -> SessionUser:
    """FastAPI dependency for endpoints that need a logged-in member."""
    user = authenticate_request(request)
    if user is None:
        raise Unauthenticated("Not logged in")
    return user
