"""
Guild loan portal HTTP server.

Discord login gated on guild membership, a signed-cookie session, and a loan
form relayed to a Discord webhook. Static front-end is served from STATIC_DIR.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from portal.auth.config import AuthConfig, load_auth_config
from portal.auth.deps import authenticate_request, require_user
from portal.auth.discord import build_authorize_url
from portal.auth.gate import AuthGate
from portal.auth.models import SessionUser
from portal.auth.session import clear_session_cookie_kwargs, encode_session, session_cookie_kwargs
from portal.errors import (
    AuthConfigurationError,
    AuthFlowError,
    LoanAmountExceeded,
    Unauthenticated,
    WebhookDeliveryFailure,
    WebhookMisconfigured,
)
from portal.relay.config import RelayConfig, load_relay_config
from portal.relay.models import LoanRequest
from portal.relay.notify import LoanRelay

logger = logging.getLogger(__name__)

router = APIRouter()


def _landing_redirect(error: Optional[str] = None) -> RedirectResponse:
    url = f"/?{urlencode({'error': error})}" if error else "/"
    resp = RedirectResponse(url=url, status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _split_csv(raw: str) -> List[str]:
    return [x.strip() for x in (raw or "").split(",") if x.strip()]


@router.get("/healthz")
def healthz() -> Dict[str, Any]:
    return {"ok": True}


# ---- Discord authentication ----


@router.get("/auth/discord/login")
@router.get("/auth/login")
async def auth_login(request: Request) -> RedirectResponse:
    """Send the browser to Discord's consent screen."""
    cfg: AuthConfig = request.app.state.auth_config
    try:
        url = build_authorize_url(cfg)
    except ValueError as e:
        logger.error("Cannot start Discord login: %s", str(e))
        return _landing_redirect("server_config")
    resp = RedirectResponse(url=url, status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/discord/callback")
@router.get("/auth/callback")
def auth_callback(request: Request, code: Optional[str] = Query(None)) -> RedirectResponse:
    """
    Handle the Discord redirect: exchange the code, check the guild, set the session.

    Every failure ends in `/?error=<tag>`; details only go to the server log.
    """
    cfg: AuthConfig = request.app.state.auth_config
    gate: AuthGate = request.app.state.auth_gate
    try:
        user = gate.complete_login(code)
        session_value = encode_session(cfg, user)
        if not session_value:
            raise AuthConfigurationError("Session signing is not configured (SESSION_SECRET)")
    except AuthFlowError as e:
        if e.error_code == "not_member":
            logger.info("Login refused: %s", str(e))
        else:
            logger.warning("Login failed (%s, status=%s): %s", e.error_code, e.status, str(e))
        return _landing_redirect(e.error_code)
    except Exception:
        logger.exception("Unexpected error during Discord callback")
        return _landing_redirect("auth_failed")

    resp = _landing_redirect()
    resp.set_cookie(**session_cookie_kwargs(cfg, session_value))
    return resp


# ---- Session accessors ----


@router.get("/api/me")
async def api_me(user: SessionUser = Depends(require_user)) -> Dict[str, Any]:
    return user.to_public_dict()


@router.post("/api/logout")
async def api_logout(request: Request) -> JSONResponse:
    resp = JSONResponse(content={"success": True})
    resp.headers["Cache-Control"] = "no-store"
    resp.set_cookie(**clear_session_cookie_kwargs(request.app.state.auth_config))
    return resp


@router.get("/logout")
async def logout_redirect(request: Request) -> RedirectResponse:
    resp = _landing_redirect()
    resp.set_cookie(**clear_session_cookie_kwargs(request.app.state.auth_config))
    return resp


# ---- Loan relay ----


@router.post("/api/loan")
@router.post("/submit-loan")
def submit_loan(request: Request, loan: LoanRequest) -> JSONResponse:
    relay: LoanRelay = request.app.state.loan_relay
    user = authenticate_request(request)
    try:
        relay.submit(loan, user)
    except LoanAmountExceeded as e:
        return JSONResponse(status_code=400, content={"success": False, "message": str(e)})
    except WebhookMisconfigured:
        logger.error("Loan submission dropped: WEBHOOK_URL is not configured")
        return JSONResponse(status_code=500, content={"success": False, "error": "Webhook is not configured"})
    except WebhookDeliveryFailure as e:
        logger.error("Loan submission not delivered: %s", str(e))
        return JSONResponse(status_code=500, content={"success": False})
    return JSONResponse(content={"success": True})


async def _unauthenticated_handler(request: Request, exc: Unauthenticated) -> JSONResponse:
    # No `WWW-Authenticate`: browsers would pop a basic-auth modal over the UI.
    return JSONResponse(status_code=401, content={"error": "Not logged in"})


def create_app(
    auth_cfg: Optional[AuthConfig] = None,
    relay_cfg: Optional[RelayConfig] = None,
    *,
    static_dir: Optional[str] = None,
) -> FastAPI:
    """
    Build the portal app. Configuration is resolved once here and never mutated.
    """
    auth_cfg = auth_cfg or load_auth_config()
    relay_cfg = relay_cfg or load_relay_config()

    app = FastAPI(title="Guild loan portal")
    app.state.auth_config = auth_cfg
    app.state.auth_gate = AuthGate(auth_cfg)
    app.state.loan_relay = LoanRelay(relay_cfg)

    app.add_exception_handler(Unauthenticated, _unauthenticated_handler)

    origins = _split_csv(os.getenv("CORS_ALLOW_ORIGINS", "*")) or ["*"]
    # Credentials only for an explicit allow-list; with `*` the session must stay same-origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all incoming HTTP requests."""
        start_time = time.time()
        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            logger.debug("%s %s - %d (%.3fs)", request.method, request.url.path, response.status_code, process_time)
            return response
        except Exception as e:
            process_time = time.time() - start_time
            logger.exception("%s %s - ERROR after %.3fs: %s", request.method, request.url.path, process_time, str(e))
            raise

    app.include_router(router)

    # Static front-end last so API routes win.
    static_path = Path(static_dir or os.getenv("STATIC_DIR", "") or "public")
    if static_path.is_dir():
        app.mount("/", StaticFiles(directory=str(static_path), html=True), name="static")
    else:
        logger.warning("Static directory %s not found; serving API only", static_path)

    # Avoid logging secrets; presence flags are enough.
    logger.info(
        "Portal config: base_url=%s membership_check=%s oauth_configured=%s guild_configured=%s "
        "session_secret=%s webhook_configured=%s amount_ceiling=%s format=%s",
        auth_cfg.public_base_url,
        auth_cfg.membership_check,
        auth_cfg.oauth_configured,
        auth_cfg.gate_configured,
        bool(auth_cfg.session_secret),
        bool(relay_cfg.webhook_url),
        relay_cfg.amount_ceiling,
        relay_cfg.message_format,
    )
    return app


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "y", "on")


def run(host: str = "0.0.0.0", port: int = 3000) -> None:
    import uvicorn

    # Configure logging for the application
    log_level = os.getenv("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Map Python logging levels to uvicorn log levels
    uvicorn_log_level = (
        log_level.lower() if log_level.lower() in ["critical", "error", "warning", "info", "debug", "trace"] else "info"
    )

    app = create_app()
    trust_proxy = _env_bool("TRUST_PROXY", False)
    logger.info("Starting portal on %s:%d (log_level=%s, trust_proxy=%s)", host, port, log_level, trust_proxy)
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=uvicorn_log_level,
        proxy_headers=trust_proxy,
        forwarded_allow_ips="*" if trust_proxy else None,
    )
