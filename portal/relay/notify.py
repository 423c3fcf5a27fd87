from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from portal.auth.models import SessionUser
from portal.errors import LoanAmountExceeded, WebhookDeliveryFailure, WebhookMisconfigured
from portal.relay.config import RelayConfig
from portal.relay.models import LoanRequest

logger = logging.getLogger(__name__)

EMBED_TITLE = "New Loan Request"
EMBED_COLOR = 0x5865F2
# Discord limits: embed field value 1024 chars, message content 2000 chars.
FIELD_VALUE_MAX = 1024
CONTENT_MAX = 2000


def _clip(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    return value[: limit - 1] + "…"


def attribution(user: Optional[SessionUser]) -> Optional[str]:
    if user is None:
        return None
    return f"Submitted by {user.username} ({user.id})"


def build_embed_payload(cfg: RelayConfig, loan: LoanRequest, user: Optional[SessionUser], *, now: datetime) -> Dict[str, Any]:
    embed: Dict[str, Any] = {
        "title": EMBED_TITLE,
        "color": EMBED_COLOR,
        "fields": [
            {"name": label, "value": _clip(value or "-", FIELD_VALUE_MAX), "inline": label in ("Amount", "Term (months)")}
            for label, value in loan.labeled_fields()
        ],
        "timestamp": now.isoformat(),
    }
    footer = attribution(user)
    if footer:
        embed["footer"] = {"text": footer}
    return {"username": cfg.username, "embeds": [embed]}


def _fit_values(values: List[str], budget: int) -> List[str]:
    """Clip the longest values to a common cap so their total fits `budget`."""
    remaining = budget
    for n, length in enumerate(sorted(len(v) for v in values)):
        share = remaining // (len(values) - n)
        if length > share:
            return [_clip(v, max(share, 1)) for v in values]
        remaining -= length
    return values


def build_text_payload(cfg: RelayConfig, loan: LoanRequest, user: Optional[SessionUser]) -> Dict[str, Any]:
    fields = loan.labeled_fields()
    footer = attribution(user)
    tail = [f"_{footer}_"] if footer else []
    # Every label and the footer survive; only field values give up room.
    skeleton = [f"**{EMBED_TITLE}**", *(f"**{label}:** " for label, _ in fields), *tail]
    budget = CONTENT_MAX - len("\n".join(skeleton))
    values = _fit_values([value for _, value in fields], budget)
    lines = [f"**{EMBED_TITLE}**"]
    lines.extend(f"**{label}:** {value}" for (label, _), value in zip(fields, values))
    lines.extend(tail)
    return {"username": cfg.username, "content": "\n".join(lines)}


def build_notification(cfg: RelayConfig, loan: LoanRequest, user: Optional[SessionUser], *, now: Optional[datetime] = None) -> Dict[str, Any]:
    if cfg.message_format == "text":
        return build_text_payload(cfg, loan, user)
    return build_embed_payload(cfg, loan, user, now=now or datetime.now(timezone.utc))


class LoanRelay:
    """Posts one notification per accepted loan request. Single attempt, no queue."""

    def __init__(self, cfg: RelayConfig) -> None:
        self.cfg = cfg

    def check_amount(self, loan: LoanRequest) -> None:
        ceiling = self.cfg.amount_ceiling
        if ceiling is not None and loan.amount > ceiling:
            raise LoanAmountExceeded(f"Loan amount exceeds the maximum of {ceiling}")

    def submit(self, loan: LoanRequest, user: Optional[SessionUser] = None) -> None:
        self.check_amount(loan)
        if not self.cfg.webhook_url:
            raise WebhookMisconfigured("Webhook URL is not configured")

        payload = build_notification(self.cfg, loan, user)
        try:
            r = requests.post(self.cfg.webhook_url, json=payload, timeout=self.cfg.http_timeout_seconds)
        except requests.RequestException as e:
            logger.warning("Webhook delivery failed: %s", type(e).__name__)
            raise WebhookDeliveryFailure(str(e)) from e

        if not 200 <= r.status_code < 300:
            logger.warning("Webhook rejected notification (status=%d)", r.status_code)
            raise WebhookDeliveryFailure(f"Webhook returned status {r.status_code}", status=r.status_code)

        logger.info("Relayed loan request (user=%s)", user.id if user else "anonymous")
