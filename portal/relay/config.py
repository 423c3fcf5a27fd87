from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Optional

MESSAGE_FORMATS = ("embed", "text")


def _env_decimal(name: str) -> Optional[Decimal]:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return None
    try:
        return Decimal(raw)
    except InvalidOperation:
        return None


@dataclass(frozen=True)
class RelayConfig:
    webhook_url: Optional[str]
    # Optional policy: submissions above this amount are rejected (None = no limit).
    amount_ceiling: Optional[Decimal] = None
    message_format: str = "embed"  # embed|text
    username: str = "Loan Requests"  # Display name of the webhook post
    http_timeout_seconds: float = 10.0


@lru_cache(maxsize=1)
def load_relay_config() -> RelayConfig:
    """
    Load webhook relay configuration from env.

    Recognized vars:
    - WEBHOOK_URL (or DISCORD_WEBHOOK_URL)
    - LOAN_AMOUNT_CEILING=50000
    - RELAY_MESSAGE_FORMAT=embed|text
    - RELAY_USERNAME="Loan Requests"
    - HTTP_TIMEOUT_SECONDS=10
    """
    webhook_url = (os.getenv("WEBHOOK_URL", "") or os.getenv("DISCORD_WEBHOOK_URL", "") or "").strip() or None
    fmt = (os.getenv("RELAY_MESSAGE_FORMAT", "") or "embed").strip().lower()
    if fmt not in MESSAGE_FORMATS:
        fmt = "embed"
    try:
        timeout = float((os.getenv("HTTP_TIMEOUT_SECONDS", "") or "10").strip())
    except ValueError:
        timeout = 10.0

    return RelayConfig(
        webhook_url=webhook_url,
        amount_ceiling=_env_decimal("LOAN_AMOUNT_CEILING"),
        message_format=fmt,
        username=(os.getenv("RELAY_USERNAME", "") or "Loan Requests").strip(),
        http_timeout_seconds=timeout,
    )
