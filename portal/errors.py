"""
Error taxonomy for the portal.

Auth-flow errors carry a coarse `error_code` that is safe to put in a redirect
query string (`/?error=<code>`). Detail stays in the server log.
"""

from __future__ import annotations

from typing import Optional


class PortalError(Exception):
    """Base class for all portal errors."""


# ---- Auth flow ----


class AuthFlowError(PortalError):
    error_code = "auth_failed"

    def __init__(self, message: str = "", *, status: Optional[int] = None) -> None:
        super().__init__(message or self.__class__.__name__)
        self.status = status


class MissingAuthorizationCode(AuthFlowError):
    error_code = "no_code"


class AuthConfigurationError(AuthFlowError):
    error_code = "server_config"


class TokenExchangeFailure(AuthFlowError):
    pass


class ProfileFetchFailure(AuthFlowError):
    pass


class MembershipCheckFailure(AuthFlowError):
    pass


class NotAMember(MembershipCheckFailure):
    error_code = "not_member"


class MembershipConfigurationError(MembershipCheckFailure):
    error_code = "server_config"


# ---- Relay ----


class RelayError(PortalError):
    pass


class WebhookMisconfigured(RelayError):
    pass


class WebhookDeliveryFailure(RelayError):
    def __init__(self, message: str = "", *, status: Optional[int] = None) -> None:
        super().__init__(message or "Webhook delivery failed")
        self.status = status


class LoanAmountExceeded(RelayError):
    pass


# ---- Session ----


class Unauthenticated(PortalError):
    """Raised when an endpoint needs a session and none is present."""
