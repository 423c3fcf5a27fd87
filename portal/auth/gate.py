from __future__ import annotations

import logging
from typing import Optional

from portal.auth import discord
from portal.auth.config import MEMBERSHIP_BOT, AuthConfig
from portal.auth.discord import ProviderResult
from portal.auth.membership import classify_membership
from portal.auth.models import SessionUser
from portal.errors import (
    AuthConfigurationError,
    MembershipCheckFailure,
    MembershipConfigurationError,
    MissingAuthorizationCode,
    NotAMember,
    ProfileFetchFailure,
    TokenExchangeFailure,
)

logger = logging.getLogger(__name__)


class AuthGate:
    """
    Discord code -> token -> profile -> guild membership, strictly in that order.

    `complete_login` either returns a verified SessionUser or raises an
    AuthFlowError whose `error_code` is the redirect tag. Nothing is retried.
    """

    def __init__(self, cfg: AuthConfig) -> None:
        self.cfg = cfg

    def check_configured(self) -> None:
        cfg = self.cfg
        if not cfg.oauth_configured:
            raise AuthConfigurationError("Discord client ID/secret not configured")
        if not cfg.gate_configured:
            raise AuthConfigurationError("Guild id (or bot token for member lookup) not configured")
        if not cfg.session_secret:
            raise AuthConfigurationError("Session signing is not configured (SESSION_SECRET)")

    def complete_login(self, code: Optional[str]) -> SessionUser:
        code = (code or "").strip()
        if not code:
            raise MissingAuthorizationCode("No authorization code in callback")
        self.check_configured()

        token = discord.exchange_code(self.cfg, code)
        if not token.ok:
            status = token.error.status if token.error else None
            # 401 on the token endpoint is `invalid_client`: our credentials, not the user's code.
            if status == 401:
                raise AuthConfigurationError("Token exchange rejected client credentials", status=status)
            raise TokenExchangeFailure(_describe(token), status=status)
        access_token = str(token.payload["access_token"])

        profile = discord.fetch_profile(self.cfg, access_token)
        if not profile.ok:
            raise ProfileFetchFailure(_describe(profile), status=profile.error.status if profile.error else None)
        fields = discord.profile_fields(profile.payload)

        if self.cfg.membership_check == MEMBERSHIP_BOT:
            membership = discord.fetch_guild_member(self.cfg, fields["id"] or "")
        else:
            membership = discord.fetch_user_guilds(self.cfg, access_token)

        outcome = classify_membership(
            membership,
            method=self.cfg.membership_check,
            guild_id=self.cfg.guild_id or "",
            user_id=fields["id"] or "",
        )
        status = membership.error.status if membership.error else None
        if outcome == "not_member":
            raise NotAMember(f"User {fields['id']} is not in guild {self.cfg.guild_id}", status=status)
        if outcome == "config_error":
            raise MembershipConfigurationError(_describe(membership), status=status)
        if outcome != "member":
            raise MembershipCheckFailure(_describe(membership), status=status)

        logger.info("Guild membership confirmed for user %s", fields["id"])
        return SessionUser(
            id=fields["id"] or "",
            username=fields["username"] or "",
            avatar=fields["avatar"],
            discriminator=fields["discriminator"],
            is_member=True,
        )


def _describe(res: ProviderResult) -> str:
    err = res.error
    if err is None:
        return "unexpected response"
    return f"{err.kind} (status={err.status}, code={err.code}) {err.message}".strip()
