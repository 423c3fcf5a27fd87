"""
Guild membership policy.

One function decides what a membership-call result means, whichever check
method produced it:

- member        -> the call succeeded and references the target guild/user
- not_member    -> the provider says the user is not in the guild
- config_error  -> our credentials/scope/guild id are wrong (401/403, Unknown Guild)
- unknown       -> anything else (transport, 5xx, malformed payloads)
"""

from __future__ import annotations

from typing import Any, Literal

from portal.auth.config import MEMBERSHIP_BOT, MEMBERSHIP_SELF
from portal.auth.discord import UNKNOWN_GUILD, ProviderResult

MembershipOutcome = Literal["member", "not_member", "config_error", "unknown"]


def _guild_listed(guilds: Any, guild_id: str) -> bool:
    if not isinstance(guilds, list):
        return False
    return any(isinstance(g, dict) and str(g.get("id") or "") == guild_id for g in guilds)


def _member_matches(member: Any, user_id: str) -> bool:
    if not isinstance(member, dict):
        return False
    user = member.get("user")
    if isinstance(user, dict) and user.get("id") is not None:
        return str(user.get("id")) == user_id
    # The lookup path already names the user; a member object without `user` is still a hit.
    return True


def classify_membership(result: ProviderResult, *, method: str, guild_id: str, user_id: str) -> MembershipOutcome:
    if result.ok:
        if method == MEMBERSHIP_SELF:
            return "member" if _guild_listed(result.payload, guild_id) else "not_member"
        if method == MEMBERSHIP_BOT:
            return "member" if _member_matches(result.payload, user_id) else "unknown"
        return "unknown"

    err = result.error
    if err is None:
        return "unknown"
    if err.kind in ("unauthorized", "forbidden"):
        return "config_error"
    if err.kind == "not_found":
        if err.code == UNKNOWN_GUILD:
            return "config_error"
        if method == MEMBERSHIP_BOT:
            return "not_member"
    return "unknown"
