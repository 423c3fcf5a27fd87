from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class SessionUser:
    """Discord user that passed the guild gate."""

    id: str
    username: str
    avatar: Optional[str] = None
    discriminator: Optional[str] = None
    is_member: bool = False

    def to_public_dict(self) -> Dict[str, Any]:
        # Field names match what the front-end reads from /api/me.
        return {
            "id": self.id,
            "username": self.username,
            "avatar": self.avatar,
            "discriminator": self.discriminator,
            "isMember": self.is_member,
        }

    def to_claims(self) -> Dict[str, Any]:
        """Compact cookie claims: Discord snowflake under `sub`, unset profile fields omitted."""
        claims: Dict[str, Any] = {"sub": self.id, "name": self.username, "member": self.is_member}
        if self.avatar:
            claims["avatar"] = self.avatar
        if self.discriminator:
            claims["disc"] = self.discriminator
        return claims

    @classmethod
    def from_claims(cls, claims: Any) -> Optional["SessionUser"]:
        if not isinstance(claims, dict):
            return None
        user_id = str(claims.get("sub") or "").strip()
        if not user_id.isdigit():
            return None
        avatar = claims.get("avatar")
        disc = claims.get("disc")
        return cls(
            id=user_id,
            username=str(claims.get("name") or ""),
            avatar=str(avatar) if avatar else None,
            discriminator=str(disc) if disc else None,
            is_member=claims.get("member") is True,
        )
