from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: a gym account (member, staff or manager).

    Plain data object; no database access here.
    """

    user_id: int
    name: str
    email: str
    password_hash: str
    role: Role
    is_active: bool = True
    membership_expires_at: Optional[datetime] = None

    def has_active_membership(self, now: datetime) -> bool:
        """Staff and managers always pass; members need an unexpired membership."""
        if self.role != Role.MEMBER:
            return True
        return self.membership_expires_at is not None and self.membership_expires_at > now

    def to_public(self) -> dict:
        return {
            "userId": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "isActive": self.is_active,
            "membershipExpiresAt": self.membership_expires_at.isoformat() if self.membership_expires_at else None,
        }
