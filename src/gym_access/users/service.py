from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..core.exceptions import NotFound
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)


class UserService:
    """Account administration used by staff and managers."""

    def __init__(self, users: UserRepository):
        self._users = users

    def get_user(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if user is None:
            raise NotFound("User not found")
        return user

    def set_membership(self, user_id: int, expires_at: Optional[datetime]) -> User:
        """Set (or clear, with ``None``) the date a member's access lapses."""
        user = self.get_user(user_id)
        self._users.set_membership(user.user_id, expires_at=expires_at)
        logger.info("membership user=%s expires=%s", user.user_id, expires_at.isoformat() if expires_at else None)
        return self.get_user(user.user_id)

    def set_active(self, user_id: int, is_active: bool) -> User:
        user = self.get_user(user_id)
        self._users.set_active(user.user_id, is_active=is_active)
        logger.info("account user=%s active=%s", user.user_id, is_active)
        return self.get_user(user.user_id)
