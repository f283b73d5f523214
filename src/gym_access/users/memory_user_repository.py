from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional

from ..core.enums import Role
from ..core.exceptions import ValidationError
from .model import User
from .repository import UserRepository


class InMemoryUserRepository(UserRepository):
    """Process-local user store for the ``memory`` storage backend."""

    def __init__(self):
        self._lock = threading.Lock()
        self._by_id: Dict[int, User] = {}
        self._next_id = 1

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._by_id.get(int(user_id))

    def get_by_email(self, email: str) -> Optional[User]:
        email = email.strip().lower()
        return next((u for u in self._by_id.values() if u.email == email), None)

    def create_user(self, *, name: str, email: str, password_hash: str, role: Role) -> int:
        email = email.strip().lower()
        with self._lock:
            if any(u.email == email for u in self._by_id.values()):
                raise ValidationError("Email is already registered")
            user_id = self._next_id
            self._next_id += 1
            self._by_id[user_id] = User(
                user_id=user_id, name=name, email=email, password_hash=password_hash, role=role
            )
            return user_id

    def set_active(self, user_id: int, *, is_active: bool) -> None:
        self._update(user_id, is_active=is_active)

    def set_membership(self, user_id: int, *, expires_at: Optional[datetime]) -> None:
        self._update(user_id, membership_expires_at=expires_at)

    def _update(self, user_id: int, **changes) -> None:
        with self._lock:
            user = self._by_id.get(int(user_id))
            if user is not None:
                self._by_id[user.user_id] = replace(user, **changes)
