"""In-memory implementation of UserRepository for testing."""

import copy
import threading
from datetime import datetime, timezone
from typing import Any

from domain.model.user import User
from port.user_repository import LOOKUP_FIELDS


class FakeUserRepository:
    def __init__(self):
        self.store: dict[str, User] = {}
        self._lock = threading.Lock()

    # ── write operations ─────────────────────────────────────

    def create(self, user: User) -> User | None:
        with self._lock:
            if any(u.email == user.email or u.username == user.username for u in self.store.values()):
                return None
            self.store[user.id] = copy.deepcopy(user)
        return copy.deepcopy(user)

    def save(self, user: User) -> bool:
        with self._lock:
            if user.id not in self.store:
                return False
            self.store[user.id] = copy.deepcopy(user)
        return True

    def update_fields(
        self,
        user_id: str,
        fields: dict[str, Any],
        unset: tuple[str, ...] = (),
        where: dict[str, Any] | None = None,
    ) -> User | None:
        with self._lock:
            user = self.store.get(user_id)
            if not user:
                return None
            if any(getattr(user, key) != value for key, value in (where or {}).items()):
                return None

            self._apply(user, fields)
            for key in unset:
                setattr(user, key, None)
            return copy.deepcopy(user)

    def update_fields_with_previous(self, user_id: str, fields: dict[str, Any]) -> tuple[User, User] | None:
        with self._lock:
            user = self.store.get(user_id)
            if not user:
                return None
            before = copy.deepcopy(user)
            self._apply(user, fields)
            return before, copy.deepcopy(user)

    @staticmethod
    def _apply(user: User, fields: dict[str, Any]) -> None:
        for key, value in fields.items():
            setattr(user, key, copy.deepcopy(value))
        user.updated_at = datetime.now(timezone.utc)

    # ── read operations ──────────────────────────────────────

    def get_by_id(self, user_id: str) -> User | None:
        with self._lock:
            user = self.store.get(user_id)
            return copy.deepcopy(user) if user else None

    def get_by_field(self, field: str, value: Any) -> User | None:
        if field not in LOOKUP_FIELDS:
            raise ValueError(f"Unsupported lookup field: {field}")
        with self._lock:
            for user in self.store.values():
                if getattr(user, field) == value:
                    return copy.deepcopy(user)
        return None

    def find_all(self) -> list[User]:
        with self._lock:
            return [copy.deepcopy(u) for u in self.store.values()]
