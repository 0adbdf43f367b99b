from typing import Any, Protocol
from domain.model.user import User

# Fields that identify a single user and may be used with get_by_field().
LOOKUP_FIELDS = ('id', 'username', 'email', 'password_reset_token')


class UserRepository(Protocol):
    """Protocol defining the interface for user data access.

    Implementations raise PersistenceError when the store fails;
    a missing record is reported as None or False.
    """
    def create(self, user: User) -> User | None:
        """Insert a new user. Return None if username or email is taken."""
        ...

    def get_by_id(self, user_id: str) -> User | None:
        """Find a user by ID. Return User or None if not found."""
        ...

    def get_by_field(self, field: str, value: Any) -> User | None:
        """Find a user by one of LOOKUP_FIELDS. Return User or None."""
        ...

    def save(self, user: User) -> bool:
        """Persist all mutable fields of an existing user. Return True if found."""
        ...

    def update_fields(
        self,
        user_id: str,
        fields: dict[str, Any],
        unset: tuple[str, ...] = (),
        where: dict[str, Any] | None = None,
    ) -> User | None:
        """Atomically set ``fields`` and clear ``unset`` on one user.

        ``where`` adds equality conditions the stored record must still meet.
        Return the updated User, or None if no record matched.
        """
        ...

    def update_fields_with_previous(self, user_id: str, fields: dict[str, Any]) -> tuple[User, User] | None:
        """Atomically set ``fields`` and return (before, after), or None if not found."""
        ...

    def find_all(self) -> list[User]:
        """Return every user."""
        ...
