"""User domain model and credential state transitions."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from domain.model.errors import TokenExpired, TokenInvalid

DEFAULT_DISPLAY_PICTURE = '/img/users/default-user.jpeg'
PASSWORD_RESET_TTL = timedelta(minutes=10)


@dataclass
class User:
    """Domain model representing a user."""
    id: str
    username: str
    email: str
    created_at: datetime
    updated_at: datetime
    password_hash: str | None = None

    # ── profile ───────────────────────────────────────────
    name: str | None = None
    bio: str | None = None
    display_picture: str = DEFAULT_DISPLAY_PICTURE
    user_skills: list[str] = field(default_factory=list)
    skills_to_learn: list[str] = field(default_factory=list)
    skills_to_teach: list[str] = field(default_factory=list)
    teaching_rating: float = 0
    number_of_ratings: int = 0

    # Opaque ids into other collections; never mutated here.
    requests_received: list[str] = field(default_factory=list)
    teaching_conversations: list[str] = field(default_factory=list)
    learning_conversations: list[str] = field(default_factory=list)
    reviews: list[str] = field(default_factory=list)

    # ── credential lifecycle ──────────────────────────────
    password_changed_at: datetime | None = None
    password_reset_token: str | None = None
    password_reset_expires: datetime | None = None

    # ── factory ───────────────────────────────────────────

    @staticmethod
    def create(username: str, email: str, password_hash: str, name: str | None = None) -> 'User':
        """Create a new User with a generated id.

        Creation is not a password change: ``password_changed_at`` stays unset.
        """
        now = datetime.now(timezone.utc)
        return User(
            id=uuid.uuid4().hex,
            username=username,
            email=email,
            created_at=now,
            updated_at=now,
            password_hash=password_hash,
            name=name,
        )

    # ── queries ───────────────────────────────────────────

    @property
    def has_pending_reset(self) -> bool:
        return self.password_reset_token is not None

    def changed_password_after(self, issued_at: datetime | int | float) -> bool:
        """True if the password changed after ``issued_at``.

        ``issued_at`` is a datetime or epoch seconds (a JWT ``iat`` claim).
        Compared at whole-second resolution.
        """
        if self.password_changed_at is None:
            return False

        changed_ts = int(self.password_changed_at.timestamp())
        if isinstance(issued_at, datetime):
            issued_ts = int(issued_at.timestamp())
        else:
            issued_ts = int(issued_at)
        return issued_ts < changed_ts

    # ── state transitions ─────────────────────────────────

    def apply_password_hash(self, password_hash: str, now: datetime | None = None) -> None:
        """Store a freshly computed hash and stamp the change time."""
        now = now or datetime.now(timezone.utc)
        self.password_hash = password_hash
        self.password_changed_at = now
        self.updated_at = now

    def start_password_reset(self, token_hash: str, now: datetime | None = None) -> None:
        """Record a hashed reset token valid for PASSWORD_RESET_TTL."""
        now = now or datetime.now(timezone.utc)
        self.password_reset_token = token_hash
        self.password_reset_expires = now + PASSWORD_RESET_TTL
        self.updated_at = now

    def consume_reset_token(self, token_hash: str, now: datetime | None = None) -> None:
        """Validate and consume a pending reset token.

        Raises:
            TokenInvalid: no reset pending or hash mismatch
            TokenExpired: hash matched but the window has passed
        """
        now = now or datetime.now(timezone.utc)
        if not self.has_pending_reset or self.password_reset_token != token_hash:
            raise TokenInvalid("Password reset token is invalid")
        if self.password_reset_expires is None or self.password_reset_expires <= now:
            raise TokenExpired("Password reset token has expired")
        self.clear_password_reset()

    def clear_password_reset(self) -> None:
        self.password_reset_token = None
        self.password_reset_expires = None
