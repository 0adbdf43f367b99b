"""Credential service: password lifecycle and auth-facing operations.

Pure business logic with no HTTP dependencies. Session/JWT handling is the
caller's concern; this module only answers whether a token issued at a given
time predates the last password change.

Raises domain errors that the auth layer maps to responses.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timezone

import bcrypt
from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from domain.model.errors import (
    DuplicateError,
    NotFoundError,
    PersistenceError,
    TokenExpired,
    TokenInvalid,
    ValidationError,
)
from domain.model.user import User
from port.user_repository import UserRepository

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 12
MIN_PASSWORD_LENGTH = 8
# bcrypt only reads the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72
MAX_USERNAME_LENGTH = 50
RESET_TOKEN_BYTES = 32
RESET_FIELDS = ('password_reset_token', 'password_reset_expires')

_email_adapter = TypeAdapter(EmailStr)


# ── primitives ───────────────────────────────────────────────


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(candidate: str, stored_hash: str) -> bool:
    """Check a plaintext password against a bcrypt hash.

    bcrypt.checkpw compares in constant time. A wrong password returns False,
    including one longer than any password set_password accepts; a malformed
    hash raises ValueError.
    """
    encoded = candidate.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(encoded, stored_hash.encode("utf-8"))


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


# ── validation ───────────────────────────────────────────────


def _validate_password(password: str, confirm: str | None = None) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    if confirm is not None and confirm != password:
        raise ValidationError("Passwords do not match")


def _normalize_email(email: str) -> str:
    email = email.strip().lower()
    try:
        _email_adapter.validate_python(email)
    except PydanticValidationError:
        raise ValidationError("Please provide a valid email") from None
    return email


def _normalize_username(username: str) -> str:
    username = username.strip()
    if not username:
        raise ValidationError("Please set a username")
    if len(username) > MAX_USERNAME_LENGTH:
        raise ValidationError(f"Username must be at most {MAX_USERNAME_LENGTH} characters")
    return username


# ── credential lifecycle ─────────────────────────────────────


def set_password(user: User, password: str, confirm: str | None = None, now: datetime | None = None) -> bool:
    """Hash and store a new password on ``user`` (in memory).

    The confirmation is only compared, never stored. If ``password`` already
    matches the stored hash nothing changes and False is returned, so
    ``password_changed_at`` only moves on a real change.

    Raises:
        ValidationError: password too short or confirmation mismatch
    """
    _validate_password(password, confirm)

    if user.password_hash and verify_password(password, user.password_hash):
        logger.debug("Password unchanged, skipping rehash", extra={"userId": user.id})
        return False

    user.apply_password_hash(hash_password(password), now)
    return True


def issue_password_reset_token(user: User, now: datetime | None = None) -> str:
    """Generate a reset token, store its SHA-256 on ``user`` and return the plaintext."""
    token = secrets.token_hex(RESET_TOKEN_BYTES)
    user.start_password_reset(hash_reset_token(token), now)
    return token


def consume_reset_token(user: User, token: str, now: datetime | None = None) -> None:
    """Validate ``token`` against ``user`` and clear the pending reset.

    Raises:
        TokenInvalid: nothing pending or the token does not match
        TokenExpired: the token matched after its window closed
    """
    user.consume_reset_token(hash_reset_token(token), now)


def was_password_changed_after(user: User, issued_at: datetime | int | float) -> bool:
    return user.changed_password_after(issued_at)


# ── auth-facing operations ───────────────────────────────────


def register(
    repo: UserRepository,
    username: str,
    email: str,
    password: str,
    confirm: str | None = None,
    name: str | None = None,
) -> User:
    """Register a new user.

    All validation runs before hashing or touching the store.

    Raises:
        ValidationError: bad username, email or password
        DuplicateError: username or email already registered
        PersistenceError: store unavailable
    """
    username = _normalize_username(username)
    email = _normalize_email(email)
    _validate_password(password, confirm)

    if repo.get_by_field('email', email):
        raise DuplicateError("Email already registered")
    if repo.get_by_field('username', username):
        raise DuplicateError("This username is already taken")

    user = repo.create(User.create(username=username, email=email, password_hash=hash_password(password), name=name))
    if not user:
        raise DuplicateError("Username or email already registered")

    logger.info("User registered", extra={"userId": user.id})
    return user


def authenticate(repo: UserRepository, email: str, password: str) -> User:
    """Authenticate a user by email and password.

    Doesn't reveal whether the email exists.

    Raises:
        ValidationError: invalid credentials (deliberately vague)
    """
    user = repo.get_by_field('email', email.strip().lower())
    if not user or not user.password_hash or not verify_password(password, user.password_hash):
        raise ValidationError("Invalid email or password")
    return user


def login(repo: UserRepository, email: str, password: str) -> bool:
    try:
        authenticate(repo, email, password)
    except ValidationError:
        return False
    return True


def request_password_reset(repo: UserRepository, email: str) -> str:
    """Issue a reset token for the account with ``email``.

    Only the two reset fields are written. Returns the plaintext token;
    delivering it is the caller's job.

    Raises:
        NotFoundError: no account with that email
        PersistenceError: token could not be stored
    """
    user = repo.get_by_field('email', email.strip().lower())
    if not user:
        raise NotFoundError("There is no user with that email address")

    token = issue_password_reset_token(user)
    stored = repo.update_fields(user.id, {
        'password_reset_token': user.password_reset_token,
        'password_reset_expires': user.password_reset_expires,
    })
    if not stored:
        raise PersistenceError("Failed to store password reset token")

    logger.info("Password reset requested", extra={"userId": user.id})
    return token


def _discard_expired_token(repo: UserRepository, user_id: str, token_hash: str) -> None:
    try:
        cleared = repo.update_fields(user_id, {}, unset=RESET_FIELDS, where={'password_reset_token': token_hash})
    except PersistenceError as e:
        logger.warning("Failed to clear expired password reset token", extra={"userId": user_id, "error": str(e)})
        return

    if cleared:
        logger.info("Expired password reset token cleared", extra={"userId": user_id})
    else:
        logger.debug("Expired password reset token already cleared", extra={"userId": user_id})


def reset_password(repo: UserRepository, token: str, password: str, confirm: str | None = None) -> User:
    """Set a new password using a reset token.

    The new hash is committed in a single write that also unsets the reset
    fields and only matches while the token is still pending. A concurrent
    reset with the same token therefore finds nothing to update, and other
    fields of the record are left as they are.

    Raises:
        ValidationError: new password rejected (token left untouched)
        TokenInvalid: unknown or already used token
        TokenExpired: token window has passed (the stale token is cleared
            on a best-effort basis)
        PersistenceError: store unavailable
    """
    _validate_password(password, confirm)

    token_hash = hash_reset_token(token)
    user = repo.get_by_field('password_reset_token', token_hash)
    if user is None:
        raise TokenInvalid("Password reset token is invalid")

    now = datetime.now(timezone.utc)
    try:
        consume_reset_token(user, token, now)
    except TokenExpired:
        _discard_expired_token(repo, user.id, token_hash)
        raise

    fields = {}
    if set_password(user, password, now=now):
        fields = {'password_hash': user.password_hash, 'password_changed_at': user.password_changed_at}

    updated = repo.update_fields(user.id, fields, unset=RESET_FIELDS, where={'password_reset_token': token_hash})
    if updated is None:
        # Consumed by a concurrent reset between the lookup and this write
        raise TokenInvalid("Password reset token is invalid")

    logger.info("Password reset completed", extra={"userId": user.id})
    return updated


def change_password(
    repo: UserRepository,
    user_id: str,
    current_password: str,
    password: str,
    confirm: str | None = None,
) -> User:
    """Change the password of a logged-in user.

    The write is conditional on the stored hash still being the one the
    current password was checked against.

    Raises:
        NotFoundError: unknown user
        ValidationError: wrong current password or new password rejected
        PersistenceError: store unavailable
    """
    user = repo.get_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    if not user.password_hash or not verify_password(current_password, user.password_hash):
        raise ValidationError("Your current password is wrong")

    checked_hash = user.password_hash
    if not set_password(user, password, confirm):
        return user

    updated = repo.update_fields(
        user.id,
        {'password_hash': user.password_hash, 'password_changed_at': user.password_changed_at},
        where={'password_hash': checked_hash},
    )
    if updated is None:
        raise ValidationError("Your current password is wrong")

    logger.info("Password changed", extra={"userId": user.id})
    return updated


def token_still_valid(user: User, token_issued_at: datetime | int | float) -> bool:
    """False if the password changed after the session token was issued."""
    return not was_password_changed_after(user, token_issued_at)
