"""Domain-level exceptions.

Services raise these errors to express business rule violations.
Callers (the HTTP/auth layer) catch them and map to appropriate responses.
"""


class DomainError(Exception):
    """Base class for all domain errors."""


class NotFoundError(DomainError):
    """Requested entity does not exist."""


class ValidationError(DomainError):
    """Input violates a business validation rule."""


class DuplicateError(ValidationError):
    """Entity with the same unique key already exists."""


class TokenError(DomainError):
    """Base class for password reset token failures."""


class TokenInvalid(TokenError):
    """No reset is pending or the presented token does not match."""


class TokenExpired(TokenError):
    """The presented token matched but its validity window has passed."""


class PersistenceError(DomainError):
    """The store is unavailable or rejected a write."""


class SynchronizationPartialFailure(DomainError):
    """User record was updated but some skill catalog entries failed to sync.

    The user update is committed; ``failed_skills`` lists the catalog entries
    that need reconciliation.
    """

    def __init__(self, user, failed_skills: list[str]):
        self.user = user
        self.failed_skills = failed_skills
        super().__init__(
            f"Failed to sync {len(failed_skills)} skill catalog entries: "
            + ", ".join(failed_skills)
        )
