from adapter.mongodb.connection import (
    DATABASE_NAME,
    OPERATION_TIMEOUT_SECONDS,
    SKILLS_COLLECTION_NAME,
    USERS_COLLECTION_NAME,
)

__all__ = [
    'DATABASE_NAME',
    'OPERATION_TIMEOUT_SECONDS',
    'SKILLS_COLLECTION_NAME',
    'USERS_COLLECTION_NAME',
]
