"""MongoDB implementation of UserRepository."""

from dataclasses import asdict
from datetime import datetime, timezone
from logging import getLogger
from typing import Any

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from adapter.mongodb import USERS_COLLECTION_NAME
from domain.model.errors import PersistenceError
from domain.model.user import DEFAULT_DISPLAY_PICTURE, User
from port.user_repository import LOOKUP_FIELDS

logger = getLogger(__name__)

# Set once at creation, never rewritten by save()
_IMMUTABLE_FIELDS = ('id', 'created_at')


class MongoUserRepository:
    def __init__(self, db: Database):
        self.collection = db[USERS_COLLECTION_NAME]

    def ensure_indexes(self) -> bool:
        """Create indexes for users collection."""
        from adapter.mongodb.indexes import create_index_safe

        try:
            create_index_safe(self.collection, [('email', 1)], 'idx_users_email', unique=True)
            create_index_safe(self.collection, [('username', 1)], 'idx_users_username', unique=True)
            create_index_safe(
                self.collection, [('password_reset_token', 1)], 'idx_users_reset_token', sparse=True,
            )
            create_index_safe(self.collection, [('created_at', -1)], 'idx_users_created_at')
            return True
        except Exception as e:
            logger.error("Failed to create users indexes", extra={"error": str(e)})
            return False

    # ── mapping ──────────────────────────────────────────────

    def _to_domain(self, doc: dict) -> User:
        """Convert MongoDB document to User domain model."""
        return User(
            id=doc['_id'],
            username=doc['username'],
            email=doc['email'],
            created_at=doc['created_at'],
            updated_at=doc['updated_at'],
            password_hash=doc.get('password_hash'),
            name=doc.get('name'),
            bio=doc.get('bio'),
            display_picture=doc.get('display_picture', DEFAULT_DISPLAY_PICTURE),
            user_skills=doc.get('user_skills', []),
            skills_to_learn=doc.get('skills_to_learn', []),
            skills_to_teach=doc.get('skills_to_teach', []),
            teaching_rating=doc.get('teaching_rating', 0),
            number_of_ratings=doc.get('number_of_ratings', 0),
            requests_received=doc.get('requests_received', []),
            teaching_conversations=doc.get('teaching_conversations', []),
            learning_conversations=doc.get('learning_conversations', []),
            reviews=doc.get('reviews', []),
            password_changed_at=doc.get('password_changed_at'),
            password_reset_token=doc.get('password_reset_token'),
            password_reset_expires=doc.get('password_reset_expires'),
        )

    def _to_document(self, user: User) -> dict:
        doc = asdict(user)
        doc['_id'] = doc.pop('id')
        return doc

    # ── write operations ─────────────────────────────────────

    def create(self, user: User) -> User | None:
        """Insert a new user. Return None if username or email is taken."""
        try:
            self.collection.insert_one(self._to_document(user))
            logger.info("User created", extra={"userId": user.id, "email": user.email})
            return user
        except DuplicateKeyError:
            logger.warning("User creation failed: username or email already exists", extra={"email": user.email})
            return None
        except PyMongoError as e:
            logger.error("Failed to create user", extra={"email": user.email, "error": str(e)})
            raise PersistenceError("Failed to create user") from e

    def save(self, user: User) -> bool:
        """Persist all mutable fields. Return False if the user does not exist."""
        doc = self._to_document(user)
        doc.pop('_id')
        doc.pop('created_at')
        try:
            result = self.collection.update_one({'_id': user.id}, {'$set': doc})
        except PyMongoError as e:
            logger.error("Failed to save user", extra={"userId": user.id, "error": str(e)})
            raise PersistenceError("Failed to save user") from e

        if result.matched_count == 0:
            logger.warning("User not found for save", extra={"userId": user.id})
            return False
        logger.debug("User saved", extra={"userId": user.id})
        return True

    def update_fields(
        self,
        user_id: str,
        fields: dict[str, Any],
        unset: tuple[str, ...] = (),
        where: dict[str, Any] | None = None,
    ) -> User | None:
        """Apply a partial update and return the updated User.

        The ``where`` conditions are part of the query, so the update only
        lands if the stored document still matches them.
        """
        self._check_mutable([*fields, *unset])

        update: dict[str, Any] = {'$set': {**fields, 'updated_at': datetime.now(timezone.utc)}}
        if unset:
            update['$unset'] = {key: '' for key in unset}
        try:
            doc = self.collection.find_one_and_update(
                {'_id': user_id, **(where or {})},
                update,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error("Failed to update user", extra={"userId": user_id, "error": str(e)})
            raise PersistenceError("Failed to update user") from e

        if doc is None:
            logger.warning("User not found for update", extra={"userId": user_id, "conditions": sorted(where or {})})
            return None
        logger.debug("User updated", extra={"userId": user_id, "fields": sorted([*fields, *unset])})
        return self._to_domain(doc)

    def update_fields_with_previous(self, user_id: str, fields: dict[str, Any]) -> tuple[User, User] | None:
        """Apply a partial update and return the user as it was before and after it."""
        self._check_mutable(fields)

        changes = {**fields, 'updated_at': datetime.now(timezone.utc)}
        try:
            doc = self.collection.find_one_and_update(
                {'_id': user_id},
                {'$set': changes},
                return_document=ReturnDocument.BEFORE,
            )
        except PyMongoError as e:
            logger.error("Failed to update user", extra={"userId": user_id, "error": str(e)})
            raise PersistenceError("Failed to update user") from e

        if doc is None:
            logger.warning("User not found for update", extra={"userId": user_id})
            return None
        logger.debug("User updated", extra={"userId": user_id, "fields": sorted(fields)})
        return self._to_domain(doc), self._to_domain({**doc, **changes})

    @staticmethod
    def _check_mutable(keys) -> None:
        bad = [k for k in keys if k in _IMMUTABLE_FIELDS]
        if bad:
            raise ValueError(f"Cannot update immutable fields: {bad}")

    # ── read operations ──────────────────────────────────────

    def get_by_id(self, user_id: str) -> User | None:
        return self.get_by_field('id', user_id)

    def get_by_field(self, field: str, value: Any) -> User | None:
        """Find a user by one of LOOKUP_FIELDS. Return User or None if not found."""
        if field not in LOOKUP_FIELDS:
            raise ValueError(f"Unsupported lookup field: {field}")

        key = '_id' if field == 'id' else field
        try:
            doc = self.collection.find_one({key: value})
        except PyMongoError as e:
            logger.error("Failed to get user", extra={"field": field, "error": str(e)})
            raise PersistenceError("Failed to get user") from e
        return self._to_domain(doc) if doc else None

    def find_all(self) -> list[User]:
        try:
            return [self._to_domain(doc) for doc in self.collection.find({})]
        except PyMongoError as e:
            logger.error("Failed to list users", extra={"error": str(e)})
            raise PersistenceError("Failed to list users") from e
