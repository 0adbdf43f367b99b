"""MongoDB implementation of SkillRepository.

Teacher sets are maintained with $addToSet/$pull so concurrent writers on
the same skill never overwrite each other. Two first-time upserts of the
same skill can race on the unique skill_name index; the loser gets a
DuplicateKeyError and is retried, at which point the entry exists.
"""

from datetime import datetime, timezone
from logging import getLogger

import pymongo
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from adapter.mongodb import OPERATION_TIMEOUT_SECONDS, SKILLS_COLLECTION_NAME
from domain.model.errors import PersistenceError
from domain.model.skill import SkillCatalogEntry

logger = getLogger(__name__)


class MongoSkillRepository:
    def __init__(self, db: Database, operation_timeout: float = OPERATION_TIMEOUT_SECONDS):
        self.collection = db[SKILLS_COLLECTION_NAME]
        self.operation_timeout = operation_timeout

    # ── indexes ──────────────────────────────────────────────

    def ensure_indexes(self) -> bool:
        """Create indexes for skills collection."""
        from adapter.mongodb.indexes import create_index_safe

        try:
            create_index_safe(self.collection, [('skill_name', 1)], 'idx_skills_name', unique=True)
            return True
        except Exception as e:
            logger.error("Failed to create skills indexes", extra={"error": str(e)})
            return False

    # ── helpers ──────────────────────────────────────────────

    def _to_domain(self, doc: dict) -> SkillCatalogEntry:
        # Older entries may carry duplicates from naive appends
        teachers = list(dict.fromkeys(doc.get('willing_teachers', [])))
        return SkillCatalogEntry(
            skill_name=doc['skill_name'],
            willing_teachers=teachers,
            created_at=doc.get('created_at') or datetime.now(timezone.utc),
        )

    @retry(
        retry=retry_if_exception_type(DuplicateKeyError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
        reraise=True,
    )
    def _upsert(self, skill_name: str, update: dict):
        update.setdefault('$setOnInsert', {}).setdefault('created_at', datetime.now(timezone.utc))
        with pymongo.timeout(self.operation_timeout):
            return self.collection.update_one({'skill_name': skill_name}, update, upsert=True)

    # ── write operations ─────────────────────────────────────

    def create(self, skill_name: str) -> SkillCatalogEntry:
        """Create an empty entry, or return the existing one."""
        try:
            result = self._upsert(skill_name, {'$setOnInsert': {'willing_teachers': []}})
            doc = self.collection.find_one({'skill_name': skill_name})
        except PyMongoError as e:
            logger.error("Failed to create skill", extra={"skillName": skill_name, "error": str(e)})
            raise PersistenceError(f"Failed to create skill '{skill_name}'") from e

        if result.upserted_id is not None:
            logger.info("Skill catalog entry created", extra={"skillName": skill_name})
        if doc is None:
            raise PersistenceError(f"Skill '{skill_name}' vanished after create")
        return self._to_domain(doc)

    def save(self, entry: SkillCatalogEntry) -> bool:
        """Replace the teacher set of an entry (upsert)."""
        teachers = list(dict.fromkeys(entry.willing_teachers))
        try:
            self._upsert(entry.skill_name, {
                '$set': {'willing_teachers': teachers},
                '$setOnInsert': {'created_at': entry.created_at},
            })
        except PyMongoError as e:
            logger.error("Failed to save skill", extra={"skillName": entry.skill_name, "error": str(e)})
            raise PersistenceError(f"Failed to save skill '{entry.skill_name}'") from e

        logger.debug("Skill saved", extra={"skillName": entry.skill_name})
        return True

    def add_teacher(self, skill_name: str, user_id: str) -> bool:
        try:
            self._upsert(skill_name, {'$addToSet': {'willing_teachers': user_id}})
        except PyMongoError as e:
            logger.error("Failed to add teacher", extra={
                "skillName": skill_name, "userId": user_id, "error": str(e),
            })
            raise PersistenceError(f"Failed to add teacher to '{skill_name}'") from e

        logger.debug("Teacher added", extra={"skillName": skill_name, "userId": user_id})
        return True

    def remove_teacher(self, skill_name: str, user_id: str) -> bool:
        try:
            with pymongo.timeout(self.operation_timeout):
                result = self.collection.update_one(
                    {'skill_name': skill_name},
                    {'$pull': {'willing_teachers': user_id}},
                )
        except PyMongoError as e:
            logger.error("Failed to remove teacher", extra={
                "skillName": skill_name, "userId": user_id, "error": str(e),
            })
            raise PersistenceError(f"Failed to remove teacher from '{skill_name}'") from e

        if result.matched_count == 0:
            return False
        logger.debug("Teacher removed", extra={"skillName": skill_name, "userId": user_id})
        return True

    # ── read operations ──────────────────────────────────────

    def get_by_name(self, skill_name: str) -> SkillCatalogEntry | None:
        try:
            doc = self.collection.find_one({'skill_name': skill_name})
        except PyMongoError as e:
            logger.error("Failed to get skill", extra={"skillName": skill_name, "error": str(e)})
            raise PersistenceError(f"Failed to get skill '{skill_name}'") from e
        return self._to_domain(doc) if doc else None

    def find_all(self) -> list[SkillCatalogEntry]:
        try:
            return [self._to_domain(doc) for doc in self.collection.find({})]
        except PyMongoError as e:
            logger.error("Failed to list skills", extra={"error": str(e)})
            raise PersistenceError("Failed to list skills") from e
