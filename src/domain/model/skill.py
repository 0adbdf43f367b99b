"""Skill catalog domain models."""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

_WHITESPACE = re.compile(r'\s+')


def normalize_skill_name(name: str) -> str:
    """Trim and collapse inner whitespace. Case is preserved."""
    return _WHITESPACE.sub(' ', name).strip()


def normalize_skill_names(names: list[str]) -> list[str]:
    """Normalize names, drop empties and exact duplicates (first one wins)."""
    result: list[str] = []
    seen: set[str] = set()
    for raw in names:
        name = normalize_skill_name(raw)
        if name and name not in seen:
            seen.add(name)
            result.append(name)
    return result


@dataclass
class SkillCatalogEntry:
    """Reverse index entry: a skill and the users willing to teach it.

    ``willing_teachers`` keeps insertion order and never holds duplicates.
    """
    skill_name: str
    willing_teachers: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @staticmethod
    def create(skill_name: str) -> 'SkillCatalogEntry':
        return SkillCatalogEntry(skill_name=skill_name)

    def add_teacher(self, user_id: str) -> bool:
        """Add a teacher. Return False if already present."""
        if user_id in self.willing_teachers:
            return False
        self.willing_teachers.append(user_id)
        return True

    def remove_teacher(self, user_id: str) -> bool:
        """Remove a teacher. Return False if absent."""
        if user_id not in self.willing_teachers:
            return False
        self.willing_teachers.remove(user_id)
        return True

    def has_teacher(self, user_id: str) -> bool:
        return user_id in self.willing_teachers


# ── Value Objects ────────────────────────────────────────


@dataclass(frozen=True)
class SkillSyncResult:
    """Outcome of one synchronization pass for a single user."""
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


@dataclass
class ReconciliationReport:
    """Catalog repairs made by a full reconciliation pass.

    ``added`` and ``removed`` hold (skill_name, user_id) pairs.
    """
    added: list[tuple[str, str]] = field(default_factory=list)
    removed: list[tuple[str, str]] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def changes(self) -> int:
        return len(self.added) + len(self.removed)
