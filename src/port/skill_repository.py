"""Port definition for SkillRepository."""

from typing import Protocol

from domain.model.skill import SkillCatalogEntry


class SkillRepository(Protocol):
    """Skill catalog access.

    add_teacher/remove_teacher must be atomic set operations so that
    concurrent writers on the same skill never lose or duplicate teachers.
    """
    def get_by_name(self, skill_name: str) -> SkillCatalogEntry | None: ...

    def create(self, skill_name: str) -> SkillCatalogEntry:
        """Create an empty entry, or return the existing one."""
        ...

    def save(self, entry: SkillCatalogEntry) -> bool: ...

    def add_teacher(self, skill_name: str, user_id: str) -> bool:
        """Add user_id to the entry's teacher set, creating the entry if needed."""
        ...

    def remove_teacher(self, skill_name: str, user_id: str) -> bool:
        """Remove user_id from the entry. Return False if the entry is absent."""
        ...

    def find_all(self) -> list[SkillCatalogEntry]: ...
