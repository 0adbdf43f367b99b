"""In-memory implementation of SkillRepository for testing."""

import copy
import threading

from domain.model.skill import SkillCatalogEntry


class FakeSkillRepository:
    def __init__(self):
        self.store: dict[str, SkillCatalogEntry] = {}
        self._lock = threading.Lock()

    # ── write operations ─────────────────────────────────────

    def create(self, skill_name: str) -> SkillCatalogEntry:
        with self._lock:
            entry = self.store.setdefault(skill_name, SkillCatalogEntry.create(skill_name))
            return copy.deepcopy(entry)

    def save(self, entry: SkillCatalogEntry) -> bool:
        with self._lock:
            self.store[entry.skill_name] = copy.deepcopy(entry)
        return True

    def add_teacher(self, skill_name: str, user_id: str) -> bool:
        with self._lock:
            entry = self.store.setdefault(skill_name, SkillCatalogEntry.create(skill_name))
            entry.add_teacher(user_id)
        return True

    def remove_teacher(self, skill_name: str, user_id: str) -> bool:
        with self._lock:
            entry = self.store.get(skill_name)
            if not entry:
                return False
            entry.remove_teacher(user_id)
        return True

    # ── read operations ──────────────────────────────────────

    def get_by_name(self, skill_name: str) -> SkillCatalogEntry | None:
        with self._lock:
            entry = self.store.get(skill_name)
            return copy.deepcopy(entry) if entry else None

    def find_all(self) -> list[SkillCatalogEntry]:
        with self._lock:
            return [copy.deepcopy(e) for e in self.store.values()]
