"""Skill catalog service: keeps the skill → teachers index in step with users.

Update flow: persist user → add to each listed skill → remove from dropped skills

The user update and the catalog writes are not transactional. Catalog
failures are collected and raised as SynchronizationPartialFailure after the
user update has committed; reconcile_catalog() repairs any drift.
"""

import logging
import os
import time
from typing import Any

from domain.model.errors import (
    DomainError,
    NotFoundError,
    PersistenceError,
    SynchronizationPartialFailure,
    ValidationError,
)
from domain.model.skill import ReconciliationReport, SkillSyncResult, normalize_skill_names
from domain.model.user import User
from port.skill_repository import SkillRepository
from port.user_repository import UserRepository

logger = logging.getLogger(__name__)

SKILL_SYNC_TIMEOUT_SECONDS = float(os.getenv('SKILL_SYNC_TIMEOUT_SECONDS', '10'))

PROFILE_FIELDS = frozenset({
    'name', 'bio', 'display_picture',
    'skills_to_learn', 'user_skills', 'skills_to_teach',
})
_SKILL_LIST_FIELDS = ('skills_to_learn', 'user_skills', 'skills_to_teach')


def sync_teacher_skills(
    skill_repo: SkillRepository,
    user_id: str,
    skills: list[str],
    previous: list[str] | None = None,
    timeout: float | None = None,
) -> SkillSyncResult:
    """Make ``user_id`` a teacher of every skill in ``skills``.

    For each skill: look up the catalog entry, create it if missing, then add
    the user to its teacher set. Skills in ``previous`` but not in ``skills``
    get the user removed. Skills not reached before ``timeout`` seconds are
    reported as failed; nothing raises here.
    """
    timeout = SKILL_SYNC_TIMEOUT_SECONDS if timeout is None else timeout
    deadline = time.monotonic() + timeout

    skills = normalize_skill_names(skills)
    dropped = [s for s in normalize_skill_names(previous or []) if s not in skills]

    added: list[str] = []
    removed: list[str] = []
    failed: list[str] = []

    for skill_name in skills:
        if time.monotonic() > deadline:
            failed.append(skill_name)
            continue
        try:
            if skill_repo.get_by_name(skill_name) is None:
                skill_repo.create(skill_name)
            skill_repo.add_teacher(skill_name, user_id)
            added.append(skill_name)
        except DomainError as e:
            logger.warning("Skill sync failed", extra={"userId": user_id, "skillName": skill_name, "error": str(e)})
            failed.append(skill_name)

    for skill_name in dropped:
        if time.monotonic() > deadline:
            failed.append(skill_name)
            continue
        try:
            if skill_repo.remove_teacher(skill_name, user_id):
                removed.append(skill_name)
        except DomainError as e:
            logger.warning("Skill unsync failed", extra={"userId": user_id, "skillName": skill_name, "error": str(e)})
            failed.append(skill_name)

    if failed:
        logger.error("Skill sync incomplete", extra={"userId": user_id, "failed": failed})
    else:
        logger.debug("Skill sync complete", extra={"userId": user_id, "added": added, "removed": removed})

    return SkillSyncResult(added=added, removed=removed, failed=failed)


def update_profile(
    user_repo: UserRepository,
    skill_repo: SkillRepository,
    user_id: str,
    changes: dict[str, Any],
    timeout: float | None = None,
) -> User:
    """Apply a partial profile update.

    Only a payload carrying ``skills_to_teach`` triggers catalog sync. The
    previous list comes back from the same atomic write that stores the new one.

    Raises:
        ValidationError: unknown or badly typed field
        NotFoundError: unknown user
        SynchronizationPartialFailure: user updated, some catalog entries not
        PersistenceError: store unavailable
    """
    unknown = sorted(set(changes) - PROFILE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be updated here: {', '.join(unknown)}")

    fields = dict(changes)
    for key in _SKILL_LIST_FIELDS:
        if key in fields:
            value = fields[key]
            if not isinstance(value, list) or not all(isinstance(s, str) for s in value):
                raise ValidationError(f"{key} must be a list of skill names")
            fields[key] = normalize_skill_names(value)

    if 'skills_to_teach' not in fields:
        user = user_repo.update_fields(user_id, fields)
        if not user:
            raise NotFoundError("User not found")
        logger.info("Profile updated", extra={"userId": user_id, "fields": sorted(fields)})
        return user

    swapped = user_repo.update_fields_with_previous(user_id, fields)
    if not swapped:
        raise NotFoundError("User not found")
    before, user = swapped

    logger.info("Profile updated", extra={"userId": user_id, "fields": sorted(fields)})

    result = sync_teacher_skills(skill_repo, user_id, user.skills_to_teach, before.skills_to_teach, timeout)
    result = _converge_with_stored(user_repo, skill_repo, user, before.skills_to_teach, result, timeout)
    if not result.ok:
        raise SynchronizationPartialFailure(user, result.failed)

    return user


def _converge_with_stored(
    user_repo: UserRepository,
    skill_repo: SkillRepository,
    user: User,
    previous: list[str],
    result: SkillSyncResult,
    timeout: float | None,
) -> SkillSyncResult:
    """Re-sync against the stored list if another update replaced ours meanwhile.

    Catalog writes from two overlapping updates can land in either order. The
    update that sees a different stored list re-applies it, so the entries
    touched by either update end up matching whatever list was written last.
    """
    stored = user_repo.get_by_id(user.id)
    if stored is None or stored.skills_to_teach == user.skills_to_teach:
        return result

    logger.info("Skills changed during sync, converging", extra={"userId": user.id})
    touched = normalize_skill_names(user.skills_to_teach + previous)
    return sync_teacher_skills(skill_repo, user.id, stored.skills_to_teach, touched, timeout)


def update_teachable_skills(
    user_repo: UserRepository,
    skill_repo: SkillRepository,
    user_id: str,
    skills: list[str],
    timeout: float | None = None,
) -> User:
    """Replace a user's skills_to_teach and sync the catalog."""
    return update_profile(user_repo, skill_repo, user_id, {'skills_to_teach': skills}, timeout)


def reconcile_catalog(user_repo: UserRepository, skill_repo: SkillRepository) -> ReconciliationReport:
    """Bring the whole catalog in line with every user's skills_to_teach.

    Adds missing teachers (creating entries as needed) and removes teachers
    who no longer list the skill or no longer exist. Entries are never deleted.
    """
    report = ReconciliationReport()

    wanted: dict[str, set[str]] = {}
    for user in user_repo.find_all():
        for skill_name in normalize_skill_names(user.skills_to_teach):
            wanted.setdefault(skill_name, set()).add(user.id)

    entries = {e.skill_name: e for e in skill_repo.find_all()}

    for skill_name in sorted(set(wanted) | set(entries)):
        entry = entries.get(skill_name)
        present = set(entry.willing_teachers) if entry else set()
        expected = wanted.get(skill_name, set())
        try:
            for user_id in sorted(expected - present):
                skill_repo.add_teacher(skill_name, user_id)
                report.added.append((skill_name, user_id))
            for user_id in sorted(present - expected):
                skill_repo.remove_teacher(skill_name, user_id)
                report.removed.append((skill_name, user_id))
        except PersistenceError as e:
            logger.error("Reconciliation failed for skill", extra={"skillName": skill_name, "error": str(e)})
            report.failed.append(skill_name)

    logger.info("Skill catalog reconciled", extra={
        "added": len(report.added),
        "removed": len(report.removed),
        "failed": len(report.failed),
    })
    return report
