"""Unit tests for the in-memory repositories: verifies Port contract compliance."""

import unittest

from adapter.fake.skill_repository import FakeSkillRepository
from adapter.fake.user_repository import FakeUserRepository
from domain.model.skill import SkillCatalogEntry
from domain.model.user import User


class TestFakeUserRepository(unittest.TestCase):
    """Tests that FakeUserRepository correctly implements UserRepository Protocol."""

    def setUp(self):
        self.repo = FakeUserRepository()
        self.user = self.repo.create(User.create(username='ana', email='ana@example.com', password_hash='h'))

    # ── create ────────────────────────────────────────────────

    def test_create_and_get_by_id(self):
        found = self.repo.get_by_id(self.user.id)
        self.assertIsNotNone(found)
        self.assertEqual(found.username, 'ana')

    def test_create_rejects_duplicate_email(self):
        dup = User.create(username='other', email='ana@example.com', password_hash='h')
        self.assertIsNone(self.repo.create(dup))

    def test_create_rejects_duplicate_username(self):
        dup = User.create(username='ana', email='other@example.com', password_hash='h')
        self.assertIsNone(self.repo.create(dup))

    # ── lookups ───────────────────────────────────────────────

    def test_get_by_field(self):
        self.assertEqual(self.repo.get_by_field('email', 'ana@example.com').id, self.user.id)
        self.assertEqual(self.repo.get_by_field('username', 'ana').id, self.user.id)
        self.assertIsNone(self.repo.get_by_field('email', 'nobody@example.com'))

    def test_get_by_field_rejects_unknown_field(self):
        with self.assertRaises(ValueError):
            self.repo.get_by_field('bio', 'x')

    # ── save / update ─────────────────────────────────────────

    def test_returned_objects_are_detached(self):
        found = self.repo.get_by_id(self.user.id)
        found.bio = 'changed'
        self.assertIsNone(self.repo.get_by_id(self.user.id).bio)

    def test_save_persists_changes(self):
        found = self.repo.get_by_id(self.user.id)
        found.password_reset_token = 'digest'
        self.assertTrue(self.repo.save(found))
        self.assertEqual(self.repo.get_by_field('password_reset_token', 'digest').id, self.user.id)

    def test_save_missing_returns_false(self):
        ghost = User.create(username='ghost', email='ghost@example.com', password_hash='h')
        self.assertFalse(self.repo.save(ghost))

    def test_update_fields(self):
        updated = self.repo.update_fields(self.user.id, {'skills_to_teach': ['Chess']})
        self.assertEqual(updated.skills_to_teach, ['Chess'])
        self.assertGreaterEqual(updated.updated_at, self.user.updated_at)

    def test_update_fields_missing_returns_none(self):
        self.assertIsNone(self.repo.update_fields('missing', {'bio': 'x'}))

    def test_update_fields_with_conditions(self):
        self.repo.update_fields(self.user.id, {'password_reset_token': 'digest'})

        self.assertIsNone(self.repo.update_fields(self.user.id, {'bio': 'x'}, where={'password_reset_token': 'other'}))
        self.assertIsNone(self.repo.get_by_id(self.user.id).bio)

        updated = self.repo.update_fields(
            self.user.id, {'bio': 'x'}, unset=('password_reset_token',), where={'password_reset_token': 'digest'},
        )
        self.assertEqual(updated.bio, 'x')
        self.assertIsNone(updated.password_reset_token)

    def test_update_fields_with_previous(self):
        self.repo.update_fields(self.user.id, {'skills_to_teach': ['Guitar']})

        before, after = self.repo.update_fields_with_previous(self.user.id, {'skills_to_teach': ['Chess']})

        self.assertEqual(before.skills_to_teach, ['Guitar'])
        self.assertEqual(after.skills_to_teach, ['Chess'])
        self.assertIsNone(self.repo.update_fields_with_previous('missing', {'bio': 'x'}))

    def test_find_all(self):
        self.assertEqual([u.id for u in self.repo.find_all()], [self.user.id])


class TestFakeSkillRepository(unittest.TestCase):
    """Tests that FakeSkillRepository correctly implements SkillRepository Protocol."""

    def setUp(self):
        self.repo = FakeSkillRepository()

    def test_create_is_idempotent(self):
        self.repo.create('Chess')
        self.repo.add_teacher('Chess', 'u1')
        entry = self.repo.create('Chess')
        self.assertEqual(entry.willing_teachers, ['u1'])

    def test_add_teacher_creates_entry(self):
        self.assertTrue(self.repo.add_teacher('Chess', 'u1'))
        self.assertEqual(self.repo.get_by_name('Chess').willing_teachers, ['u1'])

    def test_add_teacher_is_set_like(self):
        self.repo.add_teacher('Chess', 'u1')
        self.repo.add_teacher('Chess', 'u1')
        self.assertEqual(self.repo.get_by_name('Chess').willing_teachers, ['u1'])

    def test_remove_teacher(self):
        self.repo.add_teacher('Chess', 'u1')
        self.assertTrue(self.repo.remove_teacher('Chess', 'u1'))
        self.assertEqual(self.repo.get_by_name('Chess').willing_teachers, [])

    def test_remove_teacher_missing_entry(self):
        self.assertFalse(self.repo.remove_teacher('Chess', 'u1'))

    def test_save_and_find(self):
        self.repo.save(SkillCatalogEntry(skill_name='Go', willing_teachers=['a', 'b']))
        self.repo.add_teacher('Chess', 'a')

        self.assertEqual(self.repo.get_by_name('Go').willing_teachers, ['a', 'b'])
        self.assertEqual(sorted(e.skill_name for e in self.repo.find_all() if e.has_teacher('a')), ['Chess', 'Go'])
        self.assertEqual(len(self.repo.find_all()), 2)

    def test_get_by_name_missing(self):
        self.assertIsNone(self.repo.get_by_name('Chess'))


if __name__ == '__main__':
    unittest.main()
