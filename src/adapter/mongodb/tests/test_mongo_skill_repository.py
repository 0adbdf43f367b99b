"""Tests for MongoSkillRepository against a mocked collection."""

import unittest
from unittest.mock import MagicMock
from datetime import datetime, timezone

from pymongo.errors import DuplicateKeyError, PyMongoError

from adapter.mongodb.skill_repository import MongoSkillRepository
from domain.model.errors import PersistenceError
from domain.model.skill import SkillCatalogEntry

NOW = datetime(2026, 1, 23, 12, 0, 0, tzinfo=timezone.utc)


class MongoSkillRepositoryTestCase(unittest.TestCase):

    def setUp(self):
        self.collection = MagicMock()
        db = MagicMock()
        db.__getitem__.return_value = self.collection
        self.repo = MongoSkillRepository(db, operation_timeout=1)


class TestAddTeacher(MongoSkillRepositoryTestCase):

    def test_uses_atomic_add_to_set_upsert(self):
        self.assertTrue(self.repo.add_teacher('Chess', 'user-1'))

        args, kwargs = self.collection.update_one.call_args
        self.assertEqual(args[0], {'skill_name': 'Chess'})
        self.assertEqual(args[1]['$addToSet'], {'willing_teachers': 'user-1'})
        self.assertIn('created_at', args[1]['$setOnInsert'])
        self.assertTrue(kwargs['upsert'])

    def test_duplicate_key_race_is_retried(self):
        self.collection.update_one.side_effect = [DuplicateKeyError('E11000'), MagicMock()]

        self.assertTrue(self.repo.add_teacher('Chess', 'user-1'))
        self.assertEqual(self.collection.update_one.call_count, 2)

    def test_persistent_duplicate_key_raises(self):
        self.collection.update_one.side_effect = DuplicateKeyError('E11000')

        with self.assertRaises(PersistenceError):
            self.repo.add_teacher('Chess', 'user-1')
        self.assertEqual(self.collection.update_one.call_count, 3)

    def test_store_failure_raises(self):
        self.collection.update_one.side_effect = PyMongoError('timeout')

        with self.assertRaises(PersistenceError):
            self.repo.add_teacher('Chess', 'user-1')
        self.assertEqual(self.collection.update_one.call_count, 1)


class TestRemoveTeacher(MongoSkillRepositoryTestCase):

    def test_pulls_teacher(self):
        self.collection.update_one.return_value.matched_count = 1

        self.assertTrue(self.repo.remove_teacher('Chess', 'user-1'))
        self.collection.update_one.assert_called_once_with(
            {'skill_name': 'Chess'}, {'$pull': {'willing_teachers': 'user-1'}},
        )

    def test_missing_entry_returns_false(self):
        self.collection.update_one.return_value.matched_count = 0
        self.assertFalse(self.repo.remove_teacher('Chess', 'user-1'))


class TestCreateAndRead(MongoSkillRepositoryTestCase):

    def test_create_returns_entry(self):
        self.collection.update_one.return_value.upserted_id = 'oid'
        self.collection.find_one.return_value = {'skill_name': 'Chess', 'willing_teachers': [], 'created_at': NOW}

        entry = self.repo.create('Chess')

        self.assertEqual(entry, SkillCatalogEntry(skill_name='Chess', willing_teachers=[], created_at=NOW))
        update = self.collection.update_one.call_args[0][1]
        self.assertEqual(update['$setOnInsert']['willing_teachers'], [])

    def test_legacy_duplicates_are_collapsed(self):
        self.collection.find_one.return_value = {
            'skill_name': 'Chess', 'willing_teachers': ['a', 'b', 'a'], 'created_at': NOW,
        }
        self.assertEqual(self.repo.get_by_name('Chess').willing_teachers, ['a', 'b'])

    def test_get_by_name_missing(self):
        self.collection.find_one.return_value = None
        self.assertIsNone(self.repo.get_by_name('Chess'))

    def test_save_deduplicates(self):
        self.repo.save(SkillCatalogEntry(skill_name='Chess', willing_teachers=['a', 'a', 'b'], created_at=NOW))

        update = self.collection.update_one.call_args[0][1]
        self.assertEqual(update['$set'], {'willing_teachers': ['a', 'b']})
        self.assertEqual(update['$setOnInsert'], {'created_at': NOW})

    def test_read_failure_raises(self):
        self.collection.find.side_effect = PyMongoError('down')
        with self.assertRaises(PersistenceError):
            self.repo.find_all()


class TestEnsureIndexes(MongoSkillRepositoryTestCase):

    def test_skill_name_is_unique(self):
        self.assertTrue(self.repo.ensure_indexes())
        self.collection.create_index.assert_any_call([('skill_name', 1)], name='idx_skills_name', unique=True)


if __name__ == '__main__':
    unittest.main()
