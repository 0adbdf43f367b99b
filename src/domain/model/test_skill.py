"""Unit tests for skill catalog domain models."""

import unittest

from domain.model.skill import (
    ReconciliationReport,
    SkillCatalogEntry,
    SkillSyncResult,
    normalize_skill_name,
    normalize_skill_names,
)


class TestNormalizeSkillNames(unittest.TestCase):

    def test_trims_and_collapses_whitespace(self):
        self.assertEqual(normalize_skill_name('  Jazz   Guitar \n'), 'Jazz Guitar')

    def test_preserves_case(self):
        self.assertEqual(normalize_skill_names(['Chess', 'chess']), ['Chess', 'chess'])

    def test_drops_empty_and_duplicates_keeping_order(self):
        self.assertEqual(
            normalize_skill_names(['Guitar', ' ', 'Chess', 'Guitar ', '']),
            ['Guitar', 'Chess'],
        )


class TestSkillCatalogEntry(unittest.TestCase):

    def test_add_teacher_is_idempotent(self):
        entry = SkillCatalogEntry.create('Chess')
        self.assertTrue(entry.add_teacher('u1'))
        self.assertFalse(entry.add_teacher('u1'))
        self.assertEqual(entry.willing_teachers, ['u1'])

    def test_add_keeps_existing_teachers(self):
        entry = SkillCatalogEntry(skill_name='Chess', willing_teachers=['A', 'B'])
        entry.add_teacher('C')
        self.assertEqual(entry.willing_teachers, ['A', 'B', 'C'])

    def test_remove_teacher(self):
        entry = SkillCatalogEntry(skill_name='Chess', willing_teachers=['A', 'B'])
        self.assertTrue(entry.remove_teacher('A'))
        self.assertFalse(entry.remove_teacher('A'))
        self.assertEqual(entry.willing_teachers, ['B'])
        self.assertFalse(entry.has_teacher('A'))


class TestResults(unittest.TestCase):

    def test_sync_result_ok(self):
        self.assertTrue(SkillSyncResult(added=['Chess']).ok)
        self.assertFalse(SkillSyncResult(failed=['Chess']).ok)

    def test_report_changes(self):
        report = ReconciliationReport(added=[('Chess', 'a')], removed=[('Go', 'b'), ('Go', 'c')])
        self.assertEqual(report.changes, 3)


if __name__ == '__main__':
    unittest.main()
