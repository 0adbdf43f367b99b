"""Repair the skill catalog from users' skills_to_teach lists.

Run after a SynchronizationPartialFailure, or periodically, to add missing
teachers and drop stale ones.

Usage:
    PYTHONPATH=src python src/scripts/reconcile_skill_catalog.py
    PYTHONPATH=src python src/scripts/reconcile_skill_catalog.py --ensure-indexes
"""

import argparse
import logging
import sys

from dotenv import load_dotenv

# Must run before adapter.mongodb.connection reads MONGO_URL
load_dotenv()

from adapter.mongodb.connection import DATABASE_NAME, get_mongodb_client
from adapter.mongodb.indexes import ensure_all_indexes
from adapter.mongodb.skill_repository import MongoSkillRepository
from adapter.mongodb.user_repository import MongoUserRepository
from services.skill_catalog_service import reconcile_catalog
from utils.logging import setup_structured_logging

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Reconcile the skill catalog with user teaching lists")
    parser.add_argument('--ensure-indexes', action='store_true', help="create collection indexes first")
    parser.add_argument('--log-level', default=None, help="override LOG_LEVEL")
    args = parser.parse_args(argv)

    setup_structured_logging(args.log_level)

    client = get_mongodb_client()
    if client is None:
        logger.error("Database unavailable")
        return 2
    db = client[DATABASE_NAME]

    if args.ensure_indexes and not ensure_all_indexes(db):
        logger.warning("Failed to create some MongoDB indexes")

    report = reconcile_catalog(MongoUserRepository(db), MongoSkillRepository(db))
    print(f"added={len(report.added)} removed={len(report.removed)} failed={len(report.failed)}")
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
