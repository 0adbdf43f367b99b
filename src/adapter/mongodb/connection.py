import os
import logging
from pymongo import MongoClient
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

# Driver-level logs are noisy at INFO
logging.getLogger('pymongo').setLevel(logging.WARNING)

MONGO_URL = os.getenv('MONGO_URL')
DATABASE_NAME = os.getenv('MONGODB_DATABASE', 'skillswap')
USERS_COLLECTION_NAME = 'users'
SKILLS_COLLECTION_NAME = 'skills'

# Client-side bound for a single catalog write (pymongo.timeout)
OPERATION_TIMEOUT_SECONDS = float(os.getenv('MONGO_OPERATION_TIMEOUT_SECONDS', '5'))

_client_cache: MongoClient | None = None


def get_mongodb_client() -> MongoClient | None:
    """Return a connected client, reusing it for the life of the process.

    Returns None when MONGO_URL is unset or the server does not answer a ping.
    """
    global _client_cache

    if _client_cache is not None:
        return _client_cache

    if not MONGO_URL:
        logger.error("[MONGODB] MONGO_URL not configured.")
        return None

    try:
        client = MongoClient(
            MONGO_URL,
            tz_aware=True,  # domain timestamps are UTC-aware
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            retryWrites=True,
        )
        client.admin.command('ping')
    except PyMongoError as e:
        logger.error(f"[MONGODB] Connection failed: {str(e)[:200]}")
        return None

    logger.info(f"[MONGODB] Connected to {DATABASE_NAME}")
    _client_cache = client
    return client
