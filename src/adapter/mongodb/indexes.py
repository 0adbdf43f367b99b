"""MongoDB index management utilities.

Index creation with conflict resolution, shared by the user and skill repositories.
"""

from logging import getLogger

from pymongo.errors import PyMongoError

logger = getLogger(__name__)


def create_index_safe(collection, keys: list, name: str, **kwargs) -> bool:
    """Create index, replacing a conflicting one.

    A conflict is an existing index that shares the name or the key spec
    but differs in the other, or differs in the ``unique``/``sparse`` options
    (e.g. a uniqueness constraint added to an existing skill_name index).
    """
    try:
        collection.create_index(keys, name=name, **kwargs)
        return True
    except PyMongoError as e:
        if "already exists" not in str(e) and "Conflict" not in str(e):
            raise
        return _replace_conflicting(collection, keys, name, **kwargs)


def _replace_conflicting(collection, keys: list, name: str, **kwargs) -> bool:
    wanted_keys = dict(keys)
    wanted_opts = {opt: bool(kwargs.get(opt, False)) for opt in ('unique', 'sparse')}

    for idx_name, info in collection.index_information().items():
        if idx_name == '_id_':
            continue

        same_name = idx_name == name
        same_keys = dict(info.get('key', [])) == wanted_keys
        if not (same_name or same_keys):
            continue

        current_opts = {opt: bool(info.get(opt, False)) for opt in wanted_opts}
        if same_name and same_keys and current_opts == wanted_opts:
            continue

        logger.warning("Dropping conflicting index", extra={"index": idx_name, "collection": collection.name})
        collection.drop_index(idx_name)
        collection.create_index(keys, name=name, **kwargs)
        logger.info("Recreated index", extra={"index": name, "collection": collection.name})
        return True

    logger.error("Failed to resolve index conflict", extra={"index": name})
    return False


def ensure_all_indexes(db) -> bool:
    """Ensure indexes for all collections. Called at startup."""
    from adapter.mongodb.skill_repository import MongoSkillRepository
    from adapter.mongodb.user_repository import MongoUserRepository

    results = [
        MongoUserRepository(db).ensure_indexes(),
        MongoSkillRepository(db).ensure_indexes(),
    ]
    return all(results)
