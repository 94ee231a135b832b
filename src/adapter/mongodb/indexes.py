"""Index setup for the MongoDB collections.

Run once at startup. An existing index whose name or key spec collides with
the requested one is dropped and rebuilt, so option changes (unique,
partial filters, TTL) roll out with a deploy.
"""

from logging import getLogger

from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import OperationFailure

logger = getLogger(__name__)

# Server error codes for an index that exists with different options or name
_INDEX_CONFLICT_CODES = {85, 86}


def create_index_safe(collection: Collection, keys: list, name: str, **options) -> bool:
    """Create an index, rebuilding any conflicting index first."""
    try:
        collection.create_index(keys, name=name, **options)
        return True
    except OperationFailure as e:
        if e.code not in _INDEX_CONFLICT_CODES:
            raise
        logger.warning("Index conflict", extra={"index": name, "collection": collection.name, "code": e.code})

    stale = _conflicting_index(collection, keys, name)
    if stale is None:
        logger.error("Failed to resolve index conflict", extra={"index": name, "collection": collection.name})
        return False

    collection.drop_index(stale)
    collection.create_index(keys, name=name, **options)
    logger.info("Rebuilt index", extra={"index": name, "replaced": stale, "collection": collection.name})
    return True


def _conflicting_index(collection: Collection, keys: list, name: str) -> str | None:
    wanted = dict(keys)
    for existing, info in collection.index_information().items():
        if existing == '_id_':
            continue
        if existing == name or dict(info.get('key', [])) == wanted:
            return existing
    return None


def ensure_all_indexes(db: Database) -> bool:
    """Ensure indexes for every collection the app owns."""
    from adapter.mongodb.session_repository import MongoSessionRepository
    from adapter.mongodb.user_repository import MongoUserRepository

    return all([
        MongoUserRepository(db).ensure_indexes(),
        MongoSessionRepository(db).ensure_indexes(),
    ])
