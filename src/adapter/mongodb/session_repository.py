"""MongoDB implementation of SessionRepository."""

from datetime import datetime, timezone
from logging import getLogger

from pymongo.database import Database
from pymongo.errors import PyMongoError

from adapter.mongodb import SESSIONS_COLLECTION_NAME
from domain.model.errors import PersistenceError
from domain.model.session import SessionContext

logger = getLogger(__name__)


class MongoSessionRepository:
    def __init__(self, db: Database):
        self.collection = db[SESSIONS_COLLECTION_NAME]

    def ensure_indexes(self) -> bool:
        """Create the TTL index that purges expired sessions."""
        from adapter.mongodb.indexes import create_index_safe

        try:
            create_index_safe(self.collection, [('expires_at', 1)], 'idx_sessions_ttl', expireAfterSeconds=0)
            return True
        except PyMongoError as e:
            logger.error("Failed to create sessions indexes", extra={"error": str(e)})
            return False

    def get(self, session_id: str) -> SessionContext | None:
        try:
            doc = self.collection.find_one(
                {'_id': session_id, 'expires_at': {'$gt': datetime.now(timezone.utc)}}
            )
        except PyMongoError as e:
            logger.error("Failed to load session", extra={"sessionId": session_id, "error": str(e)})
            raise PersistenceError("Failed to load session")
        if not doc:
            return None
        return SessionContext(
            id=doc['_id'],
            expires_at=doc['expires_at'],
            user_id=doc.get('user_id'),
            flashes=doc.get('flashes') or {},
            return_to=doc.get('return_to'),
            csrf_token=doc['csrf_token'],
            oauth_state=doc.get('oauth_state'),
        )

    def save(self, session: SessionContext) -> None:
        doc = {
            'expires_at': session.expires_at,
            'user_id': session.user_id,
            'flashes': session.flashes,
            'return_to': session.return_to,
            'csrf_token': session.csrf_token,
            'oauth_state': session.oauth_state,
        }
        try:
            self.collection.replace_one({'_id': session.id}, doc, upsert=True)
        except PyMongoError as e:
            logger.error("Failed to save session", extra={"sessionId": session.id, "error": str(e)})
            raise PersistenceError("Failed to save session")

    def delete(self, session_id: str) -> None:
        try:
            self.collection.delete_one({'_id': session_id})
        except PyMongoError as e:
            logger.error("Failed to delete session", extra={"sessionId": session_id, "error": str(e)})
            raise PersistenceError("Failed to delete session")
