"""Shared MongoClient for the credential and session stores.

The client is created lazily and cached for the life of the process. A
missing MONGODB_URI is treated as permanent; a dropped connection is retried
on the next call.
"""

import os
import logging

from pymongo import MongoClient
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

logging.getLogger('pymongo').setLevel(logging.WARNING)

# MONGOLAB_URI/MONGO_URL are accepted for older Heroku-style deployments
MONGODB_URI = os.getenv('MONGODB_URI') or os.getenv('MONGOLAB_URI') or os.getenv('MONGO_URL')
DATABASE_NAME = os.getenv('MONGODB_DATABASE', 'happe')

CLIENT_OPTIONS = {
    # Reset-token expiries and session TTLs are compared as aware datetimes
    'tz_aware': True,
    'serverSelectionTimeoutMS': 5000,
    'connectTimeoutMS': 5000,
    'socketTimeoutMS': 30000,
    'maxPoolSize': 10,
    'retryWrites': True,
    'retryReads': True,
}

_client: MongoClient | None = None
_misconfigured = False
_ever_connected = False


def reset_client():
    """Forget the cached client and any earlier failure."""
    global _client, _misconfigured, _ever_connected
    _client = None
    _misconfigured = False
    _ever_connected = False


def _is_alive(client: MongoClient) -> bool:
    try:
        client.admin.command('ping')
    except PyMongoError:
        return False
    return True


def get_mongodb_client() -> MongoClient | None:
    """Return a connected client, or None when MongoDB can't be reached.

    Returns None without retrying once the first attempt has failed,
    since that points at configuration rather than a transient outage.
    """
    global _client, _misconfigured, _ever_connected

    if _client is not None:
        if _is_alive(_client):
            return _client
        logger.warning("[MONGODB] Lost connection, reconnecting")
        _client = None

    if _misconfigured:
        return None
    if not MONGODB_URI:
        logger.error("[MONGODB] MONGODB_URI not configured.")
        _misconfigured = True
        return None

    try:
        client = MongoClient(MONGODB_URI, **CLIENT_OPTIONS)
        client.admin.command('ping')
    except PyMongoError as e:
        logger.error(f"[MONGODB] Connection failed: {str(e)[:200]}")
        if not _ever_connected:
            _misconfigured = True
        return None

    if not _ever_connected:
        logger.info(f"[MONGODB] Connected to database {DATABASE_NAME}")
    _ever_connected = True
    _client = client
    return client
