"""MongoDB adapters for the account store."""

USERS_COLLECTION_NAME = 'users'
SESSIONS_COLLECTION_NAME = 'sessions'
