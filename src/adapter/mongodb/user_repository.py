"""MongoDB implementation of UserRepository."""

import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from logging import getLogger

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from adapter.mongodb import USERS_COLLECTION_NAME
from domain.model.errors import DuplicateEmailError, DuplicateError, DuplicateProviderError, PersistenceError
from domain.model.user import OAuthProviderKind, OAuthToken, Profile, User

logger = getLogger(__name__)

# Linkage field per provider kind
_PROVIDER_FIELDS = {
    OAuthProviderKind.FACEBOOK: 'facebook',
}


class MongoUserRepository:
    def __init__(self, db: Database):
        self.collection = db[USERS_COLLECTION_NAME]

    def ensure_indexes(self) -> bool:
        """Create indexes for users collection."""
        from adapter.mongodb.indexes import create_index_safe

        try:
            # OAuth-only accounts may have no email; only string emails must be unique
            create_index_safe(
                self.collection, [('email', 1)], 'idx_users_email',
                unique=True, partialFilterExpression={'email': {'$type': 'string'}},
            )
            create_index_safe(
                self.collection, [('facebook', 1)], 'idx_users_facebook',
                unique=True, partialFilterExpression={'facebook': {'$type': 'string'}},
            )
            create_index_safe(self.collection, [('password_reset_token', 1)], 'idx_users_reset_token', sparse=True)
            return True
        except PyMongoError as e:
            logger.error("Failed to create users indexes", extra={"error": str(e)})
            return False

    def _to_domain(self, doc: dict) -> User:
        """Convert MongoDB document to User domain model."""
        profile = doc.get('profile') or {}
        return User(
            id=doc['_id'],
            email=doc.get('email'),
            created_at=doc['created_at'],
            updated_at=doc['updated_at'],
            password_hash=doc.get('password_hash'),
            profile=Profile(
                name=profile.get('name', ''),
                gender=profile.get('gender', ''),
                location=profile.get('location', ''),
                website=profile.get('website', ''),
                picture=profile.get('picture', ''),
            ),
            facebook=doc.get('facebook'),
            tokens=[
                OAuthToken(kind=t['kind'], access_token=t['access_token'])
                for t in doc.get('tokens', [])
            ],
            password_reset_token=doc.get('password_reset_token'),
            password_reset_expires=doc.get('password_reset_expires'),
        )

    def _duplicate(self, error: DuplicateKeyError, **extra) -> DuplicateError:
        """Map a unique-index violation to the field that collided."""
        key_pattern = (error.details or {}).get('keyPattern') or {}
        for kind, field in _PROVIDER_FIELDS.items():
            if field in key_pattern or f'idx_users_{field}' in str(error):
                logger.warning("Provider identity already linked", extra={**extra, "provider": kind.value})
                return DuplicateProviderError()
        logger.warning("Email already exists", extra=extra)
        return DuplicateEmailError()

    def _failed(self, action: str, error: PyMongoError, **extra) -> PersistenceError:
        logger.error(f"Failed to {action}", extra={**extra, "error": str(error)})
        return PersistenceError(f"Failed to {action}")

    # ── write operations ─────────────────────────────────────

    def create(
        self,
        email: str | None,
        password_hash: str | None,
        profile: Profile | None = None,
        facebook: str | None = None,
        tokens: list[OAuthToken] | None = None,
    ) -> User:
        """Create a new user and return the User object."""
        user_id = uuid.uuid4().hex
        now = datetime.now(timezone.utc)
        user_doc = {
            '_id': user_id,
            'email': email,
            'password_hash': password_hash,
            'profile': asdict(profile or Profile()),
            'tokens': [asdict(t) for t in tokens or []],
            'created_at': now,
            'updated_at': now,
        }
        if facebook:
            user_doc['facebook'] = facebook

        try:
            self.collection.insert_one(user_doc)
        except DuplicateKeyError as e:
            raise self._duplicate(e, email=email)
        except PyMongoError as e:
            raise self._failed("create user", e, email=email)

        logger.info("User created", extra={"userId": user_id, "email": email})
        return self._to_domain(user_doc)

    def update_profile(self, user_id: str, email: str, profile: Profile) -> User | None:
        """Overwrite email and editable profile fields."""
        update = {
            'email': email,
            'profile.name': profile.name,
            'profile.gender': profile.gender,
            'profile.location': profile.location,
            'profile.website': profile.website,
            'updated_at': datetime.now(timezone.utc),
        }
        try:
            doc = self.collection.find_one_and_update(
                {'_id': user_id}, {'$set': update}, return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            logger.warning("Profile update failed: email already exists", extra={"userId": user_id, "email": email})
            raise DuplicateEmailError("O endereço de email já está associado à outra conta.")
        except PyMongoError as e:
            raise self._failed("update profile", e, userId=user_id)
        return self._to_domain(doc) if doc else None

    def set_password(self, user_id: str, password_hash: str) -> bool:
        try:
            result = self.collection.update_one(
                {'_id': user_id},
                {'$set': {'password_hash': password_hash, 'updated_at': datetime.now(timezone.utc)}},
            )
        except PyMongoError as e:
            raise self._failed("update password", e, userId=user_id)
        return result.matched_count > 0

    def set_reset_token(self, user_id: str, token: str, expires: datetime) -> bool:
        try:
            result = self.collection.update_one(
                {'_id': user_id},
                {'$set': {
                    'password_reset_token': token,
                    'password_reset_expires': expires,
                    'updated_at': datetime.now(timezone.utc),
                }},
            )
        except PyMongoError as e:
            raise self._failed("store reset token", e, userId=user_id)
        return result.matched_count > 0

    def consume_reset_token(self, token: str, password_hash: str, now: datetime) -> User | None:
        """Replace the password and clear the token in one document update."""
        try:
            doc = self.collection.find_one_and_update(
                {'password_reset_token': token, 'password_reset_expires': {'$gt': now}},
                {
                    '$set': {'password_hash': password_hash, 'updated_at': datetime.now(timezone.utc)},
                    '$unset': {'password_reset_token': '', 'password_reset_expires': ''},
                },
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise self._failed("reset password", e)
        return self._to_domain(doc) if doc else None

    def link_provider(
        self, user_id: str, kind: OAuthProviderKind, provider_id: str, token: OAuthToken, profile: Profile,
    ) -> User | None:
        field = _PROVIDER_FIELDS[kind]
        try:
            # $pull and $push on the same array conflict in a single update
            self.collection.update_one({'_id': user_id}, {'$pull': {'tokens': {'kind': kind.value}}})
            doc = self.collection.find_one_and_update(
                {'_id': user_id},
                {
                    '$set': {field: provider_id, 'profile': asdict(profile), 'updated_at': datetime.now(timezone.utc)},
                    '$push': {'tokens': asdict(token)},
                },
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as e:
            raise self._duplicate(e, userId=user_id)
        except PyMongoError as e:
            raise self._failed("link provider", e, userId=user_id, provider=kind.value)
        return self._to_domain(doc) if doc else None

    def unlink_provider(self, user_id: str, kind: OAuthProviderKind) -> User | None:
        field = _PROVIDER_FIELDS[kind]
        try:
            doc = self.collection.find_one_and_update(
                {'_id': user_id},
                {
                    '$unset': {field: ''},
                    '$pull': {'tokens': {'kind': kind.value}},
                    '$set': {'updated_at': datetime.now(timezone.utc)},
                },
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise self._failed("unlink provider", e, userId=user_id, provider=kind.value)
        return self._to_domain(doc) if doc else None

    def delete(self, user_id: str) -> bool:
        try:
            result = self.collection.delete_one({'_id': user_id})
        except PyMongoError as e:
            raise self._failed("delete user", e, userId=user_id)
        return result.deleted_count > 0

    # ── read operations ──────────────────────────────────────

    def _find_one(self, query: dict, action: str, **extra) -> User | None:
        try:
            doc = self.collection.find_one(query)
        except PyMongoError as e:
            raise self._failed(action, e, **extra)
        return self._to_domain(doc) if doc else None

    def get_by_id(self, user_id: str) -> User | None:
        return self._find_one({'_id': user_id}, "get user by ID", userId=user_id)

    def get_by_email(self, email: str) -> User | None:
        return self._find_one({'email': email}, "get user by email", email=email)

    def get_by_provider(self, kind: OAuthProviderKind, provider_id: str) -> User | None:
        return self._find_one(
            {_PROVIDER_FIELDS[kind]: provider_id}, "get user by provider", provider=kind.value,
        )

    def get_by_reset_token(self, token: str, now: datetime) -> User | None:
        return self._find_one(
            {'password_reset_token': token, 'password_reset_expires': {'$gt': now}},
            "get user by reset token",
        )
