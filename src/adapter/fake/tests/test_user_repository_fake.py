"""Unit tests for FakeUserRepository: verifies Port contract compliance."""

import unittest
from datetime import datetime, timedelta, timezone

from adapter.fake.user_repository import FakeUserRepository
from domain.model.errors import DuplicateEmailError, DuplicateProviderError
from domain.model.user import OAuthProviderKind, OAuthToken, Profile


NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestFakeUserRepository(unittest.TestCase):

    def setUp(self):
        self.repo = FakeUserRepository()
        self.user = self.repo.create(email='a@b.com', password_hash='hash')

    # ── create / read ─────────────────────────────────────────

    def test_create_and_lookup(self):
        self.assertEqual(self.repo.get_by_id(self.user.id).email, 'a@b.com')
        self.assertEqual(self.repo.get_by_email('a@b.com').id, self.user.id)
        self.assertIsNone(self.repo.get_by_email('x@b.com'))

    def test_create_duplicate_email_raises(self):
        with self.assertRaises(DuplicateEmailError):
            self.repo.create(email='a@b.com', password_hash='other')
        self.assertEqual(len(self.repo.store), 1)

    def test_accounts_without_email_do_not_collide(self):
        self.repo.create(email=None, password_hash=None, facebook='fb-1')
        self.repo.create(email=None, password_hash=None, facebook='fb-2')

        self.assertEqual(len(self.repo.store), 3)

    def test_create_with_linked_provider_id_raises(self):
        self.repo.create(email=None, password_hash=None, facebook='fb-1')

        with self.assertRaises(DuplicateProviderError):
            self.repo.create(email='c@b.com', password_hash=None, facebook='fb-1')
        self.assertEqual(len(self.repo.store), 2)

    def test_returned_users_are_copies(self):
        loaded = self.repo.get_by_id(self.user.id)
        loaded.email = 'mutated@b.com'

        self.assertEqual(self.repo.get_by_id(self.user.id).email, 'a@b.com')

    # ── profile ───────────────────────────────────────────────

    def test_update_profile_conflict_raises(self):
        other = self.repo.create(email='c@d.com', password_hash='hash')

        with self.assertRaises(DuplicateEmailError):
            self.repo.update_profile(other.id, 'a@b.com', Profile())

    def test_update_profile_keeps_picture(self):
        self.repo.store[self.user.id].profile.picture = 'pic.png'

        updated = self.repo.update_profile(self.user.id, 'a@b.com', Profile(name='Ana'))

        self.assertEqual(updated.profile.name, 'Ana')
        self.assertEqual(updated.profile.picture, 'pic.png')

    def test_update_profile_missing_user(self):
        self.assertIsNone(self.repo.update_profile('ghost', 'z@b.com', Profile()))

    # ── reset tokens ──────────────────────────────────────────

    def test_reset_token_lookup_honours_expiry(self):
        self.repo.set_reset_token(self.user.id, 'tok', NOW + timedelta(hours=1))

        self.assertIsNotNone(self.repo.get_by_reset_token('tok', NOW))
        self.assertIsNone(self.repo.get_by_reset_token('tok', NOW + timedelta(hours=1)))
        self.assertIsNone(self.repo.get_by_reset_token('other', NOW))

    def test_consume_reset_token_is_single_use(self):
        self.repo.set_reset_token(self.user.id, 'tok', NOW + timedelta(hours=1))

        updated = self.repo.consume_reset_token('tok', 'new-hash', NOW)

        self.assertEqual(updated.password_hash, 'new-hash')
        self.assertIsNone(updated.password_reset_token)
        self.assertIsNone(updated.password_reset_expires)
        self.assertIsNone(self.repo.consume_reset_token('tok', 'again', NOW))

    # ── providers ─────────────────────────────────────────────

    def test_link_and_unlink_provider(self):
        token = OAuthToken(kind='facebook', access_token='at')
        self.repo.link_provider(self.user.id, OAuthProviderKind.FACEBOOK, 'fb-1', token, Profile(name='Ana'))

        self.assertEqual(self.repo.get_by_provider(OAuthProviderKind.FACEBOOK, 'fb-1').id, self.user.id)

        user = self.repo.unlink_provider(self.user.id, OAuthProviderKind.FACEBOOK)
        self.assertIsNone(user.facebook)
        self.assertEqual(user.tokens, [])
        self.assertEqual(user.password_hash, 'hash')

    def test_delete(self):
        self.assertTrue(self.repo.delete(self.user.id))
        self.assertFalse(self.repo.delete(self.user.id))


if __name__ == '__main__':
    unittest.main()
