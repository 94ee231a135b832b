"""Unit tests for the User domain model."""

import hashlib
import unittest
from datetime import datetime, timedelta, timezone

from domain.model.user import OAuthProviderKind, Profile, User


NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def _user(**kwargs) -> User:
    defaults = dict(id='user-1', email='maria@happe.com.br', created_at=NOW, updated_at=NOW)
    defaults.update(kwargs)
    return User(**defaults)


class TestProviderKind(unittest.TestCase):

    def test_parse_known_provider(self):
        self.assertIs(OAuthProviderKind.parse('facebook'), OAuthProviderKind.FACEBOOK)

    def test_parse_unknown_provider(self):
        self.assertIsNone(OAuthProviderKind.parse('myspace'))
        self.assertIsNone(OAuthProviderKind.parse(''))


class TestUser(unittest.TestCase):

    def test_linked_id(self):
        self.assertEqual(_user(facebook='fb-9').linked_id(OAuthProviderKind.FACEBOOK), 'fb-9')
        self.assertIsNone(_user().linked_id(OAuthProviderKind.FACEBOOK))

    def test_reset_pending_requires_future_expiry(self):
        user = _user(password_reset_token='abc', password_reset_expires=NOW + timedelta(hours=1))

        self.assertTrue(user.has_reset_pending(NOW))
        self.assertFalse(user.has_reset_pending(NOW + timedelta(hours=1)))
        self.assertFalse(_user().has_reset_pending(NOW))

    def test_gravatar_uses_lowercased_email_hash(self):
        digest = hashlib.md5(b'maria@happe.com.br').hexdigest()
        url = _user(email='Maria@Happe.com.br').gravatar(100)

        self.assertEqual(url, f'https://gravatar.com/avatar/{digest}?s=100&d=retro')

    def test_gravatar_without_email(self):
        self.assertIn('d=retro', _user(email=None).gravatar())

    def test_display_name_prefers_profile_name(self):
        self.assertEqual(_user(profile=Profile(name='Maria')).display_name, 'Maria')
        self.assertEqual(_user().display_name, 'maria@happe.com.br')


if __name__ == '__main__':
    unittest.main()
