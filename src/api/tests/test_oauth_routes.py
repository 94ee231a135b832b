"""Route tests for the Facebook Login handshake."""

import unittest
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

from api.tests.route_helpers import AppTestCase
from domain.model.errors import DuplicateEmailError
from domain.model.user import OAuthProviderKind, ProviderIdentity

IDENTITY = ProviderIdentity(
    kind=OAuthProviderKind.FACEBOOK,
    provider_id="fb-1",
    access_token="fb-token",
    email="ana@happe.com.br",
    name="Ana Souza",
    picture="https://graph.test/fb-1/picture",
)


class OAuthRoutesTestCase(AppTestCase):

    def begin(self) -> str:
        response = self.client.get("/auth/facebook")
        self.assertEqual(response.status_code, 302)
        return parse_qs(urlparse(response.headers["location"]).query)["state"][0]

    def callback(self, state: str, code: str = "the-code"):
        return self.client.get("/auth/facebook/callback", params={"code": code, "state": state})


class TestOAuthLogin(OAuthRoutesTestCase):

    def test_redirects_to_consent_dialog(self):
        response = self.client.get("/auth/facebook")

        location = urlparse(response.headers["location"])
        query = parse_qs(location.query)
        self.assertEqual(location.netloc, "provider.test")
        self.assertEqual(query["state"], [self.session().oauth_state])
        self.assertEqual(query["redirect_uri"], ["http://testserver/auth/facebook/callback"])

    def test_new_identity_creates_account_and_signs_in(self):
        self.facebook.identity = IDENTITY
        state = self.begin()

        response = self.callback(state)

        self.assertRedirects(response, "/")
        user = self.users.get_by_provider(OAuthProviderKind.FACEBOOK, "fb-1")
        self.assertEqual(user.email, "ana@happe.com.br")
        self.assertEqual(self.session().user_id, user.id)
        self.assertEqual(self.facebook.exchanged_codes, ["the-code"])

    def test_state_mismatch_is_rejected(self):
        self.facebook.identity = IDENTITY
        self.begin()

        response = self.callback("forged")

        self.assertRedirects(response, "/entrar")
        self.assertEqual(self.flashes("errors"), ["Não foi possível entrar com o Facebook."])
        self.assertEqual(self.facebook.exchanged_codes, [])
        self.assertEqual(self.users.store, {})

    def test_state_is_single_use(self):
        self.facebook.identity = IDENTITY
        state = self.begin()
        self.callback(state)
        self.client.get("/sair")

        self.assertRedirects(self.callback(state), "/entrar")

    def test_denied_consent(self):
        state = self.begin()

        response = self.client.get("/auth/facebook/callback", params={"error": "access_denied", "state": state})

        self.assertRedirects(response, "/entrar")

    def test_provider_failure_is_flashed(self):
        state = self.begin()

        response = self.callback(state)

        self.assertRedirects(response, "/entrar")
        self.assertEqual(len(self.flashes("errors")), 1)
        self.assertIsNone(self.session().user_id)

    def test_email_owned_by_local_account(self):
        self.signup("ana@happe.com.br", "password1")
        self.client.get("/sair")
        self.facebook.identity = IDENTITY

        response = self.callback(self.begin())

        self.assertRedirects(response, "/entrar")
        self.assertEqual(len(self.flashes("errors")), 1)
        self.assertIsNone(self.session().user_id)

    def test_email_claimed_during_callback(self):
        self.facebook.identity = IDENTITY
        state = self.begin()

        with patch.object(self.users, "create", side_effect=DuplicateEmailError()):
            response = self.callback(state)

        self.assertRedirects(response, "/entrar")
        self.assertEqual(len(self.flashes("errors")), 1)
        self.assertIsNone(self.session().user_id)


class TestOAuthLink(OAuthRoutesTestCase):

    def setUp(self):
        super().setUp()
        self.signup("a@b.com", "password1")
        self.user_id = self.session().user_id
        self.facebook.identity = IDENTITY

    def test_links_to_signed_in_account(self):
        self.client.get("/conta")

        response = self.callback(self.begin())

        self.assertRedirects(response, "/conta")
        user = self.users.get_by_id(self.user_id)
        self.assertEqual(user.facebook, "fb-1")
        self.assertEqual(user.email, "a@b.com")
        self.assertEqual(self.flashes("info"), ["A conta do Facebook foi vinculada."])
        self.assertEqual(self.session().user_id, self.user_id)

    def test_identity_owned_by_other_account(self):
        self.users.create(email="other@b.com", password_hash=None, facebook="fb-1")

        response = self.callback(self.begin())

        self.assertRedirects(response, "/conta")
        self.assertEqual(len(self.flashes("errors")), 1)
        self.assertIsNone(self.users.get_by_id(self.user_id).facebook)

    def test_identity_claimed_during_callback(self):
        self.users.create(email="other@b.com", password_hash=None, facebook="fb-1")
        state = self.begin()

        with patch.object(self.users, "get_by_provider", return_value=None):
            response = self.callback(state)

        self.assertRedirects(response, "/conta")
        self.assertEqual(len(self.flashes("errors")), 1)
        self.assertIsNone(self.users.get_by_id(self.user_id).facebook)
        self.assertEqual(self.session().user_id, self.user_id)


if __name__ == '__main__':
    unittest.main()
