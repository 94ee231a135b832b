"""Tests for session cookies, CSRF verification and security headers."""

import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from fastapi import HTTPException

from api.dependencies import get_session_repo
from api.main import app
from api.session import COOKIE_NAME, create_session_token, verify_session_token
from api.tests.route_helpers import AppTestCase
from domain.model.errors import PersistenceError


class TestSessionToken(unittest.TestCase):

    def test_round_trip(self):
        token = create_session_token("sess-1", datetime.now(timezone.utc) + timedelta(minutes=5))
        self.assertEqual(verify_session_token(token), "sess-1")

    def test_expired_token(self):
        token = create_session_token("sess-1", datetime.now(timezone.utc) - timedelta(minutes=5))
        self.assertIsNone(verify_session_token(token))

    def test_tampered_token(self):
        token = create_session_token("sess-1", datetime.now(timezone.utc) + timedelta(minutes=5))
        self.assertIsNone(verify_session_token(token[:-2] + "xx"))


class TestSessionMiddleware(AppTestCase):

    def test_first_visit_sets_cookie(self):
        response = self.client.get("/entrar")

        cookie = response.headers["set-cookie"]
        self.assertIn(f"{COOKIE_NAME}=", cookie)
        self.assertIn("HttpOnly", cookie)
        self.assertIn("samesite=lax", cookie.lower())
        self.assertIsNotNone(self.session())

    def test_unchanged_session_is_not_rewritten(self):
        self.client.get("/entrar")

        response = self.client.get("/entrar")

        self.assertNotIn("set-cookie", response.headers)

    def test_anonymous_page_is_remembered(self):
        self.client.get("/")
        self.assertEqual(self.session().return_to, "/")

    def test_auth_pages_are_not_remembered(self):
        for path in ("/entrar", "/registrar", "/esqueci-a-senha", "/redefinir-senha/abc", "/sair"):
            with self.subTest(path=path):
                self.client.get(path)
                self.assertIsNone(self.session().return_to)

    def test_session_store_outage_returns_503(self):
        def unavailable():
            raise HTTPException(status_code=503, detail="Database unavailable")

        app.dependency_overrides[get_session_repo] = unavailable

        response = self.client.get("/entrar")

        self.assertEqual(response.status_code, 503)

    def test_failed_session_save_returns_error_page(self):
        with patch.object(self.sessions, "save", side_effect=PersistenceError("Failed to save session")):
            response = self.client.get("/entrar")

        self.assertEqual(response.status_code, 500)
        self.assertIn("Tente novamente mais tarde", response.text)
        self.assertNotIn("set-cookie", response.headers)


class TestCsrf(AppTestCase):

    def test_post_without_token_is_forbidden(self):
        self.client.get("/entrar")

        response = self.client.post("/entrar", data={"email": "a@b.com", "password": "password1"})

        self.assertEqual(response.status_code, 403)

    def test_post_with_wrong_token_is_forbidden(self):
        self.client.get("/entrar")

        response = self.client.post("/entrar", data={"email": "a@b.com", "password": "x", "_csrf": "wrong"})

        self.assertEqual(response.status_code, 403)

    def test_header_token_is_accepted(self):
        token = self.csrf()

        response = self.client.post(
            "/entrar", data={"email": "a@b.com", "password": "password1"}, headers={"x-csrf-token": token},
        )

        self.assertRedirects(response, "/entrar")

    def test_token_rotates_on_login(self):
        before = self.csrf()
        self.signup()
        self.assertNotEqual(self.csrf(), before)


class TestSecurityHeaders(AppTestCase):

    def test_headers_on_every_response(self):
        for path in ("/entrar", "/"):
            with self.subTest(path=path):
                response = self.client.get(path)
                self.assertEqual(response.headers["x-frame-options"], "SAMEORIGIN")
                self.assertEqual(response.headers["x-xss-protection"], "1; mode=block")


if __name__ == '__main__':
    unittest.main()
