"""Shared harness for route tests: the app wired to in-memory adapters."""

import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from api.dependencies import get_facebook_provider, get_mailer, get_session_repo, get_user_repo
from api.main import app
from api.session import COOKIE_NAME, verify_session_token
from adapter.fake.mailer import FakeMailer
from adapter.fake.oauth_provider import FakeOAuthProvider
from adapter.fake.session_repository import FakeSessionRepository
from adapter.fake.user_repository import FakeUserRepository
from domain.model.session import SessionContext


class AppTestCase(unittest.TestCase):

    def setUp(self):
        patcher = patch('services.auth_service.BCRYPT_ROUNDS', 4)
        patcher.start()
        self.addCleanup(patcher.stop)

        self.users = FakeUserRepository()
        self.sessions = FakeSessionRepository()
        self.mailer = FakeMailer()
        self.facebook = FakeOAuthProvider()

        app.dependency_overrides[get_user_repo] = lambda: self.users
        app.dependency_overrides[get_session_repo] = lambda: self.sessions
        app.dependency_overrides[get_mailer] = lambda: self.mailer
        app.dependency_overrides[get_facebook_provider] = lambda: self.facebook
        self.addCleanup(app.dependency_overrides.clear)

        self.client = TestClient(app, follow_redirects=False)

    # ── session inspection ───────────────────────────────────

    def session_id(self) -> str | None:
        token = self.client.cookies.get(COOKIE_NAME)
        return verify_session_token(token) if token else None

    def session(self) -> SessionContext | None:
        session_id = self.session_id()
        return self.sessions.store.get(session_id) if session_id else None

    def flashes(self, category: str) -> list[str]:
        session = self.session()
        return session.flashes.get(category, []) if session else []

    def csrf(self) -> str:
        if self.session() is None:
            self.client.get("/entrar")
        return self.session().csrf_token

    # ── form helpers ─────────────────────────────────────────

    def post(self, url: str, data: dict | None = None):
        return self.client.post(url, data={**(data or {}), "_csrf": self.csrf()})

    def signup(self, email: str = "a@b.com", password: str = "password1"):
        return self.post("/registrar", {"email": email, "password": password, "confirmPassword": password})

    def login(self, email: str = "a@b.com", password: str = "password1"):
        return self.post("/entrar", {"email": email, "password": password})

    def assertRedirects(self, response, location: str):
        self.assertEqual(response.status_code, 302, response.text)
        self.assertEqual(response.headers["location"], location)
