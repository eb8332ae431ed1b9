"""
auth.py
Auth session for the console: sign-in/out through the backend's auth API.

AuthSession has an explicit lifecycle: init() reads the stored session and
subscribes to auth-state changes, teardown() unsubscribes. Views only read
`session` / `user` / `is_authenticated`; the state changes through sign_in(),
sign_out() or backend notifications.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from supabase import AuthError

from exceptions import AuthenticationError
from logs import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DemoUser:
    id: str = "00000000-0000-0000-0000-000000000000"
    email: str = "demo@residents.local"


DEMO_USER = DemoUser()


class AuthSession:
    def __init__(self, client, demo_mode: bool = False):
        self._client = client
        self._demo_mode = demo_mode
        self._session: Any = None
        self._subscription: Any = None
        self._loading = True

    # ---------- Lifecycle ----------

    def init(self) -> "AuthSession":
        if self._demo_mode:
            self._loading = False
            return self
        if self._subscription is not None:
            return self

        try:
            self._session = self._client.auth.get_session()
        except AuthError as exc:
            logger.warning("Could not restore auth session: %s", exc.message)
            raise AuthenticationError(exc.message or "Could not restore session") from exc
        self._subscription = self._client.auth.on_auth_state_change(self._on_auth_change)
        self._loading = False
        return self

    def teardown(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_auth_change(self, event, session) -> None:
        logger.debug("Auth state change: %s", event)
        self._session = session

    # ---------- Read-only state ----------

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def session(self):
        return self._session

    @property
    def user(self):
        if self._demo_mode:
            return DEMO_USER
        return getattr(self._session, "user", None)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def user_id(self) -> str | None:
        return getattr(self.user, "id", None)

    @property
    def user_email(self) -> str | None:
        return getattr(self.user, "email", None)

    # ---------- Operations ----------

    def sign_in(self, email: str, password: str) -> None:
        if self._demo_mode:
            return
        try:
            response = self._client.auth.sign_in_with_password({"email": email, "password": password})
        except AuthError as exc:
            logger.info("Sign-in rejected for %s", email)
            raise AuthenticationError(exc.message or "Invalid email or password") from exc
        # the state-change callback may run later; do not wait for it
        self._session = response.session
        logger.info("Signed in as %s", email)

    def sign_out(self) -> None:
        if self._demo_mode:
            return
        try:
            self._client.auth.sign_out()
        except AuthError as exc:
            logger.warning("Sign-out failed: %s", exc.message)
            raise AuthenticationError(exc.message or "Sign-out failed") from exc
        self._session = None
