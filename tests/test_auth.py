"""Tests for the auth session lifecycle."""

from types import SimpleNamespace

import pytest
from supabase import AuthError

from auth import DEMO_USER, AuthSession
from exceptions import AuthenticationError


class RejectedSignIn(AuthError):
    def __init__(self, message):
        Exception.__init__(self, message)
        self.message = message


class FakeSubscription:
    def __init__(self):
        self.unsubscribed = False

    def unsubscribe(self):
        self.unsubscribed = True


class FakeAuth:
    def __init__(self, session=None):
        self.session = session
        self.callbacks = []
        self.subscriptions = []
        self.reject = None
        self.signed_out = False

    def get_session(self):
        return self.session

    def on_auth_state_change(self, callback):
        self.callbacks.append(callback)
        subscription = FakeSubscription()
        self.subscriptions.append(subscription)
        return subscription

    def sign_in_with_password(self, credentials):
        if self.reject:
            raise RejectedSignIn(self.reject)
        user = SimpleNamespace(email=credentials["email"])
        return SimpleNamespace(session=SimpleNamespace(user=user))

    def sign_out(self):
        self.signed_out = True


def make_session(email):
    return SimpleNamespace(user=SimpleNamespace(email=email))


@pytest.fixture
def auth_client():
    return SimpleNamespace(auth=FakeAuth())


class TestLifecycle:
    """init/teardown and backend notifications."""

    def test_starts_loading_until_init(self, auth_client) -> None:
        session = AuthSession(auth_client)
        assert session.loading

        session.init()

        assert not session.loading
        assert not session.is_authenticated

    def test_init_restores_stored_session(self, auth_client) -> None:
        auth_client.auth.session = make_session("admin@example.com")

        session = AuthSession(auth_client).init()

        assert session.is_authenticated
        assert session.user_email == "admin@example.com"

    def test_init_subscribes_once(self, auth_client) -> None:
        session = AuthSession(auth_client)
        session.init()
        session.init()

        assert len(auth_client.auth.callbacks) == 1

    def test_state_change_updates_session(self, auth_client) -> None:
        session = AuthSession(auth_client).init()
        notify = auth_client.auth.callbacks[0]

        notify("SIGNED_IN", make_session("other@example.com"))
        assert session.user_email == "other@example.com"

        notify("SIGNED_OUT", None)
        assert not session.is_authenticated

    def test_teardown_unsubscribes(self, auth_client) -> None:
        session = AuthSession(auth_client).init()

        session.teardown()
        session.teardown()

        assert auth_client.auth.subscriptions[0].unsubscribed


class TestSignIn:
    """Credential sign-in and sign-out."""

    def test_sign_in_sets_session(self, auth_client) -> None:
        session = AuthSession(auth_client).init()

        session.sign_in("admin@example.com", "secret")

        assert session.is_authenticated
        assert session.user_email == "admin@example.com"

    def test_rejected_sign_in_raises_with_backend_message(self, auth_client) -> None:
        auth_client.auth.reject = "Invalid login credentials"
        session = AuthSession(auth_client).init()

        with pytest.raises(AuthenticationError, match="Invalid login credentials"):
            session.sign_in("admin@example.com", "wrong")

        assert not session.is_authenticated

    def test_sign_out(self, auth_client) -> None:
        auth_client.auth.session = make_session("admin@example.com")
        session = AuthSession(auth_client).init()

        session.sign_out()

        assert auth_client.auth.signed_out
        assert not session.is_authenticated


class TestBackendFailures:
    """Auth API errors surface as AuthenticationError."""

    def test_failed_sign_out_keeps_session(self, auth_client) -> None:
        auth_client.auth.session = make_session("admin@example.com")
        session = AuthSession(auth_client).init()

        def broken_sign_out():
            raise RejectedSignIn("network down")

        auth_client.auth.sign_out = broken_sign_out

        with pytest.raises(AuthenticationError, match="network down"):
            session.sign_out()
        assert session.is_authenticated

    def test_failed_session_restore(self, auth_client) -> None:
        def broken_get_session():
            raise RejectedSignIn("refresh token expired")

        auth_client.auth.get_session = broken_get_session
        session = AuthSession(auth_client)

        with pytest.raises(AuthenticationError, match="refresh token expired"):
            session.init()
        assert session.loading
        assert auth_client.auth.callbacks == []

    def test_user_id(self, auth_client) -> None:
        auth_client.auth.session = SimpleNamespace(user=SimpleNamespace(id="user-1", email="a@example.com"))

        assert AuthSession(auth_client).init().user_id == "user-1"
        assert AuthSession(SimpleNamespace(auth=FakeAuth())).init().user_id is None


class TestDemoMode:
    """Demo mode bypasses the auth backend."""

    def test_demo_user_without_backend_calls(self) -> None:
        client = SimpleNamespace(auth=FakeAuth())

        session = AuthSession(client, demo_mode=True).init()
        session.sign_in("anyone@example.com", "x")
        session.sign_out()

        assert session.user is DEMO_USER
        assert session.is_authenticated
        assert client.auth.callbacks == []
        assert not client.auth.signed_out
