from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from story_admin.config import AUTH_STORAGE_KEY
from story_admin.datamodels import Admin
from story_admin.services.auth import AuthService
from story_admin.services.base import NetworkError, ServerError
from story_admin.storage import MemoryStorage
from story_admin.stores.session import SessionStore

ADMIN = Admin(id="a1", email="admin@example.com", display_name="Admin")


@pytest.fixture
def auth():
    return MagicMock(spec=AuthService)


@pytest.fixture
def storage():
    return MemoryStorage()


def test_restores_persisted_session(auth):
    storage = MemoryStorage(
        {AUTH_STORAGE_KEY: {"admin": ADMIN.to_dict(), "accessToken": "tok"}}
    )
    session = SessionStore(storage, auth)
    assert session.is_authenticated
    assert session.token() == "tok"
    assert session.admin == ADMIN


def test_ignores_incomplete_session(auth):
    storage = MemoryStorage({AUTH_STORAGE_KEY: {"admin": ADMIN.to_dict()}})
    session = SessionStore(storage, auth)
    assert not session.is_authenticated
    assert session.token() is None


def test_sign_in_persists_and_switches_to_light_mode(storage, auth):
    on_login = MagicMock()
    auth.login.return_value = (ADMIN, "tok-1")
    session = SessionStore(storage, auth, on_login=on_login)

    assert session.sign_in(" admin@example.com ", "password1") is True

    auth.login.assert_called_once_with("admin@example.com", "password1")
    on_login.assert_called_once_with("light")
    assert storage.get(AUTH_STORAGE_KEY) == {"admin": ADMIN.to_dict(), "accessToken": "tok-1"}
    assert session.token() == "tok-1"


def test_sign_in_validation_makes_no_call(storage, auth):
    session = SessionStore(storage, auth)
    assert session.sign_in("", "password1") is False
    assert session.error == "Please enter your email"
    assert session.sign_in("admin@example.com", "") is False
    assert session.error == "Please enter your password"
    auth.login.assert_not_called()


def test_sign_in_failure_keeps_logged_out(storage, auth):
    auth.login.side_effect = ServerError("Invalid credentials", 401)
    session = SessionStore(storage, auth)
    assert session.sign_in("admin@example.com", "wrong") is False
    assert session.error == "Invalid credentials"
    assert not session.is_authenticated
    assert session.is_loading is False


def test_logout_clears_even_when_server_fails(storage, auth):
    auth.logout.side_effect = NetworkError("Network error. Please try again.")
    session = SessionStore(storage, auth)
    session.login(ADMIN, "tok")

    session.logout()

    auth.logout.assert_called_once_with()
    assert not session.is_authenticated
    assert session.admin is None
    assert storage.get(AUTH_STORAGE_KEY) is None


def test_logout_without_token_skips_server(storage, auth):
    session = SessionStore(storage, auth)
    session.logout()
    auth.logout.assert_not_called()
