from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from ..config import AUTH_STORAGE_KEY
from ..datamodels import Admin
from ..services.auth import AuthService
from ..services.base import ApiError
from ..storage import KeyValueStorage
from ..validation import ValidationError, validate_login

logger = logging.getLogger("story_admin")

LIGHT_MODE = "light"


class SessionStore:
    """Authenticated admin identity and bearer token, persisted across runs."""

    def __init__(
        self,
        storage: KeyValueStorage,
        auth_service: Optional[AuthService] = None,
        on_login: Optional[Callable[[str], None]] = None,
        storage_key: str = AUTH_STORAGE_KEY,
    ):
        self.storage = storage
        self.auth_service = auth_service
        self.on_login = on_login
        self.storage_key = storage_key
        self._lock = threading.RLock()
        self.admin: Optional[Admin] = None
        self.access_token: Optional[str] = None
        self.error: Optional[str] = None
        self.is_loading = False
        self._restore()

    def _restore(self) -> None:
        record = self.storage.get(self.storage_key)
        if not isinstance(record, dict):
            return
        token = record.get("accessToken")
        admin = record.get("admin")
        if not token or not isinstance(admin, dict):
            logger.warning("Ignoring incomplete stored session")
            return
        self.admin = Admin.from_dict(admin)
        self.access_token = token
        logger.info("Restored session for %s", self.admin.email)

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def token(self) -> Optional[str]:
        """Token provider handed to the API clients; read on every request."""
        return self.access_token

    def login(self, admin: Admin, access_token: str) -> None:
        with self._lock:
            self.admin = admin
            self.access_token = access_token
            self.error = None
            self.storage.set(
                self.storage_key, {"admin": admin.to_dict(), "accessToken": access_token}
            )
        if self.on_login:
            self.on_login(LIGHT_MODE)

    def sign_in(self, email: str, password: str) -> bool:
        """Validate, call the login endpoint and store the result."""
        try:
            validate_login(email, password)
        except ValidationError as e:
            self.error = e.message
            return False
        if self.auth_service is None:
            raise RuntimeError("SessionStore has no auth service")

        self.is_loading = True
        self.error = None
        try:
            admin, token = self.auth_service.login(email.strip(), password)
        except ApiError as e:
            logger.warning("Login failed for %s: %s", email, e)
            self.error = e.message
            return False
        finally:
            self.is_loading = False
        self.login(admin, token)
        return True

    def logout(self) -> None:
        """Always clears the local session, even when the remote call fails."""
        try:
            if self.auth_service is not None and self.access_token:
                self.auth_service.logout()
        except ApiError as e:
            logger.error("Logout failed: %s", e)
        finally:
            self._clear()

    def _clear(self) -> None:
        with self._lock:
            self.admin = None
            self.access_token = None
            self.storage.clear(self.storage_key)
        logger.info("Session cleared")
