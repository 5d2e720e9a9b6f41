from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from ..services.auth import AuthService
from ..services.base import ApiError
from ..validation import (
    ValidationError,
    require,
    validate_new_password,
    validate_otp,
)

logger = logging.getLogger("story_admin")


class ResetStep(str, Enum):
    EMAIL = "email"
    OTP = "otp"
    NEW_PASSWORD = "newPassword"
    DONE = "done"


class PasswordResetFlow:
    """Forgot-password flow: request an OTP, verify it, then set a new password."""

    def __init__(self, auth_service: AuthService):
        self.auth_service = auth_service
        self.reset()

    def reset(self) -> None:
        self.step = ResetStep.EMAIL
        self.email = ""
        self.error: Optional[str] = None
        self.message: Optional[str] = None
        self.is_loading = False

    def _call(self, fn, *args) -> bool:
        self.is_loading = True
        self.error = None
        self.message = None
        try:
            self.message = fn(*args)
            return True
        except ApiError as e:
            logger.warning("Password reset step %s failed: %s", self.step.value, e)
            self.error = e.message
            return False
        finally:
            self.is_loading = False

    def request_otp(self, email: str) -> bool:
        try:
            email = require(email, "Please enter your email")
        except ValidationError as e:
            self.error = e.message
            return False
        if not self._call(self.auth_service.forgot_password, email):
            return False
        self.email = email
        self.step = ResetStep.OTP
        return True

    def verify_otp(self, otp: str) -> bool:
        try:
            otp = validate_otp(otp)
        except ValidationError as e:
            self.error = e.message
            return False
        if not self._call(self.auth_service.verify_otp, self.email, otp):
            return False
        self.step = ResetStep.NEW_PASSWORD
        return True

    def reset_password(self, new_password: str, confirm_password: str) -> bool:
        try:
            validate_new_password(new_password, confirm_password)
        except ValidationError as e:
            self.error = e.message
            return False
        if not self._call(self.auth_service.reset_password, self.email, new_password):
            return False
        self.step = ResetStep.DONE
        return True

    def back(self) -> None:
        if self.step is ResetStep.NEW_PASSWORD:
            self.step = ResetStep.OTP
        elif self.step is ResetStep.OTP:
            self.step = ResetStep.EMAIL
        self.error = None


class ChangePasswordForm:
    def __init__(self, auth_service: AuthService):
        self.auth_service = auth_service
        self.error: Optional[str] = None
        self.message: Optional[str] = None

    def submit(self, old_password: str, new_password: str, confirm_password: str) -> bool:
        self.error = None
        self.message = None
        try:
            require(old_password, "Please enter your current password")
            validate_new_password(new_password, confirm_password)
        except ValidationError as e:
            self.error = e.message
            return False
        try:
            self.message = self.auth_service.change_password(old_password, new_password)
        except ApiError as e:
            logger.warning("Change password failed: %s", e)
            self.error = e.message or "Failed to change password."
            return False
        return True
