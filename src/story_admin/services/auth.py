from __future__ import annotations

import logging
from typing import Tuple

from ..datamodels import Admin
from .base import ApiClient, ServerError

logger = logging.getLogger("story_admin")


class AuthService(ApiClient):
    """Admin authentication and password endpoints."""

    def login(self, email: str, password: str) -> Tuple[Admin, str]:
        body = self._post(
            "admin/login", "Login failed", json={"email": email, "password": password}
        )
        data = body.get("data") or {}
        token = data.get("accessToken") or data.get("token")
        if not token:
            raise ServerError("Login failed", payload=body)
        admin = Admin.from_dict(data.get("admin") or data.get("user") or {"email": email})
        logger.info("Logged in as %s", admin.email)
        return admin, token

    def logout(self) -> str:
        body = self._post("admin/logout", "Logout failed")
        return body.get("message", "")

    def forgot_password(self, email: str) -> str:
        body = self._post("admin/forgot-password", "Failed to send OTP", json={"email": email})
        return body.get("message") or "OTP sent to your email"

    def verify_otp(self, email: str, otp: str) -> str:
        body = self._post(
            "admin/verify-otp", "OTP verification failed", json={"email": email, "otp": otp}
        )
        return body.get("message") or "OTP verified successfully"

    def reset_password(self, email: str, new_password: str) -> str:
        body = self._post(
            "admin/reset-password",
            "Password reset failed",
            json={"email": email, "newPassword": new_password},
        )
        return body.get("message") or "Password reset successfully"

    def change_password(self, old_password: str, new_password: str) -> str:
        body = self._put(
            "admin/change-password",
            "Failed to change password",
            json={"oldPassword": old_password, "newPassword": new_password},
        )
        return body.get("message") or "Password changed successfully!"
