"""Checks applied at the point of entry, before any network call."""
from __future__ import annotations

from typing import Optional

from .config import MIN_PASSWORD_LENGTH


class ValidationError(ValueError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def require(value: Optional[str], message: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(message)
    return value.strip()


def validate_login(email: str, password: str) -> None:
    require(email, "Please enter your email")
    if not password:
        raise ValidationError("Please enter your password")


def validate_otp(otp: str) -> str:
    return require(otp, "Please enter the OTP")


def validate_new_password(new_password: str, confirm_password: str) -> None:
    if not new_password or not confirm_password:
        raise ValidationError("Please enter both password fields")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if new_password != confirm_password:
        raise ValidationError("Passwords do not match")


def validate_search_text(text: str) -> str:
    return require(text, "Please enter a search term")
