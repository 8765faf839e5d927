"""
# Authentication Models

Request bodies accepted by the authentication and password endpoints.

Emails are normalized to lowercase so lookups match the unique indexes of the principal
collections. Length rules on new passwords are enforced by the password service, which owns the
configured minimum, so the models only require presence.

## Module Attributes

Attributes:
    RESET_USER_TYPES (tuple): Principal kinds a reset link can target.
"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

RESET_USER_TYPES = ("admin", "club", "user")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ChangePasswordRequest(BaseModel):
    currentPassword: str = ""
    newPassword: str = ""


class ResetRequest(BaseModel):
    """Ask for a reset link for the principal of kind `userType` owning `email`."""

    email: EmailStr
    userType: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("userType")
    @classmethod
    def known_user_type(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in RESET_USER_TYPES:
            raise ValueError("Type d'utilisateur invalide")
        return v


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    userType: str
    newPassword: str
    confirmPassword: Optional[str] = None

    @field_validator("userType")
    @classmethod
    def known_user_type(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in RESET_USER_TYPES:
            raise ValueError("Type d'utilisateur invalide")
        return v
