# schema/auth.py
from __future__ import annotations
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from schema.base import CamelModel
from schema.user import ProfileOut


class SignUpIn(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    name: Optional[str] = Field(None, max_length=100)


class SignInIn(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class AuthOut(CamelModel):
    token: str
    user: ProfileOut


class InviteCodeIn(CamelModel):
    code: str = Field(..., min_length=1, max_length=50)

    @field_validator("code")
    @classmethod
    def normalize(cls, v: str) -> str:
        return v.strip().upper()


class InviteValidateOut(CamelModel):
    valid: bool
    code: Optional[str] = None
    message: Optional[str] = None


class CompleteProfileIn(CamelModel):
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_]+$")
    display_name: str = Field(..., min_length=1, max_length=100)
    invite_code: Optional[str] = Field(None, max_length=50)

    @field_validator("invite_code")
    @classmethod
    def normalize_code(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().upper()
        return v or None


class ForgotPasswordIn(CamelModel):
    email: EmailStr


class ForgotPasswordOut(CamelModel):
    message: str = "If an account with that email exists, a password reset link has been sent."


class VerifyResetTokenIn(CamelModel):
    token: str = Field(..., min_length=16, max_length=255)


class VerifyResetTokenOut(CamelModel):
    valid: bool
    message: str


class ResetPasswordIn(CamelModel):
    token: str = Field(..., min_length=16, max_length=255)
    new_password: str = Field(..., min_length=8, max_length=128)


__all__ = [
    "SignUpIn",
    "SignInIn",
    "AuthOut",
    "InviteCodeIn",
    "InviteValidateOut",
    "CompleteProfileIn",
    "ForgotPasswordIn",
    "ForgotPasswordOut",
    "VerifyResetTokenIn",
    "VerifyResetTokenOut",
    "ResetPasswordIn",
]
