"""Pydantic schemas for accounts and sessions."""

from datetime import datetime

from pydantic import Field, field_validator, model_validator
from pydantic.networks import validate_email

from devportal.schemas.base import CamelModel


class SignupRequest(CamelModel):
    """Local signup body.

    The email must be a valid address but is stored exactly as submitted:
    login matches it byte for byte, so it is never normalized.
    """

    email: str
    password: str = Field(..., min_length=6)
    confirm_password: str

    @field_validator("email")
    @classmethod
    def email_is_valid(cls, value: str) -> str:
        validate_email(value)
        return value

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("confirmPassword must match password")
        return self


class LoginRequest(CamelModel):
    email: str
    password: str


class SessionRead(CamelModel):
    """A session. `id` is the bearer token to send in Authorization."""

    id: str
    user_id: str = Field(..., serialization_alias="user")
    created_at: datetime


class UserRead(CamelModel):
    """A user as shown to clients — never includes the password hash."""

    id: str
    email: str
    type: str
    created_at: datetime
