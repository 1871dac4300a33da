"""Pydantic schemas for authentication."""

import re

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from apps.api.auth.permissions import Role

PASSWORD_SPECIALS = "@$!%*?&"


def validate_password_strength(v: str) -> str:
    """At least 8 characters with a lowercase, uppercase, digit and special."""
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not (
        re.search(r"[a-z]", v)
        and re.search(r"[A-Z]", v)
        and re.search(r"\d", v)
        and re.search(f"[{re.escape(PASSWORD_SPECIALS)}]", v)
    ):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase "
            "letter, one number, and one special character"
        )
    return v


class CamelModel(BaseModel):
    """Base for auth payloads: camelCase on the wire, snake_case in code."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Request Schemas
# =============================================================================


class UserLogin(CamelModel):
    """User login request."""

    email: EmailStr
    password: str = Field(min_length=1)


class UserRegister(CamelModel):
    """User registration request."""

    email: EmailStr
    password: str
    confirm_password: str
    full_name: str
    role: Role = Role.VIEWER

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)

    @field_validator("confirm_password")
    @classmethod
    def validate_confirm_password(cls, v: str, info: ValidationInfo) -> str:
        """Must repeat the password exactly."""
        # info.data lacks "password" when that field already failed
        if "password" in info.data and v != info.data["password"]:
            raise ValueError("Passwords do not match")
        return v

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        """Validate full name."""
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Full name must be at least 2 characters")
        if len(v) > 50:
            raise ValueError("Full name must not exceed 50 characters")
        return v


class TokenRefresh(CamelModel):
    """Token refresh request."""

    refresh_token: str = Field(min_length=1)


class ProfileUpdate(CamelModel):
    """Profile update. Only supplied, non-empty attributes are changed."""

    full_name: str | None = None
    role: Role | None = None

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if v and not 2 <= len(v) <= 50:
            raise ValueError("Full name must be 2-50 characters")
        return v or None


class ChangePassword(CamelModel):
    """Authenticated password change."""

    current_password: str = Field(min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)


class ForgotPasswordRequest(CamelModel):
    """Password reset request (forgot password)."""

    email: EmailStr


class ResetPasswordRequest(CamelModel):
    """Password reset with the emailed confirmation code."""

    email: EmailStr
    confirmation_code: str = Field(min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Same rules as registration."""
        return validate_password_strength(v)


class ConfirmSignup(CamelModel):
    """Signup confirmation with the emailed code."""

    email: EmailStr
    confirmation_code: str = Field(min_length=1)


class ResendConfirmation(CamelModel):
    """Request a new signup confirmation code."""

    email: EmailStr


# =============================================================================
# Response Schemas
# =============================================================================


class UserProfile(CamelModel):
    """Profile as mirrored from the identity backend."""

    id: str
    username: str
    email: str | None = None
    full_name: str | None = None
    role: str = Role.VIEWER.value
    created_at: str
    last_login: str


class LoginResponse(CamelModel):
    """Tokens issued by a completed login."""

    user: UserProfile
    access_token: str
    refresh_token: str | None = None
    id_token: str | None = None


class ChallengeResponse(CamelModel):
    """Secondary challenge (e.g. MFA) demanded by the identity backend."""

    challenge: str
    session: str | None = None
    challenge_parameters: dict[str, str] = Field(default_factory=dict)


class RegisterResponse(CamelModel):
    """Result of a signup."""

    message: str
    user_id: str
    confirmation_required: bool


class TokenResponse(CamelModel):
    """Tokens issued by a refresh."""

    access_token: str
    id_token: str | None = None


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str
