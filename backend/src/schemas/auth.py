"""Pydantic schemas for authentication and profile endpoints."""
from pydantic import BaseModel, EmailStr, Field

from models.user import Role


class RegisterRequest(BaseModel):
    """Schema for password registration."""

    name: str = Field(min_length=2, description="Display name, at least 2 characters")
    email: EmailStr
    password: str = Field(min_length=6, description="At least 6 characters")
    role: Role


class RegisterResponse(BaseModel):
    """Schema for a newly registered account."""

    id: int
    email: str
    role: Role


class SignInRequest(BaseModel):
    """Schema for credential sign-in."""

    email: EmailStr
    password: str = Field(min_length=1)


class IdentitySnapshot(BaseModel):
    """Minimal identity returned by a successful credential check."""

    id: int
    name: str
    email: str
    role: Role
    onboarded: bool


class RoleRequest(BaseModel):
    """Schema for role selection during onboarding."""

    role: Role


class RoleResponse(BaseModel):
    """Schema for the chosen role."""

    role: Role


class ProfileResponse(BaseModel):
    """Schema for the signed-in user's profile (never includes the password hash)."""

    id: int
    name: str
    email: str
    image: str | None
    role: Role
    has_password: bool
    providers: list[str]


class ProfileUpdate(BaseModel):
    """Schema for a display-name change."""

    name: str = Field(min_length=2)


class AvatarUpdate(BaseModel):
    """Schema for an avatar change; null removes the avatar."""

    image: str | None


class PasswordChange(BaseModel):
    """
    Schema for setting or changing a password.

    current_password is required only when the account already has one.
    """

    current_password: str | None = None
    new_password: str = Field(min_length=6)


class SuccessResponse(BaseModel):
    """Generic acknowledgement."""

    success: bool = True


class LandingResponse(BaseModel):
    """Where the client should route a page request."""

    destination: str
