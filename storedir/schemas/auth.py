"""Schemas for account, session and password reset endpoints (/v1/auth)."""

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    """Request body for POST /v1/auth/register."""

    email: EmailStr
    name: str = Field(min_length=1, max_length=120)
    password: str = Field(min_length=8, max_length=72)
    password_confirm: str = Field(alias="passwordConfirm")

    model_config = {"populate_by_name": True}


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Request body for POST /v1/auth/reset/{token}."""

    password: str = Field(min_length=8, max_length=72)
    password_confirm: str = Field(alias="passwordConfirm")

    model_config = {"populate_by_name": True}


class UserOut(BaseModel):
    """The signed-in user (no credential fields)."""

    id: int
    email: str
    name: str
    hearts: list[int] = Field(default_factory=list)


class HeartsResponse(BaseModel):
    """Hearted store ids after a toggle."""

    store_id: int = Field(alias="storeId")
    hearted: bool
    hearts: list[int]

    model_config = {"populate_by_name": True}


class MessageResponse(BaseModel):
    message: str
