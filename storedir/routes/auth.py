"""Account and password reset endpoints.

POST /v1/auth/register      - create account, sign in
POST /v1/auth/login         - sign in
POST /v1/auth/logout        - sign out
GET  /v1/auth/me            - current user with hearts
POST /v1/auth/forgot        - mail a reset link
GET  /v1/auth/reset/{token} - check a reset token
POST /v1/auth/reset/{token} - set a new password, sign in
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from storedir.models import User
from storedir.routes.deps import require_user, sign_in, sign_out
from storedir.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserOut,
)
from storedir.services.accounts import authenticate, get_heart_ids, register_user
from storedir.services.password_reset import (
    confirm_passwords,
    consume_reset_token,
    request_password_reset,
    validate_reset_token,
)

router = APIRouter()


async def _user_out(user: User) -> UserOut:
    hearts = await get_heart_ids(user.id)
    return UserOut(id=user.id, email=user.email, name=user.name, hearts=sorted(hearts))


@router.post("/register", response_model=UserOut, status_code=201)
async def register(payload: RegisterRequest, request: Request) -> UserOut:
    confirm_passwords(payload.password, payload.password_confirm)
    user = await register_user(payload.email, payload.name, payload.password)
    sign_in(request, user)
    return await _user_out(user)


@router.post("/login", response_model=UserOut)
async def login(payload: LoginRequest, request: Request) -> UserOut:
    user = await authenticate(payload.email, payload.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    sign_in(request, user)
    return await _user_out(user)


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request) -> MessageResponse:
    sign_out(request)
    return MessageResponse(message="You are now logged out!")


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(require_user)) -> UserOut:
    return await _user_out(user)


@router.post("/forgot", response_model=MessageResponse)
async def forgot(payload: ForgotPasswordRequest) -> MessageResponse:
    """Issue a reset token and mail the link (valid for one hour)."""
    await request_password_reset(payload.email)
    return MessageResponse(message="You have been emailed a password reset link.")


@router.get("/reset/{token}", response_model=MessageResponse)
async def check_reset_token(token: str) -> MessageResponse:
    await validate_reset_token(token)
    return MessageResponse(message="Reset your password")


@router.post("/reset/{token}", response_model=UserOut)
async def reset_password(token: str, payload: ResetPasswordRequest, request: Request) -> UserOut:
    """Replace the password; the token is single-use and the user is signed in."""
    confirm_passwords(payload.password, payload.password_confirm)
    user = await consume_reset_token(token, payload.password)
    sign_in(request, user)
    return await _user_out(user)
