"""Shared route helpers: session user and error envelopes."""

from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from storedir.models import User
from storedir.schemas import ErrorDetail, ErrorResponse
from storedir.services.accounts import get_user
from storedir.services.errors import NotFound, OwnershipViolation

SESSION_USER_KEY = "user_id"


def error_response(
    status_code: int,
    code: str,
    message: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    """Structured error: {"error": {"code", "message", "detail"}}."""
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def ownership_error(violation: OwnershipViolation) -> JSONResponse:
    return error_response(
        violation.status_code,
        violation.code,
        violation.message,
        {"store_id": violation.store_id},
    )


def sign_in(request: Request, user: User) -> None:
    request.session[SESSION_USER_KEY] = user.id


def sign_out(request: Request) -> None:
    request.session.clear()


async def require_user(request: Request) -> User:
    """Raise 401 unless the session belongs to an existing user."""
    user_id = request.session.get(SESSION_USER_KEY)
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return await get_user(int(user_id))
    except NotFound:
        request.session.clear()
        raise HTTPException(status_code=401, detail="Not authenticated") from None
