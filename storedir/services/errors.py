"""Domain failures raised (or returned) by the services.

Every exception carries a stable ``code`` and the HTTP status the API layer
maps it to. Ownership violations and out-of-range pages are returned as
results instead of raised, so callers handle them before any write or render.
"""

from dataclasses import dataclass
from typing import Any


class StoreDirError(Exception):
    """Base class for domain failures."""

    code = "ERROR"
    status_code = 400

    def __init__(self, message: str, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationFailure(StoreDirError):
    """A required field is missing or invalid."""

    code = "VALIDATION_FAILED"
    status_code = 422

    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"You must supply {field}!", detail={"field": field})
        self.field = field


class NotFound(StoreDirError):
    """Lookup by slug or id missed."""

    code = "NOT_FOUND"
    status_code = 404


class AuthResetInvalid(StoreDirError):
    """Unknown email, or reset token wrong or expired.

    The message never says which of the token cases occurred.
    """

    code = "RESET_INVALID"
    status_code = 400


class PasswordMismatch(StoreDirError):
    """Password confirmation differs from the password."""

    code = "PASSWORD_MISMATCH"
    status_code = 400

    def __init__(self) -> None:
        super().__init__("Passwords do not match!")


class MailError(StoreDirError):
    """Mail collaborator rejected or failed the send."""

    code = "MAIL_FAILED"
    status_code = 502


@dataclass(frozen=True)
class OwnershipViolation:
    """Acting user is not the store's author; nothing was written."""

    store_id: int
    user_id: int
    message: str = "You must own a store to edit it!"

    code = "NOT_OWNER"
    status_code = 403


@dataclass(frozen=True)
class PageRedirect:
    """Requested page is past the end; ``page`` is the last valid page."""

    requested: int
    page: int
