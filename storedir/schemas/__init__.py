"""Pydantic schemas for API request/response validation."""

from storedir.schemas.auth import (
    ForgotPasswordRequest,
    HeartsResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserOut,
)
from storedir.schemas.common import ErrorDetail, ErrorResponse
from storedir.schemas.store import (
    Location,
    LocationIn,
    ReviewCreate,
    ReviewOut,
    StoreCreate,
    StoreDetail,
    StoreMapOut,
    StoreOut,
    StorePage,
    StoreSearchHit,
    StoreUpdate,
    TagFacet,
    TagListing,
    TopStore,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "ForgotPasswordRequest",
    "HeartsResponse",
    "Location",
    "LocationIn",
    "LoginRequest",
    "MessageResponse",
    "RegisterRequest",
    "ResetPasswordRequest",
    "ReviewCreate",
    "ReviewOut",
    "StoreCreate",
    "StoreDetail",
    "StoreMapOut",
    "StoreOut",
    "StorePage",
    "StoreSearchHit",
    "StoreUpdate",
    "TagFacet",
    "TagListing",
    "TopStore",
    "UserOut",
]
