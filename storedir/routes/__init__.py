"""API routes."""

from fastapi import APIRouter

from storedir.routes import auth, stores

api_router = APIRouter()

# Accounts, sessions, password reset
api_router.include_router(auth.router, prefix="/v1/auth", tags=["auth"])

# Catalog: listing, discovery, hearts, reviews
api_router.include_router(stores.router, prefix="/v1/stores", tags=["stores"])
