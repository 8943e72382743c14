"""User accounts: registration, credential checks, lookups."""

import logging

import bcrypt
from sqlalchemy import select

from storedir.models import User, user_hearts
from storedir.services.errors import NotFound, ValidationFailure
from storedir.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    return bcrypt.checkpw(plain.encode(), hashed.encode())


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def register_user(email: str, name: str, password: str) -> User:
    """Create an account.

    Raises:
        ValidationFailure: If the email is already registered or the name is blank.
    """
    email = normalize_email(email)
    name = name.strip()
    if not name:
        raise ValidationFailure("name", "You must supply a name!")

    async with get_session() as session:
        existing = await session.execute(select(User.id).where(User.email == email))
        if existing.scalar_one_or_none() is not None:
            raise ValidationFailure("email", "Email already registered")

        user = User(email=email, name=name, password_hash=hash_password(password))
        session.add(user)
        await session.flush()

    logger.info(f"Registered user {user.id}")
    return user


async def authenticate(email: str, password: str) -> User | None:
    """Return the user for valid credentials, else None."""
    async with get_session() as session:
        result = await session.execute(select(User).where(User.email == normalize_email(email)))
        user = result.scalar_one_or_none()

    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


async def get_user(user_id: int) -> User:
    """Load a user by id.

    Raises:
        NotFound: If no such user exists.
    """
    async with get_session() as session:
        user = await session.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found", detail={"user_id": user_id})
    return user


async def get_heart_ids(user_id: int) -> set[int]:
    """Store ids the user has hearted."""
    async with get_session() as session:
        result = await session.execute(
            select(user_hearts.c.store_id).where(user_hearts.c.user_id == user_id)
        )
        return set(result.scalars().all())
