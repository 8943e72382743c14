"""User model.

Accounts own stores and reviews. The reset token fields are set and cleared
together; an expired token is only ignored at lookup time, never swept.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, Table, func
from sqlalchemy.orm import Mapped, mapped_column

from storedir.stores.postgres import Base


def utcnow() -> datetime:
    """Timezone-aware current time (UTC)."""
    return datetime.now(timezone.utc)


# Hearted stores (user <-> store set membership)
user_hearts = Table(
    "user_hearts",
    Base.metadata,
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("store_id", ForeignKey("stores.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """Registered user."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)

    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(120))

    # bcrypt hash, never serialized
    password_hash: Mapped[str] = mapped_column(String(100))

    # Password reset (both set or both NULL)
    reset_password_token: Mapped[str | None] = mapped_column(String(64), index=True)
    reset_password_expires: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<User {self.email}>"
