"""Store model.

A store is a listed local business: name, unique slug, description, tags,
a point location with street address, an optional photo and its author.

Reviews are NOT loaded implicitly: the relationship raises on lazy access,
so every read path states whether it wants them (selectinload) or not.
"""

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Text, func, text
from sqlalchemy.ext.associationproxy import AssociationProxy, association_proxy
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storedir.models.user import User, utcnow
from storedir.stores.postgres import Base


class StoreTag(Base):
    """One tag on one store (a store carries each tag at most once)."""

    __tablename__ = "store_tags"

    store_id: Mapped[int] = mapped_column(
        ForeignKey("stores.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag: Mapped[str] = mapped_column(String(100), primary_key=True, index=True)

    def __repr__(self) -> str:
        return f"<StoreTag {self.store_id}:{self.tag}>"


class Store(Base):
    """Listed store."""

    __tablename__ = "stores"
    __table_args__ = (Index("ix_stores_latitude_longitude", "latitude", "longitude"),)

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(String(200))
    # Not a unique index: uniqueness comes from the slug allocator only
    slug: Mapped[str] = mapped_column(String(220), index=True)
    description: Mapped[str | None] = mapped_column(Text)
    # Normalized tokens of name + description (see services/text.py)
    search_text: Mapped[str] = mapped_column(Text, default="", server_default="")

    # Location (WGS84 point + street address)
    longitude: Mapped[float] = mapped_column(Float)
    latitude: Mapped[float] = mapped_column(Float)
    address: Mapped[str] = mapped_column(String(500))

    # Stored photo reference (filename under uploads_dir)
    photo: Mapped[str | None] = mapped_column(String(200))

    author_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)

    created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        index=True,
    )

    tag_rows: Mapped[list[StoreTag]] = relationship(
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by=StoreTag.tag,
    )
    tags: AssociationProxy[list[str]] = association_proxy(
        "tag_rows",
        "tag",
        creator=lambda tag: StoreTag(tag=tag),
    )

    author: Mapped[User] = relationship(lazy="raise")
    reviews: Mapped[list["Review"]] = relationship(  # noqa: F821
        back_populates="store",
        lazy="raise",
        order_by="Review.created.desc()",
    )

    @property
    def location(self) -> dict[str, object]:
        """GeoJSON-style point plus address."""
        return {
            "type": "Point",
            "coordinates": [self.longitude, self.latitude],
            "address": self.address,
        }

    def __repr__(self) -> str:
        return f"<Store {self.slug}>"


# Full-text index over name + description tokens (PostgreSQL only)
Index(
    "ix_stores_search_text",
    func.to_tsvector(text("'simple'::regconfig"), Store.search_text),
    postgresql_using="gin",
).ddl_if(dialect="postgresql")
