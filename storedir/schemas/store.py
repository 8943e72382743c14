"""Schemas for store, review and discovery endpoints (/v1/stores)."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from storedir.models import Review, Store


class LocationIn(BaseModel):
    """Point location supplied when creating or editing a store."""

    longitude: float = Field(ge=-180, le=180)
    latitude: float = Field(ge=-90, le=90)
    address: str = Field(min_length=1, max_length=500)


class Location(BaseModel):
    """GeoJSON-style point with street address."""

    type: str = "Point"
    coordinates: list[float] = Field(min_length=2, max_length=2, description="[lng, lat]")
    address: str


class StoreCreate(BaseModel):
    """Request body for POST /v1/stores."""

    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    tags: list[str] = Field(default_factory=list)
    location: LocationIn
    photo: str | None = Field(
        default=None,
        description="Optional image as a data URL (data:image/png;base64,...)",
    )

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please enter a store name!")
        return v


class StoreUpdate(BaseModel):
    """Request body for PATCH /v1/stores/{id}; omitted fields are left alone."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    tags: list[str] | None = None
    location: LocationIn | None = None


class ReviewCreate(BaseModel):
    """Request body for POST /v1/stores/{id}/reviews."""

    rating: int = Field(ge=1, le=5)
    text: str = Field(default="", max_length=5000)


class ReviewOut(BaseModel):
    """A review as shown under a store."""

    id: int
    store_id: int = Field(alias="storeId")
    author_id: int = Field(alias="authorId")
    author_name: str | None = Field(alias="authorName", default=None)
    rating: int
    text: str
    created: datetime

    model_config = {"populate_by_name": True}

    @classmethod
    def from_review(cls, review: Review, *, author_name: str | None = None) -> "ReviewOut":
        return cls(
            id=review.id,
            store_id=review.store_id,
            author_id=review.author_id,
            author_name=author_name,
            rating=review.rating,
            text=review.text or "",
            created=review.created,
        )


class StoreOut(BaseModel):
    """A store without its reviews (lean projection)."""

    id: int
    name: str
    slug: str
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    created: datetime
    location: Location
    photo: str | None = None
    author_id: int = Field(alias="authorId")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_store(cls, store: Store) -> "StoreOut":
        return cls(
            id=store.id,
            name=store.name,
            slug=store.slug,
            description=store.description,
            tags=list(store.tags),
            created=store.created,
            location=Location(**store.location),
            photo=store.photo,
            author_id=store.author_id,
        )


class StoreDetail(StoreOut):
    """A store with its reviews, newest first."""

    reviews: list[ReviewOut] = Field(default_factory=list)

    @classmethod
    def from_store_with_reviews(cls, store: Store, reviews: list[ReviewOut]) -> "StoreDetail":
        return cls(**StoreOut.from_store(store).model_dump(), reviews=reviews)


class StoreSearchHit(StoreOut):
    """A text search result with its relevance score."""

    score: float


class StoreMapOut(BaseModel):
    """Reduced projection returned by proximity search."""

    slug: str
    name: str
    description: str | None = None
    location: Location
    photo: str | None = None


class StorePage(BaseModel):
    """One page of the store listing."""

    stores: list[StoreOut]
    page: int = Field(ge=1)
    pages: int = Field(ge=0)
    count: int = Field(ge=0)


class TagFacet(BaseModel):
    """A tag and the number of stores carrying it."""

    tag: str
    count: int = Field(ge=1)


class TagListing(BaseModel):
    """Stores for a tag (or all stores) together with the facet table."""

    tag: str | None = None
    tags: list[TagFacet]
    stores: list[StoreOut]


class TopStore(BaseModel):
    """A store in the top-rated leaderboard."""

    id: int
    slug: str
    name: str
    photo: str | None = None
    average_rating: float = Field(alias="averageRating")
    review_count: int = Field(alias="reviewCount", ge=2)
    reviews: list[ReviewOut] = Field(default_factory=list)

    model_config = {"populate_by_name": True}
