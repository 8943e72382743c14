"""Catalog service: store writes, lookups and the paged listing.

Writes:
- create_store: validate, save photo (best effort), allocate slug, insert
- update_store / set_store_photo: ownership check first, then write

Reads:
- Single-store reads join the reviews (and their authors) unless the caller asks
  for the lean projection with with_reviews=False. Listings are always lean.
- Paged listing: 4 stores per page, newest first. A page past the end is
  answered with PageRedirect(last valid page), never with an empty page.
"""

import logging
import math
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from storedir.models import Review, Store, StoreTag
from storedir.schemas import ReviewOut, StoreDetail, StoreOut, StorePage
from storedir.services.errors import NotFound, OwnershipViolation, PageRedirect, ValidationFailure
from storedir.services.photos import PhotoUpload, discard_photo, save_photo
from storedir.services.slugs import next_store_slug, shares_base, slugify
from storedir.services.text import search_document
from storedir.stores.postgres import get_session
from storedir.stores.redis import invalidate_catalog_cache

logger = logging.getLogger("uvicorn.error")

PAGE_SIZE = 4


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Strip, drop blanks and duplicates, keep first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags:
        tag = tag.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


def check_owner(store: Store, user_id: int) -> OwnershipViolation | None:
    """Return a violation unless user_id authored the store."""
    if store.author_id != user_id:
        return OwnershipViolation(store_id=store.id, user_id=user_id)
    return None


def with_reviews_loaded():
    """Loader option for the store -> reviews (-> author) join."""
    return selectinload(Store.reviews).selectinload(Review.author)


def to_review_out(review: Review) -> ReviewOut:
    return ReviewOut.from_review(review, author_name=review.author.name)


def to_store_detail(store: Store) -> StoreDetail:
    """Build the full store view; reviews must have been loaded."""
    return StoreDetail.from_store_with_reviews(
        store,
        [to_review_out(r) for r in store.reviews],
    )


def _apply_tags(store: Store, tags: Iterable[str]) -> None:
    desired = normalize_tags(tags)
    current = {row.tag: row for row in store.tag_rows}
    store.tag_rows = [current.get(tag) or StoreTag(tag=tag) for tag in desired]


async def create_store(
    *,
    author_id: int | None,
    name: str | None,
    longitude: float | None,
    latitude: float | None,
    address: str | None,
    description: str | None = None,
    tags: Iterable[str] = (),
    photo: PhotoUpload | None = None,
) -> Store:
    """Create a store with a freshly allocated slug.

    Raises:
        ValidationFailure: Naming the first missing field (name, coordinates, address, author).
    """
    name = (name or "").strip()
    if not name:
        raise ValidationFailure("name", "Please enter a store name!")
    if longitude is None or latitude is None:
        raise ValidationFailure("coordinates", "You must supply coordinates!")
    address = (address or "").strip()
    if not address:
        raise ValidationFailure("address", "You must supply an address!")
    if author_id is None:
        raise ValidationFailure("author", "You must supply an author")

    # A bad photo never blocks the store itself
    photo_ref = save_photo(photo) if photo is not None else None
    description = (description or "").strip() or None

    try:
        async with get_session() as session:
            store = Store(
                name=name,
                slug=await next_store_slug(session, name),
                description=description,
                search_text=search_document(name, description),
                longitude=float(longitude),
                latitude=float(latitude),
                address=address,
                photo=photo_ref,
                author_id=author_id,
            )
            _apply_tags(store, tags)
            session.add(store)
            await session.flush()
    except Exception:
        if photo_ref is not None:
            discard_photo(photo_ref)
        raise

    logger.info(f"Created store {store.id} ({store.slug})")
    await invalidate_catalog_cache()
    return store


async def update_store(
    store_id: int,
    user_id: int,
    *,
    name: str | None = None,
    description: str | None = None,
    tags: Iterable[str] | None = None,
    longitude: float | None = None,
    latitude: float | None = None,
    address: str | None = None,
) -> Store | OwnershipViolation:
    """Edit a store owned by user_id. Omitted (None) fields are left unchanged.

    The slug follows the name only when the name's base slug changes.

    Returns:
        The updated store, or OwnershipViolation (nothing written).

    Raises:
        NotFound: If the store does not exist.
        ValidationFailure: If a supplied name or address is blank.
    """
    async with get_session() as session:
        store = await session.get(Store, store_id)
        if store is None:
            raise NotFound(f"Store {store_id} not found", detail={"store_id": store_id})

        violation = check_owner(store, user_id)
        if violation is not None:
            logger.warning(f"User {user_id} tried to edit store {store_id} owned by {store.author_id}")
            return violation

        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationFailure("name", "Please enter a store name!")
            if not shares_base(store.slug, slugify(name)):
                store.slug = await next_store_slug(session, name, exclude_id=store.id)
            store.name = name
        if description is not None:
            store.description = description.strip() or None
        if tags is not None:
            _apply_tags(store, tags)
        if longitude is not None:
            store.longitude = float(longitude)
        if latitude is not None:
            store.latitude = float(latitude)
        if address is not None:
            address = address.strip()
            if not address:
                raise ValidationFailure("address", "You must supply an address!")
            store.address = address
        store.search_text = search_document(store.name, store.description)

        await session.flush()

    await invalidate_catalog_cache()
    return store


async def set_store_photo(store_id: int, user_id: int, upload: PhotoUpload) -> Store | OwnershipViolation:
    """Replace a store's photo.

    Raises:
        NotFound: If the store does not exist.
        ValidationFailure: If the upload is not a storable image.
    """
    photo_ref = None
    try:
        async with get_session() as session:
            store = await session.get(Store, store_id)
            if store is None:
                raise NotFound(f"Store {store_id} not found", detail={"store_id": store_id})

            violation = check_owner(store, user_id)
            if violation is not None:
                return violation

            photo_ref = save_photo(upload)
            if photo_ref is None:
                raise ValidationFailure("photo", "That filetype is not allowed!")
            store.photo = photo_ref
            await session.flush()
    except Exception:
        if photo_ref is not None:
            discard_photo(photo_ref)
        raise

    await invalidate_catalog_cache()
    return store


async def get_store(store_id: int, *, with_reviews: bool = True) -> Store:
    """Load a store by id, with its reviews unless with_reviews=False.

    Raises:
        NotFound: If no store has this id.
    """
    query = select(Store).where(Store.id == store_id)
    if with_reviews:
        query = query.options(with_reviews_loaded())

    async with get_session() as session:
        result = await session.execute(query)
        store = result.scalar_one_or_none()

    if store is None:
        raise NotFound(f"Store {store_id} not found", detail={"store_id": store_id})
    return store


async def get_store_by_slug(slug: str, *, with_reviews: bool = True) -> Store:
    """Load a store by slug, with its reviews unless with_reviews=False.

    Raises:
        NotFound: If no store has this slug.
    """
    query = select(Store).where(Store.slug == slug).order_by(Store.id).limit(1)
    if with_reviews:
        query = query.options(with_reviews_loaded())

    async with get_session() as session:
        result = await session.execute(query)
        store = result.scalar_one_or_none()

    if store is None:
        raise NotFound(f"No store at '{slug}'", detail={"slug": slug})
    return store


async def list_stores_page(page: int = 1) -> StorePage | PageRedirect:
    """List stores newest first, PAGE_SIZE per page.

    Args:
        page: 1-based page number.

    Returns:
        StorePage, or PageRedirect when page > 1 and the page is empty.
    """
    page = max(page, 1)
    skip = (page - 1) * PAGE_SIZE

    async with get_session() as session:
        result = await session.execute(
            select(Store)
            .order_by(Store.created.desc(), Store.id.desc())
            .offset(skip)
            .limit(PAGE_SIZE)
        )
        stores = result.scalars().all()

        count_result = await session.execute(select(func.count(Store.id)))
        count = count_result.scalar() or 0

    pages = math.ceil(count / PAGE_SIZE)
    if not stores and skip:
        logger.info(f"Page {page} requested but only {pages} exist")
        return PageRedirect(requested=page, page=max(pages, 1))

    return StorePage(
        stores=[StoreOut.from_store(s) for s in stores],
        page=page,
        pages=pages,
        count=count,
    )
