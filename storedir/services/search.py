"""Discovery and ranking over the store catalog.

Query modes:
1. Text search: name + description, relevance DESC, <= 5 results
2. Proximity: within 10 km of a point, nearest first, <= 10 results
3. Tags: facet table (stores per tag, count DESC) + stores for one tag
4. Top stores: stores with >= 2 reviews, mean rating DESC, <= 10 results

Text and proximity searches narrow candidates in SQL (token match on the
normalized search_text column, full-text index on PostgreSQL; lat/lng bounding
box) and do the exact scoring in Python over every candidate. Facets and top
stores are aggregated in SQL and cached in Redis for a minute when Redis is
available.
"""

import logging
import math
from dataclasses import dataclass

from redis.exceptions import RedisError
from sqlalchemy import func, or_, select, text

from storedir.models import Review, Store, StoreTag
from storedir.schemas import (
    Location,
    StoreMapOut,
    StoreOut,
    StoreSearchHit,
    TagFacet,
    TagListing,
    TopStore,
)
from storedir.services.catalog import to_review_out, with_reviews_loaded
from storedir.services.errors import ValidationFailure
from storedir.services.text import tokenize
from storedir.stores.postgres import get_session
from storedir.stores.redis import (
    get_tag_facets_cache,
    get_top_stores_cache,
    set_tag_facets_cache,
    set_top_stores_cache,
)

logger = logging.getLogger("uvicorn.error")

SEARCH_LIMIT = 5

NEAR_RADIUS_KM = 10.0
NEAR_LIMIT = 10
EARTH_RADIUS_KM = 6371.0088

TOP_MIN_REVIEWS = 2
TOP_LIMIT = 10


# ============================================================
# Text search
# ============================================================


def relevance(terms: set[str], *fields: str | None) -> float:
    """Score fields against query terms.

    Each occurrence of a term counts, weighted by 0.5 * (1 + 1/field_length),
    so a hit in a short field (a name) outweighs one in a long description.
    """
    score = 0.0
    for field in fields:
        tokens = tokenize(field or "")
        if not tokens:
            continue
        hits = sum(1 for tok in tokens if tok in terms)
        score += hits * 0.5 * (1 + 1 / len(tokens))
    return score


def _text_match(dialect: str, terms: set[str]):
    """Stores whose search_text holds any of the terms.

    PostgreSQL goes through the GIN index on to_tsvector(search_text); other
    databases match the space-delimited tokens with LIKE.
    """
    if dialect == "postgresql":
        config = text("'simple'::regconfig")
        query = func.to_tsquery(config, " | ".join(sorted(terms)))
        return func.to_tsvector(config, Store.search_text).op("@@")(query)
    return or_(*(Store.search_text.like(f"% {term} %") for term in sorted(terms)))


async def search_stores(query: str) -> list[StoreSearchHit]:
    """Text search over store name and description.

    Every matching store is scored, so the ranking does not depend on how many
    stores match.

    Args:
        query: Free text; empty or stop-word-only queries match nothing.

    Returns:
        Up to SEARCH_LIMIT stores, highest relevance first.
    """
    terms = set(tokenize(query or ""))
    if not terms:
        return []

    async with get_session() as session:
        result = await session.execute(
            select(Store)
            .where(_text_match(session.bind.dialect.name, terms))
            .order_by(Store.created.desc(), Store.id.desc())
        )
        candidates = result.scalars().all()

    scored = [(relevance(terms, s.name, s.description), s) for s in candidates]
    # sorted() is stable: equal scores keep newest-first order
    ranked = sorted((pair for pair in scored if pair[0] > 0), key=lambda pair: pair[0], reverse=True)

    return [
        StoreSearchHit(**StoreOut.from_store(store).model_dump(), score=round(score, 4))
        for score, store in ranked[:SEARCH_LIMIT]
    ]


# ============================================================
# Proximity search
# ============================================================


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    # None when the box crosses the antimeridian or reaches a pole
    min_lng: float | None
    max_lng: float | None


def haversine_km(lng1: float, lat1: float, lng2: float, lat2: float) -> float:
    """Great-circle distance in kilometers."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def bounding_box(lng: float, lat: float, radius_km: float) -> BoundingBox:
    """Lat/lng box containing every point within radius_km of (lng, lat)."""
    dlat = math.degrees(radius_km / EARTH_RADIUS_KM)
    min_lat, max_lat = max(-90.0, lat - dlat), min(90.0, lat + dlat)

    cos_lat = math.cos(math.radians(lat))
    if cos_lat < 1e-6 or min_lat <= -90.0 or max_lat >= 90.0:
        return BoundingBox(min_lat, max_lat, None, None)

    dlng = math.degrees(radius_km / (EARTH_RADIUS_KM * cos_lat))
    if lng - dlng < -180.0 or lng + dlng > 180.0:
        return BoundingBox(min_lat, max_lat, None, None)
    return BoundingBox(min_lat, max_lat, lng - dlng, lng + dlng)


async def find_stores_near(lng: float, lat: float) -> list[StoreMapOut]:
    """Stores within NEAR_RADIUS_KM of a point, nearest first.

    Raises:
        ValidationFailure: If the coordinates are not a valid WGS84 point.
    """
    if not (math.isfinite(lng) and math.isfinite(lat)) or not (-180 <= lng <= 180 and -90 <= lat <= 90):
        raise ValidationFailure("coordinates", "Coordinates must be a valid longitude/latitude pair")

    box = bounding_box(lng, lat, NEAR_RADIUS_KM)
    query = select(Store).where(Store.latitude.between(box.min_lat, box.max_lat))
    if box.min_lng is not None and box.max_lng is not None:
        query = query.where(Store.longitude.between(box.min_lng, box.max_lng))

    async with get_session() as session:
        result = await session.execute(query)
        candidates = result.scalars().all()

    within: list[tuple[float, Store]] = []
    for store in candidates:
        distance = haversine_km(lng, lat, store.longitude, store.latitude)
        if distance <= NEAR_RADIUS_KM:
            within.append((distance, store))
    within.sort(key=lambda pair: (pair[0], pair[1].id))

    return [
        StoreMapOut(
            slug=store.slug,
            name=store.name,
            description=store.description,
            location=Location(**store.location),
            photo=store.photo,
        )
        for _, store in within[:NEAR_LIMIT]
    ]


# ============================================================
# Tag facets
# ============================================================


async def get_tags_list() -> list[TagFacet]:
    """Every tag with the number of stores carrying it, count DESC (then tag ASC)."""
    cached = await _try_get_cached(get_tag_facets_cache)
    if cached is not None:
        return [TagFacet.model_validate(item) for item in cached]

    store_count = func.count(StoreTag.store_id).label("store_count")
    async with get_session() as session:
        result = await session.execute(
            select(StoreTag.tag, store_count)
            .group_by(StoreTag.tag)
            .order_by(store_count.desc(), StoreTag.tag)
        )
        facets = [TagFacet(tag=tag, count=n) for tag, n in result.all()]

    await _try_set_cached(set_tag_facets_cache, [f.model_dump(mode="json") for f in facets])
    return facets


async def get_stores_by_tag(tag: str | None = None) -> TagListing:
    """Stores carrying tag (all stores when tag is None) plus the facet table."""
    tag = tag.strip() if tag else None
    tags = await get_tags_list()

    query = select(Store).order_by(Store.id)
    if tag:
        query = query.join(StoreTag, StoreTag.store_id == Store.id).where(StoreTag.tag == tag)

    async with get_session() as session:
        result = await session.execute(query)
        stores = result.scalars().all()

    return TagListing(tag=tag, tags=tags, stores=[StoreOut.from_store(s) for s in stores])


# ============================================================
# Top stores
# ============================================================


async def get_top_stores() -> list[TopStore]:
    """Best-rated stores.

    Pipeline (in SQL): join reviews -> group by store -> keep >= TOP_MIN_REVIEWS
    -> average rating -> sort DESC -> limit TOP_LIMIT. Stores with fewer reviews
    never appear. Equal averages come back in store id order; callers must not
    rely on that.
    """
    cached = await _try_get_cached(get_top_stores_cache)
    if cached is not None:
        return [TopStore.model_validate(item) for item in cached]

    average_rating = func.avg(Review.rating).label("average_rating")
    review_count = func.count(Review.id).label("review_count")

    query = (
        select(Store, average_rating, review_count)
        .join(Review, Review.store_id == Store.id)
        .group_by(Store.id)
        .having(func.count(Review.id) >= TOP_MIN_REVIEWS)
        .order_by(average_rating.desc(), Store.id)
        .limit(TOP_LIMIT)
        .options(with_reviews_loaded())
    )

    async with get_session() as session:
        result = await session.execute(query)
        rows = result.all()

    top = [
        TopStore(
            id=store.id,
            slug=store.slug,
            name=store.name,
            photo=store.photo,
            average_rating=float(avg),
            review_count=n,
            reviews=[to_review_out(r) for r in store.reviews],
        )
        for store, avg, n in rows
    ]

    await _try_set_cached(set_top_stores_cache, [t.model_dump(mode="json") for t in top])
    return top


async def _try_get_cached(getter) -> list | None:
    try:
        return await getter()
    except RuntimeError:
        # Redis not initialized (tests / local minimal env)
        return None
    except RedisError as e:
        logger.warning(f"Catalog cache read failed: {e}")
        return None


async def _try_set_cached(setter, payload: list) -> None:
    try:
        await setter(payload)
    except RuntimeError:
        return
    except RedisError as e:
        logger.warning(f"Catalog cache write failed: {e}")
