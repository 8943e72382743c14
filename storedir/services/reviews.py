"""Reviews: append-only star ratings attached to a store."""

import logging

from sqlalchemy import select

from storedir.models import Review, Store
from storedir.models.review import MAX_RATING, MIN_RATING
from storedir.services.errors import NotFound, ValidationFailure
from storedir.stores.postgres import get_session
from storedir.stores.redis import invalidate_catalog_cache

logger = logging.getLogger("uvicorn.error")


async def add_review(store_id: int, author_id: int, rating: int, text: str = "") -> Review:
    """Attach a review to a store.

    Raises:
        ValidationFailure: If rating is outside MIN_RATING..MAX_RATING.
        NotFound: If the store does not exist.
    """
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationFailure("rating", f"Rating must be between {MIN_RATING} and {MAX_RATING}")

    async with get_session() as session:
        exists = await session.execute(select(Store.id).where(Store.id == store_id))
        if exists.scalar_one_or_none() is None:
            raise NotFound(f"Store {store_id} not found", detail={"store_id": store_id})

        review = Review(
            store_id=store_id,
            author_id=author_id,
            rating=rating,
            text=text.strip(),
        )
        session.add(review)
        await session.flush()

    logger.info(f"Review {review.id} added to store {store_id} ({rating}/{MAX_RATING})")
    await invalidate_catalog_cache()
    return review
