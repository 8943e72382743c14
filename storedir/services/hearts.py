"""Hearts: a user's set of favorite stores.

toggle_heart flips membership of one store in the user's set and returns the
whole set, in a single transaction. The (user_id, store_id) primary key keeps
the set free of duplicates, and inserts skip an existing pair instead of
failing, so two concurrent toggles or adds never raise.
"""

import logging

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from storedir.models import Store, user_hearts
from storedir.schemas import StoreOut
from storedir.services.errors import NotFound
from storedir.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")


async def _require_store(session: AsyncSession, store_id: int) -> None:
    result = await session.execute(select(Store.id).where(Store.id == store_id))
    if result.scalar_one_or_none() is None:
        raise NotFound(f"Store {store_id} not found", detail={"store_id": store_id})


async def _insert_heart(session: AsyncSession, user_id: int, store_id: int) -> None:
    """INSERT ... ON CONFLICT DO NOTHING for the (user, store) pair."""
    insert = pg_insert if session.bind.dialect.name == "postgresql" else sqlite_insert
    await session.execute(
        insert(user_hearts)
        .values(user_id=user_id, store_id=store_id)
        .on_conflict_do_nothing(index_elements=["user_id", "store_id"])
    )


async def _heart_ids(session: AsyncSession, user_id: int) -> set[int]:
    result = await session.execute(
        select(user_hearts.c.store_id).where(user_hearts.c.user_id == user_id)
    )
    return set(result.scalars().all())


async def toggle_heart(user_id: int, store_id: int) -> set[int]:
    """Heart the store if it is not hearted yet, un-heart it otherwise.

    Returns:
        The user's hearted store ids after the toggle.

    Raises:
        NotFound: If the store does not exist.
    """
    membership = (user_hearts.c.user_id == user_id) & (user_hearts.c.store_id == store_id)

    async with get_session() as session:
        await _require_store(session, store_id)

        removed = await session.execute(delete(user_hearts).where(membership))
        if removed.rowcount == 0:
            await _insert_heart(session, user_id, store_id)

        hearts = await _heart_ids(session, user_id)

    logger.info(f"User {user_id} {'hearted' if store_id in hearts else 'unhearted'} store {store_id}")
    return hearts


async def add_heart(user_id: int, store_id: int) -> set[int]:
    """Heart the store; a store already hearted stays hearted.

    Raises:
        NotFound: If the store does not exist.
    """
    async with get_session() as session:
        await _require_store(session, store_id)
        await _insert_heart(session, user_id, store_id)
        return await _heart_ids(session, user_id)


async def get_hearted_stores(user_id: int) -> list[StoreOut]:
    """Stores the user has hearted, newest first."""
    async with get_session() as session:
        result = await session.execute(
            select(Store)
            .join(user_hearts, user_hearts.c.store_id == Store.id)
            .where(user_hearts.c.user_id == user_id)
            .order_by(Store.created.desc(), Store.id.desc())
        )
        return [StoreOut.from_store(s) for s in result.scalars().all()]
