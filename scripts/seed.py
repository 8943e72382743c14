#!/usr/bin/env python3
"""Seed database with demo data.

Creates:
- Demo users (password "storedir-demo")
- Stores around downtown Toronto with tags
- Reviews so the top stores leaderboard has entries
- A few hearts

Seed script is idempotent: existing users (by email) and stores (by slug) are skipped.

Usage:
    python -m scripts.seed
"""

import asyncio
import os
import sys

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
from sqlalchemy import select

load_dotenv()

from storedir.models import Store, User  # noqa: E402
from storedir.services.accounts import normalize_email, register_user  # noqa: E402
from storedir.services.catalog import create_store  # noqa: E402
from storedir.services.hearts import add_heart  # noqa: E402
from storedir.services.reviews import add_review  # noqa: E402
from storedir.services.slugs import slugify  # noqa: E402
from storedir.stores.postgres import close_db, create_tables, get_session, init_db  # noqa: E402

DEMO_PASSWORD = "storedir-demo"

USERS = [
    {"email": "wes@example.com", "name": "Wes"},
    {"email": "ana@example.com", "name": "Ana"},
    {"email": "kai@example.com", "name": "Kai"},
]

# ============================================================
# Store Definitions (lng, lat around downtown Toronto)
# ============================================================

STORES = [
    {
        "author": "wes@example.com",
        "name": "Sunrise Bakery",
        "description": "Sourdough, croissants and fresh bread daily.",
        "tags": ["Family Friendly", "Open Late"],
        "lng": -79.3957,
        "lat": 43.6548,
        "address": "123 Queen St W, Toronto",
    },
    {
        "author": "wes@example.com",
        "name": "Pizza Palace",
        "description": "Wood-fired pizza by the slice.",
        "tags": ["Open Late", "Licensed"],
        "lng": -79.4000,
        "lat": 43.6503,
        "address": "45 Spadina Ave, Toronto",
    },
    {
        "author": "ana@example.com",
        "name": "Tea House",
        "description": "Loose leaf teas and a quiet reading room.",
        "tags": ["Wifi", "Vegetarian"],
        "lng": -79.3871,
        "lat": 43.6629,
        "address": "8 College St, Toronto",
    },
    {
        "author": "ana@example.com",
        "name": "Corner Deli",
        "description": "Sandwiches, soups and also pizza on Fridays.",
        "tags": ["Family Friendly", "Wifi"],
        "lng": -79.3806,
        "lat": 43.6487,
        "address": "200 Bay St, Toronto",
    },
    {
        "author": "kai@example.com",
        "name": "Harbour Coffee",
        "description": "Espresso bar by the lake.",
        "tags": ["Wifi", "Open Late"],
        "lng": -79.3780,
        "lat": 43.6406,
        "address": "1 Harbour Sq, Toronto",
    },
]

# (store name, reviewer email, rating, text)
REVIEWS = [
    ("Sunrise Bakery", "ana@example.com", 5, "Best croissant in town."),
    ("Sunrise Bakery", "kai@example.com", 4, "Great bread, long line."),
    ("Pizza Palace", "ana@example.com", 3, "Good, a bit greasy."),
    ("Pizza Palace", "kai@example.com", 4, "Solid late night slice."),
    ("Tea House", "wes@example.com", 5, "So calm."),
    ("Corner Deli", "kai@example.com", 2, "Soup was cold."),
]

# (user email, store name)
HEARTS = [
    ("wes@example.com", "Tea House"),
    ("ana@example.com", "Sunrise Bakery"),
    ("kai@example.com", "Sunrise Bakery"),
]


async def seed_database() -> None:
    """Seed database with demo data."""
    await init_db()
    await create_tables()

    print("🌱 Seeding database...")

    print("\n👤 Creating users...")
    user_map = await seed_users()

    print("\n🏪 Creating stores...")
    store_map, created = await seed_stores(user_map)

    print("\n⭐ Creating reviews and hearts...")
    await seed_reviews_and_hearts(user_map, store_map, created)

    print("\n✅ Database seeded successfully!")
    await close_db()


async def seed_users() -> dict[str, int]:
    """Seed users and return mapping of email -> id."""
    user_map: dict[str, int] = {}

    for u in USERS:
        email = normalize_email(u["email"])
        async with get_session() as session:
            result = await session.execute(select(User).where(User.email == email))
            existing = result.scalar_one_or_none()

        if existing:
            print(f"  ⏭️  {email} (exists)")
            user_map[email] = existing.id
        else:
            user = await register_user(email, u["name"], DEMO_PASSWORD)
            user_map[email] = user.id
            print(f"  ✅ {email}")

    return user_map


async def seed_stores(user_map: dict[str, int]) -> tuple[dict[str, int], set[str]]:
    """Seed stores; returns name -> id and the names created by this run."""
    store_map: dict[str, int] = {}
    created: set[str] = set()

    for s in STORES:
        async with get_session() as session:
            result = await session.execute(select(Store).where(Store.slug == slugify(s["name"])))
            existing = result.scalars().first()

        if existing:
            print(f"  ⏭️  {s['name']} (exists)")
            store_map[s["name"]] = existing.id
            continue

        store = await create_store(
            author_id=user_map[s["author"]],
            name=s["name"],
            description=s["description"],
            tags=s["tags"],
            longitude=s["lng"],
            latitude=s["lat"],
            address=s["address"],
        )
        store_map[s["name"]] = store.id
        created.add(s["name"])
        print(f"  ✅ {store.name} -> /{store.slug}")

    return store_map, created


async def seed_reviews_and_hearts(
    user_map: dict[str, int],
    store_map: dict[str, int],
    created: set[str],
) -> None:
    """Reviews and hearts only for stores created in this run (reviews are append-only)."""
    for store_name, email, rating, text in REVIEWS:
        if store_name not in created:
            continue
        await add_review(store_map[store_name], user_map[email], rating, text)
        print(f"  ✅ {email} rated {store_name} {rating}/5")

    for email, store_name in HEARTS:
        if store_name not in created:
            continue
        await add_heart(user_map[email], store_map[store_name])
        print(f"  ❤️  {email} hearted {store_name}")


if __name__ == "__main__":
    asyncio.run(seed_database())
