"""Tests for slug normalization and count-based allocation."""

import pytest

from storedir.services.catalog import update_store
from storedir.services.slugs import allocate_slug, shares_base, slugify


def test_slugify_normalizes_name() -> None:
    assert slugify("Coffee Shop") == "coffee-shop"
    assert slugify("  Café   Olé!! ") == "cafe-ole"
    assert slugify("Joe's Bar & Grill") == "joe-s-bar-grill"
    assert slugify("--Already-slugged--") == "already-slugged"


def test_slugify_without_alphanumerics_falls_back() -> None:
    assert slugify("!!!") == "store"


def test_allocate_slug_fresh_name_returns_base() -> None:
    assert allocate_slug("coffee-shop", []) == "coffee-shop"
    assert allocate_slug("coffee-shop", ["tea-house", "coffee-shop-bar", "coffee-shopx"]) == "coffee-shop"


def test_allocate_slug_counts_conflicts() -> None:
    assert allocate_slug("coffee-shop", ["coffee-shop"]) == "coffee-shop-2"
    assert allocate_slug("coffee-shop", ["coffee-shop", "coffee-shop-2"]) == "coffee-shop-3"


def test_allocate_slug_is_case_insensitive() -> None:
    assert allocate_slug("coffee-shop", ["Coffee-Shop"]) == "coffee-shop-2"


def test_allocate_slug_counts_rather_than_reading_suffixes() -> None:
    # Suffixes out of order: only the number of matches matters.
    assert allocate_slug("coffee-shop", ["coffee-shop-7", "coffee-shop"]) == "coffee-shop-3"
    # Known weakness: after coffee-shop-2 was deleted the allocator reuses -3.
    assert allocate_slug("coffee-shop", ["coffee-shop", "coffee-shop-3"]) == "coffee-shop-3"


def test_shares_base() -> None:
    assert shares_base("coffee-shop-4", "coffee-shop")
    assert not shares_base("coffee-shop-bar", "coffee-shop")


@pytest.mark.asyncio
async def test_created_stores_get_numbered_slugs(make_user, make_store) -> None:
    author = await make_user()
    first = await make_store(author, "Coffee Shop")
    second = await make_store(author, "Coffee  Shop!")
    third = await make_store(author, "coffee shop")
    other = await make_store(author, "Coffee Shop Bar")

    assert first.slug == "coffee-shop"
    assert second.slug == "coffee-shop-2"
    assert third.slug == "coffee-shop-3"
    assert other.slug == "coffee-shop-bar"


@pytest.mark.asyncio
async def test_rename_reallocates_slug_only_when_base_changes(make_user, make_store) -> None:
    author = await make_user()
    await make_store(author, "Bakery")
    store = await make_store(author, "Deli")

    renamed = await update_store(store.id, author.id, name="Bakery")
    assert renamed.slug == "bakery-2"

    same_base = await update_store(store.id, author.id, name="  BAKERY ")
    assert same_base.slug == "bakery-2"
    assert same_base.name == "BAKERY"
