"""Tests for text search, proximity search, tag facets and top stores."""

import pytest

from storedir.services.catalog import update_store
from storedir.services.errors import ValidationFailure
from storedir.services.reviews import add_review
from storedir.services.search import (
    NEAR_LIMIT,
    SEARCH_LIMIT,
    TOP_LIMIT,
    bounding_box,
    find_stores_near,
    get_stores_by_tag,
    get_tags_list,
    get_top_stores,
    haversine_km,
    relevance,
    search_stores,
)
from storedir.services.text import search_document, tokenize

TORONTO = (-79.3832, 43.6532)
KM_PER_DEGREE_LAT = 111.195


# ============================================================
# Text search
# ============================================================


def test_tokenize_drops_stop_words_and_folds_plurals() -> None:
    assert tokenize("The Best Bakeries in Town") == ["best", "bakery", "town"]
    assert tokenize("Café & Shops") == ["cafe", "shop"]


def test_relevance_prefers_hits_in_short_fields() -> None:
    terms = {"pizza"}
    in_name = relevance(terms, "Pizza Palace", None)
    in_description = relevance(terms, "Corner Deli", "also serves pizza among many other things on the menu")
    assert in_name > in_description > 0
    assert relevance(terms, "Tea House", "loose leaf teas") == 0


@pytest.mark.asyncio
async def test_search_empty_query_returns_empty_list(db) -> None:
    assert await search_stores("") == []
    assert await search_stores("   ") == []
    assert await search_stores("the of and") == []


@pytest.mark.asyncio
async def test_search_without_matches_returns_empty_list(make_user, make_store) -> None:
    author = await make_user()
    await make_store(author, "Tea House", description="Loose leaf teas")
    assert await search_stores("hardware") == []


@pytest.mark.asyncio
async def test_search_ranks_by_relevance(make_user, make_store) -> None:
    author = await make_user()
    await make_store(author, "Corner Deli", description="Also serves pizza among many other things on the menu")
    await make_store(author, "Pizza Palace", description="Wood-fired pizza")
    await make_store(author, "Tea House", description="Loose leaf teas")

    hits = await search_stores("pizza")

    assert [h.name for h in hits] == ["Pizza Palace", "Corner Deli"]
    assert hits[0].score > hits[1].score


@pytest.mark.asyncio
async def test_search_matches_plural_forms(make_user, make_store) -> None:
    author = await make_user()
    await make_store(author, "Sunrise Bakery", description="Fresh bread daily")

    hits = await search_stores("bakeries")

    assert [h.name for h in hits] == ["Sunrise Bakery"]


@pytest.mark.asyncio
async def test_search_is_capped(make_user, make_store) -> None:
    author = await make_user()
    for i in range(SEARCH_LIMIT + 2):
        await make_store(author, f"Coffee Spot {i}", description="coffee and pastries")

    hits = await search_stores("coffee")

    assert len(hits) == SEARCH_LIMIT == 5


def test_search_document_holds_padded_tokens() -> None:
    assert search_document("Twin Cities Café", None) == " twin city cafe "
    assert search_document("The Shop", "Open late") == " shop open late "
    assert search_document(None, "  ") == ""


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["café", "cafe", "CAFE", "olé"])
async def test_search_matches_accented_names(make_user, make_store, query: str) -> None:
    author = await make_user()
    await make_store(author, "Café Olé")
    await make_store(author, "Tea House")

    hits = await search_stores(query)

    assert [h.name for h in hits] == ["Café Olé"]


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["cities", "city"])
async def test_search_matches_ies_plurals(make_user, make_store, query: str) -> None:
    author = await make_user()
    await make_store(author, "Twin Cities Diner")

    hits = await search_stores(query)

    assert [h.name for h in hits] == ["Twin Cities Diner"]


@pytest.mark.asyncio
async def test_search_scores_every_match_not_just_the_newest(make_user, make_store) -> None:
    author = await make_user()
    await make_store(author, "Pizza")
    # Newer, weaker matches outnumber the result size
    for i in range(SEARCH_LIMIT + 3):
        await make_store(
            author,
            f"Shop {i}",
            description="Sandwiches, soups, salads, coffee and sometimes pizza on a long menu",
        )

    hits = await search_stores("pizza")

    assert len(hits) == SEARCH_LIMIT
    assert hits[0].name == "Pizza"
    assert all(hits[0].score > h.score for h in hits[1:])


@pytest.mark.asyncio
async def test_search_follows_store_edits(make_user, make_store) -> None:
    author = await make_user()
    store = await make_store(author, "Tea House")

    await update_store(store.id, author.id, name="Corner Bakeries")
    assert await search_stores("tea") == []
    assert [h.name for h in await search_stores("bakery")] == ["Corner Bakeries"]

    await update_store(store.id, author.id, description="Espresso bar by the lake")
    assert [h.name for h in await search_stores("espresso")] == ["Corner Bakeries"]


# ============================================================
# Proximity search
# ============================================================


def test_haversine_one_degree_of_latitude() -> None:
    assert haversine_km(0.0, 0.0, 0.0, 1.0) == pytest.approx(KM_PER_DEGREE_LAT, rel=1e-3)
    assert haversine_km(10.0, 20.0, 10.0, 20.0) == 0.0


def test_bounding_box_contains_radius() -> None:
    lng, lat = TORONTO
    box = bounding_box(lng, lat, 10.0)
    assert box.min_lat < lat < box.max_lat
    assert box.min_lng is not None and box.min_lng < lng < box.max_lng
    assert haversine_km(lng, lat, lng, box.max_lat) == pytest.approx(10.0, rel=1e-6)


def test_bounding_box_near_pole_drops_longitude_filter() -> None:
    box = bounding_box(0.0, 89.99, 10.0)
    assert box.min_lng is None and box.max_lng is None


@pytest.mark.asyncio
async def test_near_includes_exact_point_and_excludes_far_stores(make_user, make_store) -> None:
    author = await make_user()
    lng, lat = TORONTO
    await make_store(author, "Right Here", lng=lng, lat=lat)
    await make_store(author, "Five Km North", lng=lng, lat=lat + 5 / KM_PER_DEGREE_LAT)
    await make_store(author, "Fifteen Km North", lng=lng, lat=lat + 15 / KM_PER_DEGREE_LAT)

    stores = await find_stores_near(lng, lat)

    assert [s.name for s in stores] == ["Right Here", "Five Km North"]
    first = stores[0]
    assert first.slug == "right-here"
    assert first.location.coordinates == [lng, lat]
    assert first.location.address


@pytest.mark.asyncio
async def test_near_orders_nearest_first_and_caps(make_user, make_store) -> None:
    author = await make_user()
    lng, lat = TORONTO
    # Inserted farthest first
    for i in reversed(range(NEAR_LIMIT + 2)):
        await make_store(author, f"Shop {i}", lng=lng, lat=lat + i * 0.001)

    stores = await find_stores_near(lng, lat)

    assert len(stores) == NEAR_LIMIT == 10
    assert [s.name for s in stores] == [f"Shop {i}" for i in range(NEAR_LIMIT)]


@pytest.mark.asyncio
async def test_near_rejects_invalid_coordinates(db) -> None:
    with pytest.raises(ValidationFailure):
        await find_stores_near(200.0, 0.0)
    with pytest.raises(ValidationFailure):
        await find_stores_near(0.0, float("nan"))


# ============================================================
# Tags
# ============================================================


@pytest.mark.asyncio
async def test_tag_facets_count_stores_per_tag(make_user, make_store) -> None:
    author = await make_user()
    await make_store(author, "A", tags=["wifi", "vegan", "patio"])
    await make_store(author, "B", tags=["wifi", "vegan"])
    await make_store(author, "C", tags=["wifi", "wifi"])
    await make_store(author, "D")

    facets = await get_tags_list()

    assert [(f.tag, f.count) for f in facets] == [("wifi", 3), ("vegan", 2), ("patio", 1)]
    # counts sum to the (store, tag) pairs: 3 + 2 + 1
    assert sum(f.count for f in facets) == 6
    counts = [f.count for f in facets]
    assert counts == sorted(counts, reverse=True)


@pytest.mark.asyncio
async def test_stores_by_tag_filters_and_returns_facets(make_user, make_store) -> None:
    author = await make_user()
    await make_store(author, "A", tags=["wifi", "vegan"])
    await make_store(author, "B", tags=["vegan"])
    await make_store(author, "C")

    listing = await get_stores_by_tag("wifi")
    assert listing.tag == "wifi"
    assert [s.name for s in listing.stores] == ["A"]
    assert {f.tag for f in listing.tags} == {"wifi", "vegan"}

    everything = await get_stores_by_tag(None)
    assert everything.tag is None
    assert [s.name for s in everything.stores] == ["A", "B", "C"]


# ============================================================
# Top stores
# ============================================================


@pytest.mark.asyncio
async def test_top_stores_requires_two_reviews(make_user, make_store) -> None:
    author = await make_user()
    single = await make_store(author, "Single Review")
    pair = await make_store(author, "Two Reviews")
    await make_store(author, "No Reviews")
    await add_review(single.id, author.id, 5)
    await add_review(pair.id, author.id, 3)
    await add_review(pair.id, author.id, 5)

    top = await get_top_stores()

    assert [t.name for t in top] == ["Two Reviews"]
    assert top[0].average_rating == pytest.approx(4.0)
    assert top[0].review_count == 2
    assert sorted(r.rating for r in top[0].reviews) == [3, 5]


@pytest.mark.asyncio
async def test_top_stores_sorted_by_average_and_capped(make_user, make_store) -> None:
    author = await make_user()
    # Store i gets ratings (1, r) so averages differ; ties broken only by id.
    for i in range(TOP_LIMIT + 2):
        store = await make_store(author, f"Ranked {i}")
        await add_review(store.id, author.id, 1)
        await add_review(store.id, author.id, 1 + (i % 5))

    top = await get_top_stores()

    assert len(top) == TOP_LIMIT == 10
    averages = [t.average_rating for t in top]
    assert averages == sorted(averages, reverse=True)
    assert averages[0] == pytest.approx(3.0)
    assert all(t.review_count >= 2 for t in top)
