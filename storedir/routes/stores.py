"""Store catalog endpoints.

Routers are thin: call services for business logic.
Writes require a signed-in user; edits additionally require ownership.
"""

from fastapi import APIRouter, Depends, Path, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from storedir.models import User
from storedir.routes.deps import ownership_error, require_user
from storedir.schemas import (
    HeartsResponse,
    ReviewCreate,
    ReviewOut,
    StoreCreate,
    StoreDetail,
    StoreMapOut,
    StoreOut,
    StorePage,
    StoreSearchHit,
    StoreUpdate,
    TagListing,
    TopStore,
)
from storedir.services.catalog import (
    create_store,
    get_store_by_slug,
    list_stores_page,
    set_store_photo,
    to_store_detail,
    update_store,
)
from storedir.services.errors import OwnershipViolation, PageRedirect
from storedir.services.hearts import get_hearted_stores, toggle_heart
from storedir.services.photos import PhotoUpload, photo_from_data_url
from storedir.services.reviews import add_review
from storedir.services.search import find_stores_near, get_stores_by_tag, get_top_stores, search_stores

router = APIRouter()


# ============================================================
# Listing and discovery
# ============================================================


@router.get("", response_model=StorePage)
async def list_stores() -> StorePage | RedirectResponse:
    return await list_stores_on_page(page=1)


@router.get("/page/{page}", response_model=StorePage)
async def list_stores_on_page(page: int = Path(ge=1)) -> StorePage | RedirectResponse:
    """Newest stores, 4 per page; a page past the end redirects to the last page."""
    result = await list_stores_page(page)
    if isinstance(result, PageRedirect):
        return RedirectResponse(
            url=f"/v1/stores/page/{result.page}",
            status_code=302,
            headers={"X-Requested-Page": str(result.requested)},
        )
    return result


@router.get("/search", response_model=list[StoreSearchHit])
async def search(q: str = Query(default="", max_length=200)) -> list[StoreSearchHit]:
    return await search_stores(q)


@router.get("/near", response_model=list[StoreMapOut])
async def near(
    lng: float = Query(ge=-180, le=180),
    lat: float = Query(ge=-90, le=90),
) -> list[StoreMapOut]:
    """Stores within 10 km of (lng, lat), nearest first."""
    return await find_stores_near(lng, lat)


@router.get("/top", response_model=list[TopStore])
async def top() -> list[TopStore]:
    return await get_top_stores()


@router.get("/tags", response_model=TagListing)
async def tags() -> TagListing:
    return await get_stores_by_tag(None)


@router.get("/tags/{tag}", response_model=TagListing)
async def stores_by_tag(tag: str) -> TagListing:
    return await get_stores_by_tag(tag)


@router.get("/hearts", response_model=list[StoreOut])
async def hearted(user: User = Depends(require_user)) -> list[StoreOut]:
    return await get_hearted_stores(user.id)


@router.get("/slug/{slug}", response_model=StoreDetail)
async def store_by_slug(slug: str) -> StoreDetail:
    store = await get_store_by_slug(slug)
    return to_store_detail(store)


# ============================================================
# Writes
# ============================================================


@router.post("", response_model=StoreOut, status_code=201)
async def create(payload: StoreCreate, user: User = Depends(require_user)) -> StoreOut:
    photo = photo_from_data_url(payload.photo) if payload.photo else None
    store = await create_store(
        author_id=user.id,
        name=payload.name,
        description=payload.description,
        tags=payload.tags,
        longitude=payload.location.longitude,
        latitude=payload.location.latitude,
        address=payload.location.address,
        photo=photo,
    )
    return StoreOut.from_store(store)


@router.patch("/{store_id}", response_model=StoreOut)
async def update(
    store_id: int,
    payload: StoreUpdate,
    user: User = Depends(require_user),
) -> StoreOut | JSONResponse:
    location = payload.location
    result = await update_store(
        store_id,
        user.id,
        name=payload.name,
        description=payload.description,
        tags=payload.tags,
        longitude=location.longitude if location else None,
        latitude=location.latitude if location else None,
        address=location.address if location else None,
    )
    if isinstance(result, OwnershipViolation):
        return ownership_error(result)
    return StoreOut.from_store(result)


@router.put("/{store_id}/photo", response_model=StoreOut)
async def upload_photo(
    store_id: int,
    request: Request,
    user: User = Depends(require_user),
) -> StoreOut | JSONResponse:
    """Replace the photo with the raw request body (Content-Type: image/*)."""
    upload = PhotoUpload(
        data=await request.body(),
        content_type=request.headers.get("content-type", ""),
    )
    result = await set_store_photo(store_id, user.id, upload)
    if isinstance(result, OwnershipViolation):
        return ownership_error(result)
    return StoreOut.from_store(result)


@router.post("/{store_id}/heart", response_model=HeartsResponse)
async def heart(store_id: int, user: User = Depends(require_user)) -> HeartsResponse:
    hearts = await toggle_heart(user.id, store_id)
    return HeartsResponse(store_id=store_id, hearted=store_id in hearts, hearts=sorted(hearts))


@router.post("/{store_id}/reviews", response_model=ReviewOut, status_code=201)
async def review(
    store_id: int,
    payload: ReviewCreate,
    user: User = Depends(require_user),
) -> ReviewOut:
    created = await add_review(store_id, user.id, payload.rating, payload.text)
    return ReviewOut.from_review(created, author_name=user.name)
