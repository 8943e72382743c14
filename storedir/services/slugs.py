"""Slug allocation for stores.

Slug = URL-safe name: "Café Olé" -> "cafe-ole".

Collisions are resolved by counting, not by looking at suffixes:
if N existing slugs match ^base(-<digits>)?$ the new slug is base-(N+1).
After a deletion, or when two stores with the same name are created at the
same time, this can hand out a slug that already exists. The behavior is kept
as is; the stores table has no unique index on slug to make it fatal.
"""

import logging
import re
import unicodedata
from collections.abc import Iterable

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from storedir.models import Store

logger = logging.getLogger("uvicorn.error")

FALLBACK_SLUG = "store"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Normalize a store name into a base slug.

    Lowercase ASCII, runs of anything else collapsed to a single "-",
    no leading/trailing "-".

    Example:
        >>> slugify("  Joe's Café & Bar ")
        'joe-s-cafe-bar'
    """
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    base = _NON_ALNUM.sub("-", ascii_name.lower()).strip("-")
    return base or FALLBACK_SLUG


def slug_pattern(base: str) -> re.Pattern[str]:
    """Pattern matching a base slug and its numbered variants."""
    return re.compile(rf"^({re.escape(base)})(-[0-9]+)?$", re.IGNORECASE)


def allocate_slug(base: str, existing_slugs: Iterable[str]) -> str:
    """Pick the slug for a new store given the slugs already stored.

    Args:
        base: Normalized base slug (see slugify).
        existing_slugs: Slugs to check; anything not matching the base pattern is ignored.

    Returns:
        base when nothing conflicts, else base-(count + 1).
    """
    pattern = slug_pattern(base)
    conflicts = sum(1 for s in existing_slugs if pattern.match(s))
    if not conflicts:
        return base
    return f"{base}-{conflicts + 1}"


def shares_base(slug: str, base: str) -> bool:
    """True when slug is base or a numbered variant of it."""
    return slug_pattern(base).match(slug) is not None


async def next_store_slug(
    session: AsyncSession,
    name: str,
    *,
    exclude_id: int | None = None,
) -> str:
    """Allocate a slug for name against the stores table.

    Args:
        session: Open session (read only).
        name: Store name.
        exclude_id: Store to leave out of the count (renaming an existing store).
    """
    base = slugify(name)

    # LIKE narrows the candidates; the regex in allocate_slug decides.
    query = select(Store.slug).where(
        or_(Store.slug.ilike(base), Store.slug.ilike(f"{base}-%"))
    )
    if exclude_id is not None:
        query = query.where(Store.id != exclude_id)

    result = await session.execute(query)
    slug = allocate_slug(base, result.scalars().all())
    if slug != base:
        logger.info(f"Slug '{base}' taken, allocated '{slug}'")
    return slug
