"""Collection service for CRUD operations on collections."""

from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quire.db.models import Collection, CollectionItem, Site
from quire.lib.exceptions import ConflictError, NotFoundError, ValidationError

UPDATABLE_FIELDS = ("name", "slug", "description", "schema_json")


async def list_collections(
    db_session: AsyncSession,
    workspace_id: UUID,
    site_id: UUID | None = None,
) -> list[Collection]:
    query = select(Collection).where(Collection.workspace_id == workspace_id)
    if site_id is not None:
        query = query.where(Collection.site_id == site_id)
    result = await db_session.execute(query.order_by(Collection.name.asc()))
    return list(result.scalars().all())


async def get_collection(db_session: AsyncSession, workspace_id: UUID, collection_id: UUID) -> Collection:
    """Get a workspace's collection, raising NotFoundError otherwise."""
    result = await db_session.execute(
        select(Collection).where(Collection.id == collection_id, Collection.workspace_id == workspace_id)
    )
    collection = result.scalar_one_or_none()
    if collection is None:
        raise NotFoundError("Collection")
    return collection


async def _ensure_slug_free(
    db_session: AsyncSession, site_id: UUID, slug: str, exclude_id: UUID | None = None
) -> None:
    query = select(Collection.id).where(Collection.site_id == site_id, Collection.slug == slug)
    if exclude_id is not None:
        query = query.where(Collection.id != exclude_id)
    if await db_session.scalar(query) is not None:
        raise ConflictError(f"A collection with slug '{slug}' already exists", details={"slug": slug})


async def create_collection(
    db_session: AsyncSession,
    workspace_id: UUID,
    site_id: UUID,
    name: str,
    slug: str,
    description: str | None = None,
    schema_json: list[Any] | None = None,
) -> Collection:
    site = await db_session.scalar(select(Site).where(Site.id == site_id, Site.workspace_id == workspace_id))
    if site is None:
        raise NotFoundError("Site")

    slug = slug.strip()
    if not slug or not name.strip():
        raise ValidationError("Collection name and slug are required")
    await _ensure_slug_free(db_session, site_id, slug)

    collection = Collection(
        workspace_id=workspace_id,
        site_id=site_id,
        name=name.strip(),
        slug=slug,
        description=description,
        schema_json=schema_json or [],
    )
    db_session.add(collection)
    try:
        await db_session.commit()
    except IntegrityError as exc:
        await db_session.rollback()
        raise ConflictError(f"A collection with slug '{slug}' already exists") from exc
    await db_session.refresh(collection)
    return collection


async def update_collection(
    db_session: AsyncSession,
    workspace_id: UUID,
    collection_id: UUID,
    patch: dict[str, Any],
) -> Collection:
    """Update only the supplied fields of a collection."""
    unknown = sorted(set(patch) - set(UPDATABLE_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown collection fields: {', '.join(unknown)}", details={"fields": unknown})

    collection = await get_collection(db_session, workspace_id, collection_id)

    if "slug" in patch:
        slug = (patch["slug"] or "").strip()
        if not slug:
            raise ValidationError("Collection slug may not be empty", details={"field": "slug"})
        await _ensure_slug_free(db_session, collection.site_id, slug, exclude_id=collection.id)
        patch["slug"] = slug
    if "name" in patch and not (patch["name"] or "").strip():
        raise ValidationError("Collection name may not be empty", details={"field": "name"})
    if "schema_json" in patch and patch["schema_json"] is None:
        patch["schema_json"] = []

    for key, value in patch.items():
        setattr(collection, key, value)

    await db_session.commit()
    await db_session.refresh(collection)
    return collection


async def count_items(db_session: AsyncSession, collection_id: UUID) -> int:
    result = await db_session.execute(
        select(func.count(CollectionItem.id)).where(CollectionItem.collection_id == collection_id)
    )
    return result.scalar() or 0


async def delete_collection(db_session: AsyncSession, workspace_id: UUID, collection_id: UUID) -> None:
    """Delete an empty collection. Collections that still hold items are kept."""
    collection = await get_collection(db_session, workspace_id, collection_id)

    item_count = await count_items(db_session, collection.id)
    if item_count:
        raise ConflictError(
            "Collection still has items",
            details={"itemCount": item_count},
        )

    await db_session.delete(collection)
    await db_session.commit()
