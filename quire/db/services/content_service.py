"""Content unit repository: draft lifecycle of pages and collection items.

Both kinds share one implementation parametrized by their model, revision
store and container (the site for pages, the collection for items). Every
read and write is scoped by workspace; a unit of another workspace is
reported as not found.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quire.db.models import Collection, CollectionItem, ContentStatus, Page, Site
from quire.db.services.revision_service import RevisionStore, item_revisions, page_revisions
from quire.lib.cache import CacheInvalidator
from quire.lib.exceptions import ConflictError, NotFoundError, ValidationError
from quire.lib.hooks import (
    AFTER_UNIT_DELETE,
    AFTER_UNIT_SAVE,
    BEFORE_UNIT_DELETE,
    BEFORE_UNIT_SAVE,
    hooks,
)

INITIAL_NOTE = "Initial creation"
DRAFT_SAVE_NOTE = "Draft save"

UNSET = object()  # Sentinel for distinguishing None from "not provided"


class ContentUnitRepository(ABC):
    """Workspace-scoped CRUD plus revision bookkeeping for one unit kind."""

    #: Container model and the unit column referencing it
    container_model: type = Site
    container_field: str = "site_id"
    #: Metadata columns a draft save may patch
    metadata_fields: tuple[str, ...] = ()
    #: Metadata columns a new unit must be given
    required_fields: tuple[str, ...] = ()
    #: Metadata columns that may not be set to null or blank
    non_null_fields: tuple[str, ...] = ()

    def __init__(self, model: type, revisions: RevisionStore, label: str) -> None:
        self.model = model
        self.revisions = revisions
        self.label = label

    async def list(
        self,
        db_session: AsyncSession,
        workspace_id: UUID,
        container_id: UUID | None = None,
        status: ContentStatus | str | None = None,
        search: str | None = None,
    ) -> list:
        """List units, most recently updated first."""
        query = select(self.model).where(self.model.workspace_id == workspace_id)
        if container_id is not None:
            query = query.where(getattr(self.model, self.container_field) == container_id)
        if status is not None:
            try:
                status = ContentStatus(status)
            except ValueError as exc:
                raise ValidationError(f"Unknown status '{status}'", details={"status": status}) from exc
            query = query.where(self.model.status == status.value)
        if search:
            query = self._apply_search(query, search)

        query = query.order_by(self.model.updated_at.desc(), self.model.created_at.desc())
        result = await db_session.execute(query)
        return list(result.scalars().all())

    def _apply_search(self, query, search: str):
        # Only kinds with a title column are searchable
        return query

    async def get(self, db_session: AsyncSession, workspace_id: UUID, unit_id: UUID):
        result = await db_session.execute(
            select(self.model).where(self.model.id == unit_id, self.model.workspace_id == workspace_id)
        )
        return result.scalar_one_or_none()

    async def require(self, db_session: AsyncSession, workspace_id: UUID, unit_id: UUID):
        """Like :meth:`get`, raising NotFoundError instead of returning None."""
        unit = await self.get(db_session, workspace_id, unit_id)
        if unit is None:
            raise NotFoundError(self.label)
        return unit

    async def get_with_latest(self, db_session: AsyncSession, workspace_id: UUID, unit_id: UUID):
        unit = await self.require(db_session, workspace_id, unit_id)
        latest = await self.revisions.latest(db_session, unit.id)
        return unit, latest

    async def require_container(self, db_session: AsyncSession, workspace_id: UUID, container_id: UUID):
        result = await db_session.execute(
            select(self.container_model).where(
                self.container_model.id == container_id,
                self.container_model.workspace_id == workspace_id,
            )
        )
        container = result.scalar_one_or_none()
        if container is None:
            raise NotFoundError(self.container_model.__name__)
        return container

    def _validate_metadata(self, meta: dict[str, Any], creating: bool) -> None:
        unknown = sorted(set(meta) - set(self.metadata_fields))
        if unknown:
            raise ValidationError(
                f"Unknown {self.label.lower()} fields: {', '.join(unknown)}",
                details={"fields": unknown},
            )

        if creating:
            for name in self.required_fields:
                if name not in meta:
                    raise ValidationError(f"Field '{name}' is required", details={"field": name})

        for name in self.required_fields + self.non_null_fields:
            if name not in meta:
                continue
            value = meta[name]
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(f"Field '{name}' may not be empty", details={"field": name})

    async def _check_unique(self, db_session: AsyncSession, container_id: UUID, meta: dict[str, Any], exclude_id: UUID | None = None) -> None:
        """Raise ConflictError when ``meta`` collides with a sibling unit."""

    async def create_draft(
        self,
        db_session: AsyncSession,
        workspace_id: UUID,
        container_id: UUID,
        meta: dict[str, Any] | None = None,
        content: Any = None,
        author_id: str | None = None,
    ):
        """Create a DRAFT unit with its first revision. Returns (unit, revision)."""
        meta = dict(meta or {})
        self._validate_metadata(meta, creating=True)
        await self.require_container(db_session, workspace_id, container_id)
        await self._check_unique(db_session, container_id, meta)

        unit = self.model(
            workspace_id=workspace_id,
            status=ContentStatus.DRAFT.value,
            **{self.container_field: container_id},
            **meta,
        )

        await hooks.do_action(BEFORE_UNIT_SAVE, unit, is_new=True)

        db_session.add(unit)
        try:
            await db_session.flush()
        except IntegrityError as exc:
            await db_session.rollback()
            raise ConflictError(f"{self.label} conflicts with an existing one") from exc

        revision = await self.revisions.append(
            db_session,
            unit.id,
            content if content is not None else {},
            author_id=author_id,
            note=INITIAL_NOTE,
        )
        await db_session.commit()
        await db_session.refresh(unit)

        await hooks.do_action(AFTER_UNIT_SAVE, unit, revision, is_new=True)

        return unit, revision

    async def save_draft(
        self,
        db_session: AsyncSession,
        workspace_id: UUID,
        unit_id: UUID,
        patch: dict[str, Any] | None = None,
        content: Any = UNSET,
        author_id: str | None = None,
        note: str | None = None,
        invalidator: CacheInvalidator | None = None,
    ):
        """Apply a metadata patch and append a revision. Returns (unit, revision).

        Only keys present in ``patch`` change. When ``content`` is not given the
        latest revision's content is carried forward. Status is unchanged.

        Metadata lives on the unit, so on a published unit a patch is visible
        at once. When it moves the unit to another URL (a slug change) the old
        URL is purged through ``invalidator``.
        """
        patch = dict(patch or {})
        self._validate_metadata(patch, creating=False)
        unit = await self.require(db_session, workspace_id, unit_id)
        previous_target = None
        if invalidator is not None and unit.status == ContentStatus.PUBLISHED.value:
            previous_target = await self.purge_target(db_session, unit)
        await self._check_unique(db_session, getattr(unit, self.container_field), patch, exclude_id=unit.id)

        for key, value in patch.items():
            setattr(unit, key, value)

        if content is UNSET:
            latest = await self.revisions.latest(db_session, unit.id)
            content = latest.content if latest is not None else {}

        await hooks.do_action(BEFORE_UNIT_SAVE, unit, is_new=False)

        revision = await self.revisions.append(
            db_session,
            unit.id,
            content,
            author_id=author_id,
            note=note or DRAFT_SAVE_NOTE,
        )
        unit.updated_at = datetime.now(UTC)

        try:
            await db_session.commit()
        except IntegrityError as exc:
            await db_session.rollback()
            raise ConflictError(f"{self.label} conflicts with an existing one") from exc
        await db_session.refresh(unit)

        if previous_target is not None and previous_target != await self.purge_target(db_session, unit):
            invalidator.purge(*previous_target)

        await hooks.do_action(AFTER_UNIT_SAVE, unit, revision, is_new=False)

        return unit, revision

    async def delete(self, db_session: AsyncSession, workspace_id: UUID, unit_id: UUID) -> None:
        """Delete a unit together with all of its revisions."""
        unit = await self.require(db_session, workspace_id, unit_id)

        await hooks.do_action(BEFORE_UNIT_DELETE, unit)

        await self.revisions.delete_all(db_session, unit.id)
        await db_session.delete(unit)
        await db_session.commit()

        await hooks.do_action(AFTER_UNIT_DELETE, unit)

    @abstractmethod
    async def purge_target(self, db_session: AsyncSession, unit) -> tuple[UUID, str | None]:
        """The (site_id, slug) whose cached copies a publish of ``unit`` invalidates."""


class PageRepository(ContentUnitRepository):
    container_model = Site
    container_field = "site_id"
    metadata_fields = (
        "slug",
        "title",
        "seo_title",
        "seo_description",
        "seo_image",
        "og_title",
        "og_description",
        "og_image",
        "canonical_url",
        "indexable",
    )
    required_fields = ("slug", "title")
    non_null_fields = ("indexable",)

    def _apply_search(self, query, search: str):
        return query.where(Page.title.ilike(f"%{search}%"))

    def _validate_metadata(self, meta: dict[str, Any], creating: bool) -> None:
        if isinstance(meta.get("slug"), str):
            meta["slug"] = meta["slug"].strip()
        super()._validate_metadata(meta, creating)

    async def _check_unique(self, db_session: AsyncSession, container_id: UUID, meta: dict[str, Any], exclude_id: UUID | None = None) -> None:
        slug = meta.get("slug")
        if slug is None:
            return
        query = select(Page.id).where(Page.site_id == container_id, Page.slug == slug)
        if exclude_id is not None:
            query = query.where(Page.id != exclude_id)
        if await db_session.scalar(query) is not None:
            raise ConflictError(f"A page with slug '{slug}' already exists", details={"slug": slug})

    async def get_published_by_slug(self, db_session: AsyncSession, site_id: UUID, slug: str) -> Page | None:
        result = await db_session.execute(
            select(Page).where(
                Page.site_id == site_id,
                Page.slug == slug,
                Page.status == ContentStatus.PUBLISHED.value,
            )
        )
        return result.scalar_one_or_none()

    async def list_published(self, db_session: AsyncSession, site_id: UUID) -> list[Page]:
        result = await db_session.execute(
            select(Page)
            .where(Page.site_id == site_id, Page.status == ContentStatus.PUBLISHED.value)
            .order_by(Page.title.asc())
        )
        return list(result.scalars().all())

    async def purge_target(self, db_session: AsyncSession, unit: Page) -> tuple[UUID, str | None]:
        return unit.site_id, unit.slug


class CollectionItemRepository(ContentUnitRepository):
    container_model = Collection
    container_field = "collection_id"

    async def purge_target(self, db_session: AsyncSession, unit: CollectionItem) -> tuple[UUID, str | None]:
        site_id = await db_session.scalar(select(Collection.site_id).where(Collection.id == unit.collection_id))
        return site_id, None


pages = PageRepository(Page, page_revisions, label="Page")
collection_items = CollectionItemRepository(CollectionItem, item_revisions, label="Collection item")
