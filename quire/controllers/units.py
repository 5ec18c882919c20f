"""Controller factory for revisioned content units (pages, collection items)."""

from typing import Any, Callable
from uuid import UUID

from litestar import Controller, Request, delete, get, patch, post
from litestar.di import Provide
from sqlalchemy.ext.asyncio import AsyncSession

from quire.controllers.helpers import parse_body, parse_uuid, provide_author_id, provide_workspace_id
from quire.controllers.schemas import ItemCreate, ItemPatch, PageCreate, PagePatch, PublishBody
from quire.controllers.serializers import (
    serialize_item,
    serialize_page,
    serialize_revision,
    serialize_unit_with_revision,
)
from quire.db.services.content_service import UNSET, ContentUnitRepository, collection_items, pages
from quire.db.services.publish_service import PublishOrchestrator

# Fields of a patch body that are not unit metadata
_REVISION_FIELDS = {"content", "note"}


def create_unit_controller(
    repository: ContentUnitRepository,
    path: str,
    container_param: str,
    create_model: type,
    patch_model: type,
    serialize_unit: Callable[[Any], dict[str, Any]],
) -> type[Controller]:
    """Create a Controller subclass exposing one unit kind under ``path``.

    ``container_param`` names the list filter query parameter (``site`` or
    ``collection``).
    """
    base_path = path
    container_field = repository.container_field

    def _result(unit, revision) -> dict[str, Any]:
        return serialize_unit_with_revision(serialize_unit, unit, revision)

    def _publisher(request: Request) -> PublishOrchestrator:
        return request.app.state.publisher

    class _UnitController(Controller):
        path = base_path
        dependencies = {
            "workspace_id": Provide(provide_workspace_id, sync_to_thread=False),
            "author_id": Provide(provide_author_id, sync_to_thread=False),
        }

        @get("/")
        async def list_units(
            self,
            request: Request,
            db_session: AsyncSession,
            workspace_id: UUID,
            status: str | None = None,
            search: str | None = None,
        ) -> list[dict[str, Any]]:
            container_id = parse_uuid(request.query_params.get(container_param), container_param)
            units = await repository.list(
                db_session,
                workspace_id,
                container_id=container_id,
                status=status,
                search=search,
            )
            return [serialize_unit(unit) for unit in units]

        @post("/")
        async def create_unit(
            self,
            request: Request,
            db_session: AsyncSession,
            workspace_id: UUID,
            author_id: str | None,
        ) -> dict[str, Any]:
            body = await parse_body(request, create_model)
            meta = body.model_dump(exclude={container_field, "content"})
            unit, revision = await repository.create_draft(
                db_session,
                workspace_id,
                getattr(body, container_field),
                meta=meta,
                content=body.content,
                author_id=author_id,
            )
            return _result(unit, revision)

        @get("/{unit_id:uuid}")
        async def get_unit(self, db_session: AsyncSession, workspace_id: UUID, unit_id: UUID) -> dict[str, Any]:
            unit, latest = await repository.get_with_latest(db_session, workspace_id, unit_id)
            return _result(unit, latest)

        @patch("/{unit_id:uuid}")
        async def save_unit(
            self,
            request: Request,
            db_session: AsyncSession,
            workspace_id: UUID,
            author_id: str | None,
            unit_id: UUID,
        ) -> dict[str, Any]:
            body = await parse_body(request, patch_model)
            meta = body.model_dump(exclude_unset=True, exclude=_REVISION_FIELDS)
            content = body.content if "content" in body.model_fields_set else UNSET
            unit, revision = await repository.save_draft(
                db_session,
                workspace_id,
                unit_id,
                patch=meta,
                content=content,
                author_id=author_id,
                note=body.note,
                invalidator=request.app.state.invalidator,
            )
            return _result(unit, revision)

        @delete("/{unit_id:uuid}")
        async def delete_unit(self, db_session: AsyncSession, workspace_id: UUID, unit_id: UUID) -> None:
            await repository.delete(db_session, workspace_id, unit_id)

        @post("/{unit_id:uuid}/publish", status_code=200)
        async def publish_unit(
            self,
            request: Request,
            db_session: AsyncSession,
            workspace_id: UUID,
            author_id: str | None,
            unit_id: UUID,
        ) -> dict[str, Any]:
            body = await parse_body(request, PublishBody)
            content = body.content if "content" in body.model_fields_set else UNSET
            unit, revision = await _publisher(request).publish(
                db_session,
                repository,
                workspace_id,
                unit_id,
                author_id=author_id,
                content=content,
            )
            return _result(unit, revision)

        @post("/{unit_id:uuid}/rollback/{revision_id:uuid}", status_code=200)
        async def rollback_unit(
            self,
            request: Request,
            db_session: AsyncSession,
            workspace_id: UUID,
            author_id: str | None,
            unit_id: UUID,
            revision_id: UUID,
        ) -> dict[str, Any]:
            unit, revision = await _publisher(request).rollback(
                db_session,
                repository,
                workspace_id,
                unit_id,
                revision_id,
                author_id=author_id,
            )
            return _result(unit, revision)

        @get("/{unit_id:uuid}/revisions")
        async def list_revisions(
            self, db_session: AsyncSession, workspace_id: UUID, unit_id: UUID
        ) -> list[dict[str, Any]]:
            unit = await repository.require(db_session, workspace_id, unit_id)
            revisions = await repository.revisions.history(db_session, unit.id)
            return [serialize_revision(revision) for revision in revisions]

    name = f"{repository.model.__name__}Controller"
    _UnitController.__name__ = name
    _UnitController.__qualname__ = name

    return _UnitController


PageController = create_unit_controller(
    pages,
    path="/api/pages",
    container_param="site",
    create_model=PageCreate,
    patch_model=PagePatch,
    serialize_unit=serialize_page,
)

CollectionItemController = create_unit_controller(
    collection_items,
    path="/api/collection-items",
    container_param="collection",
    create_model=ItemCreate,
    patch_model=ItemPatch,
    serialize_unit=serialize_item,
)
