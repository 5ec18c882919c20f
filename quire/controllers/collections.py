from typing import Any
from uuid import UUID

from litestar import Controller, Request, delete, get, patch, post
from litestar.di import Provide
from sqlalchemy.ext.asyncio import AsyncSession

from quire.controllers.helpers import parse_body, parse_uuid, provide_workspace_id
from quire.controllers.schemas import CollectionCreate, CollectionPatch
from quire.controllers.serializers import serialize_collection
from quire.db.services import collection_service


class CollectionController(Controller):
    path = "/api/collections"
    dependencies = {"workspace_id": Provide(provide_workspace_id, sync_to_thread=False)}

    @get("/")
    async def list_collections(
        self, request: Request, db_session: AsyncSession, workspace_id: UUID
    ) -> list[dict[str, Any]]:
        site_id = parse_uuid(request.query_params.get("site"), "site")
        collections = await collection_service.list_collections(db_session, workspace_id, site_id=site_id)
        return [serialize_collection(c) for c in collections]

    @post("/")
    async def create_collection(
        self, request: Request, db_session: AsyncSession, workspace_id: UUID
    ) -> dict[str, Any]:
        body = await parse_body(request, CollectionCreate)
        collection = await collection_service.create_collection(
            db_session,
            workspace_id,
            site_id=body.site_id,
            name=body.name,
            slug=body.slug,
            description=body.description,
            schema_json=body.field_schema,
        )
        return serialize_collection(collection)

    @get("/{collection_id:uuid}")
    async def get_collection(
        self, db_session: AsyncSession, workspace_id: UUID, collection_id: UUID
    ) -> dict[str, Any]:
        collection = await collection_service.get_collection(db_session, workspace_id, collection_id)
        item_count = await collection_service.count_items(db_session, collection.id)
        return {**serialize_collection(collection), "itemCount": item_count}

    @patch("/{collection_id:uuid}")
    async def update_collection(
        self, request: Request, db_session: AsyncSession, workspace_id: UUID, collection_id: UUID
    ) -> dict[str, Any]:
        body = await parse_body(request, CollectionPatch)
        changes = body.model_dump(exclude_unset=True)
        if "field_schema" in changes:
            changes["schema_json"] = changes.pop("field_schema")
        collection = await collection_service.update_collection(db_session, workspace_id, collection_id, changes)
        return serialize_collection(collection)

    @delete("/{collection_id:uuid}")
    async def delete_collection(self, db_session: AsyncSession, workspace_id: UUID, collection_id: UUID) -> None:
        await collection_service.delete_collection(db_session, workspace_id, collection_id)
