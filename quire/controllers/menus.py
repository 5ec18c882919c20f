from typing import Any
from uuid import UUID

from litestar import Controller, Request, delete, get, patch, post, put
from litestar.di import Provide
from sqlalchemy.ext.asyncio import AsyncSession

from quire.controllers.helpers import parse_body, parse_uuid, provide_workspace_id
from quire.controllers.schemas import MenuCreate, MenuItemCreate, MenuItemPatch, MenuPatch, ReorderBody
from quire.controllers.serializers import serialize_menu, serialize_menu_item, serialize_tree
from quire.db.services import menu_service
from quire.db.services.menu_service import ReorderNode


class MenuController(Controller):
    """Menus, their items, and atomic tree reordering."""

    path = "/api/menus"
    dependencies = {"workspace_id": Provide(provide_workspace_id, sync_to_thread=False)}

    @get("/")
    async def list_menus(self, request: Request, db_session: AsyncSession, workspace_id: UUID) -> list[dict[str, Any]]:
        site_id = parse_uuid(request.query_params.get("site"), "site")
        menus = await menu_service.list_menus(db_session, workspace_id, site_id=site_id)
        return [serialize_menu(menu) for menu in menus]

    @post("/")
    async def create_menu(self, request: Request, db_session: AsyncSession, workspace_id: UUID) -> dict[str, Any]:
        body = await parse_body(request, MenuCreate)
        menu = await menu_service.create_menu(db_session, workspace_id, body.site_id, body.name, slot=body.slot)
        return {**serialize_menu(menu), "items": []}

    @get("/{menu_id:uuid}")
    async def get_menu(self, db_session: AsyncSession, workspace_id: UUID, menu_id: UUID) -> dict[str, Any]:
        menu, tree = await menu_service.get_tree(db_session, workspace_id, menu_id)
        return {**serialize_menu(menu), "items": serialize_tree(tree)}

    @patch("/{menu_id:uuid}")
    async def update_menu(
        self, request: Request, db_session: AsyncSession, workspace_id: UUID, menu_id: UUID
    ) -> dict[str, Any]:
        body = await parse_body(request, MenuPatch)
        menu = await menu_service.update_menu(db_session, workspace_id, menu_id, body.model_dump(exclude_unset=True))
        return serialize_menu(menu)

    @delete("/{menu_id:uuid}")
    async def delete_menu(self, db_session: AsyncSession, workspace_id: UUID, menu_id: UUID) -> None:
        await menu_service.delete_menu(db_session, workspace_id, menu_id)

    @post("/{menu_id:uuid}/items")
    async def add_item(
        self, request: Request, db_session: AsyncSession, workspace_id: UUID, menu_id: UUID
    ) -> dict[str, Any]:
        body = await parse_body(request, MenuItemCreate)
        item = await menu_service.add_item(
            db_session,
            workspace_id,
            menu_id,
            label=body.label,
            target=body.target,
            type=body.type,
            parent_id=body.parent_id,
            open_in_new_tab=body.open_in_new_tab,
            sort_order=body.sort_order,
        )
        return serialize_menu_item(item)

    @patch("/{menu_id:uuid}/items/{item_id:uuid}")
    async def update_item(
        self, request: Request, db_session: AsyncSession, workspace_id: UUID, menu_id: UUID, item_id: UUID
    ) -> dict[str, Any]:
        body = await parse_body(request, MenuItemPatch)
        item = await menu_service.update_item(
            db_session, workspace_id, menu_id, item_id, body.model_dump(exclude_unset=True)
        )
        return serialize_menu_item(item)

    @delete("/{menu_id:uuid}/items/{item_id:uuid}")
    async def delete_item(self, db_session: AsyncSession, workspace_id: UUID, menu_id: UUID, item_id: UUID) -> None:
        await menu_service.delete_item(db_session, workspace_id, menu_id, item_id)

    @put("/{menu_id:uuid}/reorder")
    async def reorder(
        self, request: Request, db_session: AsyncSession, workspace_id: UUID, menu_id: UUID
    ) -> list[dict[str, Any]]:
        body = await parse_body(request, ReorderBody)
        nodes = [ReorderNode(id=e.id, parent_id=e.parent_id, sort_order=e.sort_order) for e in body.root]
        items = await menu_service.reorder(db_session, workspace_id, menu_id, nodes)
        return [serialize_menu_item(item) for item in items]
