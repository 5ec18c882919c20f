from typing import Any
from uuid import UUID

from litestar import Controller, Request, delete, get, post
from litestar.di import Provide
from sqlalchemy.ext.asyncio import AsyncSession

from quire.controllers.helpers import parse_body, provide_workspace_id
from quire.controllers.schemas import DomainCreate, SiteCreate
from quire.controllers.serializers import serialize_domain, serialize_site
from quire.db.services import site_service


class SiteController(Controller):
    """Sites of a workspace and their custom domain bindings."""

    path = "/api/sites"
    dependencies = {"workspace_id": Provide(provide_workspace_id, sync_to_thread=False)}

    @get("/")
    async def list_sites(self, db_session: AsyncSession, workspace_id: UUID) -> list[dict[str, Any]]:
        sites = await site_service.list_sites(db_session, workspace_id)
        return [serialize_site(site) for site in sites]

    @post("/")
    async def create_site(self, request: Request, db_session: AsyncSession, workspace_id: UUID) -> dict[str, Any]:
        body = await parse_body(request, SiteCreate)
        site = await site_service.create_site(
            db_session,
            workspace_id,
            name=body.name,
            slug=body.slug,
            resolver=request.app.state.resolver,
        )
        return serialize_site(site)

    @get("/{site_id:uuid}")
    async def get_site(self, db_session: AsyncSession, workspace_id: UUID, site_id: UUID) -> dict[str, Any]:
        site = await site_service.get_site(db_session, workspace_id, site_id)
        domains = await site_service.list_domains(db_session, workspace_id, site.id)
        return {**serialize_site(site), "domains": [serialize_domain(d) for d in domains]}

    @get("/{site_id:uuid}/domains")
    async def list_domains(self, db_session: AsyncSession, workspace_id: UUID, site_id: UUID) -> list[dict[str, Any]]:
        domains = await site_service.list_domains(db_session, workspace_id, site_id)
        return [serialize_domain(d) for d in domains]

    @post("/{site_id:uuid}/domains")
    async def add_domain(
        self, request: Request, db_session: AsyncSession, workspace_id: UUID, site_id: UUID
    ) -> dict[str, Any]:
        body = await parse_body(request, DomainCreate)
        binding = await site_service.add_domain(
            db_session,
            workspace_id,
            site_id,
            body.hostname,
            resolver=request.app.state.resolver,
        )
        return serialize_domain(binding)

    @delete("/{site_id:uuid}/domains/{binding_id:uuid}")
    async def remove_domain(
        self, request: Request, db_session: AsyncSession, workspace_id: UUID, site_id: UUID, binding_id: UUID
    ) -> None:
        await site_service.remove_domain(
            db_session,
            workspace_id,
            site_id,
            binding_id,
            resolver=request.app.state.resolver,
        )
