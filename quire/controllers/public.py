"""Public render path for tenant sites.

Serves only published pages, with the shared-cache policy of the cache
invalidator. Browsers get HTML, everything else JSON.
"""

from typing import Any

from litestar import Controller, Request, get
from litestar.response import Response
from sqlalchemy.ext.asyncio import AsyncSession

from quire.controllers.serializers import serialize_page, serialize_site, serialize_tree
from quire.db.models import Page
from quire.db.services import menu_service
from quire.db.services.content_service import pages
from quire.db.services.site_service import ResolvedSite
from quire.lib.cache import CacheInvalidator, CacheKind
from quire.lib.exceptions import NotFoundError, accepts_html
from quire.lib.hooks import PUBLIC_RENDER_CONTEXT, hooks
from quire.lib.template import Template
from quire.middleware.host_dispatch import SITE_SCOPE_KEY

# Slugs that mark a site's home page, in order of preference
HOME_SLUGS = ("home", "index", "/")

MENU_SLOTS = ("header", "footer")


def _current_site(request: Request) -> ResolvedSite:
    site = request.scope.get(SITE_SCOPE_KEY)
    if site is None:
        raise NotFoundError("Site")
    return site


async def find_home_page(db_session: AsyncSession, site: ResolvedSite) -> Page | None:
    """The page served at ``/``: a conventional home slug, else the first page by title."""
    for slug in HOME_SLUGS:
        page = await pages.get_published_by_slug(db_session, site.id, slug)
        if page is not None:
            return page
    published = await pages.list_published(db_session, site.id)
    return published[0] if published else None


async def build_render_context(
    request: Request, db_session: AsyncSession, site: ResolvedSite, page: Page
) -> dict[str, Any]:
    if page.published_content is None:
        raise NotFoundError("Page")

    menus = {}
    for slot in MENU_SLOTS:
        menu = await menu_service.get_menu_by_slot(db_session, site.id, slot)
        if menu is None:
            menus[slot] = []
        else:
            menus[slot] = menu_service.build_tree(await menu_service.list_items(db_session, menu.id))

    context = {
        "site": site,
        "page": page,
        "content": page.published_content,
        "pages": await pages.list_published(db_session, site.id),
        "menus": menus,
    }
    return await hooks.apply_filters(PUBLIC_RENDER_CONTEXT, context, request)


class PublicController(Controller):
    path = "/"

    async def _render(self, request: Request, db_session: AsyncSession, site: ResolvedSite, page: Page | None) -> Response:
        if page is None:
            raise NotFoundError("Page")

        context = await build_render_context(request, db_session, site, page)
        invalidator: CacheInvalidator = request.app.state.invalidator
        headers = invalidator.cache_headers(CacheKind.CONTENT)

        if accepts_html(request):
            html = Template("public/page", page.slug.strip("/")).try_render(request.app.template_engine, **context)
            if html is not None:
                return Response(content=html, media_type="text/html", headers=headers)

        return Response(
            content={
                "site": serialize_site(context["site"]),
                "page": serialize_page(context["page"]),
                "content": context["content"],
                "pages": [{"slug": p.slug, "title": p.title} for p in context["pages"]],
                "menus": {slot: serialize_tree(tree) for slot, tree in context["menus"].items()},
            },
            media_type="application/json",
            headers=headers,
        )

    @get("/")
    async def home(self, request: Request, db_session: AsyncSession) -> Response:
        site = _current_site(request)
        page = await find_home_page(db_session, site)
        return await self._render(request, db_session, site, page)

    @get("/{slug:str}")
    async def view_page(self, request: Request, db_session: AsyncSession, slug: str) -> Response:
        site = _current_site(request)
        page = await pages.get_published_by_slug(db_session, site.id, slug)
        return await self._render(request, db_session, site, page)
