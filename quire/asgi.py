"""ASGI application factory for Quire.

The application uses a dispatcher architecture:
- The editor API app serves ``/api/...`` on the platform's own hosts
- The public site app renders published pages for tenant hostnames
- HostDispatcher resolves the Host header and picks one of the two
Both apps share one database configuration and one cache invalidator.
"""

import logging

from advanced_alchemy.extensions.litestar import SQLAlchemyPlugin
from litestar import Litestar
from litestar.config.compression import CompressionConfig
from litestar.datastructures import CacheControlHeader
from litestar.types import ASGIApp

from quire.config import Settings, get_settings
from quire.controllers.collections import CollectionController
from quire.controllers.menus import MenuController
from quire.controllers.public import PublicController
from quire.controllers.sites import SiteController
from quire.controllers.units import CollectionItemController, PageController
from quire.db.services.publish_service import PublishOrchestrator
from quire.db.services.site_service import HostResolver
from quire.db.session import create_all, create_db_config
from quire.lib import observability
from quire.lib.cache import create_invalidator
from quire.lib.exceptions import EXCEPTION_HANDLERS, PUBLIC_EXCEPTION_HANDLERS
from quire.lib.template import get_template_config
from quire.middleware.host_dispatch import HostDispatcher

logger = logging.getLogger(__name__)

API_CONTROLLERS = [
    PageController,
    CollectionItemController,
    CollectionController,
    MenuController,
    SiteController,
]


def create_app(settings: Settings | None = None) -> ASGIApp:
    """Create the editor API and public site apps behind a HostDispatcher."""
    settings = settings or get_settings()
    logging.getLogger("quire").setLevel(settings.log_level.upper())

    observability.configure(settings)
    observability.instrument_httpx()

    db_config = create_db_config(settings.db)

    invalidator = create_invalidator(settings.cache)
    publisher = PublishOrchestrator(invalidator)
    resolver = HostResolver(settings.platform.domain, ttl=settings.platform.host_cache_ttl)

    async def on_startup(_app: Litestar) -> None:
        """Create tables when configured and instrument the engine."""
        engine = db_config.get_engine()
        if settings.db.create_all:
            await create_all(engine)
        observability.instrument_sqlalchemy(engine)

    async def on_shutdown(_app: Litestar) -> None:
        """Wait for in-flight cache purges."""
        await invalidator.drain()

    api_app = Litestar(
        on_startup=[on_startup],
        on_shutdown=[on_shutdown],
        route_handlers=API_CONTROLLERS,
        plugins=[SQLAlchemyPlugin(config=db_config)],
        cache_control=CacheControlHeader(no_store=True),
        compression_config=CompressionConfig(backend="gzip"),
        exception_handlers=EXCEPTION_HANDLERS,
        debug=settings.debug,
    )

    public_app = Litestar(
        route_handlers=[PublicController],
        plugins=[SQLAlchemyPlugin(config=db_config)],
        template_config=get_template_config(),
        compression_config=CompressionConfig(backend="gzip"),
        exception_handlers=PUBLIC_EXCEPTION_HANDLERS,
        debug=settings.debug,
    )

    for litestar_app in (api_app, public_app):
        litestar_app.state.invalidator = invalidator
        litestar_app.state.publisher = publisher
        litestar_app.state.resolver = resolver

    logger.info(
        "Serving editor API on %s, tenant sites on *.%s",
        ", ".join(settings.platform.app_hosts),
        settings.platform.domain,
    )

    return HostDispatcher(
        api_app=observability.instrument_app(api_app),
        public_app=observability.instrument_app(public_app),
        resolver=resolver,
        session_factory=db_config.get_session,
        app_hosts=settings.platform.app_hosts,
    )


app = create_app()
