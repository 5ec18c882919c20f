"""ASGI middleware for hostname-based tenant dispatching.

Requests whose Host header resolves to a tenant site (custom domain or
``<slug>.<platform-domain>``) go to the public site app, with the resolved
site stored in the scope. Everything else goes to the editor API app.
"""

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from typing import Callable

from litestar.types import ASGIApp, Receive, Scope, Send
from sqlalchemy.ext.asyncio import AsyncSession

from quire.db.services.site_service import HostResolver, normalize_host

logger = logging.getLogger(__name__)

# Scope key holding the ResolvedSite for public requests
SITE_SCOPE_KEY = "quire.site"

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def _extract_host(scope: Scope) -> str:
    """Extract the host from ASGI scope headers, stripping port."""
    for header_name, header_value in scope.get("headers", []):
        if header_name == b"host":
            return normalize_host(header_value.decode("latin-1"))
    return ""


class HostDispatcher:
    """ASGI dispatcher choosing between the API app and the public site app.

    Both apps share one database configuration. Lifespan events are
    forwarded to both.
    """

    def __init__(
        self,
        api_app: ASGIApp,
        public_app: ASGIApp,
        resolver: HostResolver,
        session_factory: SessionFactory,
        app_hosts: list[str] | None = None,
    ) -> None:
        self.api_app = api_app
        self.public_app = public_app
        self.resolver = resolver
        self.session_factory = session_factory
        self.app_hosts = {h.lower() for h in (app_hosts or [])}

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        if scope["type"] != "http":
            await self.api_app(scope, receive, send)
            return

        host = _extract_host(scope)
        site = None
        if host and host not in self.app_hosts:
            async with self.session_factory() as session:
                site = await self.resolver.resolve(session, host)

        if site is not None:
            scope[SITE_SCOPE_KEY] = site
            await self.public_app(scope, receive, send)
        else:
            await self.api_app(scope, receive, send)

    async def _handle_lifespan(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Forward lifespan startup/shutdown to both apps."""
        all_apps = [self.api_app, self.public_app]
        failed = False

        # Per-app lifespan channels
        app_queues: list[asyncio.Queue] = [asyncio.Queue() for _ in all_apps]
        app_events: list[asyncio.Event] = [asyncio.Event() for _ in all_apps]

        async def app_receive(idx: int):
            return await app_queues[idx].get()

        async def app_send(idx: int, message: dict):
            nonlocal failed
            msg_type = message.get("type", "")
            if msg_type in ("lifespan.startup.complete", "lifespan.shutdown.complete"):
                app_events[idx].set()
            elif msg_type in ("lifespan.startup.failed", "lifespan.shutdown.failed"):
                failed = True
                app_events[idx].set()

        async def run(app: ASGIApp, idx: int) -> None:
            nonlocal failed
            try:
                await app(
                    scope,
                    lambda: app_receive(idx),
                    lambda msg: app_send(idx, msg),
                )
            except Exception:
                logger.warning("Lifespan error for app %d", idx, exc_info=True)
                failed = True
                app_events[idx].set()

        tasks = [asyncio.create_task(run(app, i)) for i, app in enumerate(all_apps)]

        try:
            message = await receive()
            if message["type"] == "lifespan.startup":
                for q in app_queues:
                    await q.put({"type": "lifespan.startup"})
                await asyncio.gather(*(e.wait() for e in app_events))

                if failed:
                    await send({"type": "lifespan.startup.failed", "message": "App startup failed"})
                    return

                await send({"type": "lifespan.startup.complete"})

            for e in app_events:
                e.clear()

            message = await receive()
            if message["type"] == "lifespan.shutdown":
                for q in app_queues:
                    await q.put({"type": "lifespan.shutdown"})
                await asyncio.gather(*(e.wait() for e in app_events))
                await send({"type": "lifespan.shutdown.complete"})
        finally:
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
