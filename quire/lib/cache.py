"""Cache-control policy for public responses and purge fan-out on publish.

Public pages are served with a short shared-cache window plus a longer
stale-while-revalidate window, so a publish reaches visitors within
``max_age`` seconds even when no purge handler is registered. Handlers
(edge caches, webhooks) are notified with ``(site_id, slug)`` after every
publish; notification is fire-and-forget.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable
from uuid import UUID

import httpx

from quire.config import CacheConfig
from quire.lib import observability

logger = logging.getLogger(__name__)

PurgeHandler = Callable[[UUID, str | None], Awaitable[None] | None]


class CacheKind(str, Enum):
    CONTENT = "content"
    PRIVATE = "private"


class CacheInvalidator:
    """Owns the cache header policy and the registered purge handlers."""

    def __init__(self, config: CacheConfig | None = None) -> None:
        self.config = config or CacheConfig()
        self._handlers: list[PurgeHandler] = []
        self._tasks: set[asyncio.Task] = set()

    def cache_headers(self, kind: CacheKind) -> dict[str, str]:
        """Response headers for a public content response or a private/error one."""
        if kind == CacheKind.CONTENT:
            return {
                "Cache-Control": (
                    f"public, max-age={self.config.max_age}, "
                    f"stale-while-revalidate={self.config.stale_while_revalidate}"
                ),
                "Vary": "Accept-Encoding",
            }
        return {"Cache-Control": "no-store"}

    def register(self, handler: PurgeHandler) -> None:
        self._handlers.append(handler)

    def unregister(self, handler: PurgeHandler) -> bool:
        try:
            self._handlers.remove(handler)
        except ValueError:
            return False
        return True

    @property
    def handlers(self) -> list[PurgeHandler]:
        return list(self._handlers)

    def purge(self, site_id: UUID, slug: str | None = None) -> None:
        """Notify every handler that cached copies for the site/slug are stale.

        Returns immediately; each handler runs in its own task and a failing
        handler affects neither the others nor the caller.
        """
        for handler in list(self._handlers):
            task = asyncio.create_task(self._run_handler(handler, site_id, slug))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run_handler(self, handler: PurgeHandler, site_id: UUID, slug: str | None) -> None:
        name = getattr(handler, "__name__", type(handler).__name__)
        with observability.span("cache.purge", site_id=str(site_id), slug=slug, handler=name):
            try:
                result = handler(site_id, slug)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("Cache purge handler %s failed for site %s slug %s", name, site_id, slug)

    async def drain(self) -> None:
        """Wait for in-flight purges to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class WebhookPurgeHandler:
    """POSTs ``{"siteId", "slug"}`` to each configured URL."""

    __name__ = "webhook"

    def __init__(self, urls: list[str], timeout: float = 5.0) -> None:
        self.urls = list(urls)
        self.timeout = timeout

    async def __call__(self, site_id: UUID, slug: str | None) -> None:
        payload: dict[str, Any] = {"siteId": str(site_id), "slug": slug}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for url in self.urls:
                try:
                    response = await client.post(url, json=payload)
                    response.raise_for_status()
                except httpx.HTTPError as exc:
                    logger.warning("Purge webhook %s failed: %s", url, exc)


def create_invalidator(config: CacheConfig) -> CacheInvalidator:
    """Build an invalidator with the webhook handler registered when URLs are configured."""
    invalidator = CacheInvalidator(config)
    if config.purge_webhooks:
        invalidator.register(WebhookPurgeHandler(config.purge_webhooks, timeout=config.purge_timeout))
    return invalidator
