"""Sites, custom domain bindings, and hostname to site resolution."""

import logging
import re
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quire.db.models import DomainBinding, Site
from quire.lib.exceptions import ConflictError, NotFoundError, ValidationError
from quire.lib.observability import span
from quire.lib.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

# A single DNS label: what a site slug must be to serve as a subdomain
SLUG_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")
HOSTNAME_PATTERN = re.compile(r"^(?=.{1,253}$)[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?(?:\.[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)+$")


def normalize_host(host: str) -> str:
    """Lower-case a Host header value and strip its port and trailing dot."""
    host = host.strip().lower()
    if host.startswith("["):
        # Bracketed IPv6 literal, optionally followed by a port
        end = host.find("]")
        return host[: end + 1] if end != -1 else host
    if ":" in host:
        host = host.rsplit(":", 1)[0]
    return host.rstrip(".")


@dataclass(frozen=True)
class ResolvedSite:
    """Detached snapshot of a site, safe to keep in a cache."""

    id: UUID
    workspace_id: UUID
    name: str
    slug: str

    @classmethod
    def from_model(cls, site: Site) -> "ResolvedSite":
        return cls(id=site.id, workspace_id=site.workspace_id, name=site.name, slug=site.slug)


class HostResolver:
    """Maps a request hostname to the tenant site it serves.

    A verified domain binding wins over the platform subdomain form
    ``<slug>.<platform-domain>``. Hits and misses are cached for ``ttl``
    seconds; any site or binding change clears the cache.
    """

    def __init__(self, platform_domain: str, ttl: float = 30.0) -> None:
        self.platform_domain = platform_domain.lower().strip(".")
        self.suffix = f".{self.platform_domain}"
        self._cache: TTLCache[ResolvedSite | None] = TTLCache(ttl=ttl)

    def subdomain_slug(self, host: str) -> str | None:
        """Return the site slug encoded in a platform subdomain, if any."""
        if not host.endswith(self.suffix):
            return None
        label = host[: -len(self.suffix)]
        if not label or "." in label:
            return None
        return label

    async def resolve(self, db_session: AsyncSession, hostname: str) -> ResolvedSite | None:
        host = normalize_host(hostname)
        if not host:
            return None

        cached = self._cache.get(host)
        if not TTLCache.is_miss(cached):
            return cached

        with span("host.resolve", host=host):
            site = await self._lookup(db_session, host)

        resolved = ResolvedSite.from_model(site) if site is not None else None
        self._cache.set(host, resolved)
        return resolved

    async def _lookup(self, db_session: AsyncSession, host: str) -> Site | None:
        result = await db_session.execute(
            select(Site).join(DomainBinding, DomainBinding.site_id == Site.id).where(DomainBinding.hostname == host)
        )
        site = result.scalar_one_or_none()
        if site is not None:
            return site

        slug = self.subdomain_slug(host)
        if slug is None:
            return None
        result = await db_session.execute(select(Site).where(Site.slug == slug))
        return result.scalar_one_or_none()

    def invalidate(self) -> None:
        self._cache.invalidate()


async def list_sites(db_session: AsyncSession, workspace_id: UUID) -> list[Site]:
    result = await db_session.execute(
        select(Site).where(Site.workspace_id == workspace_id).order_by(Site.name.asc())
    )
    return list(result.scalars().all())


async def get_site(db_session: AsyncSession, workspace_id: UUID, site_id: UUID) -> Site:
    """Get a workspace's site, raising NotFoundError otherwise."""
    result = await db_session.execute(
        select(Site).where(Site.id == site_id, Site.workspace_id == workspace_id)
    )
    site = result.scalar_one_or_none()
    if site is None:
        raise NotFoundError("Site")
    return site


async def create_site(
    db_session: AsyncSession,
    workspace_id: UUID,
    name: str,
    slug: str,
    resolver: HostResolver | None = None,
) -> Site:
    slug = slug.strip().lower()
    if not SLUG_PATTERN.match(slug):
        raise ValidationError(
            "Site slug must be a DNS label: lowercase letters, digits and hyphens",
            details={"slug": slug},
        )
    if not name.strip():
        raise ValidationError("Site name may not be empty", details={"field": "name"})

    existing = await db_session.scalar(select(Site.id).where(Site.slug == slug))
    if existing is not None:
        raise ConflictError(f"Site slug '{slug}' is taken", details={"slug": slug})

    site = Site(workspace_id=workspace_id, name=name.strip(), slug=slug)
    db_session.add(site)
    try:
        await db_session.commit()
    except IntegrityError as exc:
        await db_session.rollback()
        raise ConflictError(f"Site slug '{slug}' is taken", details={"slug": slug}) from exc
    await db_session.refresh(site)

    if resolver is not None:
        resolver.invalidate()
    logger.info("Created site %s (%s)", site.slug, site.id)
    return site


async def list_domains(db_session: AsyncSession, workspace_id: UUID, site_id: UUID) -> list[DomainBinding]:
    await get_site(db_session, workspace_id, site_id)
    result = await db_session.execute(
        select(DomainBinding).where(DomainBinding.site_id == site_id).order_by(DomainBinding.hostname.asc())
    )
    return list(result.scalars().all())


async def add_domain(
    db_session: AsyncSession,
    workspace_id: UUID,
    site_id: UUID,
    hostname: str,
    resolver: HostResolver | None = None,
) -> DomainBinding:
    """Bind a custom hostname to a site. Ownership verification happens upstream."""
    await get_site(db_session, workspace_id, site_id)

    host = normalize_host(hostname)
    if not HOSTNAME_PATTERN.match(host):
        raise ValidationError(f"'{hostname}' is not a valid hostname", details={"hostname": hostname})

    existing = await db_session.scalar(select(DomainBinding.id).where(DomainBinding.hostname == host))
    if existing is not None:
        raise ConflictError(f"Domain '{host}' is already bound", details={"hostname": host})

    binding = DomainBinding(site_id=site_id, hostname=host)
    db_session.add(binding)
    try:
        await db_session.commit()
    except IntegrityError as exc:
        await db_session.rollback()
        raise ConflictError(f"Domain '{host}' is already bound", details={"hostname": host}) from exc
    await db_session.refresh(binding)

    if resolver is not None:
        resolver.invalidate()
    return binding


async def remove_domain(
    db_session: AsyncSession,
    workspace_id: UUID,
    site_id: UUID,
    binding_id: UUID,
    resolver: HostResolver | None = None,
) -> None:
    await get_site(db_session, workspace_id, site_id)

    result = await db_session.execute(
        select(DomainBinding).where(DomainBinding.id == binding_id, DomainBinding.site_id == site_id)
    )
    binding = result.scalar_one_or_none()
    if binding is None:
        raise NotFoundError("Domain")

    await db_session.delete(binding)
    await db_session.commit()

    if resolver is not None:
        resolver.invalidate()
