"""Revision store: the capped, append-only version history of a content unit.

One :class:`RevisionStore` exists per revisioned kind (pages, collection
items). Revisions are immutable; "latest" is always the highest version, never
a stored pointer. Only the ``MAX_REVISIONS`` newest revisions of a unit are
kept.
"""

import copy
import logging
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quire.db.models import CollectionItem, CollectionItemRevision, Page, PageRevision
from quire.lib.exceptions import ConflictError, ValidationError
from quire.lib.observability import span

logger = logging.getLogger(__name__)

MAX_REVISIONS = 10

# Attempts at allocating a version before giving up
_MAX_ALLOCATION_ATTEMPTS = 3

R = TypeVar("R")


class RevisionStore(Generic[R]):
    """Version allocation, append, prune and lookup for one revision table."""

    def __init__(self, revision_model: type[R], unit_model: type, max_revisions: int = MAX_REVISIONS) -> None:
        self.revision_model = revision_model
        self.unit_model = unit_model
        self.max_revisions = max_revisions

    async def next_version(self, db_session: AsyncSession, unit_id: UUID) -> int:
        """Return max(version) + 1 for the unit, or 1 if it has no revisions.

        Takes a row lock on the unit first so concurrent appends to the same
        unit serialize on it. The lock lasts until the caller's transaction
        ends.
        """
        locked = await db_session.execute(
            select(self.unit_model.id).where(self.unit_model.id == unit_id).with_for_update()
        )
        if locked.scalar_one_or_none() is None:
            raise ValidationError(
                f"Cannot add a revision to unknown {self.unit_model.__name__.lower()}",
                details={"unitId": str(unit_id)},
            )

        result = await db_session.execute(
            select(func.coalesce(func.max(self.revision_model.version), 0)).where(
                self.revision_model.unit_id == unit_id
            )
        )
        return (result.scalar() or 0) + 1

    async def append(
        self,
        db_session: AsyncSession,
        unit_id: UUID,
        content: Any,
        author_id: str | None = None,
        note: str | None = None,
        is_publish: bool = False,
    ) -> R:
        """Insert a new revision and prune history beyond the cap.

        Flushes but does not commit: the caller owns the transaction so the
        unit update and its revision land together.
        """
        with span("revision.append", unit_id=str(unit_id), table=self.revision_model.__tablename__):
            for attempt in range(1, _MAX_ALLOCATION_ATTEMPTS + 1):
                version = await self.next_version(db_session, unit_id)
                revision = self.revision_model(
                    unit_id=unit_id,
                    version=version,
                    content=copy.deepcopy(content) if content is not None else {},
                    author_id=author_id,
                    note=note,
                    is_publish=is_publish,
                )
                try:
                    async with db_session.begin_nested():
                        db_session.add(revision)
                except IntegrityError:
                    logger.warning(
                        "Version %d of unit %s was taken concurrently (attempt %d)", version, unit_id, attempt
                    )
                    continue
                break
            else:
                raise ConflictError(
                    "Could not allocate a revision version",
                    details={"unitId": str(unit_id)},
                )

            await self.prune(db_session, unit_id)
            return revision

    async def prune(self, db_session: AsyncSession, unit_id: UUID) -> int:
        """Delete the oldest revisions beyond the cap. Returns how many went.

        Runs in a savepoint; a failure is logged and rolled back without
        failing the surrounding write.
        """
        with span("revision.prune", unit_id=str(unit_id)):
            try:
                async with db_session.begin_nested():
                    threshold = await db_session.scalar(
                        select(self.revision_model.version)
                        .where(self.revision_model.unit_id == unit_id)
                        .order_by(self.revision_model.version.desc())
                        .offset(self.max_revisions - 1)
                        .limit(1)
                    )
                    if threshold is None:
                        return 0

                    result = await db_session.execute(
                        delete(self.revision_model).where(
                            self.revision_model.unit_id == unit_id,
                            self.revision_model.version < threshold,
                        )
                    )
            except SQLAlchemyError:
                logger.exception("Pruning revisions of unit %s failed", unit_id)
                return 0

            removed = result.rowcount or 0
            if removed:
                logger.debug("Pruned %d revisions of unit %s", removed, unit_id)
            return removed

    async def latest(self, db_session: AsyncSession, unit_id: UUID) -> R | None:
        result = await db_session.execute(
            select(self.revision_model)
            .where(self.revision_model.unit_id == unit_id)
            .order_by(self.revision_model.version.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def latest_published(self, db_session: AsyncSession, unit_id: UUID) -> R | None:
        """Newest revision written by a publish, if it is still retained."""
        result = await db_session.execute(
            select(self.revision_model)
            .where(
                self.revision_model.unit_id == unit_id,
                self.revision_model.is_publish.is_(True),
            )
            .order_by(self.revision_model.version.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def history(self, db_session: AsyncSession, unit_id: UUID, limit: int | None = None) -> list[R]:
        """List revisions for a unit, newest first."""
        query = (
            select(self.revision_model)
            .where(self.revision_model.unit_id == unit_id)
            .order_by(self.revision_model.version.desc())
        )
        if limit:
            query = query.limit(limit)

        result = await db_session.execute(query)
        return list(result.scalars().all())

    async def get(self, db_session: AsyncSession, unit_id: UUID, revision_id: UUID) -> R | None:
        """Get a revision by ID, only if it belongs to ``unit_id``."""
        result = await db_session.execute(
            select(self.revision_model).where(
                self.revision_model.id == revision_id,
                self.revision_model.unit_id == unit_id,
            )
        )
        return result.scalar_one_or_none()

    async def count(self, db_session: AsyncSession, unit_id: UUID) -> int:
        result = await db_session.execute(
            select(func.count(self.revision_model.id)).where(self.revision_model.unit_id == unit_id)
        )
        return result.scalar() or 0

    async def delete_all(self, db_session: AsyncSession, unit_id: UUID) -> int:
        """Delete every revision of a unit. Does not commit."""
        result = await db_session.execute(
            delete(self.revision_model).where(self.revision_model.unit_id == unit_id)
        )
        return result.rowcount or 0


page_revisions: RevisionStore[PageRevision] = RevisionStore(PageRevision, Page)
item_revisions: RevisionStore[CollectionItemRevision] = RevisionStore(CollectionItemRevision, CollectionItem)
