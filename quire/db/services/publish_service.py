"""Publish orchestrator: draft/published transitions and rollbacks."""

import copy
import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from quire.db.models import ContentStatus
from quire.db.services.content_service import UNSET, ContentUnitRepository
from quire.lib.cache import CacheInvalidator
from quire.lib.exceptions import NotFoundError
from quire.lib.hooks import AFTER_UNIT_PUBLISH, AFTER_UNIT_ROLLBACK, hooks
from quire.lib.observability import span

logger = logging.getLogger(__name__)

PUBLISH_NOTE = "Published"


def rollback_note(version: int) -> str:
    return f"Rollback to v{version}"


class PublishOrchestrator:
    """Moves units to PUBLISHED and tells the cache layer about it."""

    def __init__(self, invalidator: CacheInvalidator) -> None:
        self.invalidator = invalidator

    async def publish(
        self,
        db_session: AsyncSession,
        repository: ContentUnitRepository,
        workspace_id: UUID,
        unit_id: UUID,
        author_id: str | None = None,
        content: Any = UNSET,
    ):
        """Publish a unit. Returns (unit, revision).

        The published content is ``content`` when given, otherwise the latest
        revision's content. Publishing an already published unit refreshes
        ``published_at`` and adds one more revision. Cache purges are started
        after the commit and not awaited.
        """
        with span("unit.publish", unit_id=str(unit_id), kind=repository.label):
            unit = await repository.require(db_session, workspace_id, unit_id)

            if content is UNSET:
                latest = await repository.revisions.latest(db_session, unit.id)
                content = latest.content if latest is not None else {}

            now = datetime.now(UTC)
            unit.status = ContentStatus.PUBLISHED.value
            unit.published_at = now
            unit.published_content = copy.deepcopy(content)
            unit.updated_at = now

            revision = await repository.revisions.append(
                db_session,
                unit.id,
                content,
                author_id=author_id,
                note=PUBLISH_NOTE,
                is_publish=True,
            )
            await db_session.commit()
            await db_session.refresh(unit)

            site_id, slug = await repository.purge_target(db_session, unit)
            self.invalidator.purge(site_id, slug)

            logger.info("Published %s %s as v%d", repository.label.lower(), unit.id, revision.version)

        await hooks.do_action(AFTER_UNIT_PUBLISH, unit, revision)

        return unit, revision

    async def rollback(
        self,
        db_session: AsyncSession,
        repository: ContentUnitRepository,
        workspace_id: UUID,
        unit_id: UUID,
        revision_id: UUID,
        author_id: str | None = None,
    ):
        """Append a new revision restoring an older one's content.

        The target revision is left untouched. Status does not change and no
        purge is triggered; the restored content goes public on the next
        publish. Returns (unit, revision).
        """
        with span("unit.rollback", unit_id=str(unit_id), revision_id=str(revision_id)):
            unit = await repository.require(db_session, workspace_id, unit_id)

            target = await repository.revisions.get(db_session, unit.id, revision_id)
            if target is None:
                raise NotFoundError("Revision")

            revision = await repository.revisions.append(
                db_session,
                unit.id,
                target.content,
                author_id=author_id,
                note=rollback_note(target.version),
            )
            unit.updated_at = datetime.now(UTC)
            await db_session.commit()
            await db_session.refresh(unit)

        await hooks.do_action(AFTER_UNIT_ROLLBACK, unit, revision, target)

        return unit, revision
