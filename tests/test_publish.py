"""Tests for publishing and rollback."""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from quire.db.models import ContentStatus
from quire.db.services.content_service import pages
from quire.db.services.publish_service import PUBLISH_NOTE, PublishOrchestrator, rollback_note
from quire.lib.cache import CacheInvalidator
from quire.lib.exceptions import NotFoundError
from quire.lib.hooks import AFTER_UNIT_PUBLISH, AFTER_UNIT_ROLLBACK, hooks


@pytest.fixture
def invalidator():
    invalidator = MagicMock(spec=CacheInvalidator)
    return invalidator


@pytest.fixture
def publisher(invalidator):
    return PublishOrchestrator(invalidator)


@pytest.fixture
async def page(db_session, workspace_id, site):
    page, _ = await pages.create_draft(
        db_session, workspace_id, site.id, {"slug": "home", "title": "Home"}, content={"body": "first"}
    )
    return page


class TestPublish:
    """Test PublishOrchestrator.publish."""

    async def test_publish_copies_latest_content(self, publisher, page, db_session, workspace_id):
        await pages.save_draft(db_session, workspace_id, page.id, content={"body": "second"})

        unit, revision = await publisher.publish(db_session, pages, workspace_id, page.id)

        assert unit.status == ContentStatus.PUBLISHED
        assert unit.published_at is not None
        assert revision.content == {"body": "second"}
        assert revision.version == 3
        assert revision.is_publish is True
        assert revision.note == PUBLISH_NOTE

    async def test_publish_stores_live_snapshot(self, publisher, page, db_session, workspace_id):
        unit, _ = await publisher.publish(db_session, pages, workspace_id, page.id)
        unit, _ = await pages.save_draft(db_session, workspace_id, page.id, content={"body": "draft"})

        assert unit.published_content == {"body": "first"}

    async def test_publish_with_explicit_content(self, publisher, page, db_session, workspace_id):
        _, revision = await publisher.publish(
            db_session, pages, workspace_id, page.id, content={"body": "inline"}
        )

        assert revision.content == {"body": "inline"}

    async def test_publish_twice_adds_one_revision_each(self, publisher, page, db_session, workspace_id):
        first_unit, first = await publisher.publish(db_session, pages, workspace_id, page.id)
        first_published_at = first_unit.published_at
        second_unit, second = await publisher.publish(db_session, pages, workspace_id, page.id)

        assert second.version == first.version + 1
        assert second.content == first.content
        assert second_unit.published_at >= first_published_at
        assert await pages.revisions.count(db_session, page.id) == 3

    async def test_publish_purges_page(self, publisher, invalidator, page, db_session, workspace_id, site):
        await publisher.publish(db_session, pages, workspace_id, page.id)

        invalidator.purge.assert_called_once_with(site.id, "home")

    async def test_publish_unknown_unit(self, publisher, db_session, workspace_id):
        with pytest.raises(NotFoundError):
            await publisher.publish(db_session, pages, workspace_id, uuid4())

    async def test_publish_fires_hook(self, publisher, page, db_session, workspace_id, clean_hooks):
        published = []
        hooks.add_action(AFTER_UNIT_PUBLISH, lambda unit, revision: published.append(revision.version))

        await publisher.publish(db_session, pages, workspace_id, page.id)

        assert published == [2]


class TestRollback:
    """Test PublishOrchestrator.rollback."""

    async def test_rollback_appends_copy_of_target(self, publisher, page, db_session, workspace_id):
        target = await pages.revisions.latest(db_session, page.id)
        await pages.save_draft(db_session, workspace_id, page.id, content={"body": "second"})

        unit, revision = await publisher.rollback(db_session, pages, workspace_id, page.id, target.id)
        latest = await pages.revisions.latest(db_session, page.id)

        assert latest.id == revision.id
        assert latest.content == {"body": "first"}
        assert latest.version > target.version
        assert revision.note == rollback_note(1)
        assert unit.status == ContentStatus.DRAFT
        assert unit.published_content is None

    async def test_rollback_leaves_target_untouched(self, publisher, page, db_session, workspace_id):
        target = await pages.revisions.latest(db_session, page.id)

        await publisher.rollback(db_session, pages, workspace_id, page.id, target.id)
        reloaded = await pages.revisions.get(db_session, page.id, target.id)

        assert reloaded.version == 1
        assert reloaded.content == {"body": "first"}

    async def test_rollback_does_not_purge(self, publisher, invalidator, page, db_session, workspace_id):
        target = await pages.revisions.latest(db_session, page.id)

        await publisher.rollback(db_session, pages, workspace_id, page.id, target.id)

        invalidator.purge.assert_not_called()

    async def test_rollback_to_revision_of_other_unit(self, publisher, page, db_session, workspace_id, site):
        _, foreign = await pages.create_draft(
            db_session, workspace_id, site.id, {"slug": "other", "title": "Other"}
        )

        with pytest.raises(NotFoundError) as exc_info:
            await publisher.rollback(db_session, pages, workspace_id, page.id, foreign.id)

        assert exc_info.value.resource == "Revision"

    async def test_rollback_fires_hook(self, publisher, page, db_session, workspace_id, clean_hooks):
        calls = []
        hooks.add_action(AFTER_UNIT_ROLLBACK, lambda unit, revision, target: calls.append(target.version))
        target = await pages.revisions.latest(db_session, page.id)

        await publisher.rollback(db_session, pages, workspace_id, page.id, target.id)

        assert calls == [1]
