"""Tests for menus and the flat-stored menu tree."""

from types import SimpleNamespace
from uuid import uuid4

import pytest

from quire.db.services import menu_service
from quire.db.services.menu_service import ReorderNode, build_tree, ordered_items
from quire.lib.exceptions import NotFoundError, ValidationError


def _item(label, parent=None, sort_order=0):
    return SimpleNamespace(id=uuid4(), label=label, parent_id=parent.id if parent else None, sort_order=sort_order)


class TestBuildTree:
    """Test tree reconstruction from flat rows."""

    def test_nests_children_under_parents(self):
        a = _item("A")
        b = _item("B", parent=a)
        c = _item("C", sort_order=1)

        tree = build_tree([c, b, a])

        assert [n.item.label for n in tree] == ["A", "C"]
        assert [n.item.label for n in tree[0].children] == ["B"]

    def test_siblings_ordered_by_sort_order(self):
        items = [_item("third", sort_order=2), _item("first", sort_order=0), _item("second", sort_order=1)]

        assert [i.label for i in ordered_items(items)] == ["first", "second", "third"]

    def test_orphans_become_roots(self):
        ghost = _item("ghost")
        orphan = _item("orphan", parent=ghost)

        tree = build_tree([orphan])

        assert [n.item.label for n in tree] == ["orphan"]

    def test_depth_first_order(self):
        a = _item("A")
        a1 = _item("A1", parent=a)
        a2 = _item("A2", parent=a, sort_order=1)
        b = _item("B", sort_order=1)

        assert [i.label for i in ordered_items([b, a2, a1, a])] == ["A", "A1", "A2", "B"]


@pytest.fixture
async def menu(db_session, workspace_id, site):
    return await menu_service.create_menu(db_session, workspace_id, site.id, "Main", slot="header")


async def _add(db_session, workspace_id, menu, label, **kwargs):
    return await menu_service.add_item(db_session, workspace_id, menu.id, label, target=f"/{label.lower()}", **kwargs)


class TestMenus:
    """Test menu CRUD."""

    async def test_get_menu_by_slot(self, db_session, site, menu):
        assert (await menu_service.get_menu_by_slot(db_session, site.id, "header")).id == menu.id
        assert await menu_service.get_menu_by_slot(db_session, site.id, "footer") is None

    async def test_menu_is_workspace_scoped(self, db_session, menu):
        with pytest.raises(NotFoundError):
            await menu_service.get_menu(db_session, uuid4(), menu.id)

    async def test_update_menu(self, db_session, workspace_id, menu):
        updated = await menu_service.update_menu(db_session, workspace_id, menu.id, {"slot": "footer"})

        assert updated.slot == "footer"
        assert updated.name == "Main"

    async def test_delete_menu_removes_items(self, db_session, workspace_id, menu):
        await _add(db_session, workspace_id, menu, "Home")

        await menu_service.delete_menu(db_session, workspace_id, menu.id)

        assert await menu_service.list_items(db_session, menu.id) == []


class TestMenuItems:
    """Test adding, updating and deleting items."""

    async def test_items_append_to_sibling_end(self, db_session, workspace_id, menu):
        first = await _add(db_session, workspace_id, menu, "Home")
        second = await _add(db_session, workspace_id, menu, "Blog")
        child = await _add(db_session, workspace_id, menu, "Archive", parent_id=second.id)

        assert (first.sort_order, second.sort_order) == (0, 1)
        assert child.sort_order == 0

    async def test_parent_from_other_menu_rejected(self, db_session, workspace_id, site, menu):
        other = await menu_service.create_menu(db_session, workspace_id, site.id, "Other")
        foreign = await _add(db_session, workspace_id, other, "Foreign")

        with pytest.raises(ValidationError):
            await _add(db_session, workspace_id, menu, "Home", parent_id=foreign.id)

    async def test_update_item_partial(self, db_session, workspace_id, menu):
        item = await _add(db_session, workspace_id, menu, "Home")

        updated = await menu_service.update_item(
            db_session, workspace_id, menu.id, item.id, {"open_in_new_tab": True}
        )

        assert updated.open_in_new_tab is True
        assert updated.label == "Home"

    async def test_update_item_cannot_nest_under_descendant(self, db_session, workspace_id, menu):
        parent = await _add(db_session, workspace_id, menu, "Parent")
        child = await _add(db_session, workspace_id, menu, "Child", parent_id=parent.id)

        with pytest.raises(ValidationError):
            await menu_service.update_item(db_session, workspace_id, menu.id, parent.id, {"parent_id": child.id})

    async def test_delete_item_lifts_children(self, db_session, workspace_id, menu):
        parent = await _add(db_session, workspace_id, menu, "Parent")
        child = await _add(db_session, workspace_id, menu, "Child", parent_id=parent.id)

        await menu_service.delete_item(db_session, workspace_id, menu.id, parent.id)
        items = await menu_service.list_items(db_session, menu.id)

        assert [i.id for i in items] == [child.id]
        assert items[0].parent_id is None


class TestReorder:
    """Test atomic reordering."""

    async def test_reorder_scenario(self, db_session, workspace_id, menu):
        a = await _add(db_session, workspace_id, menu, "A")
        b = await _add(db_session, workspace_id, menu, "B")
        c = await _add(db_session, workspace_id, menu, "C")

        result = await menu_service.reorder(
            db_session,
            workspace_id,
            menu.id,
            [
                ReorderNode(id=a.id, parent_id=None, sort_order=0),
                ReorderNode(id=b.id, parent_id=a.id, sort_order=0),
                ReorderNode(id=c.id, parent_id=None, sort_order=1),
            ],
        )
        _, tree = await menu_service.get_tree(db_session, workspace_id, menu.id)

        assert [i.label for i in result] == ["A", "B", "C"]
        assert [n.item.label for n in tree] == ["A", "C"]
        assert [n.item.label for n in tree[0].children] == ["B"]

    async def test_cycle_rejected_and_nothing_changes(self, db_session, workspace_id, menu):
        a = await _add(db_session, workspace_id, menu, "A")
        b = await _add(db_session, workspace_id, menu, "B")

        with pytest.raises(ValidationError):
            await menu_service.reorder(
                db_session,
                workspace_id,
                menu.id,
                [
                    ReorderNode(id=a.id, parent_id=b.id, sort_order=0),
                    ReorderNode(id=b.id, parent_id=a.id, sort_order=0),
                ],
            )

        items = {i.id: i for i in await menu_service.list_items(db_session, menu.id)}
        assert items[a.id].parent_id is None
        assert items[b.id].parent_id is None

    async def test_self_parent_rejected(self, db_session, workspace_id, menu):
        a = await _add(db_session, workspace_id, menu, "A")

        with pytest.raises(ValidationError):
            await menu_service.reorder(
                db_session, workspace_id, menu.id, [ReorderNode(id=a.id, parent_id=a.id, sort_order=0)]
            )

    async def test_foreign_item_rejected(self, db_session, workspace_id, menu):
        await _add(db_session, workspace_id, menu, "A")

        with pytest.raises(ValidationError):
            await menu_service.reorder(
                db_session, workspace_id, menu.id, [ReorderNode(id=uuid4(), parent_id=None, sort_order=0)]
            )

    async def test_duplicate_id_rejected(self, db_session, workspace_id, menu):
        a = await _add(db_session, workspace_id, menu, "A")

        with pytest.raises(ValidationError):
            await menu_service.reorder(
                db_session,
                workspace_id,
                menu.id,
                [
                    ReorderNode(id=a.id, parent_id=None, sort_order=0),
                    ReorderNode(id=a.id, parent_id=None, sort_order=1),
                ],
            )
