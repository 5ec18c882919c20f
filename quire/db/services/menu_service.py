"""Menu service: menus, menu items, and the flat-stored menu tree.

Items are stored flat as ``(parent_id, sort_order)`` and the tree is rebuilt
on read. Siblings are ordered by ``(sort_order, id)``.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quire.db.models import Menu, MenuItem, Site
from quire.lib.exceptions import NotFoundError, ValidationError

MENU_FIELDS = ("name", "slot")
ITEM_FIELDS = ("label", "target", "type", "open_in_new_tab", "parent_id", "sort_order")


@dataclass
class MenuNode:
    item: MenuItem
    children: list["MenuNode"] = field(default_factory=list)


@dataclass(frozen=True)
class ReorderNode:
    """Requested placement of one item."""

    id: UUID
    parent_id: UUID | None
    sort_order: int


def _sibling_key(item: MenuItem) -> tuple[int, str]:
    return item.sort_order, str(item.id)


def build_tree(items: Iterable[MenuItem]) -> list[MenuNode]:
    """Rebuild the nested tree from flat items.

    Items whose parent is not among ``items`` are treated as roots.
    """
    items = list(items)
    ids = {item.id for item in items}
    children: dict[UUID | None, list[MenuItem]] = defaultdict(list)
    for item in items:
        parent = item.parent_id if item.parent_id in ids else None
        children[parent].append(item)

    def build(parent_id: UUID | None, seen: set[UUID]) -> list[MenuNode]:
        nodes = []
        for item in sorted(children.get(parent_id, []), key=_sibling_key):
            if item.id in seen:
                continue
            seen.add(item.id)
            nodes.append(MenuNode(item=item, children=build(item.id, seen)))
        return nodes

    return build(None, set())


def ordered_items(items: Iterable[MenuItem]) -> list[MenuItem]:
    """Flatten the tree depth-first (parents before their children)."""
    result: list[MenuItem] = []

    def walk(nodes: list[MenuNode]) -> None:
        for node in nodes:
            result.append(node.item)
            walk(node.children)

    walk(build_tree(items))
    return result


def _find_cycle(parents: dict[UUID, UUID | None]) -> UUID | None:
    """Return an item that is its own ancestor under ``parents``, if any."""
    cleared: set[UUID] = set()
    for start in parents:
        path: set[UUID] = set()
        current: UUID | None = start
        while current is not None and current not in cleared:
            if current in path:
                return current
            path.add(current)
            current = parents.get(current)
        cleared.update(path)
    return None


async def list_menus(db_session: AsyncSession, workspace_id: UUID, site_id: UUID | None = None) -> list[Menu]:
    query = select(Menu).where(Menu.workspace_id == workspace_id)
    if site_id is not None:
        query = query.where(Menu.site_id == site_id)
    result = await db_session.execute(query.order_by(Menu.name.asc()))
    return list(result.scalars().all())


async def get_menu(db_session: AsyncSession, workspace_id: UUID, menu_id: UUID) -> Menu:
    result = await db_session.execute(
        select(Menu).where(Menu.id == menu_id, Menu.workspace_id == workspace_id)
    )
    menu = result.scalar_one_or_none()
    if menu is None:
        raise NotFoundError("Menu")
    return menu


async def get_menu_by_slot(db_session: AsyncSession, site_id: UUID, slot: str) -> Menu | None:
    """The site's menu assigned to ``slot``; the oldest one if several are."""
    result = await db_session.execute(
        select(Menu)
        .where(Menu.site_id == site_id, Menu.slot == slot)
        .order_by(Menu.created_at.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def create_menu(
    db_session: AsyncSession,
    workspace_id: UUID,
    site_id: UUID,
    name: str,
    slot: str | None = None,
) -> Menu:
    site = await db_session.scalar(select(Site).where(Site.id == site_id, Site.workspace_id == workspace_id))
    if site is None:
        raise NotFoundError("Site")
    if not name.strip():
        raise ValidationError("Menu name may not be empty", details={"field": "name"})

    menu = Menu(workspace_id=workspace_id, site_id=site_id, name=name.strip(), slot=slot or None)
    db_session.add(menu)
    await db_session.commit()
    await db_session.refresh(menu)
    return menu


async def update_menu(db_session: AsyncSession, workspace_id: UUID, menu_id: UUID, patch: dict[str, Any]) -> Menu:
    unknown = sorted(set(patch) - set(MENU_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown menu fields: {', '.join(unknown)}", details={"fields": unknown})
    if "name" in patch and not (patch["name"] or "").strip():
        raise ValidationError("Menu name may not be empty", details={"field": "name"})

    menu = await get_menu(db_session, workspace_id, menu_id)
    for key, value in patch.items():
        setattr(menu, key, value)

    await db_session.commit()
    await db_session.refresh(menu)
    return menu


async def delete_menu(db_session: AsyncSession, workspace_id: UUID, menu_id: UUID) -> None:
    """Delete a menu and all of its items."""
    menu = await get_menu(db_session, workspace_id, menu_id)
    await db_session.execute(delete(MenuItem).where(MenuItem.menu_id == menu.id))
    await db_session.delete(menu)
    await db_session.commit()


async def list_items(db_session: AsyncSession, menu_id: UUID) -> list[MenuItem]:
    result = await db_session.execute(select(MenuItem).where(MenuItem.menu_id == menu_id))
    return list(result.scalars().all())


async def get_tree(db_session: AsyncSession, workspace_id: UUID, menu_id: UUID) -> tuple[Menu, list[MenuNode]]:
    menu = await get_menu(db_session, workspace_id, menu_id)
    return menu, build_tree(await list_items(db_session, menu.id))


async def _require_item(db_session: AsyncSession, menu_id: UUID, item_id: UUID) -> MenuItem:
    result = await db_session.execute(
        select(MenuItem).where(MenuItem.id == item_id, MenuItem.menu_id == menu_id)
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise NotFoundError("Menu item")
    return item


async def _next_sort_order(db_session: AsyncSession, menu_id: UUID, parent_id: UUID | None) -> int:
    query = select(func.max(MenuItem.sort_order)).where(MenuItem.menu_id == menu_id)
    if parent_id is None:
        query = query.where(MenuItem.parent_id.is_(None))
    else:
        query = query.where(MenuItem.parent_id == parent_id)
    current = await db_session.scalar(query)
    return 0 if current is None else current + 1


async def add_item(
    db_session: AsyncSession,
    workspace_id: UUID,
    menu_id: UUID,
    label: str,
    target: str | None = None,
    type: str = "link",
    parent_id: UUID | None = None,
    open_in_new_tab: bool = False,
    sort_order: int | None = None,
) -> MenuItem:
    """Add an item; without ``sort_order`` it goes after its last sibling."""
    menu = await get_menu(db_session, workspace_id, menu_id)
    if not label.strip():
        raise ValidationError("Menu item label may not be empty", details={"field": "label"})
    if parent_id is not None:
        try:
            await _require_item(db_session, menu.id, parent_id)
        except NotFoundError as exc:
            raise ValidationError(
                "Parent item does not belong to this menu", details={"parentId": str(parent_id)}
            ) from exc

    if sort_order is None:
        sort_order = await _next_sort_order(db_session, menu.id, parent_id)

    item = MenuItem(
        menu_id=menu.id,
        parent_id=parent_id,
        type=type,
        label=label.strip(),
        target=target,
        open_in_new_tab=open_in_new_tab,
        sort_order=sort_order,
    )
    db_session.add(item)
    await db_session.commit()
    await db_session.refresh(item)
    return item


async def update_item(
    db_session: AsyncSession,
    workspace_id: UUID,
    menu_id: UUID,
    item_id: UUID,
    patch: dict[str, Any],
) -> MenuItem:
    """Update only the supplied fields of a menu item."""
    unknown = sorted(set(patch) - set(ITEM_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown menu item fields: {', '.join(unknown)}", details={"fields": unknown})
    for name in ("label", "type", "open_in_new_tab"):
        if name in patch and patch[name] is None:
            raise ValidationError(f"Field '{name}' may not be empty", details={"field": name})
    if "label" in patch and not patch["label"].strip():
        raise ValidationError("Menu item label may not be empty", details={"field": "label"})

    menu = await get_menu(db_session, workspace_id, menu_id)
    item = await _require_item(db_session, menu.id, item_id)

    if patch.get("parent_id") is not None and patch["parent_id"] != item.parent_id:
        items = await list_items(db_session, menu.id)
        parents = {i.id: i.parent_id for i in items}
        if patch["parent_id"] not in parents:
            raise ValidationError(
                "Parent item does not belong to this menu", details={"parentId": str(patch["parent_id"])}
            )
        parents[item.id] = patch["parent_id"]
        if _find_cycle(parents) is not None:
            raise ValidationError("An item cannot be nested under itself", details={"id": str(item.id)})
    if "sort_order" in patch and patch["sort_order"] is None:
        patch.pop("sort_order")

    for key, value in patch.items():
        setattr(item, key, value)

    await db_session.commit()
    await db_session.refresh(item)
    return item


async def delete_item(db_session: AsyncSession, workspace_id: UUID, menu_id: UUID, item_id: UUID) -> None:
    """Delete an item; its children move up to the item's own parent."""
    menu = await get_menu(db_session, workspace_id, menu_id)
    item = await _require_item(db_session, menu.id, item_id)

    await db_session.execute(
        update(MenuItem)
        .where(MenuItem.menu_id == menu.id, MenuItem.parent_id == item.id)
        .values(parent_id=item.parent_id)
        .execution_options(synchronize_session="fetch")
    )
    await db_session.delete(item)
    await db_session.commit()


async def reorder(
    db_session: AsyncSession,
    workspace_id: UUID,
    menu_id: UUID,
    nodes: list[ReorderNode],
) -> list[MenuItem]:
    """Apply new (parent, sort order) placements atomically.

    Every id and non-null parent must belong to the menu, ids may not repeat,
    and the resulting structure (including items absent from ``nodes``) must
    be acyclic. Returns the menu's items in tree order.
    """
    menu = await get_menu(db_session, workspace_id, menu_id)
    items = {item.id: item for item in await list_items(db_session, menu.id)}

    seen: set[UUID] = set()
    for node in nodes:
        if node.id in seen:
            raise ValidationError("Duplicate item in reorder payload", details={"id": str(node.id)})
        seen.add(node.id)
        if node.id not in items:
            raise ValidationError("Item does not belong to this menu", details={"id": str(node.id)})
        if node.parent_id is not None and node.parent_id not in items:
            raise ValidationError(
                "Parent item does not belong to this menu", details={"parentId": str(node.parent_id)}
            )

    parents = {item_id: item.parent_id for item_id, item in items.items()}
    parents.update({node.id: node.parent_id for node in nodes})
    cycle_at = _find_cycle(parents)
    if cycle_at is not None:
        raise ValidationError("Reorder would nest an item under itself", details={"id": str(cycle_at)})

    for node in nodes:
        item = items[node.id]
        item.parent_id = node.parent_id
        item.sort_order = node.sort_order

    await db_session.commit()

    return ordered_items(items.values())
