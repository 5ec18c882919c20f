from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from quire.db.base import Base


class Menu(Base):
    """Navigation menu of a site, optionally assigned to a rendering slot."""

    __tablename__ = "menus"

    workspace_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    site_id: Mapped[UUID] = mapped_column(
        ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # e.g. "header" or "footer"
    slot: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)


class MenuItem(Base):
    """One node of a menu tree, stored flat as (parent_id, sort_order)."""

    __tablename__ = "menu_items"

    menu_id: Mapped[UUID] = mapped_column(
        ForeignKey("menus.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    parent_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("menu_items.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="link")
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    target: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    open_in_new_tab: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
