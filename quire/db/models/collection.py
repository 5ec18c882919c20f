from typing import Any
from uuid import UUID

from advanced_alchemy.types import JsonB
from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from quire.db.base import Base
from quire.db.models.content import ContentUnitMixin, RevisionMixin


class Collection(Base):
    """A typed list of structured items belonging to a site."""

    __tablename__ = "collections"
    __table_args__ = (UniqueConstraint("site_id", "slug", name="uq_collections_site_id_slug"),)

    workspace_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    site_id: Mapped[UUID] = mapped_column(
        ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Field definitions for the items' data, interpreted by the editor UI
    schema_json: Mapped[list[Any]] = mapped_column(JsonB, nullable=False, default=list)


class CollectionItem(ContentUnitMixin, Base):
    """Collection entry; its slug and title live in its revision content."""

    __tablename__ = "collection_items"

    workspace_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    collection_id: Mapped[UUID] = mapped_column(
        ForeignKey("collections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class CollectionItemRevision(RevisionMixin, Base):
    """Stores historical versions of collection item data."""

    __tablename__ = "collection_item_revisions"
    __table_args__ = (
        UniqueConstraint("unit_id", "version", name="uq_collection_item_revisions_unit_id_version"),
    )

    unit_id: Mapped[UUID] = mapped_column(
        ForeignKey("collection_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
