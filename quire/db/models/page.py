from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from quire.db.base import Base
from quire.db.models.content import ContentUnitMixin, RevisionMixin


class Page(ContentUnitMixin, Base):
    """Page model: the mutable head record of a revisioned page."""

    __tablename__ = "pages"
    __table_args__ = (UniqueConstraint("site_id", "slug", name="uq_pages_site_id_slug"),)

    workspace_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    site_id: Mapped[UUID] = mapped_column(
        ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Content fields
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)

    # SEO fields
    seo_title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    seo_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    seo_image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    og_title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    og_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    og_image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    canonical_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    indexable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class PageRevision(RevisionMixin, Base):
    """Stores historical versions of page content."""

    __tablename__ = "page_revisions"
    __table_args__ = (UniqueConstraint("unit_id", "version", name="uq_page_revisions_unit_id_version"),)

    unit_id: Mapped[UUID] = mapped_column(
        ForeignKey("pages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
