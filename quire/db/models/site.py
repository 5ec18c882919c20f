from uuid import UUID

from sqlalchemy import String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from quire.db.base import Base


class Site(Base):
    """Tenant-owned publishing target.

    The slug doubles as the default hostname label: ``<slug>.<platform-domain>``.
    """

    __tablename__ = "sites"

    workspace_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(63), nullable=False, unique=True, index=True)


class DomainBinding(Base):
    """A verified custom hostname pointing at exactly one site."""

    __tablename__ = "domain_bindings"

    site_id: Mapped[UUID] = mapped_column(
        ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Stored lower-cased, without port
    hostname: Mapped[str] = mapped_column(String(253), nullable=False, unique=True, index=True)
