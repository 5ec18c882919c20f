"""Columns shared by every revisioned content unit and every revision ledger."""

from datetime import datetime
from enum import Enum
from typing import Any

from advanced_alchemy.types import DateTimeUTC, JsonB
from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column


class ContentStatus(str, Enum):
    """Public lifecycle state of a content unit."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class ContentUnitMixin:
    """Lifecycle columns of a Page or CollectionItem."""

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ContentStatus.DRAFT.value,
        server_default=ContentStatus.DRAFT.value,
        index=True,
    )
    # Null until the first publish, refreshed by every publish
    published_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    # Content visitors see; only publish writes it
    published_content: Mapped[Any | None] = mapped_column(JsonB, nullable=True)

    @property
    def is_published(self) -> bool:
        return self.status == ContentStatus.PUBLISHED


class RevisionMixin:
    """Immutable snapshot row. Concrete classes add ``unit_id`` and the
    ``(unit_id, version)`` unique constraint."""

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[Any] = mapped_column(JsonB, nullable=False, default=dict)
    author_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    note: Mapped[str | None] = mapped_column(String(500), nullable=True)
    # True for revisions written by a publish
    is_publish: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
