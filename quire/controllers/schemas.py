"""Request bodies of the editor API (camelCase on the wire)."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, RootModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class PageMeta(CamelModel):
    seo_title: str | None = None
    seo_description: str | None = None
    seo_image: str | None = None
    og_title: str | None = None
    og_description: str | None = None
    og_image: str | None = None
    canonical_url: str | None = None
    indexable: bool | None = None


class PageCreate(PageMeta):
    site_id: UUID
    slug: str = Field(min_length=1, max_length=255)
    title: str = Field(min_length=1, max_length=500)
    indexable: bool = True
    content: Any = None


class PagePatch(PageMeta):
    slug: str | None = Field(default=None, min_length=1, max_length=255)
    title: str | None = Field(default=None, min_length=1, max_length=500)
    content: Any = None
    note: str | None = Field(default=None, max_length=500)


class ItemCreate(CamelModel):
    collection_id: UUID
    content: Any = None


class ItemPatch(CamelModel):
    content: Any = None
    note: str | None = Field(default=None, max_length=500)


class PublishBody(CamelModel):
    content: Any = None


class SiteCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=63)


class DomainCreate(CamelModel):
    hostname: str = Field(min_length=1, max_length=253)


class CollectionCreate(CamelModel):
    site_id: UUID
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255)
    description: str | None = None
    field_schema: list[Any] = Field(default_factory=list, alias="schema")


class CollectionPatch(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    field_schema: list[Any] | None = Field(default=None, alias="schema")


class MenuCreate(CamelModel):
    site_id: UUID
    name: str = Field(min_length=1, max_length=255)
    slot: str | None = Field(default=None, max_length=50)


class MenuPatch(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    slot: str | None = Field(default=None, max_length=50)


class MenuItemCreate(CamelModel):
    label: str = Field(min_length=1, max_length=255)
    target: str | None = Field(default=None, max_length=1024)
    type: str = Field(default="link", max_length=50)
    parent_id: UUID | None = None
    open_in_new_tab: bool = False
    sort_order: int | None = None


class MenuItemPatch(CamelModel):
    label: str | None = Field(default=None, min_length=1, max_length=255)
    target: str | None = Field(default=None, max_length=1024)
    type: str | None = Field(default=None, max_length=50)
    parent_id: UUID | None = None
    open_in_new_tab: bool | None = None
    sort_order: int | None = None


class ReorderEntry(CamelModel):
    id: UUID
    parent_id: UUID | None = None
    sort_order: int


class ReorderBody(RootModel[list[ReorderEntry]]):
    pass
