"""JSON shapes of API resources. Keys are camelCase; UUIDs and datetimes are
encoded by Litestar."""

from typing import Any

from quire.db.models import (
    Collection,
    CollectionItem,
    DomainBinding,
    Menu,
    MenuItem,
    Page,
    Site,
)
from quire.db.services.menu_service import MenuNode
from quire.db.services.site_service import ResolvedSite


def _audit(obj) -> dict[str, Any]:
    return {"id": obj.id, "createdAt": obj.created_at, "updatedAt": obj.updated_at}


def serialize_revision(revision) -> dict[str, Any] | None:
    if revision is None:
        return None
    return {
        "id": revision.id,
        "unitId": revision.unit_id,
        "version": revision.version,
        "content": revision.content,
        "authorId": revision.author_id,
        "note": revision.note,
        "isPublish": revision.is_publish,
        "createdAt": revision.created_at,
    }


def serialize_page(page: Page) -> dict[str, Any]:
    return {
        **_audit(page),
        "workspaceId": page.workspace_id,
        "siteId": page.site_id,
        "slug": page.slug,
        "title": page.title,
        "seoTitle": page.seo_title,
        "seoDescription": page.seo_description,
        "seoImage": page.seo_image,
        "ogTitle": page.og_title,
        "ogDescription": page.og_description,
        "ogImage": page.og_image,
        "canonicalUrl": page.canonical_url,
        "indexable": page.indexable,
        "status": page.status,
        "publishedAt": page.published_at,
    }


def serialize_item(item: CollectionItem) -> dict[str, Any]:
    return {
        **_audit(item),
        "workspaceId": item.workspace_id,
        "collectionId": item.collection_id,
        "status": item.status,
        "publishedAt": item.published_at,
    }


def serialize_unit_with_revision(serialize_unit, unit, revision) -> dict[str, Any]:
    return {"unit": serialize_unit(unit), "revision": serialize_revision(revision)}


def serialize_site(site: Site | ResolvedSite) -> dict[str, Any]:
    return {
        "id": site.id,
        "workspaceId": site.workspace_id,
        "name": site.name,
        "slug": site.slug,
    }


def serialize_domain(binding: DomainBinding) -> dict[str, Any]:
    return {**_audit(binding), "siteId": binding.site_id, "hostname": binding.hostname}


def serialize_collection(collection: Collection) -> dict[str, Any]:
    return {
        **_audit(collection),
        "workspaceId": collection.workspace_id,
        "siteId": collection.site_id,
        "name": collection.name,
        "slug": collection.slug,
        "description": collection.description,
        "schema": collection.schema_json,
    }


def serialize_menu(menu: Menu) -> dict[str, Any]:
    return {
        **_audit(menu),
        "workspaceId": menu.workspace_id,
        "siteId": menu.site_id,
        "name": menu.name,
        "slot": menu.slot,
    }


def serialize_menu_item(item: MenuItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "menuId": item.menu_id,
        "parentId": item.parent_id,
        "type": item.type,
        "label": item.label,
        "target": item.target,
        "openInNewTab": item.open_in_new_tab,
        "sortOrder": item.sort_order,
    }


def serialize_tree(nodes: list[MenuNode]) -> list[dict[str, Any]]:
    return [{**serialize_menu_item(node.item), "children": serialize_tree(node.children)} for node in nodes]
