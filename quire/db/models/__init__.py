from quire.db.models.collection import Collection, CollectionItem, CollectionItemRevision
from quire.db.models.content import ContentStatus
from quire.db.models.menu import Menu, MenuItem
from quire.db.models.page import Page, PageRevision
from quire.db.models.site import DomainBinding, Site

__all__ = ["Collection", "CollectionItem", "CollectionItemRevision", "ContentStatus", "DomainBinding", "Menu", "MenuItem", "Page", "PageRevision", "Site"]
