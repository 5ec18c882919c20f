"""initial schema

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-01 09:00:00.000000

Creates sites, domain bindings, pages, collections, collection items, their
revision ledgers, and menus.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import advanced_alchemy.types


# revision identifiers, used by Alembic.
revision: str = '1a2b3c4d5e6f'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column('id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('sa_orm_sentinel', sa.Integer(), nullable=True),
        sa.Column('created_at', advanced_alchemy.types.datetime.DateTimeUTC(timezone=True), nullable=False),
        sa.Column('updated_at', advanced_alchemy.types.datetime.DateTimeUTC(timezone=True), nullable=False),
    ]


def _lifecycle_columns() -> list[sa.Column]:
    return [
        sa.Column('status', sa.String(length=20), server_default='DRAFT', nullable=False),
        sa.Column('published_at', advanced_alchemy.types.datetime.DateTimeUTC(timezone=True), nullable=True),
        sa.Column('published_content', advanced_alchemy.types.JsonB, nullable=True),
    ]


def _revision_table(table: str, unit_table: str) -> None:
    op.create_table(table,
        sa.Column('unit_id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('content', advanced_alchemy.types.JsonB, nullable=False),
        sa.Column('author_id', sa.String(length=255), nullable=True),
        sa.Column('note', sa.String(length=500), nullable=True),
        sa.Column('is_publish', sa.Boolean(), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['unit_id'], [f'{unit_table}.id'], name=op.f(f'fk_{table}_unit_id_{unit_table}'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f(f'pk_{table}')),
        sa.UniqueConstraint('unit_id', 'version', name=f'uq_{table}_unit_id_version'),
    )
    op.create_index(op.f(f'ix_{table}_unit_id'), table, ['unit_id'], unique=False)


def upgrade() -> None:
    op.create_table('sites',
        sa.Column('workspace_id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=63), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_sites')),
    )
    op.create_index(op.f('ix_sites_workspace_id'), 'sites', ['workspace_id'], unique=False)
    op.create_index(op.f('ix_sites_slug'), 'sites', ['slug'], unique=True)

    op.create_table('domain_bindings',
        sa.Column('site_id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('hostname', sa.String(length=253), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['site_id'], ['sites.id'], name=op.f('fk_domain_bindings_site_id_sites'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_domain_bindings')),
    )
    op.create_index(op.f('ix_domain_bindings_site_id'), 'domain_bindings', ['site_id'], unique=False)
    op.create_index(op.f('ix_domain_bindings_hostname'), 'domain_bindings', ['hostname'], unique=True)

    op.create_table('pages',
        sa.Column('workspace_id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('site_id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('seo_title', sa.String(length=500), nullable=True),
        sa.Column('seo_description', sa.Text(), nullable=True),
        sa.Column('seo_image', sa.String(length=1024), nullable=True),
        sa.Column('og_title', sa.String(length=500), nullable=True),
        sa.Column('og_description', sa.Text(), nullable=True),
        sa.Column('og_image', sa.String(length=1024), nullable=True),
        sa.Column('canonical_url', sa.String(length=1024), nullable=True),
        sa.Column('indexable', sa.Boolean(), nullable=False),
        *_lifecycle_columns(),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['site_id'], ['sites.id'], name=op.f('fk_pages_site_id_sites'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_pages')),
        sa.UniqueConstraint('site_id', 'slug', name='uq_pages_site_id_slug'),
    )
    op.create_index(op.f('ix_pages_workspace_id'), 'pages', ['workspace_id'], unique=False)
    op.create_index(op.f('ix_pages_site_id'), 'pages', ['site_id'], unique=False)
    op.create_index(op.f('ix_pages_status'), 'pages', ['status'], unique=False)
    _revision_table('page_revisions', 'pages')

    op.create_table('collections',
        sa.Column('workspace_id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('site_id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('schema_json', advanced_alchemy.types.JsonB, nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['site_id'], ['sites.id'], name=op.f('fk_collections_site_id_sites'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_collections')),
        sa.UniqueConstraint('site_id', 'slug', name='uq_collections_site_id_slug'),
    )
    op.create_index(op.f('ix_collections_workspace_id'), 'collections', ['workspace_id'], unique=False)
    op.create_index(op.f('ix_collections_site_id'), 'collections', ['site_id'], unique=False)

    op.create_table('collection_items',
        sa.Column('workspace_id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('collection_id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        *_lifecycle_columns(),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['collection_id'], ['collections.id'], name=op.f('fk_collection_items_collection_id_collections'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_collection_items')),
    )
    op.create_index(op.f('ix_collection_items_workspace_id'), 'collection_items', ['workspace_id'], unique=False)
    op.create_index(op.f('ix_collection_items_collection_id'), 'collection_items', ['collection_id'], unique=False)
    op.create_index(op.f('ix_collection_items_status'), 'collection_items', ['status'], unique=False)
    _revision_table('collection_item_revisions', 'collection_items')

    op.create_table('menus',
        sa.Column('workspace_id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('site_id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slot', sa.String(length=50), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['site_id'], ['sites.id'], name=op.f('fk_menus_site_id_sites'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_menus')),
    )
    op.create_index(op.f('ix_menus_workspace_id'), 'menus', ['workspace_id'], unique=False)
    op.create_index(op.f('ix_menus_site_id'), 'menus', ['site_id'], unique=False)
    op.create_index(op.f('ix_menus_slot'), 'menus', ['slot'], unique=False)

    op.create_table('menu_items',
        sa.Column('menu_id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('parent_id', advanced_alchemy.types.guid.GUID(length=16), nullable=True),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False),
        sa.Column('target', sa.String(length=1024), nullable=True),
        sa.Column('open_in_new_tab', sa.Boolean(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['menu_id'], ['menus.id'], name=op.f('fk_menu_items_menu_id_menus'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_id'], ['menu_items.id'], name=op.f('fk_menu_items_parent_id_menu_items'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_menu_items')),
    )
    op.create_index(op.f('ix_menu_items_menu_id'), 'menu_items', ['menu_id'], unique=False)
    op.create_index(op.f('ix_menu_items_parent_id'), 'menu_items', ['parent_id'], unique=False)


def downgrade() -> None:
    op.drop_table('menu_items')
    op.drop_table('menus')
    op.drop_table('collection_item_revisions')
    op.drop_table('collection_items')
    op.drop_table('collections')
    op.drop_table('page_revisions')
    op.drop_table('pages')
    op.drop_table('domain_bindings')
    op.drop_table('sites')
