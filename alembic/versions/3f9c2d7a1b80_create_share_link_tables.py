"""Create documents, document links, link visitors and analytics events

Revision ID: 3f9c2d7a1b80
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c2d7a1b80'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

analytics_event_type = sa.Enum('LINK_CREATED', 'VIEW', 'DOWNLOAD', name='analyticseventtype')


def upgrade() -> None:
    op.create_table(
        'documents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_id', sa.String(length=64), nullable=False),
        sa.Column('owner_id', sa.String(), nullable=False),
        sa.Column('file_path', sa.String(), nullable=False),
        sa.Column('file_name', sa.String(), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('file_type', sa.String(), nullable=False),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_documents_id'), 'documents', ['id'], unique=False)
    op.create_index(op.f('ix_documents_document_id'), 'documents', ['document_id'], unique=True)
    op.create_index(op.f('ix_documents_owner_id'), 'documents', ['owner_id'], unique=False)

    op.create_table(
        'document_links',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('link_id', sa.String(length=64), nullable=False),
        sa.Column('document_id', sa.String(length=64), nullable=False),
        sa.Column('created_by_user_id', sa.String(), nullable=False),
        sa.Column('alias', sa.String(length=255), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=True),
        sa.Column('expiration_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('visitor_fields', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['document_id'], ['documents.document_id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_id', 'alias', name='uq_document_links_document_alias'),
    )
    op.create_index(op.f('ix_document_links_id'), 'document_links', ['id'], unique=False)
    op.create_index(op.f('ix_document_links_link_id'), 'document_links', ['link_id'], unique=True)
    op.create_index(op.f('ix_document_links_document_id'), 'document_links', ['document_id'], unique=False)
    op.create_index(op.f('ix_document_links_created_by_user_id'), 'document_links', ['created_by_user_id'], unique=False)

    op.create_table(
        'link_visitors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('link_id', sa.String(length=64), nullable=False),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('visitor_metadata', sa.JSON(), nullable=True),
        sa.Column('visited_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['link_id'], ['document_links.link_id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_link_visitors_id'), 'link_visitors', ['id'], unique=False)
    op.create_index(op.f('ix_link_visitors_link_id'), 'link_visitors', ['link_id'], unique=False)
    op.create_index(op.f('ix_link_visitors_email'), 'link_visitors', ['email'], unique=False)
    op.create_index(op.f('ix_link_visitors_visited_at'), 'link_visitors', ['visited_at'], unique=False)

    op.create_table(
        'analytics_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_type', analytics_event_type, nullable=False),
        sa.Column('document_id', sa.String(length=64), nullable=False),
        sa.Column('link_id', sa.String(length=64), nullable=True),
        sa.Column('visitor_id', sa.Integer(), nullable=True),
        sa.Column('event_metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_analytics_events_id'), 'analytics_events', ['id'], unique=False)
    op.create_index(op.f('ix_analytics_events_event_type'), 'analytics_events', ['event_type'], unique=False)
    op.create_index(op.f('ix_analytics_events_document_id'), 'analytics_events', ['document_id'], unique=False)
    op.create_index(op.f('ix_analytics_events_link_id'), 'analytics_events', ['link_id'], unique=False)
    op.create_index(op.f('ix_analytics_events_created_at'), 'analytics_events', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_table('analytics_events')
    analytics_event_type.drop(op.get_bind(), checkfirst=True)
    op.drop_table('link_visitors')
    op.drop_table('document_links')
    op.drop_table('documents')
