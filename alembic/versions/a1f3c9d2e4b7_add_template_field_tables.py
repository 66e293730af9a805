"""Add normalized template field and document value tables.

Revision ID: a1f3c9d2e4b7
Revises:
Create Date: 2026-10-18

Creates templates and documents together with template_fields (ratio
geometry per field) and document_field_values (one value per document and
field).
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = 'a1f3c9d2e4b7'
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def _timestamps():
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True),
                  server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True),
                  server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    """Create template, document, field and value tables."""
    op.create_table(
        'templates',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('owner_id', sa.Uuid(), nullable=True),
        sa.Column('pdf_file_path', sa.String(), nullable=True),
        sa.Column('coordinate_fields', sa.Text(), nullable=True,
                  comment='Legacy JSON array of pixel-positioned fields'),
        *_timestamps(),
    )

    op.create_table(
        'documents',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('template_id', sa.Uuid(),
                  sa.ForeignKey('templates.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='editing',
                  comment='editing, review, complete'),
        sa.Column('data', JSON_TYPE, nullable=True,
                  comment='Legacy document payload, may hold coordinateFields values'),
        *_timestamps(),
    )
    op.create_index('ix_documents_template_id', 'documents', ['template_id'])

    op.create_table(
        'template_fields',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('template_id', sa.Uuid(),
                  sa.ForeignKey('templates.id', ondelete='CASCADE'), nullable=False),
        sa.Column('field_key', sa.String(), nullable=False,
                  comment='Key unique within the template'),
        sa.Column('label', sa.String(), nullable=False),
        sa.Column('required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('page', sa.Integer(), nullable=False, server_default='1',
                  comment='1-indexed page number'),
        sa.Column('x', sa.Numeric(10, 8), nullable=False, comment='Left edge / page width'),
        sa.Column('y', sa.Numeric(10, 8), nullable=False, comment='Top edge / page height'),
        sa.Column('width', sa.Numeric(10, 8), nullable=False, comment='Width / page width'),
        sa.Column('height', sa.Numeric(10, 8), nullable=False, comment='Height / page height'),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0',
                  comment='Creation order within the template'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.UniqueConstraint('template_id', 'field_key', name='uq_template_field_key'),
    )
    op.create_index(
        'ix_template_fields_template_position', 'template_fields', ['template_id', 'position']
    )

    op.create_table(
        'document_field_values',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('document_id', sa.Uuid(),
                  sa.ForeignKey('documents.id', ondelete='CASCADE'), nullable=False),
        sa.Column('template_field_id', sa.Uuid(),
                  sa.ForeignKey('template_fields.id', ondelete='CASCADE'), nullable=False),
        sa.Column('value', sa.Text(), nullable=True),
        sa.Column('value_raw', JSON_TYPE, nullable=True,
                  comment='Structured value, e.g. table cells'),
        *_timestamps(),
        sa.UniqueConstraint('document_id', 'template_field_id', name='uq_document_field_value'),
    )


def downgrade() -> None:
    """Drop field tables, then documents and templates."""
    op.drop_table('document_field_values')
    op.drop_index('ix_template_fields_template_position', table_name='template_fields')
    op.drop_table('template_fields')
    op.drop_index('ix_documents_template_id', table_name='documents')
    op.drop_table('documents')
    op.drop_table('templates')
