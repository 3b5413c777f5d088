"""create_sync_tables

Revision ID: 001
Revises:
Create Date: 2026-10-18 09:12:44.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table('bigquery_data_models'):
        op.create_table('bigquery_data_models',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(length=255), nullable=False),
        sa.Column('model_name', sa.String(length=255), nullable=False),
        sa.Column('bigquery_dataset', sa.String(length=255), nullable=False),
        sa.Column('bigquery_table', sa.String(length=255), nullable=False),
        sa.Column('primary_key_field', sa.String(length=255), nullable=False),
        sa.Column('timestamp_field', sa.String(length=255), nullable=True),
        sa.Column('target_table', sa.String(length=255), nullable=True),
        sa.Column('mapping_config', sa.JSON(), nullable=True),
        sa.Column('sync_frequency_hours', sa.Float(), nullable=True),
        sa.Column('is_enabled', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'model_name', name='uq_bigquery_data_models_tenant_model')
        )
        op.create_index(op.f('ix_bigquery_data_models_id'), 'bigquery_data_models', ['id'], unique=False)
        op.create_index(op.f('ix_bigquery_data_models_tenant_id'), 'bigquery_data_models', ['tenant_id'], unique=False)
        op.create_index(op.f('ix_bigquery_data_models_is_enabled'), 'bigquery_data_models', ['is_enabled'], unique=False)

    if not inspector.has_table('bigquery_sync_watermarks'):
        op.create_table('bigquery_sync_watermarks',
        sa.Column('tenant_id', sa.String(length=255), nullable=False),
        sa.Column('data_model', sa.String(length=255), nullable=False),
        sa.Column('dataset_id', sa.String(length=255), nullable=False),
        sa.Column('table_id', sa.String(length=255), nullable=False),
        sa.Column('sync_status', sa.String(length=50), server_default='idle', nullable=False),
        sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_record_timestamp', sa.Text(), nullable=True),
        sa.Column('total_records_synced', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('tenant_id', 'data_model', 'dataset_id', 'table_id')
        )
        op.create_index(op.f('ix_bigquery_sync_watermarks_sync_status'), 'bigquery_sync_watermarks', ['sync_status'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if inspector.has_table('bigquery_sync_watermarks'):
        op.drop_index(op.f('ix_bigquery_sync_watermarks_sync_status'), table_name='bigquery_sync_watermarks')
        op.drop_table('bigquery_sync_watermarks')

    if inspector.has_table('bigquery_data_models'):
        op.drop_index(op.f('ix_bigquery_data_models_is_enabled'), table_name='bigquery_data_models')
        op.drop_index(op.f('ix_bigquery_data_models_tenant_id'), table_name='bigquery_data_models')
        op.drop_index(op.f('ix_bigquery_data_models_id'), table_name='bigquery_data_models')
        op.drop_table('bigquery_data_models')
