"""Create clients table

Revision ID: 3f2c1a9d7b10
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2c1a9d7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


CLIENT_STATUSES = ('active', 'inactive', 'pending_verification')
VERIFICATION_STATUSES = ('pending', 'verified', 'rejected')
DRAW_FREQUENCIES = ('weekly', 'monthly', 'campaign_based', 'custom')


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        'clients',
        sa.Column('id', sa.UUID(), nullable=False, comment='Primary key (UUID)'),
        sa.Column('tenant_id', sa.UUID(), nullable=False, server_default=sa.text('gen_random_uuid()'), comment='Tenant this client maps to'),
        sa.Column('organization_name', sa.String(length=200), nullable=False, comment='Legal or trading name'),
        sa.Column('organization_logo_url', sa.String(length=1000), nullable=True, comment='Public URL of the uploaded logo'),
        sa.Column('business_category', sa.String(length=255), nullable=False, comment='Free-text business category'),
        sa.Column('tenant_admin_full_name', sa.String(length=255), nullable=False),
        sa.Column('tenant_admin_email', sa.String(length=255), nullable=False),
        sa.Column('tenant_admin_mobile', sa.String(length=32), nullable=False),
        sa.Column('tenant_admin_role', sa.String(length=255), nullable=True),
        sa.Column('preferred_display_name', sa.String(length=255), nullable=True),
        sa.Column('brand_color', sa.String(length=7), nullable=True, comment='#RRGGBB'),
        sa.Column('default_time_zone', sa.String(length=64), nullable=True, comment='IANA time zone identifier'),
        sa.Column('country_region', sa.String(length=255), nullable=True),
        sa.Column('draw_frequency', sa.Enum(*DRAW_FREQUENCIES, name='draw_frequency', native_enum=False, create_constraint=True), nullable=True),
        sa.Column('business_verification_status', sa.Enum(*VERIFICATION_STATUSES, name='verification_status', native_enum=False, create_constraint=True), nullable=True),
        sa.Column('data_usage_consent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('data_privacy_acknowledgment', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('primary_contact_person', sa.String(length=255), nullable=True),
        sa.Column('support_contact_email', sa.String(length=255), nullable=True),
        sa.Column('escalation_contact', sa.String(length=255), nullable=True, comment='Escalation contact email'),
        sa.Column('status', sa.Enum(*CLIENT_STATUSES, name='client_status', native_enum=False, create_constraint=True), nullable=False, server_default='pending_verification'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='Timestamp when record was created'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='Timestamp when record was last updated'),
        sa.Column('created_by', sa.UUID(), nullable=True, comment='User ID who created this record'),
        sa.Column('updated_by', sa.UUID(), nullable=True, comment='User ID who last updated this record'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id'),
    )

    op.create_index('ix_clients_status', 'clients', ['status'])
    op.create_index('idx_clients_status_created', 'clients', ['status', 'created_at'])
    op.create_index('idx_clients_category', 'clients', ['business_category'])
    op.create_index('idx_clients_created_at', 'clients', [sa.text('created_at DESC')])

    # Case-insensitive partial matching on the three searchable columns
    op.execute('CREATE EXTENSION IF NOT EXISTS pg_trgm')
    for column in ('organization_name', 'tenant_admin_full_name', 'tenant_admin_email'):
        op.execute(
            f'CREATE INDEX idx_clients_{column}_trgm ON clients USING gin ({column} gin_trgm_ops)'
        )


def downgrade() -> None:
    """Downgrade database schema."""
    for column in ('organization_name', 'tenant_admin_full_name', 'tenant_admin_email'):
        op.execute(f'DROP INDEX IF EXISTS idx_clients_{column}_trgm')

    op.drop_index('idx_clients_created_at', table_name='clients')
    op.drop_index('idx_clients_category', table_name='clients')
    op.drop_index('idx_clients_status_created', table_name='clients')
    op.drop_index('ix_clients_status', table_name='clients')
    op.drop_table('clients')
