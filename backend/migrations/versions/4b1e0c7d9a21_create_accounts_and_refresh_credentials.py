"""create accounts and refresh credentials

Revision ID: 4b1e0c7d9a21
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = '4b1e0c7d9a21'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'accounts',
        sa.Column('id', sa.String(length=128), nullable=False),
        sa.Column('email_address', sa.String(length=254), nullable=False),
        sa.Column('secret_hash', sa.String(length=255), nullable=True),
        sa.Column('linked_provider_id', sa.String(length=128), nullable=True),
        sa.Column('migrated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('first_name', sa.String(length=80), nullable=False),
        sa.Column('last_name', sa.String(length=80), nullable=False),
        sa.Column('account_number', sa.String(length=12), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('last_signed_in', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_accounts')),
        sa.UniqueConstraint('email_address', name='uq_accounts_email_address'),
        sa.UniqueConstraint('linked_provider_id', name='uq_accounts_linked_provider_id'),
        sa.UniqueConstraint('account_number', name='uq_accounts_account_number'),
    )
    op.create_table(
        'refresh_credentials',
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('account_id', sa.String(length=128), nullable=False),
        sa.Column('issued_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('replaced_by_hash', sa.String(length=64), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('revoked_by_ip', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(
            ['account_id'], ['accounts.id'],
            name=op.f('fk_refresh_credentials_account_id_accounts'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('token_hash', name=op.f('pk_refresh_credentials')),
    )
    op.create_index('ix_refresh_credentials_account_id', 'refresh_credentials', ['account_id'])
    op.create_index('ix_refresh_credentials_expires_at', 'refresh_credentials', ['expires_at'])


def downgrade():
    op.drop_index('ix_refresh_credentials_expires_at', table_name='refresh_credentials')
    op.drop_index('ix_refresh_credentials_account_id', table_name='refresh_credentials')
    op.drop_table('refresh_credentials')
    op.drop_table('accounts')
