"""initial schema

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the feed dashboard schema:
- users: operators and their API tokens
- farmers: farmers and their shared feed stock pool
- cycles: production runs; age/intake are advanced by the feed accrual engine
- farmer_logs: append-only audit trail, one parent (cycle or farmer) per row
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7c1d2e3f4a5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # users
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('api_token', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_api_token', 'users', ['api_token'], unique=True)

    # ============================================================================
    # farmers: stock pools (remaining is not clamped; overdraft shows negative)
    # ============================================================================
    op.create_table(
        'farmers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('main_stock_input', sa.Float(), nullable=False),
        sa.Column('main_stock_remaining', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'name', name='uq_farmers_user_name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_farmers_user_id', 'farmers', ['user_id'])

    # ============================================================================
    # cycles
    # ============================================================================
    op.create_table(
        'cycles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('farmer_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('doc', sa.Integer(), nullable=False),
        sa.Column('mortality', sa.Integer(), nullable=False),
        sa.Column('age', sa.Integer(), nullable=False),
        sa.Column('intake', sa.Float(), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('doc >= 1', name='ck_cycles_doc_positive'),
        sa.CheckConstraint('mortality >= 0', name='ck_cycles_mortality_non_negative'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['farmer_id'], ['farmers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_cycles_user_id', 'cycles', ['user_id'])
    op.create_index('ix_cycles_farmer_id', 'cycles', ['farmer_id'])
    op.create_index('ix_cycles_status', 'cycles', ['status'])
    op.create_index('ix_cycles_user_status', 'cycles', ['user_id', 'status'])

    # ============================================================================
    # farmer_logs: append-only audit trail
    # ============================================================================
    op.create_table(
        'farmer_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('cycle_id', sa.Integer(), nullable=True),
        sa.Column('farmer_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('value_change', sa.Float(), nullable=False),
        sa.Column('previous_value', sa.Float(), nullable=True),
        sa.Column('new_value', sa.Float(), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('(cycle_id IS NULL) <> (farmer_id IS NULL)',
                           name='ck_farmer_logs_single_parent'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['cycle_id'], ['cycles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['farmer_id'], ['farmers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_farmer_logs_user_id', 'farmer_logs', ['user_id'])
    op.create_index('ix_farmer_logs_type', 'farmer_logs', ['type'])
    op.create_index('ix_farmer_logs_created_at', 'farmer_logs', ['created_at'])
    op.create_index('ix_farmer_logs_cycle_created', 'farmer_logs', ['cycle_id', 'created_at'])
    op.create_index('ix_farmer_logs_farmer_created', 'farmer_logs', ['farmer_id', 'created_at'])


def downgrade():
    op.drop_table('farmer_logs')
    op.drop_table('cycles')
    op.drop_table('farmers')
    op.drop_table('users')
