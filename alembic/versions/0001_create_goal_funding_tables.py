"""create goal funding tables

Revision ID: 0001_create_goal_funding_tables
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_create_goal_funding_tables'
down_revision = None
branch_labels = None
depends_on = None

goal_status = sa.Enum('active', 'completed', name='goalstatus')
allocation_type = sa.Enum('auto', 'manual', name='allocationtype')
transaction_type = sa.Enum('income', 'expense', name='transactiontype')


def upgrade():
    op.create_table(
        'budget_settings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('expenses_percentage', sa.Numeric(5, 2), nullable=False),
        sa.Column('savings_percentage', sa.Numeric(5, 2), nullable=False),
        sa.Column('goals_percentage', sa.Numeric(5, 2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('expenses_percentage >= 0 AND expenses_percentage <= 100', name='ck_budget_settings_expenses'),
        sa.CheckConstraint('savings_percentage >= 0 AND savings_percentage <= 100', name='ck_budget_settings_savings'),
        sa.CheckConstraint('goals_percentage >= 0 AND goals_percentage <= 100', name='ck_budget_settings_goals'),
    )
    op.create_index('ix_budget_settings_user_id', 'budget_settings', ['user_id'], unique=True)

    op.create_table(
        'goals',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=150), nullable=False),
        sa.Column('target_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('target_date', sa.Date(), nullable=True),
        sa.Column('percentage_allocation', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('is_custom_percentage', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', goal_status, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_goals_user_id', 'goals', ['user_id'])
    op.create_index('idx_goals_user_status', 'goals', ['user_id', 'status'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('type', transaction_type, nullable=False),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('is_allocated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('expenses_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('savings_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('goals_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])

    op.create_table(
        'goal_allocations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('goal_id', sa.Uuid(), sa.ForeignKey('goals.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('transaction_id', sa.Uuid(), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('allocation_type', allocation_type, nullable=False),
        sa.Column('allocation_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_goal_allocations_amount_positive'),
    )
    op.create_index('ix_goal_allocations_user_id', 'goal_allocations', ['user_id'])
    op.create_index('ix_goal_allocations_goal_id', 'goal_allocations', ['goal_id'])
    op.create_index('ix_goal_allocations_transaction_id', 'goal_allocations', ['transaction_id'])


def downgrade():
    op.drop_table('goal_allocations')
    op.drop_table('transactions')
    op.drop_table('goals')
    op.drop_table('budget_settings')
    bind = op.get_bind()
    for enum_type in (allocation_type, transaction_type, goal_status):
        enum_type.drop(bind, checkfirst=True)
