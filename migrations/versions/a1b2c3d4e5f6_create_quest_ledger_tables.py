"""Create quest ledger tables (members, badges, quests, progress, ledger, tiers).

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1b2c3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create the quest ledger schema."""
    # Members table
    op.create_table(
        'members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('external_id', sa.String(100), nullable=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('loyalty_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('loyalty_tier', sa.String(30), nullable=False, server_default='BRONZE'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('external_id'),
    )

    # Badges table
    op.create_table(
        'badges',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('icon', sa.String(50), server_default='trophy'),
        sa.Column('color', sa.String(20), server_default='#e85d27'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )

    # Reward tiers table
    op.create_table(
        'reward_tiers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tier', sa.String(30), nullable=False),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('min_points', sa.Integer(), nullable=False),
        sa.Column('max_points', sa.Integer(), nullable=True),
        sa.Column('benefits', sa.JSON(), nullable=True),
        sa.Column('multiplier', sa.Numeric(4, 2), server_default='1.00'),
        sa.Column('display_order', sa.Integer(), server_default='0'),
        sa.Column('color', sa.String(20), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tier'),
    )

    # Quests table
    op.create_table(
        'quests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('trigger_category', sa.String(30), nullable=False),
        sa.Column('target_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('reward_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('recurrence', sa.String(10), nullable=False, server_default='NONE'),
        sa.Column('reward_badge_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('icon', sa.String(50), nullable=True),
        sa.Column('color', sa.String(20), nullable=True),
        sa.Column('display_order', sa.Integer(), server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
        sa.ForeignKeyConstraint(['reward_badge_id'], ['badges.id']),
        sa.CheckConstraint('target_count > 0', name='ck_quests_target_count_positive'),
        sa.CheckConstraint('reward_points >= 0', name='ck_quests_reward_points_non_negative'),
    )
    op.create_index('ix_quests_category_active', 'quests', ['trigger_category', 'is_active'])

    # Quest progress table
    op.create_table(
        'quest_progress',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('quest_id', sa.Integer(), nullable=False),
        sa.Column('current_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('last_reset_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('extra_data', sa.JSON(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['quest_id'], ['quests.id']),
        sa.UniqueConstraint('member_id', 'quest_id', name='uq_quest_progress_member_quest'),
        sa.CheckConstraint('current_count >= 0', name='ck_quest_progress_count_non_negative'),
    )

    # Reward transactions (append-only ledger)
    op.create_table(
        'reward_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(10), nullable=False),
        sa.Column('source', sa.String(20), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        sa.Column('occurred_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('quest_id', sa.Integer(), nullable=True),
        sa.Column('extra_data', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['member_id'], ['members.id']),
        sa.ForeignKeyConstraint(['quest_id'], ['quests.id']),
        sa.CheckConstraint('points > 0', name='ck_reward_transactions_points_positive'),
    )
    op.create_index('ix_reward_transactions_member_order', 'reward_transactions',
                    ['member_id', 'occurred_at', 'id'])
    op.create_index('ix_reward_transactions_source', 'reward_transactions', ['source'])

    # Member badges table
    op.create_table(
        'member_badges',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('badge_id', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(30), server_default='QUEST'),
        sa.Column('extra_data', sa.JSON(), nullable=True),
        sa.Column('earned_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('notified', sa.Boolean(), server_default='false'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['badge_id'], ['badges.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('member_id', 'badge_id', name='unique_member_badge'),
    )
    op.create_index('ix_member_badges_member', 'member_badges', ['member_id'])


def downgrade():
    """Drop the quest ledger schema."""
    op.drop_index('ix_member_badges_member', table_name='member_badges')
    op.drop_table('member_badges')
    op.drop_index('ix_reward_transactions_source', table_name='reward_transactions')
    op.drop_index('ix_reward_transactions_member_order', table_name='reward_transactions')
    op.drop_table('reward_transactions')
    op.drop_table('quest_progress')
    op.drop_index('ix_quests_category_active', table_name='quests')
    op.drop_table('quests')
    op.drop_table('reward_tiers')
    op.drop_table('badges')
    op.drop_table('members')
