"""Chat requests: users with chat filter, chat_requests, chat_sessions, user_blocks

Revision ID: 20261019_001
Revises:
Create Date: 2026-10-19 10:00:00

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '20261019_001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Create users table
    op.create_table('users',
    sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
    sa.Column('tg_id', sa.BigInteger(), nullable=False),
    sa.Column('nickname', sa.String(length=64), nullable=False),
    sa.Column('gender', sa.String(length=8), nullable=True),
    sa.Column('age', sa.Integer(), nullable=True),
    sa.Column('region', sa.String(length=64), nullable=True),
    sa.Column('latitude', sa.Float(), nullable=True),
    sa.Column('longitude', sa.Float(), nullable=True),
    sa.Column('filter_gender', sa.String(length=8), nullable=True),
    sa.Column('filter_distance', sa.String(length=16), nullable=True),
    sa.Column('filter_min_age', sa.Integer(), nullable=True),
    sa.Column('filter_max_age', sa.Integer(), nullable=True),
    sa.Column('filter_visible', sa.Boolean(), server_default=sa.false(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_tg_id'), 'users', ['tg_id'], unique=True)

    # Create chat_requests table
    op.create_table('chat_requests',
    sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
    sa.Column('sender_id', sa.BigInteger(), nullable=False),
    sa.Column('receiver_id', sa.BigInteger(), nullable=False),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.Column('notification_ref', sa.BigInteger(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('viewed_at', sa.DateTime(), nullable=True),
    sa.Column('responded_at', sa.DateTime(), nullable=True),
    sa.Column('connected', sa.Boolean(), server_default=sa.false(), nullable=False),
    sa.CheckConstraint('sender_id <> receiver_id', name='chk_chat_request_no_self'),
    sa.CheckConstraint(
        "status IN ('pending','viewed','accepted','rejected','blocked','expired')",
        name='chk_chat_request_status',
    ),
    sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['receiver_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_chat_requests_receiver_status', 'chat_requests', ['receiver_id', 'status'], unique=False)
    op.create_index(
        'idx_chat_requests_pair_created', 'chat_requests', ['sender_id', 'receiver_id', 'created_at'], unique=False
    )

    # Create chat_sessions table
    op.create_table('chat_sessions',
    sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
    sa.Column('user_a', sa.BigInteger(), nullable=False),
    sa.Column('user_b', sa.BigInteger(), nullable=False),
    sa.Column('request_id', sa.BigInteger(), nullable=True),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.Column('started_at', sa.DateTime(), nullable=False),
    sa.Column('ended_at', sa.DateTime(), nullable=True),
    sa.CheckConstraint('user_a <> user_b', name='chk_chat_no_self'),
    sa.ForeignKeyConstraint(['user_a'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['user_b'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['request_id'], ['chat_requests.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_chat_sessions_user_a_status', 'chat_sessions', ['user_a', 'status'], unique=False)
    op.create_index('idx_chat_sessions_user_b_status', 'chat_sessions', ['user_b', 'status'], unique=False)

    # Create user_blocks table
    op.create_table('user_blocks',
    sa.Column('blocker_id', sa.BigInteger(), nullable=False),
    sa.Column('blocked_id', sa.BigInteger(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['blocker_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['blocked_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('blocker_id', 'blocked_id')
    )
    op.create_index('idx_user_blocks_blocked', 'user_blocks', ['blocked_id'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_user_blocks_blocked', table_name='user_blocks')
    op.drop_table('user_blocks')
    op.drop_index('idx_chat_sessions_user_b_status', table_name='chat_sessions')
    op.drop_index('idx_chat_sessions_user_a_status', table_name='chat_sessions')
    op.drop_table('chat_sessions')
    op.drop_index('idx_chat_requests_pair_created', table_name='chat_requests')
    op.drop_index('idx_chat_requests_receiver_status', table_name='chat_requests')
    op.drop_table('chat_requests')
    op.drop_index(op.f('ix_users_tg_id'), table_name='users')
    op.drop_table('users')
