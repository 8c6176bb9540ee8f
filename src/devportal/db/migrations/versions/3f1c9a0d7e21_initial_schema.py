"""initial schema: users, sessions, applications, tokens, request logs

Revision ID: 3f1c9a0d7e21
Revises:
Create Date: 2026-10-18 12:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a0d7e21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(16), primary_key=True),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=True),
        sa.Column('type', sa.String(16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )

    op.create_table(
        'sessions',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('user_id', sa.String(16), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_sessions_user_id', 'sessions', ['user_id'])

    op.create_table(
        'applications',
        sa.Column('id', sa.String(24), primary_key=True),
        sa.Column('user_id', sa.String(16), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(64), nullable=False),
        sa.Column('short_description', sa.Text(), nullable=False),
        sa.Column('token', sa.String(32), nullable=False),
        sa.Column('total_requests', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_applications_user_id', 'applications', ['user_id'])

    op.create_table(
        'tokens',
        sa.Column('id', sa.String(24), primary_key=True),
        sa.Column('application_id', sa.String(24), sa.ForeignKey('applications.id'), nullable=False),
        sa.Column('name', sa.String(64), nullable=False),
        sa.Column('token', sa.String(32), nullable=False),
        sa.Column('total_requests', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_tokens_application_id', 'tokens', ['application_id'])

    op.create_table(
        'request_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('application_id', sa.String(24), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('request_count', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index(
        'ix_request_logs_application_timestamp',
        'request_logs',
        ['application_id', 'timestamp'],
    )


def downgrade() -> None:
    op.drop_table('request_logs')
    op.drop_table('tokens')
    op.drop_table('applications')
    op.drop_table('sessions')
    op.drop_table('users')
