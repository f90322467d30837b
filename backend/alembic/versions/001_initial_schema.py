"""Initial schema: users, verification_tokens, user_sessions

Revision ID: 001
Revises:
Create Date: 2026-10-18

WHAT: Creates the three tables the authentication service owns.

WHY:
- users: identity records (lowercase unique email, bcrypt hash, verified flag)
- verification_tokens: one-time tokens for email verification and password
  reset, discriminated by token_type
- user_sessions: server-side session rows; the source of truth for revocation
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Stored values are the enum member names (SQLAlchemy Enum default)
    token_type_enum = sa.Enum('EMAIL_VERIFICATION', 'PASSWORD_RESET', name='tokentype')

    op.create_table(
        'verification_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        # 48 random bytes, hex encoded (96 characters)
        sa.Column('token', sa.String(length=255), nullable=False),
        sa.Column('token_type', token_type_enum, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        # WHY: used_at marks token as consumed or superseded (single-use)
        sa.Column('used_at', sa.DateTime(), nullable=True),
        sa.Column('created_ip', sa.String(length=45), nullable=True),
        sa.Column('used_ip', sa.String(length=45), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_verification_tokens_id', 'verification_tokens', ['id'])
    op.create_index('ix_verification_tokens_token', 'verification_tokens', ['token'], unique=True)
    op.create_index('ix_verification_tokens_user_id', 'verification_tokens', ['user_id'])
    op.create_index(
        'ix_verification_tokens_user_type_used',
        'verification_tokens',
        ['user_id', 'token_type', 'used_at'],
    )

    op.create_table(
        'user_sessions',
        sa.Column('jti', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.Column('created_ip', sa.String(length=45), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('jti'),
    )
    op.create_index('ix_user_sessions_user_id', 'user_sessions', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_user_sessions_user_id', table_name='user_sessions')
    op.drop_table('user_sessions')

    op.drop_index('ix_verification_tokens_user_type_used', table_name='verification_tokens')
    op.drop_index('ix_verification_tokens_user_id', table_name='verification_tokens')
    op.drop_index('ix_verification_tokens_token', table_name='verification_tokens')
    op.drop_index('ix_verification_tokens_id', table_name='verification_tokens')
    op.drop_table('verification_tokens')
    sa.Enum(name='tokentype').drop(op.get_bind(), checkfirst=True)

    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')
