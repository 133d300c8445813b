"""Create users, tokens, acronyms, categories and their association table.

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
    )
    op.create_table(
        'token',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('jti', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_token_jti', 'token', ['jti'], unique=True)
    op.create_table(
        'acronym',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('short', sa.String(length=64), nullable=False),
        sa.Column('long', sa.String(length=256), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
    )
    op.create_index('ix_acronym_short', 'acronym', ['short'])
    op.create_table(
        'category',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False),
    )
    op.create_table(
        'acronym_category',
        sa.Column(
            'acronym_id', sa.Integer(),
            sa.ForeignKey('acronym.id', ondelete='CASCADE'), primary_key=True,
        ),
        sa.Column(
            'category_id', sa.Integer(),
            sa.ForeignKey('category.id', ondelete='CASCADE'), primary_key=True,
        ),
    )


def downgrade():
    op.drop_table('acronym_category')
    op.drop_table('category')
    op.drop_index('ix_acronym_short', table_name='acronym')
    op.drop_table('acronym')
    op.drop_index('ix_token_jti', table_name='token')
    op.drop_table('token')
    op.drop_table('user')
