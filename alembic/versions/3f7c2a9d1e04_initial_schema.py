"""Initial schema: posters, magic links, bikes, reviews, ratings

Revision ID: 3f7c2a9d1e04
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f7c2a9d1e04'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('posters',
        sa.Column('poster_id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('api_token', sa.String(length=64), nullable=True, comment='Long-lived bearer token issued on magic link requests'),
        sa.Column('api_token_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('email_verified', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('poster_id'),
        sa.UniqueConstraint('email', name='posters_email_key'),
        sa.UniqueConstraint('username', name='posters_username_key')
    )
    op.create_index(op.f('ix_posters_api_token'), 'posters', ['api_token'], unique=True)

    op.create_table('magic_links',
        sa.Column('magic_link_id', sa.Integer(), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False, comment='32 random bytes, hex encoded'),
        sa.Column('poster_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('consumed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('api_token', sa.String(length=64), nullable=True, comment='API token issued when this link was confirmed'),
        sa.ForeignKeyConstraint(['poster_id'], ['posters.poster_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('magic_link_id')
    )
    op.create_index(op.f('ix_magic_links_token'), 'magic_links', ['token'], unique=True)
    op.create_index(op.f('ix_magic_links_poster_id'), 'magic_links', ['poster_id'], unique=False)

    op.create_table('bikes',
        sa.Column('numerical_id', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('hash_id', sa.String(length=64), nullable=True),
        sa.Column('is_electric', sa.Boolean(), nullable=False),
        sa.Column('creator_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['creator_id'], ['posters.poster_id']),
        sa.PrimaryKeyConstraint('numerical_id', name='bikes_pkey'),
        sa.UniqueConstraint('hash_id', name='bikes_hash_id_key')
    )
    op.create_index(op.f('ix_bikes_creator_id'), 'bikes', ['creator_id'], unique=False)

    op.create_table('reviews',
        sa.Column('review_id', sa.Integer(), nullable=False),
        sa.Column('poster_id', sa.Integer(), nullable=True),
        sa.Column('bike_numerical_id', sa.BigInteger(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('bike_img', sa.String(length=2048), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['bike_numerical_id'], ['bikes.numerical_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['poster_id'], ['posters.poster_id']),
        sa.PrimaryKeyConstraint('review_id')
    )
    op.create_index(op.f('ix_reviews_poster_id'), 'reviews', ['poster_id'], unique=False)
    op.create_index(op.f('ix_reviews_bike_numerical_id'), 'reviews', ['bike_numerical_id'], unique=False)

    op.create_table('review_ratings',
        sa.Column('review_id', sa.Integer(), nullable=False),
        sa.Column('subcategory', sa.String(length=16), nullable=False),
        sa.Column('score', sa.SmallInteger(), nullable=False),
        sa.CheckConstraint('score >= 1 AND score <= 5', name='ck_review_ratings_score_range'),
        sa.ForeignKeyConstraint(['review_id'], ['reviews.review_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('review_id', 'subcategory')
    )

    op.create_table('rating_aggregates',
        sa.Column('bike_numerical_id', sa.BigInteger(), nullable=False),
        sa.Column('subcategory', sa.String(length=16), nullable=False),
        sa.Column('rating_sum', sa.Integer(), nullable=False),
        sa.Column('rating_count', sa.Integer(), nullable=False),
        sa.Column('average_rating', sa.Numeric(precision=3, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['bike_numerical_id'], ['bikes.numerical_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('bike_numerical_id', 'subcategory')
    )


def downgrade() -> None:
    op.drop_table('rating_aggregates')
    op.drop_table('review_ratings')
    op.drop_index(op.f('ix_reviews_bike_numerical_id'), table_name='reviews')
    op.drop_index(op.f('ix_reviews_poster_id'), table_name='reviews')
    op.drop_table('reviews')
    op.drop_index(op.f('ix_bikes_creator_id'), table_name='bikes')
    op.drop_table('bikes')
    op.drop_index(op.f('ix_magic_links_poster_id'), table_name='magic_links')
    op.drop_index(op.f('ix_magic_links_token'), table_name='magic_links')
    op.drop_table('magic_links')
    op.drop_index(op.f('ix_posters_api_token'), table_name='posters')
    op.drop_table('posters')
