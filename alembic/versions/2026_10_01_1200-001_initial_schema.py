"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-01 12:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, JSONB

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'cinemas',
        sa.Column('id', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('short_name', sa.String(length=100), nullable=True),
        sa.Column('chain', sa.String(length=100), nullable=True),
        sa.Column('website', sa.String(length=500), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('area', sa.String(length=100), nullable=True),
        sa.Column('postcode', sa.String(length=20), nullable=True),
        sa.Column('features', ARRAY(sa.String()), nullable=True),
        sa.Column('scraper_type', sa.String(length=50), nullable=True),
        sa.Column('scraper_config', JSONB(), nullable=True),
        sa.Column('last_scraped_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_cinemas_chain'), 'cinemas', ['chain'], unique=False)

    op.create_table(
        'films',
        sa.Column('id', sa.String(length=150), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('normalized_title', sa.String(length=500), nullable=False),
        sa.Column('original_title', sa.String(length=500), nullable=True),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('tmdb_id', sa.Integer(), nullable=True),
        sa.Column('imdb_id', sa.String(length=20), nullable=True),
        sa.Column('directors', ARRAY(sa.String()), nullable=True),
        sa.Column('cast', ARRAY(sa.String()), nullable=True),
        sa.Column('genres', ARRAY(sa.String()), nullable=True),
        sa.Column('countries', ARRAY(sa.String()), nullable=True),
        sa.Column('languages', ARRAY(sa.String()), nullable=True),
        sa.Column('runtime', sa.Integer(), nullable=True),
        sa.Column('certification', sa.String(length=20), nullable=True),
        sa.Column('synopsis', sa.Text(), nullable=True),
        sa.Column('tagline', sa.Text(), nullable=True),
        sa.Column('poster_url', sa.String(length=500), nullable=True),
        sa.Column('backdrop_url', sa.String(length=500), nullable=True),
        sa.Column('tmdb_rating', sa.Float(), nullable=True),
        sa.Column('is_repertory', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('decade', sa.String(length=10), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_films_normalized_title'), 'films', ['normalized_title'], unique=False)
    op.create_index(op.f('ix_films_tmdb_id'), 'films', ['tmdb_id'], unique=True)

    op.create_table(
        'screenings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('film_id', sa.String(length=150), nullable=False),
        sa.Column('cinema_id', sa.String(length=100), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('format', sa.String(length=50), nullable=True),
        sa.Column('screen', sa.String(length=100), nullable=True),
        sa.Column('event_type', sa.String(length=50), nullable=True),
        sa.Column('event_description', sa.Text(), nullable=True),
        sa.Column('is_special_event', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_3d', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('has_subtitles', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('has_audio_description', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_relaxed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('booking_url', sa.String(length=1000), nullable=False),
        sa.Column('availability', sa.String(length=30), nullable=True),
        sa.Column('source_id', sa.String(length=300), nullable=True),
        sa.Column('raw_title', sa.Text(), nullable=True),
        sa.Column('scraped_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['cinema_id'], ['cinemas.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['film_id'], ['films.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('film_id', 'cinema_id', 'start_time', name='uq_film_cinema_time')
    )
    op.create_index(op.f('ix_screenings_cinema_id'), 'screenings', ['cinema_id'], unique=False)
    op.create_index(op.f('ix_screenings_film_id'), 'screenings', ['film_id'], unique=False)
    op.create_index(op.f('ix_screenings_start_time'), 'screenings', ['start_time'], unique=False)

    op.create_table(
        'seasons',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=300), nullable=False),
        sa.Column('slug', sa.String(length=300), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('director_name', sa.String(length=200), nullable=True),
        sa.Column('website_url', sa.String(length=500), nullable=True),
        sa.Column('poster_url', sa.String(length=500), nullable=True),
        sa.Column('source_cinemas', ARRAY(sa.String()), nullable=True),
        sa.Column('raw_film_titles', ARRAY(sa.String()), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('scraped_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )

    op.create_table(
        'season_films',
        sa.Column('season_id', sa.String(length=36), nullable=False),
        sa.Column('film_id', sa.String(length=150), nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['film_id'], ['films.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['season_id'], ['seasons.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('season_id', 'film_id')
    )


def downgrade() -> None:
    op.drop_table('season_films')
    op.drop_table('seasons')
    op.drop_index(op.f('ix_screenings_start_time'), table_name='screenings')
    op.drop_index(op.f('ix_screenings_film_id'), table_name='screenings')
    op.drop_index(op.f('ix_screenings_cinema_id'), table_name='screenings')
    op.drop_table('screenings')
    op.drop_index(op.f('ix_films_tmdb_id'), table_name='films')
    op.drop_index(op.f('ix_films_normalized_title'), table_name='films')
    op.drop_table('films')
    op.drop_index(op.f('ix_cinemas_chain'), table_name='cinemas')
    op.drop_table('cinemas')
