"""SQLAlchemy ORM models."""

from showreel.models.base import Base
from showreel.models.cinema import Cinema
from showreel.models.film import Film
from showreel.models.screening import Screening
from showreel.models.season import Season, SeasonFilm

__all__ = ["Base", "Cinema", "Film", "Screening", "Season", "SeasonFilm"]
