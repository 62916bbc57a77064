"""Unit tests for resolving listing titles to films."""

from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.ext.asyncio import AsyncSession

from showreel.models import Film
from showreel.services.classifier import CONFIDENCE_LEVELS, TitleClassification, TitleClassifier
from showreel.services.film_cache import FilmCache
from showreel.services.film_resolver import FilmResolver
from showreel.services.posters import FanartClient, OMDbClient, PosterService
from showreel.services.tmdb_client import TMDbClient


def make_resolver(session: AsyncSession, tmdb: TMDbClient | MagicMock | None = None, classifier=None) -> FilmResolver:
    tmdb = tmdb or TMDbClient(api_key="")
    classifier = classifier or TitleClassifier(api_key="")
    posters = PosterService(
        tmdb=TMDbClient(api_key=""),
        omdb=OMDbClient(api_key=""),
        fanart=FanartClient(api_key=""),
        classifier=classifier,
    )
    return FilmResolver(session, FilmCache(), tmdb=tmdb, posters=posters, classifier=classifier)


class TestFilmIds:
    async def test_long_title_fits_the_id_column(self, session: AsyncSession) -> None:
        title = "An Extraordinarily Long Retrospective Programme Title " * 4
        film = await make_resolver(session).get_or_create_film(title.strip(), 1999)

        assert len(film.id) <= 150
        assert film.id.endswith("-1999")
        assert "--" not in film.id
        assert film.title == title.strip()

    async def test_unsluggable_titles_get_distinct_ids(self, session: AsyncSession) -> None:
        resolver = make_resolver(session)
        spirited_away = await resolver.get_or_create_film("千と千尋の神隠し")
        in_the_mood = await resolver.get_or_create_film("花様年華")

        assert spirited_away.id.startswith("untitled-")
        assert in_the_mood.id.startswith("untitled-")
        assert spirited_away.id != in_the_mood.id


class TestTMDbReuse:
    async def test_listing_title_is_cached_for_reused_film(self, session: AsyncSession) -> None:
        existing = Film(
            id="bicycle-thieves-1948",
            title="Bicycle Thieves",
            normalized_title="bicycle thieves",
            year=1948,
            tmdb_id=5156,
        )
        session.add(existing)
        await session.flush()

        tmdb = MagicMock()
        tmdb.match_title = AsyncMock(return_value=MagicMock(tmdb_id=5156))
        resolver = make_resolver(session, tmdb=tmdb)

        first = await resolver.get_or_create_film("Ladri di biciclette", 1948)
        second = await resolver.get_or_create_film("Ladri di biciclette", 1948)

        assert first is existing
        assert second is existing
        tmdb.match_title.assert_awaited_once()


class TestExtractTitle:
    async def test_empty_classifier_title_falls_back_to_cleaner(self, session: AsyncSession) -> None:
        classifier = MagicMock()
        classifier.classify = AsyncMock(
            return_value=TitleClassification(film_title="", confidence=CONFIDENCE_LEVELS["high"])
        )
        resolver = make_resolver(session, classifier=classifier)

        assert await resolver.extract_title("35mm: Casablanca (PG)") == "Casablanca"

    async def test_prefix_only_listing_keeps_its_title(self, session: AsyncSession) -> None:
        assert await make_resolver(session).extract_title("Preview:") == "Preview:"
