"""Tests for linking films to seasons by their raw member titles."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from showreel.models import Film, Season, SeasonFilm
from showreel.services.season_linker import SeasonLinker, season_title_key, titles_match


def make_season(season_id: str, name: str, titles: list[str], active: bool = True) -> Season:
    return Season(id=season_id, name=name, slug=season_id, raw_film_titles=titles, is_active=active)


def make_film(film_id: str, title: str) -> Film:
    return Film(id=film_id, title=title, normalized_title=title.lower())


async def linked_season_ids(session: AsyncSession, film_id: str) -> set[str]:
    result = await session.execute(select(SeasonFilm.season_id).where(SeasonFilm.film_id == film_id))
    return set(result.scalars().all())


class TestTitleMatching:
    def test_key_strips_year_and_canonicalizes(self) -> None:
        assert season_title_key("The Birds (1963)") == "birds"

    def test_exact(self) -> None:
        assert titles_match("vertigo", "vertigo")

    def test_prefix_either_way(self) -> None:
        assert titles_match("seven samurai", "seven samurai directors cut")
        assert titles_match("seven samurai directors cut", "seven samurai")

    def test_small_typo(self) -> None:
        assert titles_match("rear window", "rear windw")

    def test_different_films(self) -> None:
        assert not titles_match("vertigo", "psycho")

    def test_empty_never_matches(self) -> None:
        assert not titles_match("", "vertigo")


class TestSeasonLinker:
    async def test_links_by_year_stripped_title(self, session: AsyncSession) -> None:
        session.add_all(
            [
                make_season("hitchcock", "Hitchcock", ["Vertigo (1958)", "Rear Window (1954)"]),
                make_season("bates", "Bates", ["Psycho"]),
                make_film("vertigo-1958", "Vertigo"),
            ]
        )
        await session.flush()

        linked = await SeasonLinker().link_film_to_matching_seasons(session, "vertigo-1958", "Vertigo")

        assert linked == 1
        assert await linked_season_ids(session, "vertigo-1958") == {"hitchcock"}

    async def test_inactive_seasons_are_ignored(self, session: AsyncSession) -> None:
        session.add_all(
            [
                make_season("old", "Old", ["Vertigo"], active=False),
                make_film("vertigo-1958", "Vertigo"),
            ]
        )
        await session.flush()

        assert await SeasonLinker().link_film_to_matching_seasons(session, "vertigo-1958", "Vertigo") == 0

    async def test_linking_twice_creates_one_row(self, session: AsyncSession) -> None:
        session.add_all([make_season("hitchcock", "Hitchcock", ["Vertigo"]), make_film("vertigo-1958", "Vertigo")])
        await session.flush()
        linker = SeasonLinker()

        assert await linker.link_film_to_matching_seasons(session, "vertigo-1958", "Vertigo") == 1
        assert await linker.link_film_to_matching_seasons(session, "vertigo-1958", "Vertigo") == 0

    async def test_cache_reloads_after_invalidate(self, session: AsyncSession) -> None:
        session.add(make_film("vertigo-1958", "Vertigo"))
        await session.flush()
        linker = SeasonLinker(ttl_seconds=3600)
        assert await linker.link_film_to_matching_seasons(session, "vertigo-1958", "Vertigo") == 0

        session.add(make_season("hitchcock", "Hitchcock", ["Vertigo (1958)"]))
        await session.flush()
        assert await linker.link_film_to_matching_seasons(session, "vertigo-1958", "Vertigo") == 0

        linker.invalidate()
        assert await linker.link_film_to_matching_seasons(session, "vertigo-1958", "Vertigo") == 1

    async def test_relink_season_films(self, session: AsyncSession) -> None:
        session.add_all(
            [
                make_season("hitchcock", "Hitchcock", ["Vertigo (1958)", "Rear Window"]),
                make_film("vertigo-1958", "Vertigo"),
                make_film("rear-window-1954", "Rear Window"),
                make_film("psycho-1960", "Psycho"),
            ]
        )
        await session.flush()

        assert await SeasonLinker().relink_season_films(session, "hitchcock") == 2
        assert await linked_season_ids(session, "psycho-1960") == set()
