"""Per-run in-memory index of canonical films."""

import logging

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from showreel.models import Film
from showreel.utils.text import canonicalize

logger = logging.getLogger(__name__)


class FilmCache:
    """
    Canonical title → Film, loaded once per pipeline run.

    Films created during the run are added immediately so later groups in
    the same run resolve to them without another query. Not shared between
    runs and not safe for concurrent writers.
    """

    def __init__(self, films: list[Film] | None = None) -> None:
        self._by_key: dict[str, Film] = {}
        self.hits = 0
        self.misses = 0
        for film in films or []:
            self.add(film)

    @classmethod
    async def load(cls, session: AsyncSession) -> "FilmCache":
        result = await session.execute(select(Film))
        cache = cls(list(result.scalars().all()))
        logger.debug(f"Film cache loaded with {len(cache)} films")
        return cache

    def __len__(self) -> int:
        return len(self.films())

    def __contains__(self, title: str) -> bool:
        return canonicalize(title) in self._by_key

    def get(self, title: str) -> Film | None:
        film = self._by_key.get(canonicalize(title))
        if film is None:
            self.misses += 1
        else:
            self.hits += 1
        return film

    def add(self, film: Film, alias: str | None = None) -> None:
        """
        Index ``film`` under its own title and, optionally, a listing title
        that resolved to it.
        """
        key = film.normalized_title or canonicalize(film.title)
        # First film wins for a key; later duplicates stay reachable by id only
        self._by_key.setdefault(key, film)
        if alias and canonicalize(alias):
            self._by_key.setdefault(canonicalize(alias), film)

    def films(self) -> list[Film]:
        return list(dict.fromkeys(self._by_key.values()))

    def snapshot(self) -> dict[str, Film]:
        return dict(self._by_key)

    async def rollback_to(self, snapshot: dict[str, Film], session: AsyncSession) -> None:
        """
        Undo cache changes made inside a rolled-back savepoint.

        Films created in the savepoint are dropped. Films it modified were
        expired by the rollback and are reloaded, since attribute access on
        an expired instance would need lazy IO.
        """
        self._by_key = snapshot
        for film in self.films():
            if inspect(film).expired_attributes:
                await session.refresh(film)

    def stats(self) -> str:
        total = self.hits + self.misses
        rate = f"{self.hits / total * 100:.0f}%" if total else "n/a"
        return f"{len(self)} films, {self.hits} hits, {self.misses} misses ({rate} hit rate)"
