"""Fuzzy film lookup against already-known films.

Similarity is rapidfuzz's normalised Levenshtein ratio over canonical
titles, scaled to 0..1:

- ``>= HIGH_CONFIDENCE`` is accepted outright
- ``LOW_CONFIDENCE .. HIGH_CONFIDENCE`` is accepted only if the title
  classifier confirms the pair with confidence >= ``CONFIRM_CONFIDENCE``
- candidates under ``MINIMUM`` are never considered
"""

import logging
from dataclasses import dataclass

from rapidfuzz import fuzz

from showreel.models import Film
from showreel.services.classifier import TitleClassifier
from showreel.utils.text import canonicalize

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = 0.7
LOW_CONFIDENCE = 0.4
MINIMUM = 0.3
CONFIRM_CONFIDENCE = 0.7


@dataclass
class SimilarFilm:
    film: Film
    similarity: float


@dataclass
class SimilarityMatch:
    film: Film
    similarity: float
    confidence: str  # "high" or "medium"


def title_similarity(a: str, b: str) -> float:
    return fuzz.ratio(canonicalize(a), canonicalize(b)) / 100


def find_similar_films(
    title: str,
    films: list[Film],
    limit: int = 5,
    threshold: float = MINIMUM,
) -> list[SimilarFilm]:
    """Candidates at or above ``threshold``, best first."""
    scored = [SimilarFilm(film=film, similarity=title_similarity(title, film.title)) for film in films]
    candidates = [s for s in scored if s.similarity >= threshold]
    candidates.sort(key=lambda s: s.similarity, reverse=True)
    return candidates[:limit]


async def find_similar_film(
    title: str,
    films: list[Film],
    year: int | None = None,
    classifier: TitleClassifier | None = None,
) -> SimilarityMatch | None:
    """
    Best existing film for ``title``, or None if no confident match.

    Args:
        title: Cleaned listing title
        films: Known films to compare against
        year: Scraper-supplied year, passed to the classifier for disambiguation
        classifier: Confirms medium-similarity candidates; without one they are rejected
    """
    candidates = find_similar_films(title, films)
    if not candidates:
        return None

    best = candidates[0]
    if best.similarity >= HIGH_CONFIDENCE:
        logger.info(
            f"Similarity match (high): '{title}' -> '{best.film.title}' ({best.similarity:.0%})"
        )
        return SimilarityMatch(film=best.film, similarity=best.similarity, confidence="high")

    if best.similarity < LOW_CONFIDENCE:
        return None

    if classifier is None or not classifier.enabled:
        logger.debug(
            f"Uncertain match without classifier: '{title}' vs '{best.film.title}' ({best.similarity:.0%})"
        )
        return None

    confirmation = await classifier.confirm_match(title, year, best.film.title, best.film.year)
    if confirmation.is_match and confirmation.confidence >= CONFIRM_CONFIDENCE:
        logger.info(f"Classifier confirmed '{title}' -> '{best.film.title}': {confirmation.reasoning}")
        return SimilarityMatch(film=best.film, similarity=best.similarity, confidence="medium")

    logger.debug(f"Classifier rejected '{title}' vs '{best.film.title}': {confirmation.reasoning}")
    return None
