"""Unit tests for the title and event classifiers."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from showreel.services.classifier import (
    CONFIDENCE_LEVELS,
    EventClassifier,
    TitleClassifier,
    detect_event_attributes,
    is_likely_clean_title,
)


def make_client(text: str | None = None, error: Exception | None = None) -> MagicMock:
    """Anthropic client double whose messages.create returns ``text``."""
    client = MagicMock()
    if error is not None:
        client.messages.create = AsyncMock(side_effect=error)
    else:
        response = MagicMock()
        response.content = [MagicMock(type="text", text=text)]
        client.messages.create = AsyncMock(return_value=response)
    return client


class TestIsLikelyCleanTitle:
    @pytest.mark.parametrize("title", ["Vertigo", "Star Wars: A New Hope", "Paris, Texas"])
    def test_clean(self, title: str) -> None:
        assert is_likely_clean_title(title)

    @pytest.mark.parametrize(
        "title",
        [
            "Saturday Morning Picture Club: The Muppets Christmas Carol",
            "35mm: Casablanca",
            "Paris, Texas + Q&A",
            "Doc'n Roll: Some Band",
        ],
    )
    def test_event_wrapped(self, title: str) -> None:
        assert not is_likely_clean_title(title)


class TestTitleClassifier:
    async def test_clean_title_skips_api(self) -> None:
        client = make_client('{"title": "ignored"}')
        classifier = TitleClassifier(client=client)
        result = await classifier.classify("Vertigo")
        assert result.film_title == "Vertigo"
        assert result.confidence == CONFIDENCE_LEVELS["high"]
        client.messages.create.assert_not_awaited()

    async def test_disabled_falls_back_to_regex_with_low_confidence(self) -> None:
        classifier = TitleClassifier(api_key="")
        assert not classifier.enabled
        result = await classifier.classify("35mm: Casablanca (PG)")
        assert result.film_title == "Casablanca"
        assert result.confidence == CONFIDENCE_LEVELS["low"]

    async def test_uses_remote_answer(self) -> None:
        client = make_client('{"title": "The Muppet Christmas Carol", "event": "kids", "confidence": "high"}')
        classifier = TitleClassifier(client=client)
        result = await classifier.classify("Toddler Time: The Muppet Christmas Carol")
        assert result.film_title == "The Muppet Christmas Carol"
        assert result.event == "kids"
        assert result.confidence == CONFIDENCE_LEVELS["high"]

    async def test_tolerates_fenced_json(self) -> None:
        client = make_client('```json\n{"title": "Casablanca", "confidence": "medium"}\n```')
        result = await TitleClassifier(client=client).classify("35mm: Casablanca")
        assert result.film_title == "Casablanca"
        assert result.confidence == CONFIDENCE_LEVELS["medium"]

    async def test_unparseable_answer_degrades(self) -> None:
        client = make_client("I think it is Casablanca")
        result = await TitleClassifier(client=client).classify("35mm: Casablanca (PG)")
        assert result.film_title == "Casablanca"
        assert result.confidence == CONFIDENCE_LEVELS["low"]

    async def test_api_error_degrades(self) -> None:
        client = make_client(error=ValueError("boom"))
        result = await TitleClassifier(client=client).classify("35mm: Casablanca (PG)")
        assert result.confidence == CONFIDENCE_LEVELS["low"]

    async def test_results_are_cached_per_title(self) -> None:
        client = make_client('{"title": "Casablanca", "confidence": "high"}')
        classifier = TitleClassifier(client=client)
        await classifier.classify("35mm: Casablanca")
        await classifier.classify("35mm: Casablanca")
        assert client.messages.create.await_count == 1


class TestConfirmMatch:
    async def test_disabled_never_matches(self) -> None:
        result = await TitleClassifier(api_key="").confirm_match("Nosferatu", 1922, "Nosferatu", 2024)
        assert result.is_match is False

    async def test_remote_confirmation(self) -> None:
        client = make_client('{"isMatch": true, "confidence": 0.92, "reasoning": "same film"}')
        result = await TitleClassifier(client=client).confirm_match("Amelie", None, "Amélie", 2001)
        assert result.is_match is True
        assert result.confidence == pytest.approx(0.92)

    async def test_error_is_no_match(self) -> None:
        client = make_client(error=ValueError("boom"))
        result = await TitleClassifier(client=client).confirm_match("A", None, "B", None)
        assert result.is_match is False


class TestEventClassifier:
    def test_rule_detection(self) -> None:
        result = detect_event_attributes("Paris, Texas + Q&A (AD) 35mm")
        assert result.event_types == ["q_and_a"]
        assert result.format == "35mm"
        assert result.has_audio_description

    def test_relaxed_and_subtitled(self) -> None:
        result = detect_event_attributes("Relaxed Screening: Paddington (subtitled)")
        assert result.is_relaxed
        assert result.has_subtitles

    async def test_rules_win_without_api_call(self) -> None:
        client = make_client('{"event_types": ["special"]}')
        result = await EventClassifier(client=client).classify("Sing-a-long-a Grease")
        assert result.event_types == ["singalong"]
        client.messages.create.assert_not_awaited()

    async def test_remote_used_when_rules_find_nothing(self) -> None:
        client = make_client('{"event_types": ["special"], "format": "null", "is_3d": false}')
        result = await EventClassifier(client=client).classify("Late Night: Eraserhead")
        assert result.event_types == ["special"]
        assert result.format is None

    async def test_disabled_returns_rule_result(self) -> None:
        result = await EventClassifier(api_key="").classify("Late Night: Eraserhead")
        assert result.event_types == []
