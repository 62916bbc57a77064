"""Optional AI classification of listing titles.

Two classifiers share one anthropic client:

- ``TitleClassifier`` pulls the real film title out of an event-style
  listing ("Saturday Morning Picture Club: The Muppet Christmas Carol") and
  confirms uncertain fuzzy film matches.
- ``EventClassifier`` extracts event type, format and accessibility flags.

Both are degrade-safe: without an API key, or on any API or parse error,
they log and return a low-confidence / empty result so callers fall back to
the regex rules in ``utils.text`` and ``detect_event_attributes``.
"""

import json
import logging
import re
from dataclasses import dataclass, field

import anthropic

from showreel.config import settings
from showreel.utils.text import clean_film_title

logger = logging.getLogger(__name__)

CONFIDENCE_LEVELS = {"high": 0.9, "medium": 0.6, "low": 0.3}

_EVENT_TITLE_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^(saturday|sunday|weekday)\s+(morning|afternoon)",
        r"^(kids?|family|toddler|baby)\s*(club|time|film)",
        r"^(uk|world)\s+premiere",
        r"^(35|70)mm[:\s]",
        r"^(imax|4k|restoration)[:\s]",
        r"^(sing[\s-]?a[\s-]?long|quote[\s-]?a[\s-]?long)[:\s]",
        r"^(preview|sneak|advance)[:\s]",
        r"^(special|member'?s?)\s+screening",
        r"^(double|triple)\s+(feature|bill)",
        r"^(cult|classic|christmas)\s+(classic|film)",
        r"^(late\s+night|midnight)",
        r"^(marathon|retrospective|tribute)[:\s]",
        r"^(q\s*&\s*a|live\s+q)",
        r"^(intro(duced)?\s+by|with\s+q)",
        r"^(classic\s+matinee)[:\s]",
        r"^(doc\s*'?n'?\s*roll)[:\s]",
        r"^(lsff|bfi|afi|tiff)[:\s]",
        r"\+\s*q\s*&?\s*a\s*$",
        r"with\s+shadow\s+cast",
        r"\+\s*(discussion|intro|live)",
    )
]

_FRANCHISE_PREFIX_RE = re.compile(
    r"^(star\s+wars|indiana|harry|lord|mission|pirates|fast|jurassic|matrix|batman|"
    r"spider|alien|terminator|mad|back|die|lethal|home|rocky|rambo|godfather|toy|"
    r"finding|avengers|guardians|shrek|dark)",
    re.IGNORECASE,
)

TITLE_PROMPT = """Extract the actual film title from this cinema screening listing. The listing may include event prefixes (like "Kids Club:", "35mm:", "UK PREMIERE"), format info, or Q&A notes that are NOT part of the film title.

Listing: "{title}"

Respond with ONLY a JSON object (no markdown):
{{"title": "The Actual Film Title", "event": "event type if any", "confidence": "high|medium|low"}}

Examples:
- "Saturday Morning Picture Club: The Muppets Christmas Carol" → {{"title": "The Muppets Christmas Carol", "event": "kids screening", "confidence": "high"}}
- "Star Wars: A New Hope" → {{"title": "Star Wars: A New Hope", "confidence": "high"}}
- "35mm: Casablanca (PG)" → {{"title": "Casablanca", "event": "35mm screening", "confidence": "high"}}"""

MATCH_PROMPT = """You are a film database expert. Determine if these two entries refer to the SAME film:

Entry 1: "{title1}"{year1}
Entry 2: "{title2}"{year2}

Consider different formatting of the same title and special screening editions, but be careful about remakes, sequels, or different films with similar titles.

Respond with JSON only:
{{"isMatch": true/false, "confidence": 0.0-1.0, "reasoning": "brief explanation"}}"""

EVENT_PROMPT = """Classify this cinema screening listing.

Listing: "{title}"

Respond with ONLY a JSON object (no markdown):
{{"event_types": ["q_and_a" | "intro" | "premiere" | "preview" | "singalong" | "kids" | "double_bill" | "marathon" | "live_broadcast" | "special"], "format": "35mm|70mm|imax|4k|null", "is_3d": false, "has_subtitles": false, "has_audio_description": false, "is_relaxed": false}}"""


@dataclass
class TitleClassification:
    film_title: str
    confidence: float
    event: str | None = None


@dataclass
class MatchConfirmation:
    is_match: bool
    confidence: float
    reasoning: str = ""


@dataclass
class EventClassification:
    event_types: list[str] = field(default_factory=list)
    format: str | None = None
    is_3d: bool = False
    has_subtitles: bool = False
    has_audio_description: bool = False
    is_relaxed: bool = False

    @property
    def is_special_event(self) -> bool:
        return bool(self.event_types)


def is_likely_clean_title(title: str) -> bool:
    """True when a title carries no event wrapping worth an API call."""
    normalized = title.lower().strip()
    if any(pattern.search(normalized) for pattern in _EVENT_TITLE_PATTERNS):
        return False

    if ":" in normalized:
        before_colon = normalized.split(":", 1)[0].strip()
        if len(before_colon.split()) <= 2 and not _FRANCHISE_PREFIX_RE.match(before_colon):
            return False

    return True


_EVENT_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\bq\s*&\s*a\b|in conversation", re.IGNORECASE), "q_and_a"),
    (re.compile(r"\+\s*intro|introduced by|intro by", re.IGNORECASE), "intro"),
    (re.compile(r"\bpremiere\b", re.IGNORECASE), "premiere"),
    (re.compile(r"\bpreview\b", re.IGNORECASE), "preview"),
    (re.compile(r"sing[\s-]?a[\s-]?long|quote[\s-]?a[\s-]?long", re.IGNORECASE), "singalong"),
    (re.compile(r"kids['\s]*club|picture club|family film|toddler", re.IGNORECASE), "kids"),
    (re.compile(r"double\s+(bill|feature)", re.IGNORECASE), "double_bill"),
    (re.compile(r"\bmarathon\b|all[\s-]nighter", re.IGNORECASE), "marathon"),
    (re.compile(r"nt live|national theatre live|met opera|royal opera|royal ballet", re.IGNORECASE), "live_broadcast"),
]
_FORMAT_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\b70mm\b", re.IGNORECASE), "70mm"),
    (re.compile(r"\b35mm\b", re.IGNORECASE), "35mm"),
    (re.compile(r"\bimax\b", re.IGNORECASE), "imax"),
    (re.compile(r"\b4k\b", re.IGNORECASE), "4k"),
]


def detect_event_attributes(title: str) -> EventClassification:
    """Rule-based event/format/accessibility detection, no API call."""
    result = EventClassification()
    for pattern, event_type in _EVENT_RULES:
        if pattern.search(title) and event_type not in result.event_types:
            result.event_types.append(event_type)
    for pattern, fmt in _FORMAT_RULES:
        if pattern.search(title):
            result.format = fmt
            break
    result.is_3d = bool(re.search(r"\b3-?d\b", title, re.IGNORECASE))
    result.has_subtitles = bool(re.search(r"\bsubtitled\b|\(subs?\)|\bsubtitles\b", title, re.IGNORECASE))
    result.has_audio_description = bool(re.search(r"audio[\s-]described|\(AD\)", title, re.IGNORECASE))
    result.is_relaxed = bool(re.search(r"\brelaxed\b|autism[\s-]friendly", title, re.IGNORECASE))
    return result


def _parse_json(text: str) -> dict:
    text = text.strip()
    # Tolerate a fenced code block
    text = re.sub(r"^```(?:json)?\s*|\s*```$", "", text)
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def _confidence(value) -> float:
    if isinstance(value, (int, float)):
        return float(value)
    return CONFIDENCE_LEVELS.get(str(value).lower(), CONFIDENCE_LEVELS["medium"])


class _AnthropicClassifier:
    """Shared client handling and response plumbing."""

    MAX_TOKENS = 200

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.anthropic_api_key
        self.model = model or settings.classifier_model
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None or bool(self.api_key)

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def _ask(self, prompt: str) -> dict:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.MAX_TOKENS,
            messages=[{"role": "user", "content": prompt}],
        )
        text = "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
        return _parse_json(text)


class TitleClassifier(_AnthropicClassifier):
    """Extract film titles from event-style listings; confirm fuzzy matches."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._cache: dict[str, TitleClassification] = {}

    async def classify(self, title: str) -> TitleClassification:
        """
        Classify a raw listing title.

        Clean-looking titles skip the API entirely. Failures come back with
        low confidence and the regex-cleaned title.
        """
        cached = self._cache.get(title)
        if cached is not None:
            return cached

        if is_likely_clean_title(title):
            result = TitleClassification(film_title=clean_film_title(title), confidence=CONFIDENCE_LEVELS["high"])
        elif not self.enabled:
            result = TitleClassification(film_title=clean_film_title(title), confidence=CONFIDENCE_LEVELS["low"])
        else:
            result = await self._classify_remote(title)

        self._cache[title] = result
        return result

    async def _classify_remote(self, title: str) -> TitleClassification:
        try:
            data = await self._ask(TITLE_PROMPT.format(title=title))
        except (anthropic.APIError, ValueError, KeyError) as e:
            logger.warning(f"Title classification failed for '{title}': {e}")
            return TitleClassification(film_title=clean_film_title(title), confidence=CONFIDENCE_LEVELS["low"])

        film_title = clean_film_title(str(data.get("title") or title))
        return TitleClassification(
            film_title=film_title or clean_film_title(title),
            confidence=_confidence(data.get("confidence", "medium")),
            event=data.get("event") or None,
        )

    async def confirm_match(
        self,
        title1: str,
        year1: int | None,
        title2: str,
        year2: int | None,
    ) -> MatchConfirmation:
        """Ask whether two titles name the same film; no match on any failure."""
        if not self.enabled:
            return MatchConfirmation(is_match=False, confidence=0.0, reasoning="classifier disabled")

        prompt = MATCH_PROMPT.format(
            title1=title1,
            year1=f" ({year1})" if year1 else "",
            title2=title2,
            year2=f" ({year2})" if year2 else "",
        )
        try:
            data = await self._ask(prompt)
        except (anthropic.APIError, ValueError, KeyError) as e:
            logger.warning(f"Match confirmation failed for '{title1}' vs '{title2}': {e}")
            return MatchConfirmation(is_match=False, confidence=0.0, reasoning="API error")

        confidence = data.get("confidence")
        return MatchConfirmation(
            is_match=data.get("isMatch") is True,
            confidence=float(confidence) if isinstance(confidence, (int, float)) else 0.5,
            reasoning=str(data.get("reasoning") or ""),
        )


class EventClassifier(_AnthropicClassifier):
    """Event type, format and accessibility classification."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._cache: dict[str, EventClassification] = {}

    async def classify(self, title: str) -> EventClassification:
        cached = self._cache.get(title)
        if cached is not None:
            return cached

        result = detect_event_attributes(title)
        if not result.is_special_event and result.format is None and self.enabled and not is_likely_clean_title(title):
            result = await self._classify_remote(title, fallback=result)

        self._cache[title] = result
        return result

    async def _classify_remote(self, title: str, fallback: EventClassification) -> EventClassification:
        try:
            data = await self._ask(EVENT_PROMPT.format(title=title))
        except (anthropic.APIError, ValueError, KeyError) as e:
            logger.warning(f"Event classification failed for '{title}': {e}")
            return fallback

        fmt = data.get("format")
        return EventClassification(
            event_types=[str(t) for t in data.get("event_types") or []],
            format=fmt if fmt and fmt != "null" else None,
            is_3d=bool(data.get("is_3d")),
            has_subtitles=bool(data.get("has_subtitles")),
            has_audio_description=bool(data.get("has_audio_description")),
            is_relaxed=bool(data.get("is_relaxed")),
        )
