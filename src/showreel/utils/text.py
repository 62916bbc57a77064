"""Text normalization utilities for film title matching.

Two different operations live here:

``clean_film_title``
    Strips promotional wrapping ("Kids Club:", "35mm:", "+ Q&A", BBFC
    ratings) from a raw listing title to recover the real film title.
    The result is still display-quality text.

``canonicalize``
    Reduces a (cleaned) title to the comparison key used for cache lookups,
    diffing and season matching. It is lossy and idempotent.
"""

import re

# A prefix only counts when followed by ":", "|" or a spaced dash, so
# "Late Night with the Devil" keeps its title words. Guide PDFs render the
# premiere pipe as a capital "I".
_PREFIX_SEPARATOR = r"\s*(?:[:|]|\s[-–]\s|(?<=premiere)\s+(?-i:I)\s)\s*"

# Ordered: only the first matching prefix is stripped, so more specific
# patterns must come before the generic ones they overlap with.
EVENT_PREFIXES: list[re.Pattern[str]] = [
    re.compile(p + _PREFIX_SEPARATOR, re.IGNORECASE)
    for p in (
        # Kids / family
        r"^(?:saturday|sunday)\s+morning\s+(?:picture\s+|kids['\s]*)club",
        r"^kids['\s]*club",
        r"^family\s+film",
        r"^toddler\s+time",
        r"^big\s+scream",
        r"^baby\s+club",
        # Premieres and previews
        r"^uk\s+premiere",
        r"^world\s+premiere",
        r"^preview",
        r"^sneak\s+preview",
        r"^advance\s+screening",
        r"^special\s+screening",
        r"^member['\s]*s?\s+screening",
        # Formats and restorations
        r"^70mm\s+imax",
        r"^35mm",
        r"^70mm",
        r"^imax",
        r"^4k\s+restoration",
        r"^restoration",
        r"^director['\s]*s?\s+cut",
        # Series and strands
        r"^cult\s+classics?",
        r"^classics?",
        r"^throwback\s+thursday",
        r"^flashback",
        r"^film\s+club",
        r"^cinema\s+club",
        r"^late\s+night",
        r"^midnight\s+madness",
        r"^double\s+bill",
        r"^double\s+feature",
        r"^triple\s+bill",
        r"^marathon",
        r"^retrospective",
        # Q&A and introductions
        r"^live\s+q\s*&\s*a",
        r"^with\s+q\s*&\s*a",
        r"^q\s*&\s*a",
        r"^intro\s+by[^:|]*?",
        r"^introduced\s+by[^:|]*?",
        # Sing-alongs
        r"^sing[\s-]*a[\s-]*long",
        r"^quote[\s-]*a[\s-]*long",
        r"^singalong",
        # Seasonal
        r"^christmas\s+classics?",
        r"^holiday\s+film",
        r"^festive\s+film",
    )
]

_FRANCHISE_RE = re.compile(
    r"^(star\s+wars|indiana\s+jones|harry\s+potter|lord\s+of\s+the\s+rings|"
    r"mission\s+impossible|pirates\s+of\s+the\s+caribbean|fast\s+(&|and)\s+furious|"
    r"jurassic\s+(park|world)|the\s+matrix|batman|spider[\s-]?man|x[\s-]?men|avengers|"
    r"guardians\s+of\s+the\s+galaxy|toy\s+story|shrek|finding\s+(nemo|dory)|"
    r"the\s+dark\s+knight|alien|terminator|mad\s+max|back\s+to\s+the\s+future|die\s+hard|"
    r"lethal\s+weapon|home\s+alone|rocky|rambo|the\s+godfather)",
    re.IGNORECASE,
)
_EVENT_WORD_RE = re.compile(
    r"^(season|series|part|episode|chapter|vol(ume)?|act|double\s+feature|marathon|"
    r"retrospective|tribute|celebration|anniversary|special|presents?|screening|"
    r"showing|feature)",
    re.IGNORECASE,
)
_SUBTITLE_START_RE = re.compile(
    r"^(the|a|an|new|last|final|return|rise|fall|revenge|attack|empire|phantom|"
    r"force|rogue|solo)\s",
    re.IGNORECASE,
)
_YEAR_RE = re.compile(r"\b(19|20)\d{2}\b")
_COLON_RE = re.compile(r"^([^:]+):\s*(.+)$")
_LEADING_ARTICLES_RE = re.compile(r"^(?:the\s+)+")

_TRAILING_CRUFT: list[re.Pattern[str]] = [
    re.compile(r"\s*\((U|PG|12A?|15|18)\*?\)\s*$", re.IGNORECASE),  # BBFC rating
    re.compile(r"\s*\[.*?\]\s*$"),
    re.compile(r"\s*-\s*(35mm|70mm|4k|imax)\s*$", re.IGNORECASE),
    re.compile(r"\s*\+\s*(q\s*&\s*a|discussion|intro)\s*$", re.IGNORECASE),
]


def strip_event_prefix(title: str) -> str:
    """Remove the first matching event prefix, if any."""
    for prefix in EVENT_PREFIXES:
        if prefix.search(title):
            return prefix.sub("", title, count=1).strip()
    return title


def _resolve_colon(title: str) -> str:
    match = _COLON_RE.match(title)
    if not match:
        return title

    before = match.group(1).strip()
    after = match.group(2).strip()

    if _FRANCHISE_RE.search(before) or _SUBTITLE_START_RE.search(after):
        return title
    if _EVENT_WORD_RE.search(before):
        return title

    before_is_short = len(before.split()) <= 3
    if before_is_short and not _YEAR_RE.search(before) and len(after) > 3:
        return after
    if _YEAR_RE.search(after):
        return after
    return title


def clean_film_title(title: str) -> str:
    """
    Recover the film title from a cinema listing title.

    Examples:
        "Saturday Morning Picture Club: The Muppets Christmas Carol"
            → "The Muppets Christmas Carol"
        "35mm: Casablanca (PG)"  →  "Casablanca"
        "Star Wars: A New Hope"  →  "Star Wars: A New Hope"
        "Paris, Texas + Q&A"  →  "Paris, Texas"

    Args:
        title: Raw title from the cinema website

    Returns:
        Cleaned title, or the whitespace-collapsed input when cleaning
        would leave nothing (e.g. "Preview:")
    """
    original = re.sub(r"\s+", " ", title).strip()
    cleaned = strip_event_prefix(original)
    cleaned = _resolve_colon(cleaned)

    for pattern in _TRAILING_CRUFT:
        cleaned = pattern.sub("", cleaned)

    return cleaned.strip() or original


def canonicalize(title: str) -> str:
    """
    Reduce a title to its comparison key.

    Lower-cases, drops one leading "the", removes punctuation and collapses
    whitespace. ``canonicalize(canonicalize(x)) == canonicalize(x)``.
    """
    key = title.lower().strip()
    key = re.sub(r"^the\s+", "", key)
    key = re.sub(r"[^\w\s]", "", key)
    key = re.sub(r"\s+", " ", key).strip()
    # Punctuation removal can expose another leading article ("'The' Room");
    # strip until none is left so a second pass is a no-op.
    return _LEADING_ARTICLES_RE.sub("", key)


def strip_year(title: str) -> str:
    """Remove a trailing "(1958)" style year."""
    return re.sub(r"\s*\(\d{4}\)\s*$", "", title).strip()


def extract_year(title: str) -> int | None:
    """Return the year from a trailing "(1958)", if present."""
    match = re.search(r"\((\d{4})\)\s*$", title)
    return int(match.group(1)) if match else None


def slugify(text: str) -> str:
    """
    Convert text to a URL-safe slug.

    Args:
        text: Text to slugify

    Returns:
        Lowercase slug with hyphens
    """
    text = text.lower()
    text = re.sub(r"['’]", "", text)
    text = re.sub(r"[\s_]+", "-", text)
    text = re.sub(r"[^a-z0-9-]", "", text)
    text = re.sub(r"-+", "-", text)
    return text.strip("-")
