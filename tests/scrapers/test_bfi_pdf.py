"""Tests for the BFI guide-text parser and the programme-changes page."""

from datetime import date, datetime

import pytest

from showreel.scrapers.bfi_pdf.parser import (
    clean_title,
    event_type_for,
    parse_guide_text,
    parse_screening_matches,
    screenings_for_venue,
)
from showreel.scrapers.bfi_pdf.programme_changes import (
    classify_change,
    extract_note,
    parse_changes_page,
)
from showreel.utils.dates import LONDON_TZ

NOW = datetime(2026, 1, 1, tzinfo=LONDON_TZ)

GUIDE_TEXT = """
BFI SOUTHBANK JANUARY
Vertigo
USA 1958. Director Alfred Hitchcock. With James Stewart, Kim Novak. 128min
A retired detective is hired to follow an old friend's wife.
Thu 8 Jan 14:50 NFT1 p19; Fri 9 Jan 20:30 IMAX (AD)
Hamnet + Q&A
UK 2025. Director Chloé Zhao. 125min. Digital 4K
Sat 10 Jan 18:00 NFT2
"""

CHANGES_HTML = """
<html><body><main>
<p>Updated: 5 January</p>
<p><strong>January Programme</strong></p>
<p><strong>Hamnet + Q&amp;A</strong></p>
<p>We are delighted to add an additional screening. UK 2025. Director Chloé Zhao. 125min. Digital 4K</p>
<p>Sat 10 Jan 18:00 NFT1</p>
<p><strong>Metropolis</strong></p>
<p>This screening has been cancelled. Sun 11 Jan 14:00 NFT2</p>
<p><strong>Sign up to our newsletter</strong></p>
</main></body></html>
"""


# ---- titles ----


class TestTitles:
    def test_strips_q_and_a_and_prefix(self) -> None:
        assert clean_title("Preview: Hamnet + Q&A with Chloé Zhao") == "Hamnet"

    def test_strips_trailing_parenthetical(self) -> None:
        assert clean_title("Metropolis (restored)") == "Metropolis"

    @pytest.mark.parametrize(
        ("title", "expected"),
        [
            ("Hamnet + Q&A", "q_and_a"),
            ("Agnès Varda in conversation", "q_and_a"),
            ("Cléo from 5 to 7 + intro", "intro"),
            ("Vertigo", None),
        ],
    )
    def test_event_type(self, title: str, expected: str | None) -> None:
        assert event_type_for(title) == expected


# ---- screening lines ----


class TestScreeningMatches:
    def test_page_ref_and_flags(self) -> None:
        first, second = parse_screening_matches("Thu 8 Jan 14:50 NFT1 p19; Fri 9 Jan 20:30 IMAX (AD)", NOW)
        assert first.start_time == datetime(2026, 1, 8, 14, 50, tzinfo=LONDON_TZ)
        assert (first.venue, first.cinema_id, first.page_ref) == ("NFT1", "bfi-southbank", "p19")
        assert (second.venue, second.cinema_id) == ("IMAX", "bfi-imax")
        assert second.accessibility_flags == ["AD"]

    def test_bfi_imax_prefix(self) -> None:
        [screening] = parse_screening_matches("Sat 10 Jan 18:00 BFI IMAX", NOW)
        assert screening.venue == "IMAX"

    def test_guide_range_sets_year(self) -> None:
        now = datetime(2026, 12, 1, tzinfo=LONDON_TZ)
        [screening] = parse_screening_matches(
            "Sat 2 Jan 18:00 Studio", now, (date(2026, 12, 1), date(2027, 1, 31))
        )
        assert screening.start_time.year == 2027
        assert screening.venue == "STUDIO"

    def test_month_well_behind_now_is_next_year(self) -> None:
        now = datetime(2026, 11, 1, tzinfo=LONDON_TZ)
        [screening] = parse_screening_matches("Sat 2 Jan 18:00 NFT2", now)
        assert screening.start_time.year == 2027

    def test_past_screenings_dropped(self) -> None:
        now = datetime(2026, 1, 9, tzinfo=LONDON_TZ)
        [screening] = parse_screening_matches("Thu 8 Jan 14:50 NFT1; Fri 9 Jan 20:30 NFT3", now)
        assert screening.start_time.day == 9


# ---- guide text ----


class TestParseGuideText:
    def test_attributes_screenings_to_titles(self) -> None:
        screenings = parse_guide_text(GUIDE_TEXT, NOW)
        assert [s.title for s in screenings] == ["Vertigo", "Vertigo", "Hamnet"]

    def test_credits_metadata(self) -> None:
        vertigo, vertigo_imax, hamnet = parse_guide_text(GUIDE_TEXT, NOW)
        assert (vertigo.year, vertigo.director) == (1958, "Alfred Hitchcock")
        assert vertigo.format is None
        assert (hamnet.year, hamnet.format, hamnet.event_type) == (2025, "Digital 4K", "q_and_a")

    def test_screens_and_accessibility(self) -> None:
        vertigo, vertigo_imax, _ = parse_guide_text(GUIDE_TEXT, NOW)
        assert (vertigo.screen, vertigo.event_description) == ("NFT1", None)
        assert (vertigo_imax.screen, vertigo_imax.event_description) == ("IMAX", "AD")

    def test_booking_url_searches_title(self) -> None:
        vertigo = parse_guide_text(GUIDE_TEXT, NOW)[0]
        assert vertigo.booking_url.endswith("article_search_text=Vertigo")

    def test_split_by_venue(self) -> None:
        screenings = parse_guide_text(GUIDE_TEXT, NOW)
        assert len(screenings_for_venue(screenings, "bfi-imax")) == 1
        assert len(screenings_for_venue(screenings, "bfi-southbank")) == 2

    def test_screening_line_before_any_title(self) -> None:
        assert parse_guide_text("Thu 8 Jan 14:50 NFT1", NOW) == []


# ---- programme changes ----


class TestClassifyChange:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("We are delighted to add a screening", "addition"),
            ("This screening has been cancelled", "cancellation"),
            ("This will now take place in NFT2", "venue_change"),
            ("The film has been given a 15 certificate", "certificate"),
            ("Please note the running time has changed", "modification"),
            ("Something else", "other"),
        ],
    )
    def test_classify(self, text: str, expected: str) -> None:
        assert classify_change(text) == expected


class TestExtractNote:
    def test_known_phrase(self) -> None:
        assert extract_note("Vertigo. Please note this is a 35mm print. Thu 8 Jan") == (
            "Please note this is a 35mm print."
        )

    def test_first_descriptive_sentence(self) -> None:
        text = "Thu 8 Jan 14:50 NFT4. Short. The film now screens with a new restoration"
        assert extract_note(text) == "The film now screens with a new restoration."

    def test_nothing_usable(self) -> None:
        assert extract_note("Thu 8 Jan 14:50 NFT4") == ""


class TestParseChangesPage:
    def test_changes_and_screenings(self) -> None:
        result = parse_changes_page(CHANGES_HTML, NOW)
        assert [(c.film_title, c.change_type) for c in result.changes] == [
            ("Hamnet", "addition"),
            ("Metropolis", "cancellation"),
        ]
        assert result.last_updated == "5 January"

    def test_cancellations_add_no_screenings(self) -> None:
        [screening] = parse_changes_page(CHANGES_HTML, NOW).screenings
        assert screening.title == "Hamnet"
        assert screening.start_time == datetime(2026, 1, 10, 18, 0, tzinfo=LONDON_TZ)
        assert screening.screen == "NFT1"

    def test_addition_metadata(self) -> None:
        hamnet = parse_changes_page(CHANGES_HTML, NOW).changes[0]
        assert (hamnet.year, hamnet.runtime, hamnet.director, hamnet.format) == (
            2025,
            125,
            "Chloé Zhao",
            "Digital 4K",
        )
        assert hamnet.note == "We are delighted to add an additional screening."

    def test_empty_page(self) -> None:
        result = parse_changes_page("<html><body></body></html>", NOW)
        assert result.changes == []
        assert result.screenings == []
        assert result.last_updated is None
