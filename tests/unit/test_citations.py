"""Unit tests for citation scanning and reconciliation."""

import pytest

from src.ai.types import PLACEHOLDER_JOURNAL, PLACEHOLDER_TITLE, Reference
from src.engines.citation.parser import (
    InTextCitation,
    citation_matches,
    find_in_text_citations,
    lead_surname,
    parse_reference_line,
    parse_reference_lines,
    split_authors,
)
from src.engines.citation.reconciler import reconcile


class TestReferenceLines:
    """Tests for parse_reference_line(s)."""

    def test_full_line(self):
        ref = parse_reference_line(
            "Smith, J., & Jones, K. (2020). Deep learning for cells. "
            "*Nature Methods*, 17(3), 45-52. https://doi.org/10.1038/s41592"
        )

        assert ref.authors == ["Smith, J.", "Jones, K."]
        assert ref.year == "2020"
        assert ref.title == "Deep learning for cells"
        assert ref.journal == "Nature Methods"
        assert ref.doi == "10.1038/s41592"

    def test_journal_and_link_optional(self):
        ref = parse_reference_line("Lee, A. (2021). Microscopy at scale.")

        assert ref.title == "Microscopy at scale"
        assert ref.journal is None
        assert ref.doi is None

    def test_list_markers_stripped(self):
        ref = parse_reference_line("- Doe, R. (2019). Field notes. *Ecology*.")

        assert ref.authors == ["Doe, R."]

    def test_malformed_lines_dropped(self):
        block = "\n".join([
            "Smith, J. (2020). Cells. *Nature*.",
            "This line is not a reference",
            "",
            "Anonymous (n.d.). Undated.",
            "Lee, A. (2021). Scale.",
        ])

        refs = parse_reference_lines(block)

        assert [r.authors[0] for r in refs] == ["Smith, J.", "Lee, A."]

    def test_every_parsed_reference_gets_fresh_id(self):
        first = parse_reference_line("Lee, A. (2021). Scale.")
        second = parse_reference_line("Lee, A. (2021). Scale.")

        assert first.id != second.id

    @pytest.mark.parametrize("raw,expected", [
        ("Smith, J.", ["Smith, J."]),
        ("Smith and Jones", ["Smith", "Jones"]),
        ("Smith, J. A., Jones, K., & Lee, A.", ["Smith, J. A.", "Jones, K.", "Lee, A."]),
    ])
    def test_split_authors(self, raw, expected):
        assert split_authors(raw) == expected


class TestInTextCitations:

    def test_three_patterns(self):
        text = "One (Smith, 2020). Two (Smith & Jones, 2021). Three (Lee et al., 2019)."

        assert find_in_text_citations(text) == [
            InTextCitation("Smith", "2020"),
            InTextCitation("Smith & Jones", "2021"),
            InTextCitation("Lee et al.", "2019"),
        ]

    def test_distinct_pairs_in_encounter_order(self):
        text = "<p>A (Smith, 2020).</p><p>B (Doe, 2019; Smith, 2020).</p>"

        assert find_in_text_citations(text) == [
            InTextCitation("Smith", "2020"),
            InTextCitation("Doe", "2019"),
        ]

    def test_non_citations_ignored(self):
        assert find_in_text_citations("Values (see above) rose (n = 12) in (2020).") == []

    def test_page_locators(self):
        text = "A (Smith, 2020, p. 12). B (Lee et al., 2019, pp. 3-7)."

        assert find_in_text_citations(text) == [
            InTextCitation("Smith", "2020"),
            InTextCitation("Lee et al.", "2019"),
        ]

    @pytest.mark.parametrize("text", [
        "(e.g., Doe, 2019)",
        "(see Doe, 2019)",
        "(see also Doe, 2019)",
        "(cf. Doe, 2019)",
    ])
    def test_leading_signal_words(self, text):
        assert find_in_text_citations(text) == [InTextCitation("Doe", "2019")]

    def test_surname_starting_with_see_kept(self):
        assert find_in_text_citations("(Seeley, 2018)") == [InTextCitation("Seeley", "2018")]

    @pytest.mark.parametrize("fragment,surname", [
        ("Smith", "Smith"),
        ("Smith et al.", "Smith"),
        ("Smith & Jones", "Smith"),
        ("Smith and Jones", "Smith"),
    ])
    def test_lead_surname(self, fragment, surname):
        assert lead_surname(fragment) == surname

    def test_match_requires_equal_year(self):
        ref = Reference(title="T", authors=["Smith, J."], year="2020")

        assert citation_matches("Smith et al.", "2020", ref)
        assert not citation_matches("Smith", "2021", ref)
        assert not citation_matches("Jones", "2020", ref)


class TestReconcile:
    """Tests for reconcile."""

    def test_cited_and_listed(self):
        refs = reconcile(
            "<p>Cells grow (Smith, 2020).</p>",
            "Smith, J. (2020). Cells. *Nature*.",
        )

        assert len(refs) == 1
        assert refs[0].title == "Cells"
        assert not refs[0].is_placeholder

    def test_locator_and_signal_forms_reconciled(self):
        refs = reconcile(
            "<p>Cells grow (Smith, 2020, p. 12) as birds do (e.g., Doe, 2019).</p>",
            "Smith, J. (2020). Cells. *Nature*.",
        )

        assert [r.title for r in refs] == ["Cells", PLACEHOLDER_TITLE]
        assert refs[1].authors == ["Doe"]

    def test_unlisted_citation_gets_placeholder(self):
        refs = reconcile("<p>Birds sing (Doe, 2019).</p>", "")

        assert len(refs) == 1
        assert refs[0].title == PLACEHOLDER_TITLE
        assert refs[0].journal == PLACEHOLDER_JOURNAL
        assert refs[0].year == "2019"
        assert refs[0].authors == ["Doe"]

    def test_matched_before_placeholders(self):
        refs = reconcile(
            "(Doe, 2019) then (Smith, 2020) then (Lee, 2021)",
            "Lee, A. (2021). Scale.\nSmith, J. (2020). Cells.",
        )

        assert [r.title for r in refs] == ["Cells", "Scale", PLACEHOLDER_TITLE]

    def test_uncited_listed_reference_is_dropped(self):
        refs = reconcile("(Smith, 2020)", "Smith, J. (2020). Cells.\nLee, A. (2021). Scale.")

        assert [r.title for r in refs] == ["Cells"]

    def test_repeated_citation_counted_once(self):
        refs = reconcile("(Smith, 2020) and again (Smith, 2020)", "Smith, J. (2020). Cells.")

        assert len(refs) == 1

    def test_nothing_cited(self):
        assert reconcile("No citations at all.", "Smith, J. (2020). Cells.") == []
