"""Unit tests for document assembly and export formats."""

import io

import pytest
from docx import Document

from src.ai.outline_tree import OutlineTree
from src.ai.types import Reference
from src.engines.export.assembler import (
    DocumentFormat,
    assemble,
    authors_overlap,
    deduplicate,
    escape_latex,
    format_apa,
    html_to_latex,
    link_citations,
    surname_tokens,
)
from src.engines.export.bibtex import to_bibtex
from src.engines.export.docx_writer import to_docx


def _ref(authors, year="2020", title="Cells", **kwargs) -> Reference:
    return Reference(title=title, authors=list(authors), year=year, **kwargs)


@pytest.fixture
def report_tree():
    """Intro with two written subsections sharing one source, plus an empty section."""
    tree = OutlineTree()
    intro = tree.add_child(tree.root_id, "Introduction")
    background = tree.add_child(intro.id, "Background")
    scope = tree.add_child(intro.id, "Scope")
    tree.add_child(tree.root_id, "Methods")

    tree.set_content(
        background.id,
        "<p>Cells divide (Smith, 2020).</p>",
        [_ref(["J. Smith"], journal="Nature")],
    )
    tree.set_content(
        scope.id,
        "<p>Scope follows (Smith, 2020) and (Doe, 2019).</p>",
        [_ref(["Smith, J."], title="Cells again")],
    )
    return tree


class TestDeduplication:

    def test_same_author_different_format(self):
        first = _ref(["J. Smith"])
        second = _ref(["Smith, J."], title="Other title")

        unique, canonical = deduplicate([first, second])

        assert unique == [first]
        assert canonical[second.id] == first.id

    def test_different_year_kept(self):
        unique, _ = deduplicate([_ref(["Smith"]), _ref(["Smith"], year="2021")])

        assert len(unique) == 2

    def test_loose_containment_merges(self):
        # Known looseness: "Lee" is contained in "Leeman"
        assert authors_overlap(["Lee"], ["Leeman"])

    def test_no_overlap(self):
        assert not authors_overlap(["Smith, J."], ["Jones, K."])

    def test_et_al_placeholders_stay_distinct(self):
        smith = Reference.placeholder("Smith et al.", "2020")
        jones = Reference.placeholder("Jones et al.", "2020")

        unique, canonical = deduplicate([smith, jones])

        assert unique == [smith, jones]
        assert canonical[jones.id] == jones.id

    def test_et_al_matches_full_author(self):
        assert authors_overlap(["Smith et al."], ["Smith, J."])

    def test_surname_particles_ignored(self):
        assert not authors_overlap(["van Dijk, A."], ["van Houten, B."])
        assert not authors_overlap(["de la Cruz, M."], ["de Souza, P."])
        assert authors_overlap(["van Dijk, A."], ["A. van Dijk"])

    def test_given_names_do_not_merge(self):
        assert not authors_overlap(["John Smith"], ["John Doe"])

    def test_surname_tokens(self):
        assert surname_tokens("Smith, J.") == {"smith"}
        assert surname_tokens("J. Smith") == {"smith"}
        assert surname_tokens("Smith et al.") == {"smith"}
        assert surname_tokens("Smith & Jones") == {"smith", "jones"}

    def test_encounter_order_not_sorted(self):
        zed = _ref(["Zed"])
        abe = _ref(["Abe"])

        unique, _ = deduplicate([zed, abe])

        assert unique == [zed, abe]


class TestFormatting:

    def test_format_apa(self):
        ref = _ref(["Smith, J.", "Jones, K."], journal="Nature", doi="10.1/x")

        assert format_apa(ref) == "Smith, J., Jones, K. (2020). Cells. *Nature*. https://doi.org/10.1/x"

    def test_escape_latex(self):
        assert escape_latex("50% & $5_x") == r"50\% \& \$5\_x"

    def test_html_to_latex(self):
        assert html_to_latex("<p>A <strong>bold</strong> &amp; <em>calm</em> claim</p>") == (
            r"A \textbf{bold} \& \emph{calm} claim"
        )


class TestLinkCitations:

    def test_html_anchor(self):
        ref = _ref(["Smith, J."])

        text = link_citations("x (Smith, 2020) y", [ref], {ref.id: ref.id}, DocumentFormat.HTML)

        assert text == f'x <a href="#ref-{ref.id}">(Smith, 2020)</a> y'

    def test_latex_cite_uses_canonical_id(self):
        ref = _ref(["Smith, J."])

        text = link_citations("x (Smith, 2020)", [ref], {ref.id: "canon"}, DocumentFormat.LATEX)

        assert text == r"x \cite{canon}"

    def test_unmatched_marker_left_alone(self):
        ref = _ref(["Smith, J."])

        text = link_citations("(Doe, 2019)", [ref], {ref.id: ref.id}, DocumentFormat.HTML)

        assert text == "(Doe, 2019)"


class TestAssemble:
    """Tests for assemble."""

    def test_latex_document(self, report_tree):
        result = assemble(report_tree)

        assert r"\section{Introduction}" in result.document
        assert r"\subsection{Background}" in result.document
        assert "Methods" not in result.document
        assert result.document.index("Background") < result.document.index("Scope")
        assert r"\bibliography{references}" in result.document
        assert "(Doe, 2019)" in result.document

    def test_bibliography_deduplicated(self, report_tree):
        result = assemble(report_tree)

        assert len(result.references) == 1
        assert result.bibliography_entries == ["J. Smith (2020). Cells. *Nature*."]
        canonical = result.references[0].id
        assert result.document.count(r"\cite{" + canonical + "}") == 2

    def test_et_al_citations_keep_own_entries(self):
        tree = OutlineTree()
        node = tree.add_child(tree.root_id, "Findings")
        smith = Reference.placeholder("Smith et al.", "2020")
        jones = Reference.placeholder("Jones et al.", "2020")
        tree.set_content(node.id, "<p>A (Smith et al., 2020). B (Jones et al., 2020).</p>", [smith, jones])

        result = assemble(tree, fmt=DocumentFormat.HTML)

        assert [r.id for r in result.references] == [smith.id, jones.id]
        assert f'href="#ref-{jones.id}"' in result.document
        assert len(result.bibliography_entries) == 2

    def test_html_document(self, report_tree):
        result = assemble(report_tree, fmt=DocumentFormat.HTML, title="Cells & more")

        canonical = result.references[0].id
        assert "<title>Cells &amp; more</title>" in result.document
        assert f'<li id="ref-{canonical}">' in result.document
        assert result.document.count(f'href="#ref-{canonical}"') == 2

    def test_contents_override(self, report_tree):
        methods = report_tree.children_of(report_tree.root_id)[1]

        result = assemble(report_tree, contents={methods.id: "<p>We measured.</p>"})

        assert r"\section{Methods}" in result.document
        assert "We measured." in result.document

    def test_empty_tree(self):
        result = assemble(OutlineTree())

        assert result.references == []
        assert result.bibliography_entries == []


class TestExports:

    def test_bibtex_one_entry_per_id(self):
        first = _ref(["Smith, J.", "Jones, K."], journal="Nature & Co", doi="10.1/x")
        second = _ref(["Lee, A."], year="2021", title="Scale")

        bib = to_bibtex([first, second, first])

        assert bib.count("@article{") == 2
        assert f"@article{{{first.id}," in bib
        assert "Smith, J. and Jones, K." in bib
        assert r"Nature \& Co" in bib

    def test_bibtex_escapes_braces(self):
        ref = _ref(["Smith, J."], title="Sets {A, B} and {C")

        bib = to_bibtex([ref])

        assert r"Sets \{A, B\} and \{C" in bib
        assert bib.count("{") - bib.count(r"\{") == bib.count("}") - bib.count(r"\}")

    def test_bibtex_empty(self):
        assert to_bibtex([]) == ""

    def test_docx(self, report_tree):
        assembled = assemble(report_tree)

        data = to_docx("Cells", report_tree, assembled)

        doc = Document(io.BytesIO(data))
        text = [p.text for p in doc.paragraphs]
        assert "Cells" in text
        assert "Background" in text
        assert "References" in text
        assert "J. Smith (2020). Cells. Nature." in text
