"""
Tolerant scanners for citation text produced by the model.

Everything that reads loose, semi-structured LLM output about sources lives
here:
  - parse_reference_lines(): APA-ish reference lines -> Reference objects.
    Lines that do not fit the pattern are dropped, never kept as malformed.
  - find_in_text_citations(): ``(Author, Year)`` markers in prose.
  - citation_matches(): the loose author/year test shared by the
    reconciler and the document assembler.
"""

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from src.ai.types import Reference

# Authors (Year). Title. *Journal*. link   -- journal and link optional
_REFERENCE_LINE = re.compile(
    r"^(?P<authors>[^()]+?)\s*\((?P<year>\d{4})[a-z]?\)\.?\s+"
    r"(?P<title>[^*]+?)\.?"
    r"(?:\s+\*(?P<journal>[^*]+?)\*[^*]*?)?"
    r"(?:\s+(?P<link>(?:https?://|doi:)\S+?))?\.?\s*$"
)
_LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)]|\[\d+\])\s+")
_AUTHOR_SEPARATOR = re.compile(r"\s*(?:,|&|\band\b)\s*")
_INITIALS_ONLY = re.compile(r"^(?:[A-Z]\.\s*)+(?:-[A-Z]\.)?$")
_DOI_LINK = re.compile(r"^(?:https?://(?:dx\.)?doi\.org/|doi:\s*)(?P<doi>.+)$", re.IGNORECASE)

_PARENTHETICAL = re.compile(r"\(([^()]+)\)")
_CITATION_PART = re.compile(
    r"^\s*(?P<fragment>[^\W\d_][^,;()]*?)\s*,?\s+(?P<year>\d{4})[a-z]?"
    r"(?:\s*,\s*(?:pp?|paras?|ch)\.\s*[\d–-]+)?\s*$"
)
# "e.g.,", "see also", "cf." ahead of the author
_CITATION_PREFIX = re.compile(
    r"^\s*(?:(?:e\.g\.|i\.e\.|cf\.)\s*,?|see(?:\s+also)?\b,?)\s*", re.IGNORECASE
)
_TAG = re.compile(r"<[^>]+>")
_ET_AL = re.compile(r"\s+et\s+al\.?", re.IGNORECASE)
_LEAD_SPLIT = re.compile(r"\s*(?:&|\band\b)\s*")


# ── Reference lines ──────────────────────────────────────────────────

def split_authors(raw: str) -> List[str]:
    """Split an author list on ``,`` / ``&`` / ``and``.

    Initials-only pieces (``J.``, ``A. B.``) are re-attached to the surname
    before them, so ``Smith, J., & Jones, K.`` gives two authors.
    """
    authors: List[str] = []
    for part in _AUTHOR_SEPARATOR.split(raw.strip()):
        part = part.strip()
        if not part:
            continue
        if authors and _INITIALS_ONLY.match(part):
            authors[-1] = f"{authors[-1]}, {part}"
        else:
            authors.append(part)
    return authors


def _doi_from_link(link: Optional[str]) -> Optional[str]:
    if not link:
        return None
    match = _DOI_LINK.match(link.strip())
    return match.group("doi").strip() if match else None


def parse_reference_line(line: str) -> Optional[Reference]:
    """Parse one reference line, or return None when it does not fit."""
    text = _LIST_MARKER.sub("", line.strip())
    if not text:
        return None
    match = _REFERENCE_LINE.match(text)
    if not match:
        return None

    authors = split_authors(match.group("authors"))
    title = match.group("title").strip()
    if not authors or not title:
        return None
    journal = match.group("journal")
    return Reference(
        title=title,
        authors=authors,
        year=match.group("year"),
        doi=_doi_from_link(match.group("link")),
        journal=journal.strip() if journal else None,
    )


def parse_reference_lines(block: str) -> List[Reference]:
    """Parse every usable line of a references block, in order."""
    references = []
    for line in (block or "").splitlines():
        if not line.strip():
            continue
        ref = parse_reference_line(line)
        if ref is not None:
            references.append(ref)
    return references


# ── In-text citations ────────────────────────────────────────────────

@dataclass(frozen=True)
class InTextCitation:
    """One ``(fragment, year)`` marker found in prose."""
    fragment: str
    year: str

    @property
    def lead_surname(self) -> str:
        return lead_surname(self.fragment)


def lead_surname(fragment: str) -> str:
    """``Smith et al.`` / ``Smith & Jones`` -> ``Smith``."""
    stripped = _ET_AL.sub("", fragment).strip()
    return _LEAD_SPLIT.split(stripped)[0].strip().rstrip(",")


def strip_tags(text: str) -> str:
    return _TAG.sub("", text or "")


def citation_parts(inner: str) -> List[Tuple[str, str]]:
    """Split the inside of one parenthetical into (fragment, year) pairs.

    ``Smith, 2020; Doe & Roe, 2019`` gives two pairs. Parts that are not
    citations yield nothing, so ``(see above)`` is ignored.
    """
    parts = []
    for piece in inner.split(";"):
        match = _CITATION_PART.match(_CITATION_PREFIX.sub("", piece, count=1))
        if match:
            parts.append((match.group("fragment").strip(), match.group("year")))
    return parts


def iter_citation_groups(text: str) -> Iterator[Tuple[re.Match, List[Tuple[str, str]]]]:
    """Yield each parenthetical that holds at least one citation."""
    for match in _PARENTHETICAL.finditer(text):
        parts = citation_parts(match.group(1))
        if parts:
            yield match, parts


def find_in_text_citations(text: str) -> List[InTextCitation]:
    """Distinct ``(fragment, year)`` pairs in encounter order; tags ignored."""
    seen = set()
    citations: List[InTextCitation] = []
    for _, parts in iter_citation_groups(strip_tags(text)):
        for fragment, year in parts:
            key = (fragment, year)
            if key in seen:
                continue
            seen.add(key)
            citations.append(InTextCitation(fragment=fragment, year=year))
    return citations


def citation_matches(fragment: str, year: str, reference: Reference) -> bool:
    """Loose match: the lead surname is contained in an author and years agree."""
    if str(reference.year).strip() != str(year).strip():
        return False
    surname = lead_surname(fragment).lower()
    if not surname:
        return False
    for author in reference.authors:
        name = (author or "").lower().strip()
        if name and (surname in name or name in surname):
            return True
    return False
