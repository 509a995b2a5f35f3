"""
Document Assembler -- outline + per-node prose -> one citable document.

Walks the outline in document order, turns matched ``(Author, Year)``
markers into cross-references to a bibliography anchor, and merges every
node's references into one deduplicated bibliography (first copy wins,
encounter order, never alphabetised).

Deduplication is loose: two references are the same work when
their years are equal and a pair of author strings either contains one
another or shares a surname. Containment can still merge distinct authors
such as "Lee" and "Leeman".
"""

import html
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Set, Tuple

from src.ai.outline_tree import OutlineTree, SectionNode
from src.ai.types import Reference
from src.engines.citation.parser import citation_matches, iter_citation_groups

logger = logging.getLogger(__name__)


class DocumentFormat(str, Enum):
    """Typeset output flavours."""
    LATEX = "latex"
    HTML = "html"


@dataclass
class AssembledDocument:
    """Assembled document plus its flat bibliography."""
    document: str
    bibliography_entries: List[str] = field(default_factory=list)
    references: List[Reference] = field(default_factory=list)


# ── Bibliography ─────────────────────────────────────────────────────

_NAME_TOKEN = re.compile(r"[^\W\d_]{2,}")
_NAME_SPLIT = re.compile(r"\s*(?:&|\band\b)\s*", re.IGNORECASE)
_ET_AL = re.compile(r"\bet\.?\s+al\b\.?", re.IGNORECASE)
_NON_SURNAME = frozenset({
    "et", "al", "and", "van", "von", "de", "der", "den", "da", "di", "du",
    "del", "della", "des", "la", "le", "dos", "das", "ter", "ten", "zu",
})


def surname_tokens(author: str) -> Set[str]:
    """Lower-cased surname words of one author string.

    ``Smith, J.`` and ``J. Smith`` both give ``{"smith"}``; filler such as
    ``et al.`` and particles such as ``van`` are dropped.
    """
    tokens: Set[str] = set()
    text = _ET_AL.sub(" ", (author or "").lower())
    for name in _NAME_SPLIT.split(text):
        surname_part = name.split(",")[0] if "," in name else name
        words = [w for w in _NAME_TOKEN.findall(surname_part) if w not in _NON_SURNAME]
        if not words:
            continue
        # "Given Surname": only the last word is the surname
        tokens.update(words if "," in name else words[-1:])
    return tokens


def authors_overlap(first: List[str], second: List[str]) -> bool:
    """True when any author string contains the other or shares a surname."""
    for a in first:
        a_low = (a or "").lower().strip()
        if not a_low:
            continue
        a_tokens = surname_tokens(a_low)
        for b in second:
            b_low = (b or "").lower().strip()
            if not b_low:
                continue
            if a_low in b_low or b_low in a_low:
                return True
            if a_tokens & surname_tokens(b_low):
                return True
    return False


def same_work(first: Reference, second: Reference) -> bool:
    return str(first.year).strip() == str(second.year).strip() and authors_overlap(
        first.authors, second.authors
    )


def deduplicate(references: List[Reference]) -> Tuple[List[Reference], Dict[str, str]]:
    """Return (unique references, map of every reference id -> canonical id)."""
    unique: List[Reference] = []
    canonical: Dict[str, str] = {}
    for ref in references:
        if ref.id in canonical:
            continue
        existing = next((u for u in unique if same_work(u, ref)), None)
        if existing is None:
            unique.append(ref)
            canonical[ref.id] = ref.id
        else:
            canonical[ref.id] = existing.id
    return unique, canonical


def format_apa(reference: Reference) -> str:
    """``Authors (Year). Title. *Journal*. https://doi.org/DOI``"""
    authors = ", ".join(a for a in reference.authors if a) or "Unknown"
    year = reference.year or "n.d."
    journal_part = f" *{reference.journal}*." if reference.journal else ""
    doi_part = f" https://doi.org/{reference.doi}" if reference.doi else ""
    return f"{authors} ({year}). {reference.title}.{journal_part}{doi_part}"


def render_bibliography(references: List[Reference]) -> str:
    """Plain-text body of the References pseudo-section."""
    return "\n\n".join(format_apa(r) for r in references)


# ── Format helpers ───────────────────────────────────────────────────

_LATEX_SPECIALS = {
    "\\": r"\textbackslash{}",
    "&": r"\&",
    "%": r"\%",
    "$": r"\$",
    "#": r"\#",
    "_": r"\_",
    "{": r"\{",
    "}": r"\}",
    "~": r"\textasciitilde{}",
    "^": r"\textasciicircum{}",
}

_LATEX_TAGS = {
    "strong": (r"\textbf{", "}"),
    "b": (r"\textbf{", "}"),
    "em": (r"\emph{", "}"),
    "i": (r"\emph{", "}"),
    "h2": ("\n\\paragraph{", "}\n"),
    "h3": ("\n\\paragraph{", "}\n"),
    "h4": ("\n\\paragraph{", "}\n"),
    "p": ("", "\n\n"),
}

_LATEX_HEADINGS = {1: "section", 2: "subsection", 3: "subsubsection"}

_TAG_SPLIT = re.compile(r"(<[^>]+>)")
_TAG_NAME = re.compile(r"^<\s*(/?)\s*([a-zA-Z0-9]+)")
_SENTINEL = re.compile(r"\x00(\d+)\x00")
_APA_JOURNAL = re.compile(r"\*([^*]+)\*")


def escape_latex(text: str) -> str:
    return "".join(_LATEX_SPECIALS.get(ch, ch) for ch in text)


def html_to_latex(text: str) -> str:
    """Convert writer markup to LaTeX; text is unescaped then re-escaped."""
    out: List[str] = []
    for piece in _TAG_SPLIT.split(text):
        if not piece:
            continue
        tag = _TAG_NAME.match(piece)
        if piece.startswith("<") and tag:
            closing, name = tag.group(1), tag.group(2).lower()
            open_cmd, close_cmd = _LATEX_TAGS.get(name, ("", ""))
            out.append(close_cmd if closing else open_cmd)
        else:
            out.append(escape_latex(html.unescape(piece)))
    return re.sub(r"\n{3,}", "\n\n", "".join(out)).strip()


def _apa_html(reference: Reference) -> str:
    return _APA_JOURNAL.sub(r"<em>\1</em>", html.escape(format_apa(reference)))


# ── Cross-references ─────────────────────────────────────────────────

def _match_reference(fragment: str, year: str, references: List[Reference]) -> Optional[Reference]:
    for ref in references:
        if citation_matches(fragment, year, ref):
            return ref
    return None


def link_citations(
    text: str,
    references: List[Reference],
    canonical: Dict[str, str],
    fmt: DocumentFormat,
    stash: Optional[List[str]] = None,
) -> str:
    """
    Rewrite each citation parenthetical whose parts match ``references``.

    For LaTeX the rewritten markers are parked in ``stash`` and replaced by
    ``\\x00N\\x00`` sentinels, so the caller can escape the surrounding text
    without touching the ``\\cite`` commands.
    """
    def render(match: re.Match, parts: List[Tuple[str, str]]) -> str:
        resolved = []
        for fragment, year in parts:
            ref = _match_reference(fragment, year, references)
            resolved.append((fragment, year, canonical.get(ref.id, ref.id) if ref else None))
        if not any(ref_id for _, _, ref_id in resolved):
            return match.group(0)

        if fmt == DocumentFormat.HTML:
            if len(resolved) == 1:
                return f'<a href="#ref-{resolved[0][2]}">{match.group(0)}</a>'
            pieces = [
                f'<a href="#ref-{ref_id}">{frag}, {year}</a>' if ref_id else f"{frag}, {year}"
                for frag, year, ref_id in resolved
            ]
            return "(" + "; ".join(pieces) + ")"

        if all(ref_id for _, _, ref_id in resolved):
            ids = list(dict.fromkeys(ref_id for _, _, ref_id in resolved))
            latex = r"\cite{" + ",".join(ids) + "}"
        else:
            pieces = [
                r"\cite{" + ref_id + "}" if ref_id else escape_latex(f"{frag}, {year}")
                for frag, year, ref_id in resolved
            ]
            latex = "(" + "; ".join(pieces) + ")"
        if stash is None:
            return latex
        stash.append(latex)
        return f"\x00{len(stash) - 1}\x00"

    out: List[str] = []
    last = 0
    for match, parts in iter_citation_groups(text):
        out.append(text[last:match.start()])
        out.append(render(match, parts))
        last = match.end()
    out.append(text[last:])
    return "".join(out)


# ── Assembly ─────────────────────────────────────────────────────────

def _node_content(node: SectionNode, contents: Optional[Dict[str, str]]) -> Optional[str]:
    if contents is not None and node.id in contents:
        return contents[node.id]
    return node.content


def _render_latex_node(node: SectionNode, body: Optional[str], refs, canonical) -> List[str]:
    command = _LATEX_HEADINGS.get(node.level, "paragraph")
    lines = [f"\\{command}{{{escape_latex(node.title)}}}"]
    if body:
        stash: List[str] = []
        linked = link_citations(body, refs, canonical, DocumentFormat.LATEX, stash)
        converted = html_to_latex(linked)
        lines.append(_SENTINEL.sub(lambda m: stash[int(m.group(1))], converted))
    return lines


def _render_html_node(node: SectionNode, body: Optional[str], refs, canonical) -> List[str]:
    level = min(node.level + 1, 6)
    lines = [f'<h{level} id="section-{node.id}">{html.escape(node.title)}</h{level}>']
    if body:
        lines.append(link_citations(body, refs, canonical, DocumentFormat.HTML))
    return lines


def _latex_document(title: str, body: List[str]) -> str:
    return "\n".join([
        r"\documentclass[12pt]{article}",
        r"\usepackage[utf8]{inputenc}",
        r"\usepackage[hidelinks]{hyperref}",
        f"\\title{{{escape_latex(title)}}}",
        r"\date{\today}",
        "",
        r"\begin{document}",
        r"\maketitle",
        "",
        "\n\n".join(body),
        "",
        r"\bibliographystyle{apalike}",
        r"\bibliography{references}",
        r"\end{document}",
        "",
    ])


def _html_document(title: str, body: List[str], references: List[Reference]) -> str:
    items = "\n".join(
        f'<li id="ref-{ref.id}">{_apa_html(ref)}</li>' for ref in references
    )
    return "\n".join([
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '<meta charset="utf-8">',
        f"<title>{html.escape(title)}</title>",
        "</head>",
        "<body>",
        f"<h1>{html.escape(title)}</h1>",
        "\n".join(body),
        "<h2 id=\"references\">References</h2>",
        f'<ol class="references">\n{items}\n</ol>',
        "</body>",
        "</html>",
        "",
    ])


def assemble(
    tree: OutlineTree,
    contents: Optional[Dict[str, str]] = None,
    fmt: DocumentFormat = DocumentFormat.LATEX,
    title: str = "Research Report",
) -> AssembledDocument:
    """
    Assemble the document for ``tree``.

    ``contents`` optionally maps node id -> prose and overrides whatever is
    stored on the nodes. Headings are emitted for every node that has prose
    itself or somewhere below it.
    """
    nodes = list(tree.walk())
    bodies = {n.id: _node_content(n, contents) for n in nodes}

    collected: List[Reference] = []
    for node in nodes:
        if bodies[node.id]:
            collected.extend(node.references)
    unique, canonical = deduplicate(collected)

    has_prose: Dict[str, bool] = {}
    for node in reversed(nodes):
        has_prose[node.id] = bool(bodies[node.id]) or any(
            has_prose.get(c, False) for c in node.children
        )

    render: Callable = _render_latex_node if fmt == DocumentFormat.LATEX else _render_html_node
    body: List[str] = []
    for node in nodes:
        if not has_prose[node.id]:
            continue
        body.extend(render(node, bodies[node.id], node.references, canonical))

    if fmt == DocumentFormat.LATEX:
        document = _latex_document(title, body)
    else:
        document = _html_document(title, body, unique)

    logger.info(
        "Assembled %s document: %d sections, %d unique references (from %d)",
        fmt.value, sum(1 for n in nodes if bodies[n.id]), len(unique), len(collected),
    )
    return AssembledDocument(
        document=document,
        bibliography_entries=[format_apa(r) for r in unique],
        references=unique,
    )
