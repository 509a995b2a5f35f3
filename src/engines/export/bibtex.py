"""
BibTeX export -- one @article entry per unique reference, keyed by its id.

The keys match the ``\\cite{...}`` commands the assembler writes, so the
.tex and .bib files compile together.
"""

from typing import List

from src.ai.types import Reference

_BIBTEX_SPECIALS = {
    "\\": r"\textbackslash{}",
    "&": r"\&",
    "%": r"\%",
    "$": r"\$",
    "#": r"\#",
    "_": r"\_",
    "{": r"\{",
    "}": r"\}",
}


def _escape(value: str) -> str:
    return "".join(_BIBTEX_SPECIALS.get(ch, ch) for ch in value)


def to_bibtex_entry(reference: Reference) -> str:
    fields = [
        ("title", _escape(reference.title)),
        ("author", _escape(" and ".join(a for a in reference.authors if a))),
        ("year", reference.year),
    ]
    if reference.journal:
        fields.append(("journal", _escape(reference.journal)))
    if reference.doi:
        # DOIs are used verbatim
        fields.append(("doi", reference.doi))

    body = ",\n".join(f"  {name:<9} = {{{value}}}" for name, value in fields)
    return f"@article{{{reference.id},\n{body}\n}}"


def to_bibtex(references: List[Reference]) -> str:
    """Render a .bib database; duplicate ids are written once."""
    seen = set()
    entries = []
    for ref in references:
        if ref.id in seen:
            continue
        seen.add(ref.id)
        entries.append(to_bibtex_entry(ref))
    return "\n\n".join(entries) + ("\n" if entries else "")
