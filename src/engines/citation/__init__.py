"""
Citation Engine - reference-line parsing and in-text citation reconciliation.
"""

from src.engines.citation.parser import (
    InTextCitation,
    citation_matches,
    find_in_text_citations,
    parse_reference_lines,
)
from src.engines.citation.reconciler import reconcile

__all__ = [
    "InTextCitation",
    "citation_matches",
    "find_in_text_citations",
    "parse_reference_lines",
    "reconcile",
]
