"""
Citation reconciliation for one generated section.

Pairs the ``(Author, Year)`` markers in the prose with the references the
model listed. A cited pair with no listed reference gets a placeholder so
the bibliography never silently loses a citation.
"""

import logging
from typing import List

from src.ai.types import Reference
from src.engines.citation.parser import (
    citation_matches,
    find_in_text_citations,
    parse_reference_lines,
)

logger = logging.getLogger(__name__)


def reconcile(content: str, references_block: str) -> List[Reference]:
    """
    Return the references for a section.

    Matched references come first in the order their citations appear,
    followed by one placeholder per unmatched ``(fragment, year)`` pair.
    Listed references that the prose never cites are not returned.
    """
    parsed = parse_reference_lines(references_block)
    matched: List[Reference] = []
    placeholders: List[Reference] = []

    for citation in find_in_text_citations(content):
        hits = [r for r in parsed if citation_matches(citation.fragment, citation.year, r)]
        if hits:
            for ref in hits:
                if not any(ref is m for m in matched):
                    matched.append(ref)
            continue
        placeholders.append(Reference.placeholder(citation.fragment, citation.year))

    if placeholders:
        logger.info(
            "Reconciled %d references, %d citations had no listed source",
            len(matched), len(placeholders),
        )
    return matched + placeholders
