"""
Corpus resolution: mentions in, one flat ordered list of papers out.

Known gaps:
  - ``zotero`` mentions parse but are never resolved here.
  - A paper present in two mentioned sets appears twice.
"""

import logging
from typing import List

from src.ai.types import MentionType, Paper
from src.engines.corpus.mentions import Mention
from src.engines.corpus.paper_source import PaperSource

logger = logging.getLogger(__name__)


class CorpusResolver:
    """Dispatch each mention to the matching paper-set collaborator."""

    def __init__(self, source: PaperSource):
        self.source = source

    async def resolve(self, mentions: List[Mention]) -> List[Paper]:
        corpus: List[Paper] = []
        for mention in mentions:
            corpus.extend(await self._resolve_one(mention))
        logger.info("Resolved %d mentions to %d papers", len(mentions), len(corpus))
        return corpus

    async def _resolve_one(self, mention: Mention) -> List[Paper]:
        kind = mention.known_type
        try:
            if kind == MentionType.SEARCH:
                return list(await self.source.papers_for_search(mention.id))
            if kind == MentionType.PDF_BATCH:
                return list(await self.source.papers_for_batch(mention.id))
        except Exception as exc:
            logger.warning("Resolution failed for %s: %s", mention.display, exc)
            return []

        if kind is None:
            logger.debug("Ignoring mention with unknown type: %s", mention.display)
        return []


def serialize_corpus(papers: List[Paper]) -> str:
    """Render the corpus as the paper block embedded in prompts."""
    blocks = []
    for paper in papers:
        lines = [
            f"Title: {paper.title}",
            f"Authors: {', '.join(paper.authors)}",
            f"Year: {paper.year}",
            f"Abstract: {paper.abstract or 'Not available'}",
        ]
        if paper.journal:
            lines.append(f"Journal: {paper.journal}")
        if paper.doi:
            lines.append(f"DOI: {paper.doi}")
        if paper.research_question:
            lines.append(f"Research Question: {paper.research_question}")
        if paper.major_findings:
            lines.append(f"Major Findings: {paper.major_findings}")
        if paper.suggestions:
            lines.append(f"Suggestions: {paper.suggestions}")
        lines.append("---")
        blocks.append("\n".join(lines))
    return "\n".join(blocks)
