"""
Research Canvas -- interactive outline building and lazy node expansion.

A canvas stores an outline tree built from the papers a query mentions.
Nodes are written one at a time when the user opens them; an expanded node
keeps its content, so opening it again returns the cached text without
another model call.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.ai.errors import CompletionError
from src.ai.llm_client import CompletionClient
from src.ai.outline_builder import (
    OutlineSection,
    build_outline_from_text,
    build_outline_prompt,
    build_template_outline,
    parse_outline_sections,
)
from src.ai.outline_tree import OutlineTree, SectionNode
from src.ai.section_writer import SectionWriter
from src.ai.types import Paper
from src.engines.citation.reconciler import reconcile
from src.engines.corpus.mentions import parse_mentions
from src.engines.corpus.resolver import CorpusResolver, serialize_corpus
from src.kernel.models.report import Canvas

logger = logging.getLogger(__name__)

NO_AI_MESSAGE = "No AI model available. Please configure one in AI Settings."


class CanvasError(ValueError):
    """A canvas request that cannot be served."""


class NoMentionsError(CanvasError):
    def __init__(self):
        super().__init__("Please @mention at least one search, PDF batch, or Zotero library")


class EmptyCorpusError(CanvasError):
    def __init__(self):
        super().__init__("No papers found for the mentioned items")


class CanvasNotFoundError(LookupError):
    """No canvas with the given id."""


class CanvasService:
    """
    Canvas operations for one request.

    ``client`` may be None when no model is configured; only the template
    outline and already-expanded nodes work without one.
    """

    def __init__(
        self,
        session: AsyncSession,
        resolver: CorpusResolver,
        client: Optional[CompletionClient] = None,
        settings=None,
    ):
        self.session = session
        self.resolver = resolver
        self.client = client
        self.settings = settings

    def _require_client(self) -> CompletionClient:
        if self.client is None:
            raise CompletionError(NO_AI_MESSAGE)
        return self.client

    async def _corpus_for(self, query: str) -> List[Paper]:
        mentions = parse_mentions(query)
        if not mentions:
            raise NoMentionsError()
        corpus = await self.resolver.resolve(mentions)
        if not corpus:
            raise EmptyCorpusError()
        return corpus

    async def create(
        self,
        query: str,
        custom_prompt: Optional[str] = None,
        mode: str = "generated",
        user_id: Optional[str] = None,
    ) -> Canvas:
        corpus = await self._corpus_for(query)

        if mode == "template":
            tree = build_template_outline()
        else:
            prompt = build_outline_prompt(serialize_corpus(corpus), custom_prompt)
            response = await self._require_client().complete(prompt)
            tree = build_outline_from_text(response)

        canvas = Canvas(
            user_id=user_id,
            search_query=query,
            custom_prompt=custom_prompt,
            structure=tree.to_snapshot(),
        )
        self.session.add(canvas)
        await self.session.commit()
        await self.session.refresh(canvas)
        logger.info("Created canvas %s with %d outline nodes", canvas.id, len(tree) - 1)
        return canvas

    async def get(self, canvas_id: uuid.UUID) -> Canvas:
        canvas = await self.session.get(Canvas, canvas_id)
        if canvas is None:
            raise CanvasNotFoundError(str(canvas_id))
        return canvas

    async def expand(self, canvas_id: uuid.UUID, node_id: str) -> SectionNode:
        """Write a node's content on first call; later calls return the cache."""
        canvas = await self.get(canvas_id)
        tree = OutlineTree.from_snapshot(canvas.structure)
        node = tree.get(node_id)
        if node.is_root:
            raise CanvasError("The root node cannot be expanded")
        if node.is_expanded:
            logger.debug("Node %s already expanded, reusing content", node_id)
            return node

        corpus = await self.resolver.resolve(parse_mentions(canvas.search_query))
        writer = SectionWriter(self._require_client(), self.settings)
        parent = tree.parent_of(node_id)
        draft = await writer.generate(
            node,
            corpus,
            parent_title=parent.title if parent is not None and not parent.is_root else None,
        )
        tree.set_content(node_id, draft.content, reconcile(draft.content, draft.references_block))

        # JSON columns only notice reassignment
        canvas.structure = tree.to_snapshot()
        await self.session.commit()
        return tree.get(node_id)

    async def outline_sections(
        self,
        query: str,
        custom_prompt: Optional[str] = None,
    ) -> List[OutlineSection]:
        """Simple outline mode: one flat list of editable sections."""
        corpus = await self._corpus_for(query)
        prompt = build_outline_prompt(serialize_corpus(corpus), custom_prompt)
        response = await self._require_client().complete(prompt)
        return parse_outline_sections(response, corpus)
