"""
Section Writer -- generates the prose for one outline node.

Generation is length-extended rather than error-retried: when the model
flags ``[CONTINUE]`` (or stops without concluding), the writer asks again
with the tail of what it already has, up to a fixed number of attempts.
The bookkeeping for that loop lives in ContinuationState so the completion
rule can be tested on its own.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from src.ai.llm_client import CompletionClient
from src.ai.outline_tree import SectionNode
from src.ai.types import Paper
from src.engines.citation.parser import strip_tags
from src.engines.corpus.resolver import serialize_corpus

logger = logging.getLogger(__name__)

CONTINUE_FLAG = "[CONTINUE]"
REFERENCES_OPEN = "[REFERENCES]"
REFERENCES_CLOSE = "[/REFERENCES]"

CONCLUSION_SIGNALS = ("conclusion", "in summary", "thus,", "therefore,")

INCOMPLETE_NOTICE = (
    "<p><em>Note: this section may be incomplete. Generation stopped before "
    "the text reached a conclusion.</em></p>"
)

_REFERENCES_BLOCK = re.compile(
    r"\[REFERENCES\](.*?)(?:\[/REFERENCES\]|\Z)",
    re.DOTALL | re.IGNORECASE,
)
_CONTINUE_TOKEN = re.compile(r"\[CONTINUE\]", re.IGNORECASE)

_INSTRUCTIONS = f"""INSTRUCTIONS:
1. Write flowing academic prose, one paragraph per topic.
2. Cite sources in APA in-text style using exactly these patterns:
   - one author: (Smith, 2020)
   - two authors: (Smith & Jones, 2020)
   - three or more authors: (Smith et al., 2020)
3. Every paragraph must contain at least one citation from the papers above.
4. Finish the section with a concluding paragraph.
5. After the prose, list every source you cited between {REFERENCES_OPEN} and
   {REFERENCES_CLOSE}, one APA reference per line:
   Authors (Year). Title. *Journal*. https://doi.org/DOI
6. Only if you had to stop before finishing the section, write {CONTINUE_FLAG}
   as the very last line."""


# ── Markup ───────────────────────────────────────────────────────────

_HEADING = re.compile(r"^(#{1,3})\s+(.+?)\s*$")
_STRONG = re.compile(r"\*\*(.+?)\*\*", re.DOTALL)
_EMPHASIS = re.compile(r"(?<!\*)\*(?!\s)([^*\n]+?)\*(?!\*)")


def to_markup(text: str) -> str:
    """Convert the model's light markdown to presentation HTML."""
    blocks: List[str] = []
    for chunk in re.split(r"\n\s*\n", text.strip()):
        lines = [line for line in chunk.split("\n") if line.strip()]
        paragraph: List[str] = []
        for line in lines:
            heading = _HEADING.match(line.strip())
            if heading:
                if paragraph:
                    blocks.append(f"<p>{' '.join(paragraph)}</p>")
                    paragraph = []
                level = len(heading.group(1)) + 1
                blocks.append(f"<h{level}>{heading.group(2)}</h{level}>")
            else:
                paragraph.append(line.strip())
        if paragraph:
            blocks.append(f"<p>{' '.join(paragraph)}</p>")

    html = "\n".join(blocks)
    html = _STRONG.sub(r"<strong>\1</strong>", html)
    return _EMPHASIS.sub(r"<em>\1</em>", html)


def split_response(raw: str) -> Tuple[str, str, bool]:
    """Separate a raw answer into (body, references_block, continuation_flag)."""
    references = [m.group(1).strip() for m in _REFERENCES_BLOCK.finditer(raw)]
    body = _REFERENCES_BLOCK.sub("", raw)
    flagged = bool(_CONTINUE_TOKEN.search(body))
    body = _CONTINUE_TOKEN.sub("", body).strip()
    return body, "\n".join(r for r in references if r), flagged


# ── Continuation state machine ───────────────────────────────────────

@dataclass
class ContinuationState:
    """Attempt counter, accumulated text and the completion predicate."""
    max_attempts: int = 3
    attempt: int = 0
    buffer: str = ""
    references_blocks: List[str] = field(default_factory=list)
    needs_continuation: bool = False

    def record(self, raw: str) -> None:
        body, references, flagged = split_response(raw)
        markup = to_markup(body)
        if markup:
            self.buffer = f"{self.buffer}\n{markup}" if self.buffer else markup
        if references:
            self.references_blocks.append(references)
        self.needs_continuation = flagged
        self.attempt += 1

    @property
    def has_conclusion(self) -> bool:
        lowered = self.buffer.lower()
        return any(signal in lowered for signal in CONCLUSION_SIGNALS)

    @property
    def cap_reached(self) -> bool:
        return self.attempt >= self.max_attempts

    def is_complete(self) -> bool:
        if self.attempt == 0:
            return False
        if not self.needs_continuation and self.has_conclusion:
            return True
        return self.cap_reached

    def anchor(self, chars: int) -> str:
        """Tail of the prose written so far, without markup."""
        return strip_tags(self.buffer).rstrip()[-chars:]

    @property
    def references_block(self) -> str:
        return "\n".join(self.references_blocks)


@dataclass
class SectionDraft:
    """Result of writing one section."""
    content: str
    references_block: str
    needs_continuation: bool
    attempts: int
    complete: bool


class SectionWriter:
    """Writes one node's prose from the corpus through a CompletionClient."""

    def __init__(self, client: CompletionClient, settings=None):
        self.client = client
        self.max_attempts = getattr(settings, "section_max_attempts", 3)
        self.anchor_chars = getattr(settings, "continuation_anchor_chars", 150)

    def initial_prompt(self, title: str, corpus_text: str, parent_title: Optional[str] = None) -> str:
        if parent_title:
            heading = f"Write the subsection '{title}' of the section '{parent_title}'"
        else:
            heading = f"Write the section '{title}'"
        return (
            f"{heading} of an academic research report, based on the following "
            f"research papers.\n\nPAPERS:\n{corpus_text}\n\n{_INSTRUCTIONS}"
        )

    def continuation_prompt(self, title: str, corpus_text: str, anchor: str) -> str:
        return (
            f"You were writing the section '{title}' of an academic research "
            f"report and had to stop. The text so far ends with:\n\n"
            f"\"...{anchor}\"\n\n"
            f"Continue from exactly that point without repeating it.\n\n"
            f"PAPERS:\n{corpus_text}\n\n{_INSTRUCTIONS}"
        )

    async def generate(
        self,
        node: SectionNode,
        corpus: List[Paper],
        parent_title: Optional[str] = None,
    ) -> SectionDraft:
        corpus_text = serialize_corpus(corpus)
        state = ContinuationState(max_attempts=self.max_attempts)

        while not state.is_complete():
            if state.attempt == 0:
                prompt = self.initial_prompt(node.title, corpus_text, parent_title)
            else:
                logger.info(
                    "Continuing '%s' (attempt %d/%d)",
                    node.title, state.attempt + 1, state.max_attempts,
                )
                prompt = self.continuation_prompt(
                    node.title, corpus_text, state.anchor(self.anchor_chars)
                )
            state.record(await self.client.complete(prompt))

        content = state.buffer
        concluded = state.has_conclusion
        if not concluded:
            logger.warning(
                "Section '%s' hit %d attempts without a conclusion", node.title, state.attempt
            )
            content = f"{content}\n{INCOMPLETE_NOTICE}" if content else INCOMPLETE_NOTICE

        return SectionDraft(
            content=content,
            references_block=state.references_block,
            needs_continuation=state.needs_continuation,
            attempts=state.attempt,
            complete=concluded and not state.needs_continuation,
        )
