"""
Outline Builder -- turns LLM outline text (or nothing) into an OutlineTree.

Two entry points:
  - build_template_outline(): the fixed report skeleton.
  - build_outline_from_text(): scan ``#`` / ``##`` heading lines.

Also holds the flat "simple outline" mode used by the canvas, where the
model's answer is split on blank lines into editable sections.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

from src.ai.outline_tree import OutlineTree
from src.ai.types import Paper, Reference, new_token

logger = logging.getLogger(__name__)


# ── Fixed templates ──────────────────────────────────────────────────

TEMPLATE_SECTIONS: List[Tuple[str, List[str]]] = [
    ("Abstract", ["Background", "Objectives", "Key Findings"]),
    ("Introduction", ["Background and Context", "Problem Statement", "Research Questions"]),
    ("Literature Review", [
        "Theoretical Framework",
        "Prior Empirical Work",
        "Debates and Tensions",
        "Research Gap",
    ]),
    ("Methodology", ["Research Design", "Data Sources", "Analytical Approach"]),
    ("Results", ["Principal Findings", "Secondary Findings"]),
    ("Discussion", ["Interpretation", "Implications", "Limitations"]),
    ("Conclusion", ["Summary of Contributions", "Future Research"]),
    ("References", ["Primary Sources", "Secondary Sources"]),
]

DEFAULT_SECTIONS: List[str] = ["Introduction", "Methods", "Results", "Discussion"]

_SECTION_LINE = re.compile(r"^#\s+(.+?)\s*#*\s*$")
_SUBSECTION_LINE = re.compile(r"^##\s+(.+?)\s*#*\s*$")


def build_template_outline() -> OutlineTree:
    """The fixed report skeleton used when no structure is supplied."""
    tree = OutlineTree()
    for title, subsections in TEMPLATE_SECTIONS:
        section = tree.add_child(tree.root_id, title)
        for sub in subsections:
            tree.add_child(section.id, sub)
    return tree


def build_default_outline() -> OutlineTree:
    tree = OutlineTree()
    for title in DEFAULT_SECTIONS:
        tree.add_child(tree.root_id, title)
    return tree


def build_outline_from_text(text: Optional[str]) -> OutlineTree:
    """
    Build a tree from ``# Section`` / ``## Subsection`` lines.

    A ``##`` line before any ``#`` line is dropped. If no ``#`` line is
    found at all, the four-section default is returned instead.
    """
    tree = OutlineTree()
    current_section: Optional[str] = None
    dropped = 0

    for raw_line in (text or "").splitlines():
        line = raw_line.strip()
        sub_match = _SUBSECTION_LINE.match(line)
        if sub_match:
            if current_section is None:
                dropped += 1
                continue
            tree.add_child(current_section, sub_match.group(1))
            continue

        section_match = _SECTION_LINE.match(line)
        if section_match:
            current_section = tree.add_child(tree.root_id, section_match.group(1)).id

    if dropped:
        logger.debug("Dropped %d subsection lines with no parent section", dropped)

    if current_section is None:
        if dropped:
            # Orphan subsections only: nothing to attach them to.
            return tree
        logger.info("No section headings in outline text, using default outline")
        return build_default_outline()
    return tree


def build_outline_prompt(corpus_text: str, custom_prompt: Optional[str] = None) -> str:
    """The outline request sent to the model for the generated mode."""
    lead = custom_prompt or (
        "Based on the following research papers, generate a detailed outline "
        "for an academic paper:"
    )
    prompt = f"{lead}\n{corpus_text}\n"
    if not custom_prompt:
        prompt += (
            "\nGenerate an outline with main sections and subsections. "
            "Write each main section on its own line starting with '# ' and "
            "each subsection on its own line starting with '## ', directly "
            "below the section it belongs to. For each section, include "
            "relevant references from the provided papers."
        )
    return prompt


# ── Simple outline mode ──────────────────────────────────────────────

@dataclass(frozen=True)
class OutlineSection:
    """One block of the flat, editable outline."""
    id: str
    title: str
    content: str
    references: List[Reference] = field(default_factory=list)


def _paper_is_mentioned(paper: Paper, content: str) -> bool:
    lowered = content.lower()
    if paper.title and paper.title.lower() in lowered:
        return True
    return any(author and author.lower() in lowered for author in paper.authors)


def parse_outline_sections(response: str, papers: List[Paper]) -> List[OutlineSection]:
    """Split a model answer on blank lines into titled sections."""
    sections: List[OutlineSection] = []
    for block in (response or "").split("\n\n"):
        if not block.strip():
            continue
        lines = block.strip("\n").split("\n")
        title = re.sub(r"^#+\s*", "", lines[0]).strip()
        content = "\n".join(lines[1:])
        references = [
            Reference.from_paper(p)
            for p in papers
            if p.title and p.authors and _paper_is_mentioned(p, content)
        ]
        sections.append(
            OutlineSection(id=new_token(), title=title, content=content, references=references)
        )
    return sections


def edit_outline_section(
    sections: List[OutlineSection],
    section_id: str,
    content: str,
) -> List[OutlineSection]:
    """Return a new list with one section's content replaced."""
    return [replace(s, content=content) if s.id == section_id else s for s in sections]
