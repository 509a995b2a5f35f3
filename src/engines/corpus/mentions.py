"""
@mention parsing.

Users reference prior searches and PDF batches inline, e.g.
``"Compare @search:3f2a-11 with @pdf_batch:b7"``.  Parsing is permissive:
any word before the colon is accepted as a type, and unknown types simply
resolve to no papers downstream.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from src.ai.types import MentionType

_MENTION_PATTERN = re.compile(r"@(\w+):([a-zA-Z0-9-]+)")


@dataclass(frozen=True)
class Mention:
    """One ``@type:id`` token found in user text."""
    id: str
    display: str
    type: str

    @property
    def known_type(self) -> Optional[MentionType]:
        try:
            return MentionType(self.type)
        except ValueError:
            return None


def parse_mentions(text: str) -> List[Mention]:
    """Return every ``@type:id`` mention in ``text``, in order."""
    if not text:
        return []
    return [
        Mention(id=m.group(2), display=m.group(0), type=m.group(1))
        for m in _MENTION_PATTERN.finditer(text)
    ]


def strip_mentions(text: str) -> str:
    """``text`` with every mention token removed and whitespace collapsed."""
    return " ".join(_MENTION_PATTERN.sub(" ", text or "").split())
