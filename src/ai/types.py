"""
Shared pipeline types - breaks circular imports between the corpus,
citation, outline and export layers.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


PLACEHOLDER_TITLE = "Reference details not available"
PLACEHOLDER_JOURNAL = "Journal information not available"


def new_token() -> str:
    """Fresh unique id for nodes and references."""
    return uuid.uuid4().hex


class MentionType(str, Enum):
    """Kinds of paper sets a user can @mention."""
    SEARCH = "search"
    PDF_BATCH = "pdf_batch"
    ZOTERO = "zotero"


class JobStatus(str, Enum):
    """Lifecycle of a report generation job."""
    GENERATING = "generating"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.ERROR)


class SectionStatus(str, Enum):
    """Per-section progress states."""
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class Paper:
    """A resolved source paper. Never mutated by the pipeline."""
    id: str
    title: str
    authors: List[str]
    year: str
    abstract: Optional[str] = None
    doi: Optional[str] = None
    journal: Optional[str] = None
    research_question: Optional[str] = None
    major_findings: Optional[str] = None
    suggestions: Optional[str] = None


@dataclass
class Reference:
    """A bibliography entry attached to a section node."""
    title: str
    authors: List[str]
    year: str
    doi: Optional[str] = None
    journal: Optional[str] = None
    id: str = field(default_factory=new_token)

    @property
    def is_placeholder(self) -> bool:
        return self.title == PLACEHOLDER_TITLE

    @classmethod
    def from_paper(cls, paper: Paper) -> "Reference":
        return cls(
            title=paper.title,
            authors=list(paper.authors),
            year=str(paper.year),
            doi=paper.doi,
            journal=paper.journal,
        )

    @classmethod
    def placeholder(cls, author: str, year: str) -> "Reference":
        return cls(
            title=PLACEHOLDER_TITLE,
            authors=[author],
            year=year,
            journal=PLACEHOLDER_JOURNAL,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "authors": list(self.authors),
            "year": self.year,
            "doi": self.doi,
            "journal": self.journal,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Reference":
        return cls(
            id=str(data.get("id") or new_token()),
            title=str(data.get("title") or ""),
            authors=[str(a) for a in (data.get("authors") or [])],
            year=str(data.get("year") or ""),
            doi=data.get("doi") or None,
            journal=data.get("journal") or None,
        )
