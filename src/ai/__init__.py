"""
AI layer - LLM transport, outline building and section writing.

Submodules are imported directly (``from src.ai.section_writer import ...``);
only the leaf types are re-exported here to keep import order simple.
"""

from src.ai.errors import CompletionError, ReportGenerationError
from src.ai.llm_client import CompletionClient, LLMConfig, build_completion_client
from src.ai.types import JobStatus, MentionType, Paper, Reference, SectionStatus

__all__ = [
    "CompletionError",
    "ReportGenerationError",
    "CompletionClient",
    "LLMConfig",
    "build_completion_client",
    "JobStatus",
    "MentionType",
    "Paper",
    "Reference",
    "SectionStatus",
]
