"""
Exceptions raised by the generation pipeline.
"""


class CompletionError(Exception):
    """The LLM transport failed or returned no usable text."""

    def __init__(self, message: str, provider: str = ""):
        super().__init__(message)
        self.provider = provider


class ReportGenerationError(Exception):
    """A job-level failure outside the per-section scope."""
