"""
Export Engine - assembled reports as LaTeX, HTML, BibTeX and DOCX.
"""

from src.engines.export.assembler import (
    AssembledDocument,
    DocumentFormat,
    assemble,
    format_apa,
    render_bibliography,
)
from src.engines.export.bibtex import to_bibtex
from src.engines.export.docx_writer import to_docx

__all__ = [
    "AssembledDocument",
    "DocumentFormat",
    "assemble",
    "format_apa",
    "render_bibliography",
    "to_bibtex",
    "to_docx",
]
