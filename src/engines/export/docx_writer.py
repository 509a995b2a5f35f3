"""
DOCX export via python-docx.
"""

import html
import re
from datetime import datetime
from io import BytesIO

from docx import Document

from src.ai.outline_tree import OutlineTree
from src.engines.export.assembler import AssembledDocument

_BLOCK = re.compile(r"<(h[2-4]|p)>(.*?)</\1>", re.DOTALL)
_INLINE = re.compile(r"(<strong>.*?</strong>|<em>.*?</em>)", re.DOTALL)
_TAG = re.compile(r"<[^>]+>")


def _plain(fragment: str) -> str:
    return html.unescape(_TAG.sub("", fragment)).strip()


def _add_rich_paragraph(doc, fragment: str) -> None:
    """Add a paragraph keeping <strong>/<em> as bold/italic runs."""
    paragraph = doc.add_paragraph()
    for piece in _INLINE.split(fragment):
        if not piece:
            continue
        run = paragraph.add_run(html.unescape(_TAG.sub("", piece)))
        if piece.startswith("<strong>"):
            run.bold = True
        elif piece.startswith("<em>"):
            run.italic = True


def _add_body(doc, body: str, level: int) -> None:
    blocks = list(_BLOCK.finditer(body))
    if not blocks:
        text = _plain(body)
        if text:
            doc.add_paragraph(text)
        return
    for match in blocks:
        tag, inner = match.group(1), match.group(2)
        if tag == "p":
            _add_rich_paragraph(doc, inner)
        else:
            doc.add_heading(_plain(inner), min(level + 1, 9))


def to_docx(title: str, tree: OutlineTree, assembled: AssembledDocument) -> bytes:
    """Build the .docx file for a finished report and return its bytes."""
    doc = Document()
    doc.add_heading(title, 0)
    doc.add_paragraph(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}")

    for node in tree.walk():
        if not node.content:
            continue
        doc.add_heading(node.title, min(node.level, 9))
        _add_body(doc, node.content, node.level)

    if assembled.bibliography_entries:
        doc.add_heading("References", 1)
        for entry in assembled.bibliography_entries:
            _add_rich_paragraph(doc, re.sub(r"\*([^*]+)\*", r"<em>\1</em>", html.escape(entry)))

    buffer = BytesIO()
    doc.save(buffer)
    return buffer.getvalue()
