"""
Paper storage backing the @search and @pdf_batch mentions.

A search stores its result papers directly; a PDF batch groups uploaded
PDFs through the batch_pdfs link table.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, JSON, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from src.kernel.models.base import Base, generate_str_id


class SearchRecord(Base):
    """A saved paper search."""

    __tablename__ = "searches"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_str_id)
    query: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<SearchRecord {self.query[:50]}>"


class PaperRecord(Base):
    """A paper returned by a saved search."""

    __tablename__ = "papers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_str_id)
    search_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("searches.id"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(1000), nullable=False)
    authors: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    year: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    abstract: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    doi: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    journal: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    research_question: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    major_findings: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    suggestions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<PaperRecord {self.title[:50]}>"


class PdfBatch(Base):
    """A named group of uploaded PDFs."""

    __tablename__ = "pdf_batches"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_str_id)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class PdfUpload(Base):
    """An uploaded PDF with its extracted summary fields.

    ``authors`` is kept as the raw comma-separated string extracted from the
    PDF; it is split when the upload is turned into a paper.
    """

    __tablename__ = "pdf_uploads"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_str_id)
    filename: Mapped[str] = mapped_column(String(500), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    authors: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    year: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    background: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    doi: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    research_question: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    major_findings: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    suggestions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    full_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class BatchPdf(Base):
    """Link between a PDF batch and an uploaded PDF."""

    __tablename__ = "batch_pdfs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_str_id)
    batch_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("pdf_batches.id"),
        nullable=False,
        index=True,
    )
    pdf_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("pdf_uploads.id"),
        nullable=False,
    )
