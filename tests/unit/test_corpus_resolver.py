"""Unit tests for corpus resolution and the SQL paper source."""

from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from src.ai.types import Paper
from src.engines.corpus.mentions import parse_mentions
from src.engines.corpus.paper_source import SqlPaperSource, paper_from_upload
from src.engines.corpus.resolver import CorpusResolver, serialize_corpus
from src.kernel.models import BatchPdf, PaperRecord, PdfBatch, PdfUpload, SearchRecord


class TestCorpusResolver:
    """Tests for CorpusResolver dispatch and fail-open behaviour."""

    @pytest.mark.asyncio
    async def test_resolves_in_mention_order(self, source_factory, smith_paper, lee_paper):
        source = source_factory(searches={"s1": [smith_paper]}, batches={"b1": [lee_paper]})
        resolver = CorpusResolver(source)

        corpus = await resolver.resolve(parse_mentions("@pdf_batch:b1 @search:s1"))

        assert [p.id for p in corpus] == ["p-2", "p-1"]
        assert source.calls == ["pdf_batch:b1", "search:s1"]

    @pytest.mark.asyncio
    async def test_no_cross_mention_deduplication(self, source_factory, smith_paper):
        source = source_factory(searches={"s1": [smith_paper], "s2": [smith_paper]})

        corpus = await CorpusResolver(source).resolve(parse_mentions("@search:s1 @search:s2"))

        assert len(corpus) == 2

    @pytest.mark.asyncio
    async def test_zotero_and_unknown_types_resolve_to_nothing(self, paper_source):
        corpus = await CorpusResolver(paper_source).resolve(
            parse_mentions("@zotero:lib1 @notes:7")
        )

        assert corpus == []
        assert paper_source.calls == []

    @pytest.mark.asyncio
    async def test_collaborator_failure_contributes_nothing(self, smith_paper):
        source = AsyncMock()
        source.papers_for_search.side_effect = RuntimeError("database is down")
        source.papers_for_batch.return_value = [smith_paper]

        corpus = await CorpusResolver(source).resolve(
            parse_mentions("@search:s1 @pdf_batch:b1")
        )

        assert corpus == [smith_paper]

    @pytest.mark.asyncio
    async def test_no_mentions(self, paper_source):
        assert await CorpusResolver(paper_source).resolve([]) == []


class TestSerializeCorpus:

    def test_missing_abstract(self, lee_paper):
        text = serialize_corpus([lee_paper])

        assert "Title: Microscopy at Scale" in text
        assert "Abstract: Not available" in text
        assert "Major Findings: Throughput grows" in text
        assert text.rstrip().endswith("---")

    def test_optional_fields(self, smith_paper):
        text = serialize_corpus([smith_paper])

        assert "Authors: Smith, J., Jones, K." in text
        assert "Journal: Nature Methods" in text
        assert "DOI: 10.1234/cells.2020" in text
        assert "Suggestions" not in text

    def test_empty(self):
        assert serialize_corpus([]) == ""


class TestPaperFromUpload:

    def test_defaults(self):
        upload = PdfUpload(id="u1", filename="scan.pdf")

        paper = paper_from_upload(upload)

        assert paper.title == "scan.pdf"
        assert paper.authors == ["Unknown"]
        assert paper.year == str(datetime.now().year)
        assert paper.abstract == ""

    def test_authors_split_on_commas(self):
        upload = PdfUpload(
            id="u2",
            filename="a.pdf",
            title="Imaging",
            authors="Ada Lovelace, Alan Turing ,",
            year="1950",
            background="Machines and minds.",
        )

        paper = paper_from_upload(upload)

        assert paper.authors == ["Ada Lovelace", "Alan Turing"]
        assert paper.year == "1950"
        assert paper.abstract == "Machines and minds."


class TestSqlPaperSource:

    @pytest.mark.asyncio
    async def test_papers_for_search(self, session_factory):
        async with session_factory() as session:
            session.add(SearchRecord(id="s1", query="cells"))
            session.add(PaperRecord(
                id="r1",
                search_id="s1",
                title="Cell Atlas",
                authors=["Smith, J."],
                year="2020",
            ))
            await session.commit()

        papers = await SqlPaperSource(session_factory).papers_for_search("s1")

        assert papers == [Paper(id="r1", title="Cell Atlas", authors=["Smith, J."], year="2020")]

    @pytest.mark.asyncio
    async def test_papers_for_batch(self, session_factory):
        async with session_factory() as session:
            session.add(PdfBatch(id="b1", name="Reading list"))
            session.add(PdfUpload(id="u1", filename="one.pdf", title="One", authors="A, B"))
            session.add(PdfUpload(id="u2", filename="two.pdf"))
            await session.commit()
            session.add(BatchPdf(batch_id="b1", pdf_id="u1"))
            await session.commit()

        papers = await SqlPaperSource(session_factory).papers_for_batch("b1")

        assert [p.title for p in papers] == ["One"]
        assert papers[0].authors == ["A", "B"]

    @pytest.mark.asyncio
    async def test_unknown_ids(self, session_factory):
        source = SqlPaperSource(session_factory)

        assert await source.papers_for_search("missing") == []
        assert await source.papers_for_batch("missing") == []

    @pytest.mark.asyncio
    async def test_database_error_is_swallowed(self):
        def broken_factory():
            raise RuntimeError("no connection")

        source = SqlPaperSource(broken_factory)

        assert await source.papers_for_search("s1") == []
        assert await source.papers_for_batch("b1") == []
