"""
Pytest fixtures for Research Canvas tests.
"""

from typing import Dict, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.ai.types import Paper
from src.kernel.models import Base


class FakeCompletionClient:
    """
    CompletionClient double.

    Answers come from ``responses`` in order; once they run out the last one
    repeats. An Exception instance in the list is raised instead of returned.
    Every prompt is recorded in ``prompts``.
    """

    def __init__(self, responses: Optional[List] = None):
        self.responses = list(responses or ["In summary, nothing to add (Smith, 2020)."])
        self.prompts: List[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        index = min(len(self.prompts) - 1, len(self.responses) - 1)
        answer = self.responses[index]
        if isinstance(answer, Exception):
            raise answer
        return answer


class FakePaperSource:
    """PaperSource double keyed by search / batch id."""

    def __init__(
        self,
        searches: Optional[Dict[str, List[Paper]]] = None,
        batches: Optional[Dict[str, List[Paper]]] = None,
    ):
        self.searches = searches or {}
        self.batches = batches or {}
        self.calls: List[str] = []

    async def papers_for_search(self, search_id: str) -> List[Paper]:
        self.calls.append(f"search:{search_id}")
        return self.searches.get(search_id, [])

    async def papers_for_batch(self, batch_id: str) -> List[Paper]:
        self.calls.append(f"pdf_batch:{batch_id}")
        return self.batches.get(batch_id, [])


@pytest.fixture
def smith_paper() -> Paper:
    return Paper(
        id="p-1",
        title="Deep Learning for Cell Segmentation",
        authors=["Smith, J.", "Jones, K."],
        year="2020",
        abstract="We segment cells with convolutional networks.",
        doi="10.1234/cells.2020",
        journal="Nature Methods",
    )


@pytest.fixture
def lee_paper() -> Paper:
    return Paper(
        id="p-2",
        title="Microscopy at Scale",
        authors=["Lee, A."],
        year="2021",
        major_findings="Throughput grows linearly with the number of stages.",
    )


@pytest.fixture
def sample_papers(smith_paper: Paper, lee_paper: Paper) -> List[Paper]:
    return [smith_paper, lee_paper]


@pytest.fixture
def fake_client():
    """Factory for scripted completion clients."""
    def _make(*responses) -> FakeCompletionClient:
        return FakeCompletionClient(list(responses) if responses else None)
    return _make


@pytest.fixture
def paper_source(sample_papers: List[Paper]) -> FakePaperSource:
    return FakePaperSource(searches={"s1": sample_papers})


@pytest.fixture
def source_factory():
    """Factory for paper sources with custom search / batch contents."""
    return FakePaperSource


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path):
    """Session factory over a throwaway SQLite file with the full schema."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()
