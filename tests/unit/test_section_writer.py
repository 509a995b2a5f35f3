"""Unit tests for section writing and the continuation loop."""

from types import SimpleNamespace

import pytest

from src.ai.errors import CompletionError
from src.ai.outline_tree import SectionNode
from src.ai.section_writer import (
    INCOMPLETE_NOTICE,
    ContinuationState,
    SectionWriter,
    split_response,
    to_markup,
)


@pytest.fixture
def node() -> SectionNode:
    return SectionNode(id="n1", title="Introduction", level=1)


class TestMarkup:

    def test_headings_shift_one_level(self):
        html = to_markup("# Top\n## Mid\n### Low")

        assert html == "<h2>Top</h2>\n<h3>Mid</h3>\n<h4>Low</h4>"

    def test_inline_emphasis(self):
        assert to_markup("A **bold** and *quiet* claim.") == (
            "<p>A <strong>bold</strong> and <em>quiet</em> claim.</p>"
        )

    def test_blank_lines_make_paragraphs(self):
        assert to_markup("First.\n\nSecond.") == "<p>First.</p>\n<p>Second.</p>"


class TestSplitResponse:

    def test_strips_flag_and_references(self):
        raw = (
            "Body text (Smith, 2020).\n"
            "[REFERENCES]\nSmith, J. (2020). Title. *Journal*.\n[/REFERENCES]\n"
            "[CONTINUE]"
        )

        body, refs, flagged = split_response(raw)

        assert body == "Body text (Smith, 2020)."
        assert refs == "Smith, J. (2020). Title. *Journal*."
        assert flagged is True

    def test_unterminated_references_block(self):
        body, refs, flagged = split_response("Text.\n[REFERENCES]\nLee, A. (2021). T.")

        assert body == "Text."
        assert refs == "Lee, A. (2021). T."
        assert flagged is False


class TestContinuationState:

    def test_not_complete_before_first_attempt(self):
        assert ContinuationState().is_complete() is False

    def test_complete_on_conclusion_signal(self):
        state = ContinuationState()
        state.record("Cells divide. Therefore, growth follows.")

        assert state.is_complete()
        assert state.attempt == 1

    def test_flag_overrides_conclusion(self):
        state = ContinuationState()
        state.record("In summary, more to say.\n[CONTINUE]")

        assert state.needs_continuation
        assert not state.is_complete()

    def test_cap_completes(self):
        state = ContinuationState(max_attempts=2)
        state.record("No ending yet.")
        state.record("Still going.")

        assert state.cap_reached
        assert state.is_complete()
        assert not state.has_conclusion

    def test_anchor_is_prose_tail_without_markup(self):
        state = ContinuationState()
        state.record("x" * 300)

        assert state.anchor(150) == "x" * 150

    def test_anchor_drops_tags(self):
        state = ContinuationState()
        state.record("Cells are *very* small")

        assert state.buffer.endswith("</p>")
        assert state.anchor(20) == "Cells are very small"


class TestSectionWriter:
    """Tests for SectionWriter.generate."""

    @pytest.mark.asyncio
    async def test_single_attempt_with_conclusion(self, fake_client, node, sample_papers):
        client = fake_client(
            "Cells matter (Smith, 2020). Therefore, we study them.\n"
            "[REFERENCES]\nSmith, J. (2020). Cells. *Nature*.\n[/REFERENCES]"
        )

        draft = await SectionWriter(client).generate(node, sample_papers)

        assert client.calls == 1
        assert draft.attempts == 1
        assert draft.complete is True
        assert draft.content.startswith("<p>Cells matter")
        assert INCOMPLETE_NOTICE not in draft.content
        assert draft.references_block == "Smith, J. (2020). Cells. *Nature*."

    @pytest.mark.asyncio
    async def test_always_continue_stops_at_cap(self, fake_client, node, sample_papers):
        client = fake_client("More detail on cells.\n[CONTINUE]")

        draft = await SectionWriter(client).generate(node, sample_papers)

        assert client.calls == 3
        assert draft.attempts == 3
        assert draft.needs_continuation is True
        assert draft.complete is False
        assert draft.content.endswith(INCOMPLETE_NOTICE)

    @pytest.mark.asyncio
    async def test_continuation_prompt_carries_anchor(self, fake_client, node, sample_papers):
        first = "A" * 200 + "\n[CONTINUE]"
        client = fake_client(first, "In summary, done.")

        draft = await SectionWriter(client).generate(node, sample_papers)

        assert client.calls == 2
        assert "\"..." + "A" * 150 + "\"" in client.prompts[1]
        assert "<p>" not in client.prompts[1]
        assert "Continue from exactly that point" in client.prompts[1]
        assert draft.complete is True

    @pytest.mark.asyncio
    async def test_references_from_all_attempts(self, fake_client, node, sample_papers):
        client = fake_client(
            "Part one.\n[REFERENCES]\nA, B. (2019). One.\n[/REFERENCES]\n[CONTINUE]",
            "Thus, part two.\n[REFERENCES]\nC, D. (2020). Two.\n[/REFERENCES]",
        )

        draft = await SectionWriter(client).generate(node, sample_papers)

        assert draft.references_block == "A, B. (2019). One.\nC, D. (2020). Two."

    @pytest.mark.asyncio
    async def test_settings_override_limits(self, fake_client, node, sample_papers):
        client = fake_client("Never ends.\n[CONTINUE]")
        settings = SimpleNamespace(section_max_attempts=5, continuation_anchor_chars=20)

        draft = await SectionWriter(client, settings).generate(node, sample_papers)

        assert client.calls == 5
        assert draft.attempts == 5

    @pytest.mark.asyncio
    async def test_prompt_mentions_parent_and_corpus(self, fake_client, node, sample_papers):
        client = fake_client("Therefore, fine.")

        await SectionWriter(client).generate(node, sample_papers, parent_title="Background")

        prompt = client.prompts[0]
        assert "'Introduction' of the section 'Background'" in prompt
        assert "Deep Learning for Cell Segmentation" in prompt
        assert "(Smith et al., 2020)" in prompt

    @pytest.mark.asyncio
    async def test_completion_error_propagates(self, fake_client, node, sample_papers):
        client = fake_client(CompletionError("rate limited", provider="openai"))

        with pytest.raises(CompletionError):
            await SectionWriter(client).generate(node, sample_papers)
