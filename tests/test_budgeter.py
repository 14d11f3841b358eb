# =============================================================================
# Unit Tests — Context Budgeter
# =============================================================================
#
# Character budgets for LLM context and conversation transcripts.
# =============================================================================

from __future__ import annotations

from app.models.domain import Message, Role
from app.services.budgeter import (
    FORMAT_OVERHEAD,
    TRUNCATION_MARKER,
    ContextBlock,
    ContextBudgeter,
)


# ---------------------------------------------------------------------------
# Test: Block Assembly
# ---------------------------------------------------------------------------


class TestBuild:
    """Tests for bounded context assembly."""

    def test_blocks_that_fit_are_kept_whole(self):
        blocks = [ContextBlock("a.pdf", "売上高は増加"), ContextBlock("b.pdf", "配当は維持")]
        result = ContextBudgeter().build(blocks, max_chars=1_000)
        assert result == "[a.pdf]\n売上高は増加\n\n[b.pdf]\n配当は維持\n\n"

    def test_oversized_document_is_truncated(self):
        blocks = [ContextBlock("annual_report.pdf", "あ" * 60_000)]
        result = ContextBudgeter().build(blocks, max_chars=50_000)
        assert len(result) <= 50_000 + FORMAT_OVERHEAD
        assert result.startswith("[annual_report.pdf]\n")
        assert result.endswith(TRUNCATION_MARKER + "\n\n")

    def test_partial_block_after_whole_ones(self):
        blocks = [
            ContextBlock("a.pdf", "い" * 300),
            ContextBlock("b.pdf", "う" * 1_000),
            ContextBlock("c.pdf", "え" * 10),
        ]
        result = ContextBudgeter().build(blocks, max_chars=800)
        assert "[a.pdf]\n" + "い" * 300 in result
        assert "[b.pdf]\n" in result
        assert TRUNCATION_MARKER in result
        # Nothing is added after the truncated block.
        assert "[c.pdf]" not in result
        assert len(result) <= 800 + FORMAT_OVERHEAD

    def test_small_remainder_is_not_used(self):
        blocks = [ContextBlock("a.pdf", "い" * 440), ContextBlock("b.pdf", "う" * 1_000)]
        # First block renders to 450 chars, leaving 50 (< min_useful_chars).
        result = ContextBudgeter(min_useful_chars=100).build(blocks, max_chars=500)
        assert "[b.pdf]" not in result
        assert TRUNCATION_MARKER not in result

    def test_long_label_stays_within_overhead(self):
        blocks = [ContextBlock("x" * 500, "お" * 5_000)]
        result = ContextBudgeter().build(blocks, max_chars=1_000)
        assert len(result) <= 1_000 + FORMAT_OVERHEAD

    def test_long_label_header_is_closed(self):
        blocks = [ContextBlock("x" * 500, "お" * 5_000)]
        result = ContextBudgeter().build(blocks, max_chars=1_000)
        header, _, body = result.partition("\n")
        assert header.startswith("[x")
        assert header.endswith("]")
        assert len(header) + 1 == FORMAT_OVERHEAD // 2
        assert body.startswith("お")

    def test_empty_blocks(self):
        assert ContextBudgeter().build([], max_chars=1_000) == ""


# ---------------------------------------------------------------------------
# Test: Transcript
# ---------------------------------------------------------------------------


class TestBuildTranscript:
    """Tests for the conversation transcript budget."""

    def test_labels_and_order(self):
        messages = [
            Message(role=Role.QUESTIONER, content="配当方針は？"),
            Message(role=Role.RESPONDER, content="安定配当を継続します。"),
        ]
        result = ContextBudgeter().build_transcript(messages, max_chars=1_000)
        assert result == "株主: 配当方針は？\n会社側: 安定配当を継続します。"

    def test_oldest_messages_dropped_first(self):
        messages = [
            Message(role=Role.QUESTIONER, content="古" * 50),
            Message(role=Role.RESPONDER, content="中" * 50),
            Message(role=Role.QUESTIONER, content="新" * 50),
        ]
        result = ContextBudgeter().build_transcript(messages, max_chars=120)
        assert "古" not in result
        assert "新" * 50 in result
        assert len(result) <= 120

    def test_empty_history(self):
        assert ContextBudgeter().build_transcript([], max_chars=1_000) == ""
