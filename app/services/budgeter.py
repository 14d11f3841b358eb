# =============================================================================
# Context Budgeter — Character-Bounded Context Assembly
# =============================================================================
#
# Concatenates labelled text blocks into one context string for the LLM
# under a hard character budget.
#
# ALGORITHM:
#   1. Render each block as "[label]\ntext\n\n", in the given order.
#   2. Append whole blocks while the running total stays within max_chars.
#   3. On the first block that would overflow: if more than
#      min_useful_chars of budget remain, append a truncated prefix of its
#      text followed by TRUNCATION_MARKER, then stop. Otherwise stop.
#
# The output never exceeds max_chars + FORMAT_OVERHEAD. The overhead covers
# the block header and the truncation marker of the partial block.
#
# DESIGN DECISION: Characters, not tokens.
# The budgets guard prompt size and the 600-character answer cap is also in
# characters; Japanese text has no stable chars-per-token ratio anyway.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from app.models.domain import Message

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "…(以下省略)"
FORMAT_OVERHEAD = 150
DEFAULT_MIN_USEFUL_CHARS = 100


@dataclass(frozen=True)
class ContextBlock:
    """One labelled piece of context (a document, a snippet...)."""

    label: str
    text: str


def _render(block: ContextBlock) -> str:
    return f"[{block.label}]\n{block.text}\n\n"


class ContextBudgeter:
    """Builds bounded context strings. Stateless and deterministic."""

    def __init__(self, min_useful_chars: int = DEFAULT_MIN_USEFUL_CHARS) -> None:
        self.min_useful_chars = min_useful_chars

    def build(self, blocks: Sequence[ContextBlock], max_chars: int) -> str:
        """
        Concatenate blocks under `max_chars`.

        Keeps as many whole blocks as fit, then at most one truncated block.
        """
        parts: list[str] = []
        used = 0

        for index, block in enumerate(blocks):
            rendered = _render(block)
            if used + len(rendered) <= max_chars:
                parts.append(rendered)
                used += len(rendered)
                continue

            remaining = max_chars - used
            if remaining > self.min_useful_chars:
                # Long labels are clamped to keep the header within the overhead.
                header = f"[{block.label[: FORMAT_OVERHEAD // 2 - 3]}]\n"
                fit = max(remaining - len(header), 0)
                parts.append(f"{header}{block.text[:fit]}{TRUNCATION_MARKER}\n\n")

            logger.debug(
                "Context budget reached at block %d/%d (%d/%d chars used)",
                index + 1, len(blocks), used, max_chars,
            )
            break

        return "".join(parts)

    def build_transcript(
        self,
        messages: Sequence[Message],
        max_chars: int,
    ) -> str:
        """
        Render the most recent messages as "label: content" lines.

        Walks backwards from the newest message and stops before the budget
        is exceeded, so older turns are the ones dropped.
        """
        lines: list[str] = []
        used = 0
        for message in reversed(messages):
            line = f"{message.role.label}: {message.content}"
            cost = len(line) + 1
            if used + cost > max_chars:
                break
            lines.append(line)
            used += cost
        lines.reverse()
        return "\n".join(lines)
