# =============================================================================
# Responder — Simulated Company Management
# =============================================================================
#
# Answers a shareholder question from the uploaded documents only.
#
# PIPELINE:
#   1. Score document sentences against the question (ContentScorer)
#   2. Build a bounded context (ContextBudgeter):
#        full mode     — every document, whole, under full_context_max_chars
#        snippets mode — scored sentences under snippet_context_max_chars
#      plus the trailing conversation under conversation_max_chars
#   3. Ask the LLM with a grounding-only system prompt
#   4. Fallback (no provider / provider failure / empty output):
#        no snippet at all → NO_GROUNDING_RESPONSE
#        otherwise         → topic template citing the top snippet
#   5. Cap the answer at answer_max_chars, preferring a sentence boundary
#
# DESIGN DECISION: Never answer confidently without grounding.
# When no sentence matches the question the fallback says so explicitly
# instead of producing a generic corporate reply.
# =============================================================================

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass

from app.config import Settings, settings as default_settings
from app.errors import GenerationDegraded
from app.models.domain import Document, Message, RelevanceSnippet
from app.services.budgeter import ContextBlock, ContextBudgeter
from app.services.llm import LLMProvider
from app.services.scorer import ContentScorer
from app.services.vocabulary import (
    DEFAULT_VOCABULARY,
    DIVIDEND,
    GENERIC,
    PERFORMANCE,
    RISK,
    STRATEGY,
    DomainVocabulary,
)

logger = logging.getLogger(__name__)

SENTENCE_TERMINATORS = "。．.!?！？"
ELLIPSIS = "…"

NO_GROUNDING_RESPONSE = (
    "申し訳ございませんが、アップロードされた資料から関連する情報を"
    "見つけることができませんでした。資料に記載のない事項につきましては、"
    "確認のうえ改めてご回答させていただきます。"
)


# ---------------------------------------------------------------------------
# Grounded Answer Templates
# ---------------------------------------------------------------------------
# Every template cites {source} and quotes {excerpt}; no template states a
# fact that does not come from the document.
# ---------------------------------------------------------------------------

ANSWER_TEMPLATES: dict[str, tuple[str, ...]] = {
    PERFORMANCE: (
        "業績につきましては、{source}に記載の通り、「{excerpt}」となっております。"
        "詳細は同資料をご参照ください。",
        "ご質問の業績についてお答えいたします。{source}では「{excerpt}」と"
        "ご報告しております。",
    ),
    STRATEGY: (
        "今後の戦略につきましては、{source}にてお示ししている通り、"
        "「{excerpt}」という方針で取り組んでまいります。",
        "戦略に関しましては、{source}に「{excerpt}」と記載しております。"
        "その実現に向けて全社で取り組んでまいります。",
    ),
    DIVIDEND: (
        "株主還元につきましては、{source}に「{excerpt}」と記載しております。"
        "詳細は同資料をご参照ください。",
    ),
    RISK: (
        "リスクにつきましては、{source}において「{excerpt}」と認識しており、"
        "記載の対応を進めてまいります。",
    ),
    GENERIC: (
        "ご質問の件につきましては、{source}に「{excerpt}」と記載しております。"
        "詳細は開示資料もご参照ください。",
    ),
}


# ---------------------------------------------------------------------------
# LLM Prompts
# ---------------------------------------------------------------------------

RESPONDER_SYSTEM = (
    "あなたは上場企業の経営陣です。株主総会で株主からの質問に対して、"
    "誠実で建設的な回答をしてください。\n\n"
    "ルール:\n"
    "- 回答は提供されたアップロード資料の内容のみに基づいてください\n"
    "- 資料に記載のない数値・事実を作らないでください\n"
    "- 根拠とした資料名を回答中に明記してください\n"
    "- 資料に該当する情報がない場合は、その旨を明確に述べてください\n"
    "- {max_chars}文字以内で簡潔に回答してください"
)


@dataclass(frozen=True)
class ResponsePrompt:
    """System and user prompt for one answer."""

    system: str
    user: str
    context: str
    transcript: str


def limit_length(text: str, max_chars: int, window: int) -> str:
    """
    Cap `text` at `max_chars` characters.

    Cuts after the last sentence terminator inside the trailing `window`
    of the cap; without one, hard-cuts and appends an ellipsis.
    """
    if len(text) <= max_chars:
        return text
    head = text[:max_chars]
    cut = max(head.rfind(t) for t in SENTENCE_TERMINATORS)
    if cut >= 0 and cut >= max_chars - window:
        return head[: cut + 1]
    return text[: max_chars - len(ELLIPSIS)] + ELLIPSIS


class Responder:
    """Simulated company respondent. Stateless between calls."""

    def __init__(
        self,
        documents: Sequence[Document],
        llm: LLMProvider | None = None,
        scorer: ContentScorer | None = None,
        budgeter: ContextBudgeter | None = None,
        vocabulary: DomainVocabulary = DEFAULT_VOCABULARY,
        settings: Settings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.documents = tuple(documents)
        self.llm = llm
        self.vocabulary = vocabulary
        self.scorer = scorer or ContentScorer(vocabulary, self.settings)
        self.budgeter = budgeter or ContextBudgeter(self.settings.min_useful_chars)
        self.rng = rng or random.Random(self.settings.random_seed)

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def generate_answer(self, question: str, history: Sequence[Message]) -> str:
        """Answer `question` from the documents, capped at answer_max_chars."""
        snippets = self.scorer.find_relevant(self.documents, question)
        prompt = self.build_prompt(question, history, snippets)

        answer = await self._generate(prompt)
        if not answer:
            answer = self.fallback_answer(question, snippets)

        return limit_length(
            answer,
            self.settings.answer_max_chars,
            self.settings.truncate_window_chars,
        )

    def build_prompt(
        self,
        question: str,
        history: Sequence[Message],
        snippets: Sequence[RelevanceSnippet],
    ) -> ResponsePrompt:
        """Assemble the bounded context and prompts for the LLM."""
        if self.settings.context_mode == "full":
            blocks = [
                ContextBlock(label=doc.original_name, text=doc.text_content)
                for doc in self.documents
            ]
            max_chars = self.settings.full_context_max_chars
        else:
            blocks = [
                ContextBlock(label=f"{s.source} (関連度 {s.relevance})", text=s.content)
                for s in snippets
            ]
            max_chars = self.settings.snippet_context_max_chars

        context = self.budgeter.build(blocks, max_chars)
        transcript = self.budgeter.build_transcript(
            history, self.settings.conversation_max_chars,
        )

        user = (
            f"【株主からの質問】\n{question}\n\n"
            f"【提供されたアップロード資料】\n{context or '(該当する資料なし)'}\n\n"
            f"【これまでの会話履歴】\n{transcript or '(なし)'}"
        )
        system = RESPONDER_SYSTEM.format(max_chars=self.settings.answer_max_chars)
        return ResponsePrompt(system=system, user=user, context=context, transcript=transcript)

    def fallback_answer(self, question: str, snippets: Sequence[RelevanceSnippet]) -> str:
        """Deterministic grounded answer; NO_GROUNDING_RESPONSE without snippets."""
        if not snippets:
            logger.info("No grounding for question '%s'", question[:80])
            return NO_GROUNDING_RESPONSE

        theme = self.vocabulary.classify(question)
        templates = ANSWER_TEMPLATES.get(theme) or ANSWER_TEMPLATES[GENERIC]
        top = snippets[0]
        return self.rng.choice(templates).format(source=top.source, excerpt=top.content)

    # -----------------------------------------------------------------------
    # Internal Helpers
    # -----------------------------------------------------------------------

    async def _generate(self, prompt: ResponsePrompt) -> str | None:
        if self.llm is None:
            return None
        try:
            response = await self.llm.complete(
                messages=[{"role": "user", "content": prompt.user}],
                system=prompt.system,
            )
        except GenerationDegraded as exc:
            logger.warning("Answer generation degraded, using fallback template: %s", exc)
            return None

        logger.info(
            "Responder answer generated: model=%s, tokens=%d+%d",
            response.model, response.input_tokens, response.output_tokens,
        )
        return response.content.strip() or None
