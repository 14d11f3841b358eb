# =============================================================================
# Questioner — Simulated Shareholder
# =============================================================================
#
# Produces the shareholder side of the dialogue. Question sources, in order:
#
#   1. EXPECTED — user-supplied questions, consumed in order, verbatim
#      (minus bullet markers)
#   2. OPENING  — no history yet: ask the LLM for an opening question
#      grounded in the documents; fallback = opening bank for the themes
#      detected in the document text
#   3. FOLLOW-UP — ask the LLM for a follow-up to the last company answer;
#      fallback = follow-up bank for the themes in that answer
#
# Generation failures never escape: ProviderUnavailable / GenerationFailed
# (and empty LLM output) fall through to the deterministic banks.
# =============================================================================

from __future__ import annotations

import logging
import random
import re
from collections.abc import Sequence

from app.config import Settings, settings as default_settings
from app.errors import GenerationDegraded
from app.models.domain import Document, Message, Role
from app.services.budgeter import ContextBlock, ContextBudgeter
from app.services.llm import LLMProvider
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

_BULLET_RE = re.compile(r"^\s*(?:[・\-*•●◦‣]|\d+[.)．）])\s*")
_QUOTES = "\"'「」『』“”"


# ---------------------------------------------------------------------------
# Question Banks
# ---------------------------------------------------------------------------

OPENING_QUESTIONS: dict[str, tuple[str, ...]] = {
    PERFORMANCE: (
        "今期の業績についてご説明いただけますか？",
        "決算資料を拝見しましたが、売上高の変動要因は何でしょうか？",
        "利益率の推移について、経営陣としての評価をお聞かせください。",
    ),
    STRATEGY: (
        "今後の事業戦略についてお聞かせください。",
        "中長期的な成長に向けて、どの分野に重点的に投資されるのでしょうか？",
    ),
    DIVIDEND: (
        "配当政策と株主還元の考え方についてお聞かせください。",
        "今後の増配や自社株買いの可能性についてはいかがでしょうか？",
    ),
    RISK: (
        "事業上の主要なリスクと、その対策について教えてください。",
        "為替や原材料価格の変動は業績にどの程度影響していますか？",
    ),
    GENERIC: (
        "今年度の主要な成果と課題について教えてください。",
        "株主として、今後の経営方針をお伺いしたいと思います。",
    ),
}

FOLLOW_UP_QUESTIONS: dict[str, tuple[str, ...]] = {
    PERFORMANCE: (
        "具体的な数値や目標があれば教えてください。",
        "その業績は来期も継続できる見込みでしょうか？",
    ),
    STRATEGY: (
        "その戦略の進捗をどのような指標で測っていますか？",
        "計画の実現に向けた具体的なスケジュールを教えてください。",
    ),
    DIVIDEND: (
        "配当性向の目標水準は今後も維持されるのでしょうか？",
        "それは株主にとってどのような影響がありますか？",
    ),
    RISK: (
        "そのリスクが顕在化した場合の影響額はどの程度でしょうか？",
        "対策の効果はどのように検証されていますか？",
    ),
    GENERIC: (
        "その点についてもう少し詳しく教えていただけますか？",
        "今後の見通しはいかがでしょうか？",
        "他社との比較ではどのような状況でしょうか？",
    ),
}


# ---------------------------------------------------------------------------
# LLM Prompts
# ---------------------------------------------------------------------------

QUESTIONER_SYSTEM = (
    "あなたは上場企業の株主です。株主総会で経営陣に質問をする立場として、"
    "建設的で適切な質問をしてください。\n\n"
    "ルール:\n"
    "- 提供された資料の内容に関連する質問を1つだけ作成してください\n"
    "- 質問文のみを出力し、前置きや説明は書かないでください\n"
    "- 150文字以内で簡潔にまとめてください"
)


def strip_bullet(text: str) -> str:
    """Remove a leading bullet or list number ("・", "-", "1.", ...)."""
    return _BULLET_RE.sub("", text, count=1).strip()


class Questioner:
    """Simulated shareholder. Stateful: owns the expected-question cursor."""

    def __init__(
        self,
        documents: Sequence[Document],
        expected_questions: Sequence[str] = (),
        llm: LLMProvider | None = None,
        vocabulary: DomainVocabulary = DEFAULT_VOCABULARY,
        budgeter: ContextBudgeter | None = None,
        settings: Settings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.documents = tuple(documents)
        self.expected_questions = tuple(expected_questions)
        self.llm = llm
        self.vocabulary = vocabulary
        self.budgeter = budgeter or ContextBudgeter(self.settings.min_useful_chars)
        self.rng = rng or random.Random(self.settings.random_seed)
        self._cursor = 0

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def has_expected(self) -> bool:
        return self._cursor < len(self.expected_questions)

    def skip(self) -> None:
        """Advance past the next expected question (no-op once exhausted)."""
        if self.has_expected:
            self._cursor += 1

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def generate_question(self, history: Sequence[Message]) -> str | None:
        """
        Produce the next shareholder question.

        Returns None only when every source came up empty; the session
        treats that as "no more questions".
        """
        while self.has_expected:
            question = strip_bullet(self.expected_questions[self._cursor])
            self._cursor += 1
            if question:
                logger.info("Using expected question %d/%d", self._cursor, len(self.expected_questions))
                return question

        if not history:
            return await self._opening_question()

        last_answer = next(
            (m for m in reversed(history) if m.role is Role.RESPONDER), None,
        )
        return await self._follow_up_question(history, last_answer)

    # -----------------------------------------------------------------------
    # Question Sources
    # -----------------------------------------------------------------------

    async def _opening_question(self) -> str | None:
        prompt = (
            "以下の資料を読んだ株主として、株主総会で最初に尋ねる質問を"
            f"1つ作成してください。\n\n{self._document_context()}"
        )
        generated = await self._generate(prompt)
        if generated:
            return generated

        themes = self.vocabulary.detect_themes(self._document_text())
        return self._pick(OPENING_QUESTIONS, themes)

    async def _follow_up_question(
        self,
        history: Sequence[Message],
        last_answer: Message | None,
    ) -> str | None:
        transcript = self.budgeter.build_transcript(
            history, self.settings.conversation_max_chars,
        )
        prompt = (
            "これまでの質疑応答を踏まえ、会社側の直近の回答に対する追加質問を"
            "1つ作成してください。\n\n"
            f"【会話履歴】\n{transcript}\n\n"
            f"【資料】\n{self._document_context()}"
        )
        generated = await self._generate(prompt)
        if generated:
            return generated

        themes = self.vocabulary.detect_themes(last_answer.content) if last_answer else []
        return self._pick(FOLLOW_UP_QUESTIONS, themes)

    # -----------------------------------------------------------------------
    # Internal Helpers
    # -----------------------------------------------------------------------

    async def _generate(self, prompt: str) -> str | None:
        if self.llm is None:
            return None
        try:
            response = await self.llm.complete(
                messages=[{"role": "user", "content": prompt}],
                system=QUESTIONER_SYSTEM,
                temperature=self.settings.question_temperature,
                max_tokens=self.settings.question_max_tokens,
            )
        except GenerationDegraded as exc:
            logger.warning("Question generation degraded, using fallback bank: %s", exc)
            return None

        question = strip_bullet(response.content.strip().strip(_QUOTES))
        return question or None

    def _pick(
        self,
        banks: dict[str, tuple[str, ...]],
        themes: Sequence[str],
    ) -> str | None:
        pool = [q for theme in themes for q in banks.get(theme, ())]
        if not pool:
            pool = list(banks.get(GENERIC, ()))
        if not pool:
            return None
        return self.rng.choice(pool)

    def _document_text(self) -> str:
        return "\n".join(doc.text_content for doc in self.documents)

    def _document_context(self) -> str:
        per_doc = self.settings.question_context_chars
        blocks = [
            ContextBlock(label=doc.original_name, text=doc.text_content[:per_doc])
            for doc in self.documents
        ]
        return self.budgeter.build(blocks, max_chars=self.settings.snippet_context_max_chars)
