# =============================================================================
# FAQ Generator — Candidate Shareholder Questions from Documents
# =============================================================================
#
# Proposes questions a shareholder is likely to ask about the uploaded
# documents. The client shows them as a checklist and sends the selected
# ones back as the session's expected questions.
#
# ALGORITHM:
#   1. Collect each document's topic sentences (ContentScorer.extract_topics)
#   2. For each topic: classify its theme, find the first domain term it
#      mentions, fill the theme's question template with that term
#   3. De-duplicate, then pad with DEFAULT_FAQS up to `count`
#
# Rule-based: no LLM call, so the checklist is instant and reproducible.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from app.models.domain import Document, new_id
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

DEFAULT_FAQS: tuple[str, ...] = (
    "今期の業績についてご説明いただけますか？",
    "今後の事業戦略についてお聞かせください。",
    "配当政策と株主還元の考え方についてお聞かせください。",
    "事業上の主要なリスクと、その対策について教えてください。",
    "中長期的な成長に向けた投資方針を教えてください。",
)

_TEMPLATES: dict[str, str] = {
    PERFORMANCE: "{term}について、前年からの変動要因をご説明いただけますか？",
    STRATEGY: "{term}について、今後の具体的な取り組みをお聞かせください。",
    DIVIDEND: "{term}について、今後の方針をお聞かせください。",
    RISK: "{term}に関するリスクへの対策を教えてください。",
    GENERIC: "{term}について、株主としてもう少し詳しく伺えますか？",
}


@dataclass
class FAQItem:
    """One candidate question. `selected` is the checklist default."""

    question: str
    theme: str = GENERIC
    source: str | None = None
    selected: bool = True
    id: str = field(default_factory=new_id)


def generate_faqs(
    documents: Sequence[Document],
    count: int = 5,
    scorer: ContentScorer | None = None,
    vocabulary: DomainVocabulary = DEFAULT_VOCABULARY,
) -> list[FAQItem]:
    """
    Build `count` candidate questions for the given documents.

    Falls back to DEFAULT_FAQS (in order) when the documents yield fewer
    questions than requested, including when `documents` is empty.
    """
    scorer = scorer or ContentScorer(vocabulary)
    items: list[FAQItem] = []
    seen: set[str] = set()

    for doc in documents:
        topics = doc.topics or tuple(scorer.extract_topics(doc.text_content))
        for topic in topics:
            term = _first_term(topic, vocabulary)
            if term is None:
                continue
            theme = vocabulary.classify(topic)
            question = _TEMPLATES[theme].format(term=term)
            if question in seen:
                continue
            seen.add(question)
            items.append(FAQItem(question=question, theme=theme, source=doc.original_name))
            if len(items) >= count:
                break
        if len(items) >= count:
            break

    for question in DEFAULT_FAQS:
        if len(items) >= count:
            break
        if question not in seen:
            seen.add(question)
            items.append(FAQItem(question=question))

    logger.info(
        "Generated %d FAQ candidates from %d document(s)", len(items), len(documents),
    )
    return items[:count]


def _first_term(sentence: str, vocabulary: DomainVocabulary) -> str | None:
    # Longest match first so "営業利益" wins over "利益".
    lowered = sentence.lower()
    hits = [t for t in vocabulary.domain_terms if t.lower() in lowered]
    if not hits:
        return None
    return max(hits, key=len)
