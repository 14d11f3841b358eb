# =============================================================================
# Content Scorer — Keyword Relevance over Document Sentences
# =============================================================================
#
# Scores free text against a question by keyword overlap. Used for two jobs:
#
#   1. find_relevant()  — pick the document sentences the Responder cites
#   2. extract_topics() — pick the headline sentences of an uploaded document
#
# ALGORITHM (find_relevant):
#   1. Tokenise the question: punctuation → spaces, split on whitespace,
#      split again on grammatical particles, drop stopwords / 1-char pieces.
#      Add every domain term that appears verbatim in the question.
#   2. Expand keywords through the synonym map (additive).
#   3. Split each document into sentences; drop short and garbled ones.
#   4. Sentence score = number of keywords contained in the sentence.
#   5. Stable sort by score, keep the top `limit`.
#
# DESIGN DECISION: Substring matching, no morphological analysis.
# Japanese IR text has no word boundaries; substring hits on a curated
# vocabulary are predictable and need no tokenizer dependency.
# =============================================================================

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence

from app.config import Settings, settings as default_settings
from app.models.domain import Document, RelevanceSnippet
from app.services.vocabulary import DEFAULT_VOCABULARY, DomainVocabulary

logger = logging.getLogger(__name__)

REPLACEMENT_CHAR = "\ufffd"
MAX_KEYWORDS = 10

_PUNCTUATION_RE = re.compile(r"[？?！!。．、，,.「」『』()（）\[\]【】:：;；\"'“”]")
# Sentence terminators. ASCII "." only counts before whitespace so that
# figures like "1.5%" survive.
_SENTENCE_SPLIT_RE = re.compile(r"[。．！？!?\n]|\.(?=\s)")
_FIGURE_RE = re.compile(r"\d+%|\d+億|\d+万|\d+円")
_FORWARD_LOOKING_RE = re.compile(r"20\d{2}年|今年度|来年度|次期|将来")


class ContentScorer:
    """Keyword-overlap relevance scoring against a DomainVocabulary."""

    def __init__(
        self,
        vocabulary: DomainVocabulary = DEFAULT_VOCABULARY,
        settings: Settings | None = None,
    ) -> None:
        self.vocabulary = vocabulary
        self.settings = settings or default_settings

        # Split on multi-character particles first ("について" before "に").
        particles = sorted(
            (w for w in vocabulary.stopwords if not w.isascii()),
            key=len,
            reverse=True,
        )
        self._particle_re = re.compile("|".join(map(re.escape, particles)))

    # -----------------------------------------------------------------------
    # Keywords
    # -----------------------------------------------------------------------

    def extract_keywords(self, question: str, expand: bool = True) -> list[str]:
        """
        Extract search keywords from a question.

        Returns an ordered, de-duplicated list. Empty when the question
        holds nothing but particles and punctuation.
        """
        cleaned = _PUNCTUATION_RE.sub(" ", question)
        keywords: list[str] = []
        for chunk in cleaned.split():
            for piece in self._particle_re.split(chunk):
                piece = piece.strip()
                if len(piece) > 1 and piece.lower() not in self.vocabulary.stopwords:
                    keywords.append(piece)
        keywords = keywords[:MAX_KEYWORDS]

        lowered = question.lower()
        keywords.extend(
            term for term in self.vocabulary.domain_terms if term.lower() in lowered
        )
        keywords = list(dict.fromkeys(keywords))

        if expand:
            keywords = self.vocabulary.expand(keywords)
        return keywords

    # -----------------------------------------------------------------------
    # Sentences
    # -----------------------------------------------------------------------

    def garbled_ratio(self, sentence: str) -> float:
        if not sentence:
            return 0.0
        return sentence.count(REPLACEMENT_CHAR) / len(sentence)

    def is_garbled(self, sentence: str) -> bool:
        """True when replacement characters exceed the configured ratio."""
        return self.garbled_ratio(sentence) > self.settings.garbled_ratio_threshold

    def split_sentences(self, text: str | None) -> list[str]:
        """
        Split text into usable sentences.

        Drops sentences at or below `min_sentence_length` characters and
        garbled ones.
        """
        if not text or not text.strip():
            return []
        sentences = []
        for raw in _SENTENCE_SPLIT_RE.split(text):
            sentence = raw.strip()
            if len(sentence) <= self.settings.min_sentence_length:
                continue
            if self.is_garbled(sentence):
                continue
            sentences.append(sentence)
        return sentences

    # -----------------------------------------------------------------------
    # Scoring
    # -----------------------------------------------------------------------

    def score(self, text: str, question: str) -> int:
        """Number of (expanded) question keywords contained in `text`."""
        return self._score_keywords(text, self.extract_keywords(question))

    def find_relevant(
        self,
        documents: Iterable[Document],
        question: str,
        limit: int | None = None,
    ) -> list[RelevanceSnippet]:
        """
        Return the top-scoring sentences across all documents.

        An empty list means no grounding is available for the question.
        Ties keep document order.
        """
        limit = self.settings.relevance_limit if limit is None else limit
        keywords = self.extract_keywords(question)
        if not keywords:
            logger.debug("No keywords extracted from question '%s'", question[:80])
            return []

        candidates: list[RelevanceSnippet] = []
        for doc in documents:
            for sentence in self.split_sentences(doc.text_content):
                relevance = self._score_keywords(sentence, keywords)
                if relevance > 0:
                    candidates.append(RelevanceSnippet(
                        source=doc.original_name,
                        content=sentence,
                        relevance=relevance,
                    ))

        candidates.sort(key=lambda s: s.relevance, reverse=True)
        logger.debug(
            "Relevance: %d keywords, %d candidate sentences, returning %d",
            len(keywords), len(candidates), min(limit, len(candidates)),
        )
        return candidates[:limit]

    def extract_topics(self, text: str | None, max_topics: int | None = None) -> list[str]:
        """
        Pick headline sentences from a document.

        Scoring: +2 per topic keyword, +1 for financial figures, +1 for
        forward-looking markers. Garbled sentences never qualify.
        """
        max_topics = self.settings.topic_count if max_topics is None else max_topics
        if not text or not text.strip():
            return []

        scored: list[tuple[int, str]] = []
        for raw in _SENTENCE_SPLIT_RE.split(text):
            sentence = raw.strip()
            if len(sentence) <= 5 or not self._is_clean_topic(sentence):
                continue
            lowered = sentence.lower()
            points = 2 * sum(1 for kw in self.vocabulary.topic_keywords if kw in lowered)
            if _FIGURE_RE.search(sentence):
                points += 1
            if _FORWARD_LOOKING_RE.search(sentence):
                points += 1
            if points > 0:
                scored.append((points, sentence))

        scored.sort(key=lambda item: item[0], reverse=True)
        return [sentence for _, sentence in scored[:max_topics]]

    # -----------------------------------------------------------------------
    # Internal Helpers
    # -----------------------------------------------------------------------

    @staticmethod
    def _score_keywords(text: str, keywords: Sequence[str]) -> int:
        lowered = text.lower()
        return sum(1 for kw in keywords if kw.lower() in lowered)

    @staticmethod
    def _is_clean_topic(sentence: str) -> bool:
        # Topics are shown to users verbatim: no replacement characters at
        # all, and headline-sized.
        return REPLACEMENT_CHAR not in sentence and 10 < len(sentence) < 200
