# =============================================================================
# Unit Tests — Vocabulary and Content Scorer
# =============================================================================
#
# Keyword extraction, synonym expansion, garbled-sentence filtering,
# relevance ranking and topic extraction. Pure functions, no I/O.
# =============================================================================

from __future__ import annotations

from app.config import Settings
from app.models.domain import Document
from app.services.scorer import ContentScorer
from app.services.vocabulary import (
    DEFAULT_VOCABULARY,
    DIVIDEND,
    GENERIC,
    PERFORMANCE,
    RISK,
    STRATEGY,
)

ANNUAL_REPORT = (
    "2024年度の売上高は1,200億円となり、前年比8%の増収となりました。"
    "営業利益は150億円で過去最高を更新しました。"
)
STRATEGY_PLAN = "中期経営計画では2026年までに海外売上比率を40%に引き上げる方針です。"


def _doc(name: str, text: str) -> Document:
    return Document(id=name, original_name=name, text_content=text)


def _scorer(**overrides) -> ContentScorer:
    return ContentScorer(DEFAULT_VOCABULARY, Settings(**overrides))


# ---------------------------------------------------------------------------
# Test: Vocabulary
# ---------------------------------------------------------------------------


class TestVocabulary:
    """Tests for synonym expansion and theme classification."""

    def test_expand_is_additive(self):
        result = DEFAULT_VOCABULARY.expand(["業績"])
        assert result[0] == "業績"
        assert {"売上", "利益", "収益"} <= set(result)

    def test_expand_drops_duplicates(self):
        result = DEFAULT_VOCABULARY.expand(["業績", "売上", "業績"])
        assert len(result) == len(set(result))

    def test_expand_unknown_keyword_unchanged(self):
        assert DEFAULT_VOCABULARY.expand(["天気"]) == ["天気"]

    def test_classify_performance(self):
        assert DEFAULT_VOCABULARY.classify("今期の業績はどうでしたか") == PERFORMANCE

    def test_classify_strategy(self):
        assert DEFAULT_VOCABULARY.classify("今後の方針を教えてください") == STRATEGY

    def test_classify_dividend(self):
        assert DEFAULT_VOCABULARY.classify("配当はどうなりますか") == DIVIDEND

    def test_classify_risk(self):
        assert DEFAULT_VOCABULARY.classify("為替の影響は") == RISK

    def test_classify_generic(self):
        assert DEFAULT_VOCABULARY.classify("天気はどうですか") == GENERIC

    def test_detect_themes_keeps_priority_order(self):
        themes = DEFAULT_VOCABULARY.detect_themes("配当と業績とリスク")
        assert themes == [PERFORMANCE, DIVIDEND, RISK]


# ---------------------------------------------------------------------------
# Test: Keyword Extraction
# ---------------------------------------------------------------------------


class TestExtractKeywords:
    """Tests for question tokenisation."""

    def test_particles_and_punctuation_removed(self):
        keywords = _scorer().extract_keywords("今期の業績はどうでしたか？", expand=False)
        assert keywords == ["今期", "業績"]

    def test_expansion_adds_synonyms(self):
        keywords = _scorer().extract_keywords("今期の業績はどうでしたか？")
        assert keywords[:2] == ["今期", "業績"]
        assert "売上" in keywords
        assert "利益" in keywords

    def test_longer_particle_wins(self):
        keywords = _scorer().extract_keywords("戦略について", expand=False)
        assert keywords == ["戦略"]

    def test_domain_term_inside_compound_is_added(self):
        keywords = _scorer().extract_keywords("海外売上比率", expand=False)
        assert "海外売上比率" in keywords
        assert "売上" in keywords

    def test_only_particles_yields_nothing(self):
        assert _scorer().extract_keywords("どうですか？") == []

    def test_english_stopwords_removed(self):
        keywords = _scorer().extract_keywords("What is the revenue?", expand=False)
        assert "the" not in keywords
        assert "revenue" in keywords


# ---------------------------------------------------------------------------
# Test: Sentence Splitting
# ---------------------------------------------------------------------------


class TestSplitSentences:
    """Tests for sentence splitting and noise filtering."""

    def test_splits_on_japanese_terminators(self):
        sentences = _scorer().split_sentences(ANNUAL_REPORT)
        assert len(sentences) == 2

    def test_short_sentences_dropped(self):
        assert _scorer().split_sentences("短い。これも短い。") == []

    def test_decimal_point_does_not_split(self):
        sentences = _scorer().split_sentences("営業利益率は12.5%に改善しております")
        assert sentences == ["営業利益率は12.5%に改善しております"]

    def test_garbled_sentence_dropped(self):
        garbled = "売上高\ufffd\ufffd\ufffd\ufffdの推移について報告します"
        assert _scorer().is_garbled(garbled)
        assert _scorer().split_sentences(garbled) == []

    def test_few_replacement_chars_tolerated(self):
        sentence = "売上高の推移について\ufffd報告いたします"
        assert not _scorer().is_garbled(sentence)

    def test_empty_text(self):
        assert _scorer().split_sentences("") == []
        assert _scorer().split_sentences(None) == []


# ---------------------------------------------------------------------------
# Test: Relevance
# ---------------------------------------------------------------------------


class TestFindRelevant:
    """Tests for relevance ranking across documents."""

    def test_relevant_sentences_found(self):
        docs = [_doc("annual_report.pdf", ANNUAL_REPORT)]
        snippets = _scorer().find_relevant(docs, "今期の業績はどうでしたか？")
        assert snippets
        assert all(s.source == "annual_report.pdf" for s in snippets)
        assert all(s.relevance > 0 for s in snippets)

    def test_unrelated_question_returns_empty(self):
        docs = [
            _doc("annual_report.pdf", ANNUAL_REPORT),
            _doc("strategy_plan.pdf", STRATEGY_PLAN),
        ]
        assert _scorer().find_relevant(docs, "天気はどうですか？") == []

    def test_sorted_by_relevance(self):
        docs = [
            _doc("annual_report.pdf", ANNUAL_REPORT),
            _doc("strategy_plan.pdf", STRATEGY_PLAN),
        ]
        snippets = _scorer().find_relevant(docs, "今後の戦略について教えてください")
        assert snippets[0].source == "strategy_plan.pdf"
        relevances = [s.relevance for s in snippets]
        assert relevances == sorted(relevances, reverse=True)

    def test_ties_keep_document_order(self):
        docs = [
            _doc("annual_report.pdf", ANNUAL_REPORT),
            _doc("strategy_plan.pdf", STRATEGY_PLAN),
        ]
        snippets = _scorer().find_relevant(docs, "億円")
        assert [s.relevance for s in snippets] == [1, 1]
        assert snippets[0].content.startswith("2024年度")
        assert snippets[1].content.startswith("営業利益")

    def test_limit_respected(self):
        text = "。".join(f"売上高は第{i}四半期に増加しました" for i in range(10))
        snippets = _scorer(relevance_limit=3).find_relevant(
            [_doc("a.txt", text)], "売上について",
        )
        assert len(snippets) == 3

    def test_garbled_text_never_cited(self):
        text = "売上高\ufffd\ufffd\ufffd\ufffdの推移について報告します"
        assert _scorer().find_relevant([_doc("a.pdf", text)], "売上") == []


# ---------------------------------------------------------------------------
# Test: Topic Extraction
# ---------------------------------------------------------------------------


class TestExtractTopics:
    """Tests for headline sentence extraction."""

    def test_scores_figures_and_keywords(self):
        topics = _scorer().extract_topics(ANNUAL_REPORT)
        assert topics[0].startswith("2024年度の売上高")

    def test_max_topics(self):
        text = "。".join(f"売上高は第{i}四半期に増加しました" for i in range(10))
        assert len(_scorer().extract_topics(text, max_topics=2)) == 2

    def test_sentences_without_keywords_skipped(self):
        assert _scorer().extract_topics("本日は晴天なり、とても良い天気です。") == []

    def test_replacement_chars_never_in_topics(self):
        text = "売上高は1,200億円\ufffdとなりました。"
        assert _scorer().extract_topics(text) == []

    def test_empty_text(self):
        assert _scorer().extract_topics("   ") == []
