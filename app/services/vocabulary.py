# =============================================================================
# Domain Vocabulary — Shared Keyword Tables
# =============================================================================
#
# One value object holds every keyword table the simulator uses:
#
#   stopwords        — grammatical particles removed from question keywords
#   domain_terms     — financial / strategic terms matched directly
#   synonyms         — additive keyword expansion ("業績" → "売上", "利益")
#   themes           — topic buckets for question classification and for
#                      picking fallback templates (performance, strategy,
#                      dividend, risk)
#   topic_keywords   — terms that mark a sentence as a document "topic"
#
# The ContentScorer, the Questioner and the Responder all receive the same
# instance, so keyword matching and topic classification never drift apart.
# =============================================================================

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

# Theme identifiers, in classification priority order.
PERFORMANCE = "performance"
STRATEGY = "strategy"
DIVIDEND = "dividend"
RISK = "risk"
GENERIC = "generic"

THEMES: tuple[str, ...] = (PERFORMANCE, STRATEGY, DIVIDEND, RISK)


_STOPWORDS = (
    "の", "は", "が", "を", "に", "で", "と", "から", "まで", "より",
    "について", "では", "です", "ます", "である", "する", "した", "される",
    "いる", "ある", "この", "その", "あの", "どの", "いかが", "どう",
    "なぜ", "どこ", "いつ", "だれ", "何", "ください", "教えて",
    "ですか", "でした", "でしたか", "ました", "ましたか", "でしょうか",
    "the", "a", "an", "of", "and", "or", "to", "in", "on", "for", "is",
    "are", "was", "were", "what", "how", "why", "when", "please", "about",
)

_DOMAIN_TERMS = (
    "売上", "売上高", "収益", "利益", "営業利益", "経常利益", "当期純利益",
    "業績", "決算", "財務", "戦略", "計画", "方針", "中期経営計画",
    "投資", "成長", "新規事業", "海外展開", "DX", "AI", "デジタル",
    "配当", "株主還元", "配当性向", "自社株買い", "株価", "資本",
    "リスク", "課題", "為替", "原材料", "規制", "競合", "市場", "シェア",
    "ESG", "サステナビリティ", "ガバナンス", "人材",
    "revenue", "profit", "earnings", "dividend", "strategy", "risk",
    "growth", "investment", "margin", "guidance",
)

_SYNONYMS: dict[str, tuple[str, ...]] = {
    "業績": ("売上", "利益", "収益"),
    "売上": ("売上高", "収益"),
    "利益": ("営業利益", "純利益"),
    "戦略": ("計画", "方針", "施策"),
    "今後": ("計画", "戦略", "目指"),
    "成長": ("拡大", "成長戦略"),
    "配当": ("株主還元", "配当性向"),
    "株主還元": ("配当", "自社株買い"),
    "リスク": ("課題", "懸念", "変動"),
    "課題": ("リスク", "対策"),
    "performance": ("revenue", "profit", "earnings"),
    "strategy": ("plan", "initiative"),
    "dividend": ("payout", "buyback"),
    "risk": ("uncertainty", "exposure"),
}

_THEME_KEYWORDS: dict[str, tuple[str, ...]] = {
    PERFORMANCE: ("業績", "売上", "利益", "収益", "決算", "revenue", "profit", "performance"),
    STRATEGY: ("戦略", "計画", "今後", "方針", "成長", "投資", "strategy", "plan"),
    DIVIDEND: ("配当", "株主還元", "自社株", "dividend", "buyback"),
    RISK: ("リスク", "課題", "懸念", "為替", "risk"),
}

_TOPIC_KEYWORDS = (
    "売上", "収益", "営業利益", "当期純利益", "業績", "決算", "財務",
    "新規事業", "戦略", "計画", "方針", "投資", "開発", "成長",
    "株主", "配当", "株価", "資本", "株式",
    "市場", "競合", "顧客", "事業環境", "業界",
    "技術", "デジタル", "ai", "dx", "イノベーション",
    "esg", "サステナビリティ", "環境", "社会貢献",
    "リスク", "課題", "対策", "改善", "効率化",
)


def _freeze(mapping: Mapping[str, tuple[str, ...]]) -> Mapping[str, tuple[str, ...]]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class DomainVocabulary:
    """Keyword tables for the IR / shareholder-meeting domain."""

    stopwords: frozenset[str] = frozenset(_STOPWORDS)
    domain_terms: tuple[str, ...] = _DOMAIN_TERMS
    synonyms: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: _freeze(_SYNONYMS)
    )
    themes: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: _freeze(_THEME_KEYWORDS)
    )
    topic_keywords: tuple[str, ...] = _TOPIC_KEYWORDS

    def expand(self, keywords: Iterable[str]) -> list[str]:
        """
        Add synonyms to a keyword list.

        Expansion is additive: every original keyword stays, in its
        original position, followed by new synonyms. Duplicates are dropped.
        """
        originals = list(dict.fromkeys(keywords))
        expanded = list(originals)
        seen = set(originals)
        for keyword in originals:
            synonyms = self.synonyms.get(keyword) or self.synonyms.get(keyword.lower(), ())
            for synonym in synonyms:
                if synonym not in seen:
                    seen.add(synonym)
                    expanded.append(synonym)
        return expanded

    def classify(self, text: str) -> str:
        """
        Return the first theme whose keywords appear in `text`.

        Checked in THEMES order; GENERIC when nothing matches.
        """
        lowered = text.lower()
        for theme in THEMES:
            if any(kw.lower() in lowered for kw in self.themes.get(theme, ())):
                return theme
        return GENERIC

    def detect_themes(self, text: str) -> list[str]:
        """Return every theme mentioned in `text`, in THEMES order."""
        lowered = text.lower()
        return [
            theme for theme in THEMES
            if any(kw.lower() in lowered for kw in self.themes.get(theme, ()))
        ]


DEFAULT_VOCABULARY = DomainVocabulary()
