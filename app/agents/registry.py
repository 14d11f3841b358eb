# =============================================================================
# Session Registry — Keyed Store of Session Engines + Transcript Export
# =============================================================================
#
#   create(documents, expected_questions) — validate, wire agents, store
#   get(session_id)                       — NotFoundError when unknown
#   list()                                — summaries, newest first
#   export(session_id)                    — plain-text transcript
#   end_all()                             — end running sessions (shutdown)
#   parse_transcript(text)                — transcript → ordered entries
#
# Sessions are never deleted; the registry lives as long as the process.
# A lock guards the map during insert / lookup only. Turn generation runs
# on each session's own driver task.
# =============================================================================

from __future__ import annotations

import logging
import random
import re
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from app.agents.questioner import Questioner
from app.agents.responder import Responder
from app.agents.session import SessionEngine
from app.config import Settings, settings as default_settings
from app.errors import NotFoundError, ValidationError
from app.models.domain import Document, Role, SessionSummary, new_id
from app.services.budgeter import ContextBudgeter
from app.services.llm import LLMProvider
from app.services.scorer import ContentScorer
from app.services.vocabulary import DEFAULT_VOCABULARY, DomainVocabulary

logger = logging.getLogger(__name__)

RULE = "=" * 38
DIVIDER = "-" * 40
_ENTRY_HEADER_RE = re.compile(r"^\[(\d+)\] (\S+) \((.+)\)$")


@dataclass(frozen=True)
class TranscriptEntry:
    """One message recovered from an exported transcript."""

    index: int
    role: Role
    timestamp: datetime
    content: str


class SessionRegistry:
    """Process-lifetime store of SessionEngines."""

    def __init__(
        self,
        settings: Settings | None = None,
        llm: LLMProvider | None = None,
        vocabulary: DomainVocabulary = DEFAULT_VOCABULARY,
    ) -> None:
        self.settings = settings or default_settings
        self.llm = llm
        self.vocabulary = vocabulary
        self.scorer = ContentScorer(vocabulary, self.settings)
        self.budgeter = ContextBudgeter(self.settings.min_useful_chars)
        self._sessions: dict[str, SessionEngine] = {}
        self._lock = threading.Lock()

    def create(
        self,
        documents: Sequence[Document],
        expected_questions: Sequence[str] = (),
    ) -> SessionEngine:
        """
        Build and store a new session in STARTING status.

        Raises:
            ValidationError: no documents, or documents without any text.
        """
        if not documents:
            raise ValidationError("No documents provided")
        if not any(doc.text_content.strip() for doc in documents):
            raise ValidationError("Documents contain no extractable text")

        session_id = new_id()
        # One RNG per session, shared by both roles, so a fixed seed
        # reproduces a whole dialogue.
        rng = random.Random(self.settings.random_seed)
        questioner = Questioner(
            documents,
            expected_questions,
            llm=self.llm,
            vocabulary=self.vocabulary,
            budgeter=self.budgeter,
            settings=self.settings,
            rng=rng,
        )
        responder = Responder(
            documents,
            llm=self.llm,
            scorer=self.scorer,
            budgeter=self.budgeter,
            vocabulary=self.vocabulary,
            settings=self.settings,
            rng=rng,
        )
        engine = SessionEngine(
            session_id,
            documents,
            expected_questions,
            questioner=questioner,
            responder=responder,
            settings=self.settings,
        )

        with self._lock:
            self._sessions[session_id] = engine

        logger.info(
            "Created session %s (%d documents, %d expected questions)",
            session_id, len(documents), len(expected_questions),
        )
        return engine

    def get(self, session_id: str) -> SessionEngine:
        with self._lock:
            engine = self._sessions.get(session_id)
        if engine is None:
            raise NotFoundError(f"Session not found: {session_id}")
        return engine

    def list(self) -> list[SessionSummary]:
        with self._lock:
            engines = list(self._sessions.values())
        summaries = [engine.summary() for engine in engines]
        summaries.sort(key=lambda s: s.created_at, reverse=True)
        return summaries

    def end_all(self) -> int:
        """End every non-terminal session; returns how many were ended."""
        with self._lock:
            engines = list(self._sessions.values())
        running = [engine for engine in engines if not engine.status.is_terminal]
        for engine in running:
            engine.end()
        return len(running)

    def export(self, session_id: str) -> str:
        """Render a session as a plain-text transcript for download."""
        engine = self.get(session_id)
        messages = engine.messages

        lines = [
            RULE,
            "株主総会Q&Aシミュレーション セッションログ",
            RULE,
            "",
            f"セッション ID: {engine.id}",
            f"作成日時: {engine.created_at.isoformat()}",
            f"ステータス: {engine.status.label}",
            f"メッセージ数: {len(messages)}",
            f"資料: {', '.join(doc.original_name for doc in engine.documents)}",
            "",
            RULE,
            "質疑応答ログ",
            RULE,
            "",
        ]
        for index, message in enumerate(messages, 1):
            lines.append(f"[{index}] {message.role.label} ({message.timestamp.isoformat()})")
            lines.append(DIVIDER)
            lines.append(message.content)
            lines.append("")

        lines.extend([RULE, "エクスポート完了", RULE])
        return "\n".join(lines)


def parse_transcript(text: str) -> list[TranscriptEntry]:
    """
    Recover the message sequence from an export() transcript.

    Message bodies run from the line after the divider up to the blank
    line preceding the next entry header or the closing rule.
    """
    entries: list[TranscriptEntry] = []
    lines = text.split("\n")
    i = 0
    while i < len(lines):
        match = _ENTRY_HEADER_RE.match(lines[i])
        if match is None or i + 1 >= len(lines) or lines[i + 1] != DIVIDER:
            i += 1
            continue

        body: list[str] = []
        j = i + 2
        while j < len(lines):
            at_boundary = lines[j] == "" and j + 1 < len(lines) and (
                _ENTRY_HEADER_RE.match(lines[j + 1]) or lines[j + 1] == RULE
            )
            if at_boundary:
                break
            body.append(lines[j])
            j += 1

        entries.append(TranscriptEntry(
            index=int(match.group(1)),
            role=Role.from_label(match.group(2)),
            timestamp=datetime.fromisoformat(match.group(3)),
            content="\n".join(body),
        ))
        i = j
    return entries
