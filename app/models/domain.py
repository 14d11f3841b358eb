# =============================================================================
# Domain Data Structures
# =============================================================================
#
# Plain dataclasses shared by the services and agents. The Pydantic schemas
# in requests.py / responses.py describe the HTTP contract; these describe
# the in-memory state the simulator works on.
#
#   Document          — uploaded IR document with extracted text (immutable)
#   Role              — the two fixed dialogue roles
#   Message           — one utterance in a session (append-only)
#   RelevanceSnippet  — scored excerpt for a question (ephemeral)
#   SessionStatus     — session lifecycle states
#   SessionSummary    — listing view of a session
# =============================================================================

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Document:
    """
    An uploaded IR document with its extracted text.

    Frozen: sessions hold references to the same Document objects the store
    holds, so nothing downstream may mutate them.
    """

    id: str
    original_name: str
    text_content: str
    topics: tuple[str, ...] = ()
    filename: str = ""  # Stored file name on disk (unique per upload)
    size: int = 0
    mime_type: str = "text/plain"
    page_count: int | None = None
    uploaded_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class RelevanceSnippet:
    """A sentence from a document scored against a question."""

    source: str  # Document original_name
    content: str
    relevance: int


# ---------------------------------------------------------------------------
# Dialogue
# ---------------------------------------------------------------------------


class Role(str, enum.Enum):
    """The two fixed roles of the simulated dialogue."""

    QUESTIONER = "shareholder"
    RESPONDER = "company"

    @property
    def label(self) -> str:
        """Speaker label used in transcripts and LLM prompts."""
        match self:
            case Role.QUESTIONER:
                return "株主"
            case Role.RESPONDER:
                return "会社側"

    @property
    def voice_profile(self) -> str:
        """Key a speech synthesiser uses to pick the voice for this role."""
        match self:
            case Role.QUESTIONER:
                return "shareholder"
            case Role.RESPONDER:
                return "company"

    @classmethod
    def from_label(cls, label: str) -> Role:
        for role in cls:
            if role.label == label:
                return role
        raise ValueError(f"Unknown speaker label: {label!r}")


@dataclass(frozen=True)
class Message:
    """One utterance. Messages are appended, never edited."""

    role: Role
    content: str
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=utcnow)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class SessionStatus(str, enum.Enum):
    """
    Session lifecycle.

    STARTING → ACTIVE → COMPLETED, with ERROR reachable from STARTING or
    ACTIVE. COMPLETED and ERROR are terminal.
    """

    STARTING = "starting"
    ACTIVE = "active"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.ERROR)

    @property
    def label(self) -> str:
        """Japanese status label used in exported transcripts."""
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    SessionStatus.STARTING: "開始前",
    SessionStatus.ACTIVE: "進行中",
    SessionStatus.COMPLETED: "完了",
    SessionStatus.ERROR: "エラー",
}


@dataclass(frozen=True)
class SessionSummary:
    """Listing view of a session (no message bodies)."""

    id: str
    status: SessionStatus
    created_at: datetime
    message_count: int
    document_names: tuple[str, ...]
    expected_question_count: int
