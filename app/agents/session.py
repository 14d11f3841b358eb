# =============================================================================
# Session Engine — Dialogue State Machine and Turn Graph
# =============================================================================
#
# One SessionEngine owns one simulated Q&A session: its status, its message
# log, the turn limit and the pacing between utterances. It coordinates a
# Questioner (shareholder) and a Responder (company).
#
# STATE MACHINE:
#   STARTING ──start()──▶ ACTIVE ──(turn cap | no question | end())──▶ COMPLETED
#       │                   │
#       └───────────────────┴──(unexpected exception)──▶ ERROR
#
# TURN GRAPH (LangGraph, compiled once at module level):
#   START ──▶ ask ──(question?)──▶ answer ──▶ END
#              └────(None)─────────────────▶ END
#
#   ask    — Questioner.generate_question → append QUESTIONER message
#   answer — pause answer_delay_seconds → Responder.generate_answer
#            → append RESPONDER message
#
# DRIVER LOOP (one asyncio task per session):
#   run turn graph → stop if no question or should_continue() is False
#   → pause next_turn_delay_seconds → repeat
#
# CANCELLATION: end() bumps a generation token and cancels the driver task.
# Every append re-checks status and token first, so a continuation that
# resumes after end() never mutates the session.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from app.agents.questioner import Questioner
from app.agents.responder import Responder
from app.config import Settings, settings as default_settings
from app.errors import SessionStateError
from app.models.domain import (
    Document,
    Message,
    Role,
    SessionStatus,
    SessionSummary,
    utcnow,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Turn State Schema
# ---------------------------------------------------------------------------


class TurnState(TypedDict, total=False):
    """
    State flowing through one turn of the graph.

    `engine` is a live object (not JSON-serialisable); the graph runs
    without a checkpointer.
    """

    engine: Any  # SessionEngine
    generation: int
    question: str | None
    answer: str | None


# ---------------------------------------------------------------------------
# Node Functions
# ---------------------------------------------------------------------------


async def ask_node(state: TurnState) -> dict:
    """Ask the Questioner for the next question and append it."""
    engine: SessionEngine = state["engine"]
    generation = state["generation"]
    if engine.is_stale(generation):
        return {"question": None}

    question = await engine.questioner.generate_question(engine.messages)
    if question is None or not engine.append(Role.QUESTIONER, question, generation):
        return {"question": None}
    return {"question": question}


async def answer_node(state: TurnState) -> dict:
    """Wait out the answer delay, then append the Responder's answer."""
    engine: SessionEngine = state["engine"]
    generation = state["generation"]

    await engine.pause(engine.settings.answer_delay_seconds)
    if engine.is_stale(generation):
        return {"answer": None}

    answer = await engine.responder.generate_answer(state["question"], engine.messages)
    engine.append(Role.RESPONDER, answer, generation)
    return {"answer": answer}


def route_after_ask(state: TurnState) -> str:
    return "answer" if state.get("question") else END


# ---------------------------------------------------------------------------
# Graph Assembly
# ---------------------------------------------------------------------------

_builder = StateGraph(TurnState)
_builder.add_node("ask", ask_node)
_builder.add_node("answer", answer_node)

_builder.add_edge(START, "ask")
_builder.add_conditional_edges("ask", route_after_ask, {"answer": "answer", END: END})
_builder.add_edge("answer", END)

turn_graph = _builder.compile()


# ---------------------------------------------------------------------------
# Session Engine
# ---------------------------------------------------------------------------


class SessionEngine:
    """Lifecycle, message log and turn policy of one simulated session."""

    def __init__(
        self,
        session_id: str,
        documents: Sequence[Document],
        expected_questions: Sequence[str],
        questioner: Questioner,
        responder: Responder,
        settings: Settings | None = None,
    ) -> None:
        self.id = session_id
        self.documents = tuple(documents)
        self.expected_questions = tuple(expected_questions)
        self.questioner = questioner
        self.responder = responder
        self.settings = settings or default_settings

        self.status = SessionStatus.STARTING
        self.created_at = utcnow()
        self.started_at: datetime | None = None
        self.completed_at: datetime | None = None
        self.error: str | None = None

        self._messages: list[Message] = []
        self._task: asyncio.Task | None = None
        self._wake = asyncio.Event()
        self._generation = 0

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def question_cursor(self) -> int:
        return self.questioner.cursor

    @property
    def max_messages(self) -> int:
        return self.settings.max_turns * 2

    def should_continue(self) -> bool:
        """True while fewer than max_turns question/answer pairs exist."""
        return len(self._messages) < self.max_messages

    def is_stale(self, generation: int) -> bool:
        """True when a continuation started under `generation` must not mutate."""
        return self.status is not SessionStatus.ACTIVE or generation != self._generation

    def summary(self) -> SessionSummary:
        return SessionSummary(
            id=self.id,
            status=self.status,
            created_at=self.created_at,
            message_count=len(self._messages),
            document_names=tuple(doc.original_name for doc in self.documents),
            expected_question_count=len(self.expected_questions),
        )

    # -----------------------------------------------------------------------
    # Commands
    # -----------------------------------------------------------------------

    async def start(self) -> None:
        """STARTING → ACTIVE, then schedule the first turn."""
        if self.status is not SessionStatus.STARTING:
            raise SessionStateError(
                f"Session {self.id} cannot start from status '{self.status.value}'"
            )
        self.status = SessionStatus.ACTIVE
        self.started_at = utcnow()
        logger.info(
            "Session %s started: %d documents, %d expected questions, max_turns=%d",
            self.id, len(self.documents), len(self.expected_questions),
            self.settings.max_turns,
        )
        self._spawn()

    def end(self) -> None:
        """Complete the session now, discarding any in-flight generation."""
        if self.status.is_terminal:
            return
        self._generation += 1
        self._finish(SessionStatus.COMPLETED)
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.info("Session %s ended by request", self.id)

    async def next_question(self) -> None:
        """
        Move on to the next question without waiting for the pacing delay.

        Skips the next expected question and wakes any pending pause.
        """
        if self.status is not SessionStatus.ACTIVE:
            raise SessionStateError(
                f"Session {self.id} is '{self.status.value}', not active"
            )
        self.questioner.skip()
        self._wake.set()
        if self._task is None or self._task.done():
            self._spawn()
        logger.info("Session %s: next_question (cursor=%d)", self.id, self.question_cursor)

    async def wait(self) -> None:
        """Wait until the current driver task has finished."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    # -----------------------------------------------------------------------
    # Turn Primitives (used by the graph nodes)
    # -----------------------------------------------------------------------

    def append(self, role: Role, content: str, generation: int) -> bool:
        """
        Append a message unless the continuation is stale.

        Raises:
            RuntimeError: the role breaks Questioner/Responder alternation.
        """
        if self.is_stale(generation):
            logger.debug("Session %s: dropped stale %s message", self.id, role.value)
            return False
        expected = Role.QUESTIONER if len(self._messages) % 2 == 0 else Role.RESPONDER
        if role is not expected:
            raise RuntimeError(
                f"Out-of-turn message in session {self.id}: "
                f"expected {expected.value}, got {role.value}"
            )
        self._messages.append(Message(role=role, content=content))
        logger.info(
            "Session %s: %s message #%d (%d chars)",
            self.id, role.value, len(self._messages), len(content),
        )
        return True

    async def pause(self, seconds: float) -> None:
        """Sleep up to `seconds`; next_question() cuts the pause short."""
        if self._wake.is_set():
            self._wake.clear()
            return
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=seconds)
        except TimeoutError:
            return
        self._wake.clear()

    # -----------------------------------------------------------------------
    # Internal Helpers
    # -----------------------------------------------------------------------

    def _spawn(self) -> None:
        self._task = asyncio.create_task(
            self._drive(self._generation), name=f"session-{self.id}",
        )

    async def _drive(self, generation: int) -> None:
        try:
            while True:
                result = await turn_graph.ainvoke(
                    {"engine": self, "generation": generation},
                )
                if self.is_stale(generation):
                    return
                if result.get("question") is None:
                    logger.info("Session %s: no more questions", self.id)
                    self._finish(SessionStatus.COMPLETED)
                    return
                if not self.should_continue():
                    self._finish(SessionStatus.COMPLETED)
                    return

                await self.pause(self.settings.next_turn_delay_seconds)
                if self.is_stale(generation):
                    return
        except Exception as exc:
            logger.exception("Session %s failed during turn generation", self.id)
            if not self.status.is_terminal:
                self.error = f"{type(exc).__name__}: {exc}"
                self._finish(SessionStatus.ERROR)

    def _finish(self, status: SessionStatus) -> None:
        self.status = status
        self.completed_at = utcnow()
        logger.info(
            "Session %s %s with %d messages",
            self.id, status.value, len(self._messages),
        )
