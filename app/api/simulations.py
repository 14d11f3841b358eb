# =============================================================================
# Simulations API — Session Lifecycle Endpoints
# =============================================================================
#
# ENDPOINTS:
#   POST /simulations                 — create a session (+ start by default)
#   POST /simulations/{id}/start      — start a session created with
#                                       auto_start=false
#   GET  /simulations/{id}            — status and full message list
#   POST /simulations/{id}/actions    — "next_question" or "end"
#
# Turns run on the session's own asyncio task; these handlers only issue
# commands and read state, so polling clients see messages appear as the
# driver appends them.
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.agents.registry import SessionRegistry
from app.agents.session import SessionEngine
from app.api.deps import get_document_store, get_registry
from app.models.requests import CreateSimulationRequest, SimulationActionRequest
from app.models.responses import (
    ActionResponse,
    MessageResponse,
    SimulationCreatedResponse,
    SimulationResponse,
)
from app.services.documents import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/simulations", tags=["Simulations"])


@router.post(
    "",
    response_model=SimulationCreatedResponse,
    summary="Create a shareholder Q&A simulation",
)
async def create_simulation(
    request: CreateSimulationRequest,
    store: DocumentStore = Depends(get_document_store),
    registry: SessionRegistry = Depends(get_registry),
) -> SimulationCreatedResponse:
    # Both lookups raise ValidationError (400) before anything is stored.
    documents = store.resolve(request.documents)
    engine = registry.create(documents, request.expected_questions)

    if request.auto_start:
        await engine.start()
        message = "Simulation started successfully"
    else:
        message = "Simulation created"

    return SimulationCreatedResponse(
        session_id=engine.id,
        status=engine.status.value,
        message=message,
    )


@router.post(
    "/{session_id}/start",
    response_model=SimulationCreatedResponse,
    summary="Start a created simulation",
)
async def start_simulation(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> SimulationCreatedResponse:
    engine = registry.get(session_id)
    await engine.start()
    return SimulationCreatedResponse(
        session_id=engine.id,
        status=engine.status.value,
        message="Simulation started successfully",
    )


@router.get(
    "/{session_id}",
    response_model=SimulationResponse,
    summary="Get simulation status and messages",
)
async def get_simulation(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> SimulationResponse:
    return _to_response(registry.get(session_id))


@router.post(
    "/{session_id}/actions",
    response_model=ActionResponse,
    summary="Send a control action to a simulation",
)
async def post_action(
    session_id: str,
    request: SimulationActionRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> ActionResponse:
    engine = registry.get(session_id)
    match request.action:
        case "next_question":
            await engine.next_question()
        case "end":
            engine.end()

    return ActionResponse(message="Action completed", status=engine.status.value)


def _to_response(engine: SessionEngine) -> SimulationResponse:
    messages = engine.messages
    return SimulationResponse(
        id=engine.id,
        status=engine.status.value,
        created_at=engine.created_at,
        started_at=engine.started_at,
        completed_at=engine.completed_at,
        message_count=len(messages),
        max_messages=engine.max_messages,
        question_cursor=engine.question_cursor,
        expected_question_count=len(engine.expected_questions),
        error=engine.error,
        messages=[
            MessageResponse(
                id=m.id,
                type=m.role.value,
                content=m.content,
                timestamp=m.timestamp,
                voice_profile=m.role.voice_profile,
            )
            for m in messages
        ],
    )
