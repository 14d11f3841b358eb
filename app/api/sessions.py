# =============================================================================
# Sessions API — History Listing and Transcript Export
# =============================================================================
#
# ENDPOINTS:
#   GET /sessions               — every session, newest first
#   GET /sessions/{id}/export   — plain-text transcript as a file download
# =============================================================================

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from app.agents.registry import SessionRegistry
from app.api.deps import get_registry
from app.models.responses import SessionSummaryResponse

router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.get(
    "",
    response_model=list[SessionSummaryResponse],
    summary="List simulation sessions",
)
async def list_sessions(
    registry: SessionRegistry = Depends(get_registry),
) -> list[SessionSummaryResponse]:
    return [
        SessionSummaryResponse(
            id=s.id,
            status=s.status.value,
            created_at=s.created_at,
            message_count=s.message_count,
            document_names=list(s.document_names),
            expected_question_count=s.expected_question_count,
        )
        for s in registry.list()
    ]


@router.get(
    "/{session_id}/export",
    response_class=PlainTextResponse,
    summary="Download a session transcript",
)
async def export_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> PlainTextResponse:
    content = registry.export(session_id)
    return PlainTextResponse(
        content,
        media_type="text/plain; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="qa-session-{session_id}.txt"',
        },
    )
