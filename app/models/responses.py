# =============================================================================
# API Response Models — Pydantic V2 Schemas
# =============================================================================
#
# Shapes of data going OUT of the API. Built from the domain dataclasses
# with `from_attributes=True`; document text bodies are never returned.
# =============================================================================

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Response for GET /health — confirms the API is running."""

    status: str = "ok"
    version: str
    service: str
    generation_available: bool = Field(
        description="False when answers come from deterministic fallbacks only",
    )


class DocumentResponse(BaseModel):
    """Metadata of an uploaded document."""

    id: str
    filename: str
    original_name: str
    size: int
    mime_type: str
    page_count: int | None = None
    uploaded_at: datetime
    topics: list[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class UploadResponse(BaseModel):
    """Response for POST /documents."""

    message: str
    files: list[DocumentResponse]


class DocumentListResponse(BaseModel):
    """Response for GET /documents."""

    message: str
    documents: list[DocumentResponse]


class FAQResponseItem(BaseModel):
    id: str
    question: str
    theme: str
    source: str | None = None
    selected: bool = True

    model_config = ConfigDict(from_attributes=True)


class FAQResponse(BaseModel):
    """Response for POST /documents/faq."""

    message: str
    faqs: list[FAQResponseItem]
    document_count: int


class MessageResponse(BaseModel):
    """One utterance; `type` is "shareholder" or "company"."""

    id: str
    type: str
    content: str
    timestamp: datetime
    voice_profile: str


class SimulationResponse(BaseModel):
    """Full state of a session (GET /simulations/{id})."""

    id: str
    status: str
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    message_count: int
    max_messages: int
    question_cursor: int
    expected_question_count: int
    error: str | None = None
    messages: list[MessageResponse]


class SimulationCreatedResponse(BaseModel):
    """Response for POST /simulations and POST /simulations/{id}/start."""

    session_id: str
    status: str
    message: str


class ActionResponse(BaseModel):
    """Response for POST /simulations/{id}/actions."""

    message: str
    status: str


class SessionSummaryResponse(BaseModel):
    """One row of GET /sessions."""

    id: str
    status: str
    created_at: datetime
    message_count: int
    document_names: list[str]
    expected_question_count: int
