# =============================================================================
# API Request Models — Pydantic V2 Schemas
# =============================================================================
#
# Shapes of data coming INTO the API. FastAPI validates request bodies
# against these (422 on schema violations) before any handler runs; the
# handlers then raise ValidationError (400) for semantic problems such as
# unknown document references.
# =============================================================================

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CreateSimulationRequest(BaseModel):
    """
    Request body for POST /simulations — create (and by default start) a
    simulated shareholder Q&A session.

    Example:
        {
            "documents": ["annual_report_2024.pdf"],
            "expected_questions": ["・今期の配当方針は？"],
            "auto_start": true
        }
    """

    # Document ids or filenames as returned by POST /documents
    documents: list[str] = Field(
        ...,
        min_length=1,
        description="Document ids or filenames to ground the session on",
    )

    expected_questions: list[str] = Field(
        default_factory=list,
        max_length=50,
        description=(
            "Questions the shareholder asks first, in order. Leading bullet "
            "markers are stripped."
        ),
    )

    auto_start: bool = Field(
        default=True,
        description="Start the session immediately after creating it",
    )

    @field_validator("expected_questions")
    @classmethod
    def _drop_blank_questions(cls, value: list[str]) -> list[str]:
        return [q for q in value if q.strip()]

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "documents": ["annual_report_2024.pdf"],
                    "expected_questions": ["今期の配当方針について教えてください"],
                    "auto_start": True,
                },
            ]
        }
    )


class SimulationActionRequest(BaseModel):
    """Request body for POST /simulations/{id}/actions."""

    action: Literal["next_question", "end"] = Field(
        ...,
        description=(
            "'next_question' skips ahead without waiting for the pacing "
            "delay; 'end' completes the session immediately."
        ),
    )


class GenerateFAQRequest(BaseModel):
    """Request body for POST /documents/faq."""

    document_ids: list[str] = Field(
        default_factory=list,
        description="Ids of uploaded documents to derive questions from",
    )
    count: int = Field(default=5, ge=1, le=20)
