# =============================================================================
# Documents API — Upload, Listing and FAQ Candidates
# =============================================================================
#
# ENDPOINTS:
#   POST /documents      — multipart upload (.pdf, .docx, .txt), extract text
#   GET  /documents      — uploaded document metadata
#   POST /documents/faq  — candidate shareholder questions for documents
#
# Extraction runs in a worker thread (asyncio.to_thread) so a slow Docling
# conversion never blocks the event loop that drives live sessions.
# =============================================================================

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, File, UploadFile

from app.agents.faq import generate_faqs
from app.api.deps import get_document_store
from app.errors import ValidationError
from app.models.requests import GenerateFAQRequest
from app.models.responses import (
    DocumentListResponse,
    DocumentResponse,
    FAQResponse,
    FAQResponseItem,
    UploadResponse,
)
from app.services.documents import DocumentStore, UploadedFile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


@router.post(
    "",
    response_model=UploadResponse,
    summary="Upload IR documents",
    description=(
        "Upload one or more PDF, Word (.docx) or text files. Text and key "
        "topics are extracted immediately; files that cannot be processed "
        "are skipped."
    ),
)
async def upload_documents(
    files: list[UploadFile] = File(..., description="IR documents to upload"),
    store: DocumentStore = Depends(get_document_store),
) -> UploadResponse:
    uploads = [
        UploadedFile(filename=file.filename or "", content=await file.read())
        for file in files
    ]
    documents = await asyncio.to_thread(store.upload, uploads)
    return UploadResponse(
        message=f"Successfully uploaded {len(documents)} document(s)",
        files=[DocumentResponse.model_validate(doc) for doc in documents],
    )


@router.get(
    "",
    response_model=DocumentListResponse,
    summary="List uploaded documents",
)
async def list_documents(
    store: DocumentStore = Depends(get_document_store),
) -> DocumentListResponse:
    documents = store.list()
    return DocumentListResponse(
        message=f"Found {len(documents)} uploaded documents",
        documents=[DocumentResponse.model_validate(doc) for doc in documents],
    )


@router.post(
    "/faq",
    response_model=FAQResponse,
    summary="Generate candidate shareholder questions",
)
async def generate_faq(
    request: GenerateFAQRequest,
    store: DocumentStore = Depends(get_document_store),
) -> FAQResponse:
    if not request.document_ids:
        raise ValidationError("No document IDs provided")

    documents = store.get_by_ids(request.document_ids)
    if not documents:
        raise ValidationError("No valid documents found")

    faqs = generate_faqs(documents, count=request.count, scorer=store.scorer)
    return FAQResponse(
        message=f"Successfully generated {len(faqs)} FAQ questions",
        faqs=[FAQResponseItem.model_validate(item) for item in faqs],
        document_count=len(documents),
    )
