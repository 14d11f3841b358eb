# =============================================================================
# API Dependencies — Registry and Document Store Injection
# =============================================================================
#
# The DocumentStore and SessionRegistry are created once per application in
# create_app() and kept on `app.state`. Route handlers receive them through
# these dependencies, so tests can swap them via dependency_overrides or by
# building an app around their own instances.
# =============================================================================

from __future__ import annotations

from fastapi import Request

from app.agents.registry import SessionRegistry
from app.services.documents import DocumentStore


def get_document_store(request: Request) -> DocumentStore:
    return request.app.state.document_store


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry
