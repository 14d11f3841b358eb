# =============================================================================
# Document Store — In-Memory Registry of Uploaded IR Documents
# =============================================================================
#
# Owns the uploaded documents for the lifetime of the process:
#
#   upload(files)          — save, extract text, extract topics, store
#   add_text(name, text)   — register already-extracted text (scripts, tests)
#   get_by_ids(ids)        — lookup by document id
#   get_by_filenames(names)— lookup by stored filename or original name
#   resolve(refs)          — ids or filenames, whichever matches
#   list()                 — all documents, newest first
#
# Documents are frozen dataclasses; sessions receive references, never
# copies. A lock guards the map during insert / lookup only.
# =============================================================================

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from app.config import Settings, settings as default_settings
from app.errors import ValidationError
from app.models.domain import Document, new_id
from app.services.parser import extract_text, mime_type_for
from app.services.scorer import ContentScorer

logger = logging.getLogger(__name__)


@dataclass
class UploadedFile:
    """A file as received from the client, before extraction."""

    filename: str
    content: bytes


class DocumentStore:
    """Process-lifetime store of extracted documents."""

    def __init__(
        self,
        settings: Settings | None = None,
        scorer: ContentScorer | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.scorer = scorer or ContentScorer(settings=self.settings)
        self._documents: dict[str, Document] = {}
        self._lock = threading.Lock()

    # -----------------------------------------------------------------------
    # Ingestion
    # -----------------------------------------------------------------------

    def upload(self, files: Sequence[UploadedFile]) -> list[Document]:
        """
        Store every file that can be processed.

        Files that fail extraction are logged and skipped.

        Raises:
            ValidationError: no files given, or none could be processed.
        """
        if not files:
            raise ValidationError("No files uploaded")

        upload_dir = Path(self.settings.upload_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)

        stored: list[Document] = []
        for file in files:
            try:
                stored.append(self._ingest(file, upload_dir))
            except (OSError, ValueError, RuntimeError) as exc:
                logger.warning("Failed to process document '%s': %s", file.filename, exc)

        if not stored:
            raise ValidationError("No documents could be processed")

        logger.info("Uploaded %d/%d document(s)", len(stored), len(files))
        return stored

    def add_text(self, original_name: str, text: str) -> Document:
        """Register a document whose text is already extracted."""
        doc_id = new_id()
        document = Document(
            id=doc_id,
            original_name=original_name,
            filename=f"{doc_id}_{original_name}",
            text_content=text,
            topics=tuple(self.scorer.extract_topics(text)),
            size=len(text.encode("utf-8")),
            mime_type=mime_type_for(original_name) or "text/plain",
        )
        self._put(document)
        return document

    # -----------------------------------------------------------------------
    # Lookup
    # -----------------------------------------------------------------------

    def get(self, document_id: str) -> Document | None:
        with self._lock:
            return self._documents.get(document_id)

    def get_by_ids(self, ids: Iterable[str]) -> list[Document]:
        """Documents for the given ids, in request order. Unknown ids are skipped."""
        with self._lock:
            return [self._documents[i] for i in ids if i in self._documents]

    def get_by_filenames(self, names: Iterable[str]) -> list[Document]:
        """Documents whose stored filename or original name is in `names`."""
        wanted = set(names)
        with self._lock:
            return [
                doc for doc in self._documents.values()
                if doc.filename in wanted or doc.original_name in wanted
            ]

    def resolve(self, refs: Sequence[str]) -> list[Document]:
        """
        Resolve client references (ids or filenames) to documents.

        Raises:
            ValidationError: empty reference list, or nothing matched.
        """
        if not refs:
            raise ValidationError("No documents provided")
        documents = self.get_by_ids(refs)
        known = {doc.id for doc in documents}
        documents.extend(
            doc for doc in self.get_by_filenames(refs) if doc.id not in known
        )
        if not documents:
            raise ValidationError("No valid documents found")
        return documents

    def list(self) -> list[Document]:
        with self._lock:
            documents = list(self._documents.values())
        return sorted(documents, key=lambda d: d.uploaded_at, reverse=True)

    # -----------------------------------------------------------------------
    # Internal Helpers
    # -----------------------------------------------------------------------

    def _ingest(self, file: UploadedFile, upload_dir: Path) -> Document:
        suffix = Path(file.filename).suffix.lower()
        mime_type = mime_type_for(file.filename)
        if mime_type is None or suffix not in self.settings.allowed_extensions:
            raise ValueError(f"Unsupported file type: {file.filename}")
        if not file.content:
            raise ValueError("Uploaded file is empty")
        if len(file.content) > self.settings.max_upload_bytes:
            raise ValueError(f"File exceeds {self.settings.max_upload_bytes} bytes")

        doc_id = new_id()
        # Prefix with the id so two uploads of "report.pdf" never collide.
        stored_name = f"{doc_id}_{Path(file.filename).name}"
        path = upload_dir / stored_name
        path.write_bytes(file.content)

        try:
            extracted = extract_text(path)
        except Exception:
            path.unlink(missing_ok=True)
            raise

        document = Document(
            id=doc_id,
            original_name=file.filename,
            filename=stored_name,
            text_content=extracted.text,
            topics=tuple(self.scorer.extract_topics(extracted.text)),
            size=len(file.content),
            mime_type=mime_type,
            page_count=extracted.page_count,
        )
        self._put(document)
        logger.info(
            "Processed document '%s' (%d chars, %d topics)",
            file.filename, len(document.text_content), len(document.topics),
        )
        return document

    def _put(self, document: Document) -> None:
        with self._lock:
            self._documents[document.id] = document
