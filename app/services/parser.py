# =============================================================================
# Document Text Extraction — Docling + Plain Text
# =============================================================================
#
# Turns an uploaded IR document into plain text:
#
#   .pdf / .docx → Docling DocumentConverter, exported as plain text
#   .txt         → decoded as UTF-8 (undecodable bytes become U+FFFD, which
#                  the ContentScorer later filters as garbled)
#
# DESIGN DECISION: Docling for both PDF and Word.
# One converter handles both binary formats and keeps reading order for
# multi-column IR layouts. The converter is imported lazily so that the
# plain-text path (and the test suite) never loads its ML models.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docling.document_converter import DocumentConverter

logger = logging.getLogger(__name__)

MIME_TYPES: dict[str, str] = {
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
}


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class ExtractedText:
    """Plain text of one document plus its page count when known."""

    text: str
    page_count: int | None = None


# ---------------------------------------------------------------------------
# Docling Converter — Lazy Singleton
# ---------------------------------------------------------------------------
# Initialization loads ML models into memory (~2-5 seconds on first use),
# so a single DocumentConverter instance is reused.
# ---------------------------------------------------------------------------

_converter: DocumentConverter | None = None


def _get_converter() -> DocumentConverter:
    """Lazily initialize and cache the Docling DocumentConverter."""
    global _converter
    if _converter is None:
        from docling.datamodel.base_models import InputFormat
        from docling.datamodel.pipeline_options import PdfPipelineOptions
        from docling.document_converter import DocumentConverter, PdfFormatOption

        logger.info(
            "Initializing Docling DocumentConverter "
            "(first use, may take a few seconds)..."
        )

        # IR decks are table-heavy; scanned pages need OCR.
        pipeline_options = PdfPipelineOptions()
        pipeline_options.do_table_structure = True
        pipeline_options.do_ocr = True

        _converter = DocumentConverter(
            allowed_formats=[InputFormat.PDF, InputFormat.DOCX],
            format_options={
                InputFormat.PDF: PdfFormatOption(
                    pipeline_options=pipeline_options,
                ),
            },
        )
        logger.info("Docling DocumentConverter initialized")
    return _converter


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def mime_type_for(filename: str) -> str | None:
    """MIME type for a supported extension, None otherwise."""
    return MIME_TYPES.get(Path(filename).suffix.lower())


def extract_text(file_path: str | Path) -> ExtractedText:
    """
    Extract plain text from a stored upload.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the extension is not supported.
        RuntimeError: If Docling fails to convert the document.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Document not found: {file_path}")

    suffix = path.suffix.lower()
    if suffix not in MIME_TYPES:
        raise ValueError(f"Unsupported file type: {suffix or '(none)'}")

    if suffix == ".txt":
        text = path.read_bytes().decode("utf-8", errors="replace")
        return ExtractedText(text=text)

    logger.info("Converting %s with Docling", path.name)
    converter = _get_converter()
    try:
        result = converter.convert(str(path))
    except Exception as exc:
        raise RuntimeError(
            f"Docling failed to parse '{path.name}': {exc}"
        ) from exc

    document = result.document
    text = document.export_to_text()
    page_count = len(document.pages) or None

    logger.info(
        "Extracted %d characters from '%s' (%s pages)",
        len(text), path.name, page_count or "n/a",
    )
    return ExtractedText(text=text, page_count=page_count)
