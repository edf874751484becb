from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path

from docx import Document
from pypdf import PdfReader

logger = logging.getLogger(__name__)

SUPPORTED_SOURCE_TYPES = {"pdf", "docx", "txt"}


class ExtractionError(RuntimeError):
    def __init__(self, message: str, *, code: str = "extraction_failed"):
        super().__init__(message)
        self.code = code


def source_type_for(filename: str) -> str:
    """Map a file name to the extractor that handles it; unknown suffixes are read as PDF."""
    extension = Path(filename).suffix.lower().lstrip(".")
    return extension if extension in SUPPORTED_SOURCE_TYPES else "pdf"


def _extract_txt(content: bytes) -> str:
    return content.decode("utf-8", errors="replace")


def _extract_pdf(content: bytes) -> str:
    try:
        reader = PdfReader(BytesIO(content))
        text_parts: list[str] = []
        for page in reader.pages:
            page_text = (page.extract_text() or "").strip()
            if page_text:
                text_parts.append(page_text)
    except Exception as exc:  # pypdf surfaces malformed input through several error types
        raise ExtractionError(f"PDF parsing failed: {exc}", code="unreadable_document") from exc
    return "\n".join(text_parts)


def _extract_docx(content: bytes) -> str:
    try:
        document = Document(BytesIO(content))
    except Exception as exc:  # python-docx raises a mix of zipfile/KeyError/ValueError
        raise ExtractionError(f"DOCX parsing failed: {exc}", code="unreadable_document") from exc
    paragraphs = [p.text.strip() for p in document.paragraphs if p.text and p.text.strip()]
    return "\n".join(paragraphs)


def extract_text(content: bytes, *, source_type: str = "pdf") -> str:
    normalized = source_type.strip().lower()
    if normalized == "txt":
        return _extract_txt(content)
    if normalized == "pdf":
        return _extract_pdf(content)
    if normalized == "docx":
        return _extract_docx(content)
    raise ExtractionError(
        f"Unsupported file type '{source_type}'. Supported types: .pdf, .docx, .txt",
        code="unsupported_type",
    )


def extract_text_from_path(file_path: str) -> str:
    path = Path(file_path)
    try:
        content = path.read_bytes()
    except OSError as exc:
        raise ExtractionError(f"Could not read document '{path}': {exc}", code="unreadable_document") from exc
    text = extract_text(content, source_type=source_type_for(path.name))
    logger.debug("text_extracted path=%s chars=%s", path.name, len(text))
    return text
