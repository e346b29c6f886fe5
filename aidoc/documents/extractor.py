from __future__ import annotations

import io
import os
from dataclasses import dataclass, field
from typing import List, Optional

from docx import Document as DocxDocument
from pypdf import PdfReader

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIME = "text/plain"


class DocumentError(Exception):
    """Input problem; reported to the caller as a 400."""


class UnsupportedFormatError(DocumentError):
    def __init__(self, filename: str = "") -> None:
        super().__init__("only PDF / DOCX / TXT files are supported")
        self.filename = filename


class ParseFailureError(DocumentError):
    pass


@dataclass
class ExtractedDocument:
    text: str
    pages: List[str] = field(default_factory=list)
    page_count: Optional[int] = None


def _parse_pdf(data: bytes) -> ExtractedDocument:
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [(page.extract_text() or "") for page in reader.pages]
    except Exception as e:
        # pypdf raises a wide range of errors on damaged files
        raise ParseFailureError(f"could not read PDF: {e}") from e
    return ExtractedDocument(text="\n\n".join(pages), pages=pages, page_count=len(pages))


def _parse_docx(data: bytes) -> ExtractedDocument:
    try:
        doc = DocxDocument(io.BytesIO(data))
    except Exception as e:
        raise ParseFailureError(f"could not read DOCX: {e}") from e

    lines = [p.text for p in doc.paragraphs]
    for table in doc.tables:
        for row in table.rows:
            cells = [c.text.strip() for c in row.cells]
            lines.append("\t".join(cells))
    return ExtractedDocument(text="\n".join(lines).strip())


def _parse_text(data: bytes) -> ExtractedDocument:
    return ExtractedDocument(text=data.decode("utf-8-sig", errors="replace"))


def extract_text(data: bytes, filename: str, mimetype: Optional[str] = None) -> ExtractedDocument:
    """
    Plain text (plus per-page text for PDFs) from an uploaded document.

    The format is picked from the extension first, then the declared MIME
    type. Raises UnsupportedFormatError or ParseFailureError.
    """
    ext = os.path.splitext(filename or "")[1].lower()
    mime = (mimetype or "").split(";")[0].strip().lower()

    if ext == ".pdf" or mime == PDF_MIME:
        return _parse_pdf(data)
    if ext == ".docx" or mime == DOCX_MIME:
        return _parse_docx(data)
    if ext == ".txt" or mime == TEXT_MIME:
        return _parse_text(data)
    raise UnsupportedFormatError(filename)
