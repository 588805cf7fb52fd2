from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List

import fitz  # PyMuPDF

from .exceptions import ParseFailure, UnsupportedFormat

logger = logging.getLogger(__name__)


class DocumentFormat(str, Enum):
    PDF = "pdf"
    TXT = "txt"


def format_from_filename(filename: str) -> str:
    """Declared format tag for an uploaded file name (its lower-cased extension)."""
    return Path(filename or "").suffix.lstrip(".").lower()


def _coerce_format(declared_format: DocumentFormat | str) -> DocumentFormat:
    if isinstance(declared_format, DocumentFormat):
        return declared_format
    try:
        return DocumentFormat(str(declared_format).strip().lower())
    except ValueError:
        raise UnsupportedFormat(declared_format) from None


@dataclass
class PDFPreprocessor:
    """
    Extracts the text of every page of an in-memory PDF, in document order.
    """

    max_pages: int | None = None

    def load(self, data: bytes) -> str:
        with fitz.open(stream=data, filetype="pdf") as doc:
            text_blocks: List[str] = []
            for page_index in range(len(doc)):
                if self.max_pages is not None and page_index >= self.max_pages:
                    break
                page = doc.load_page(page_index)
                text_blocks.append(page.get_text("text"))
        return "\n".join(text_blocks)


def extract_text(
    data: bytes,
    declared_format: DocumentFormat | str,
    *,
    pdf_preprocessor: PDFPreprocessor | None = None,
) -> str:
    """
    Convert an uploaded byte buffer into plain text.

    Raises UnsupportedFormat for anything other than pdf/txt, and ParseFailure
    when the underlying decoder rejects the bytes.
    """
    fmt = _coerce_format(declared_format)
    try:
        if fmt is DocumentFormat.TXT:
            return data.decode("utf-8")
        return (pdf_preprocessor or PDFPreprocessor()).load(data)
    except Exception as exc:
        logger.error("File parsing error (%s): %s", fmt.value, exc)
        raise ParseFailure() from exc


def load_document(file_path: Path, *, pdf_preprocessor: PDFPreprocessor | None = None) -> str:
    """Read a file from disk and extract its text based on the file extension."""
    path = Path(file_path)
    fmt = _coerce_format(format_from_filename(path.name))
    try:
        data = path.read_bytes()
    except OSError as exc:
        logger.error("Could not read %s: %s", path, exc)
        raise ParseFailure(f"Could not read {path.name}.") from exc
    return extract_text(data, fmt, pdf_preprocessor=pdf_preprocessor)
