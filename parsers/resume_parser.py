from __future__ import annotations

import os
from typing import BinaryIO, Union

from utils.errors import ExtractionFailure, UnsupportedFormat
from utils.logging import get_logger


logger = get_logger(__name__)

SUPPORTED_FORMATS = ("pdf", "docx")

Source = Union[str, "os.PathLike[str]", BinaryIO]


def file_format(filename: str) -> str:
    _, ext = os.path.splitext(filename or "")
    return ext.lstrip(".").lower()


def _extract_pdf(source: Source) -> str:
    import pdfplumber

    pages = []
    with pdfplumber.open(source) as pdf:
        for page in pdf.pages:
            pages.append(page.extract_text() or "")
    return "\n".join(pages)


def _extract_docx(source: Source) -> str:
    from docx import Document

    doc = Document(source)
    return "\n".join(p.text for p in doc.paragraphs)


def extract_text(source: Source, filename: str) -> str:
    """Return the plain text of a PDF or DOCX resume.

    ``source`` may be a filesystem path or an open binary file; the format is
    taken from ``filename``'s extension.
    """
    fmt = file_format(filename)
    if fmt not in SUPPORTED_FORMATS:
        raise UnsupportedFormat(fmt)
    try:
        if fmt == "pdf":
            text = _extract_pdf(source)
        else:
            text = _extract_docx(source)
    except Exception as e:
        logger.warning(f"Could not read {filename}: {e}")
        raise ExtractionFailure(f"Failed to parse resume. Please ensure the file is valid ({e}).") from e
    return text.strip()


def read_resume(path: str) -> str:
    with open(path, "rb") as f:
        return extract_text(f, os.path.basename(path))
