"""
Text-layer document parser.

Plain text is decoded directly; PDFs go through pypdf and only their
embedded text layer is read (no OCR).  Output shape:

    {
        "fileId", "fileName", "contentType",
        "content":    full text, pages joined by a blank line,
        "pages":      [{"pageNumber", "lines": [...]}],
        "paragraphs": [...],
        "pageCount",
    }
"""

from __future__ import annotations

import re
from typing import Any, BinaryIO

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from leaselogic.core.logging import get_logger
from leaselogic.processing.base import DocumentParser, UnsupportedDocumentError

logger = get_logger(__name__)

_TEXT_ENCODINGS = ("utf-8-sig", "cp932")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def _decode(raw: bytes) -> str:
    for encoding in _TEXT_ENCODINGS:
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise UnsupportedDocumentError("Text file is neither UTF-8 nor Shift_JIS encoded")


class TextDocumentParser(DocumentParser):
    """Extracts text and simple layout entities from text and PDF files."""

    def parse(
        self,
        stream: BinaryIO,
        *,
        file_id: str,
        file_name: str,
        content_type: str,
    ) -> dict[str, Any]:
        content_type = content_type.lower()

        if content_type == "text/plain":
            # form feeds separate pages in exported text
            page_texts = _decode(stream.read()).replace("\r\n", "\n").split("\f")
        elif content_type == "application/pdf":
            page_texts = self._read_pdf(stream)
        else:
            raise UnsupportedDocumentError(
                f"No text extractor for content type {content_type}"
            )

        pages = [
            {
                "pageNumber": number,
                "lines": [line.strip() for line in text.splitlines() if line.strip()],
            }
            for number, text in enumerate(page_texts, start=1)
        ]
        content = "\n\n".join(text.strip() for text in page_texts if text.strip())
        if not content:
            raise UnsupportedDocumentError("Document contains no extractable text")

        paragraphs = [
            " ".join(block.split())
            for block in _PARAGRAPH_BREAK.split(content)
            if block.strip()
        ]

        logger.info(
            "Document parsed",
            file_id=file_id,
            content_type=content_type,
            pages=len(pages),
            characters=len(content),
        )
        return {
            "fileId": file_id,
            "fileName": file_name,
            "contentType": content_type,
            "content": content,
            "pages": pages,
            "paragraphs": paragraphs,
            "pageCount": len(pages),
        }

    @staticmethod
    def _read_pdf(stream: BinaryIO) -> list[str]:
        try:
            reader = PdfReader(stream)
            return [page.extract_text() or "" for page in reader.pages]
        except PdfReadError as exc:
            raise UnsupportedDocumentError(f"Unreadable PDF: {exc}") from exc
