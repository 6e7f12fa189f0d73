"""
PDF text extraction service using pdfplumber.

Reads the embedded text layer of a PDF into a Document for field extraction.
"""

import io
import logging
from dataclasses import dataclass

import pdfplumber

logger = logging.getLogger(__name__)


class PDFConversionError(Exception):
    """Raised when a PDF cannot be read."""

    pass


class EmptyDocumentError(PDFConversionError):
    """Raised when a PDF has no extractable text."""

    pass


@dataclass(frozen=True)
class Document:
    """
    An uploaded document after text extraction.

    Attributes:
        name: Original filename.
        size: Size of the uploaded file in bytes.
        text: Full text of all pages, pages separated by newlines.
        page_count: Number of pages in the PDF.
    """

    name: str
    size: int
    text: str
    page_count: int

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    def require_text(self) -> str:
        """
        Return the document text, failing if there is none.

        Raises:
            EmptyDocumentError: If the PDF had no text layer.
        """
        if self.is_empty:
            raise EmptyDocumentError("No text content found in PDF")
        return self.text


class PDFService:
    """Service for reading text out of PDF documents."""

    def load_document(self, pdf_bytes: bytes, name: str, size: int | None = None) -> Document:
        """
        Extract the text of every page of a PDF.

        Args:
            pdf_bytes: Raw PDF file content.
            name: Original filename, kept on the Document.
            size: Upload size in bytes. Defaults to len(pdf_bytes).

        Returns:
            Document with text and page count. The text may be empty for
            scanned PDFs without a text layer.

        Raises:
            PDFConversionError: If the content is empty, not a PDF, or unreadable.
        """
        if not pdf_bytes:
            raise PDFConversionError("Empty PDF file provided")

        # Validate PDF magic bytes
        if not pdf_bytes[:4] == b"%PDF":
            raise PDFConversionError(
                "Invalid PDF file: does not start with PDF header"
            )

        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                page_count = len(pdf.pages)
                page_texts = [page.extract_text() or "" for page in pdf.pages]
        except Exception as e:
            logger.exception("Unexpected error while reading PDF text")
            raise PDFConversionError(f"Invalid or corrupted PDF file: {e}") from e

        text = "\n".join(page_texts)
        logger.info(
            "PDF text extracted: %d characters from %d page(s)",
            len(text),
            page_count,
        )

        return Document(
            name=name,
            size=len(pdf_bytes) if size is None else size,
            text=text,
            page_count=page_count,
        )


# Singleton instance for convenience
_pdf_service: PDFService | None = None


def get_pdf_service() -> PDFService:
    """Get or create the PDF service singleton."""
    global _pdf_service
    if _pdf_service is None:
        _pdf_service = PDFService()
    return _pdf_service
