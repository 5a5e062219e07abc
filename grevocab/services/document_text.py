"""
Turn an uploaded document into plain text for the extractor
"""
import io
from typing import Optional

import structlog
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from grevocab import config
from grevocab.services.logging import log_performance

logger = structlog.get_logger()

PDF_TYPE = "application/pdf"
ALLOWED_TYPES = {
    PDF_TYPE,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
    "text/plain",
}
ALLOWED_EXTENSIONS = {".pdf", ".docx", ".doc", ".txt"}


class UnsupportedDocumentError(ValueError):
    pass


def _extension(filename: Optional[str]) -> str:
    if not filename or "." not in filename:
        return ""
    return "." + filename.rsplit(".", 1)[1].lower()


def is_supported(filename: Optional[str], content_type: Optional[str]) -> bool:
    return (content_type or "").split(";")[0].strip() in ALLOWED_TYPES or _extension(filename) in ALLOWED_EXTENSIONS


def _pdf_text(content: bytes, max_pages: int) -> str:
    try:
        reader = PdfReader(io.BytesIO(content))
        text = ""
        for page in reader.pages[:max_pages]:
            text += (page.extract_text() or "") + "\n"
        return text
    except (PdfReadError, ValueError, KeyError) as e:
        # Unreadable PDFs yield no candidates rather than an error
        logger.warning("pdf_text_extraction_failed", error=str(e))
        return ""


@log_performance("decode_document")
def decode_document(filename: Optional[str], content_type: Optional[str], content: bytes,
                    max_pages: int = config.MAX_PDF_PAGES) -> str:
    if not is_supported(filename, content_type):
        raise UnsupportedDocumentError("Please upload a PDF, Word document, or text file.")

    media_type = (content_type or "").split(";")[0].strip()
    if media_type == PDF_TYPE or _extension(filename) == ".pdf":
        return _pdf_text(content, max_pages)

    # Word files are decoded naively; the result is degraded but still searchable
    return content.decode("utf-8", errors="ignore")
