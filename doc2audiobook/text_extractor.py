"""Text extraction - turn an uploaded TXT, DOCX or PDF into plain text."""

import io
import logging
import zipfile
from pathlib import PurePosixPath

from bs4 import BeautifulSoup
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from doc2audiobook.errors import ExtractionError, UnsupportedFormat

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ("txt", "docx", "pdf")

DOCX_MAIN_PART = "word/document.xml"


def file_extension(filename: str) -> str:
    """Return the lower-cased extension of ``filename`` without the dot."""
    return PurePosixPath(filename.lower()).suffix.lstrip(".")


def extract(blob: bytes, filename: str) -> str:
    """Extract plain text from a document.

    Args:
        blob: Raw file content.
        filename: Original file name; only its extension is used.

    Returns:
        The document text.

    Raises:
        UnsupportedFormat: For EPUB and any extension other than txt/docx/pdf.
        ExtractionError: If the file is malformed or holds no text.
    """
    ext = file_extension(filename)

    if ext == "txt":
        text = _extract_txt(blob)
    elif ext == "docx":
        text = _extract_docx(blob)
    elif ext == "pdf":
        text = _extract_pdf(blob)
    elif ext == "epub":
        raise UnsupportedFormat(
            "EPUB files are not yet supported. Please upload a .pdf, .docx, or .txt file."
        )
    else:
        raise UnsupportedFormat(f"Unsupported file type: .{ext}")

    if not text.strip():
        raise ExtractionError("No text could be extracted from the document")

    logger.info("Extracted %d characters from '%s'", len(text), filename)
    return text


def _extract_txt(blob: bytes) -> str:
    return blob.decode("utf-8-sig", errors="replace")


def _extract_docx(blob: bytes) -> str:
    try:
        with zipfile.ZipFile(io.BytesIO(blob)) as archive:
            xml = archive.read(DOCX_MAIN_PART)
    except zipfile.BadZipFile as e:
        raise ExtractionError(f"Invalid .docx file: {e}") from e
    except KeyError as e:
        raise ExtractionError(f"Invalid .docx file: missing {DOCX_MAIN_PART}") from e

    return docx_xml_to_text(xml)


def docx_xml_to_text(xml: bytes) -> str:
    """Join the text runs of each paragraph; paragraphs are separated by a blank line.

    Runs inside a paragraph are concatenated with no separator. Paragraphs
    without any run are dropped.
    """
    soup = BeautifulSoup(xml, "xml")

    paragraphs = []
    for p in soup.find_all("w:p"):
        runs = [
            t.get_text()
            for t in p.find_all("w:t")
            # text boxes nest paragraphs; each run belongs to its closest one
            if t.find_parent("w:p") is p
        ]
        if runs:
            paragraphs.append("".join(runs))
    return "\n\n".join(paragraphs)


def _extract_pdf(blob: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(blob))
        pages = [_page_text(page) for page in reader.pages]
    except PdfReadError as e:
        raise ExtractionError(f"Invalid .pdf file: {e}") from e

    logger.debug("PDF has %d pages", len(pages))
    return "\n\n".join(p for p in pages if p)


def _page_text(page) -> str:
    """Concatenate the text items of one page with a space."""
    items: list[str] = []

    def visitor(text, *_args):
        if text and text.strip():
            items.append(text.strip())

    page.extract_text(visitor_text=visitor)
    return " ".join(items)
