"""PyMuPDF-backed PDF text reader, initialized once and reused."""
import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Optional

import fitz  # PyMuPDF

from config import settings
from core.domain import DocumentProcessingError, ErrorCode

logger = logging.getLogger(settings.LOGGER_NAME)


@dataclass(frozen=True)
class PdfParseOptions:
    """
    One configuration of the structured parse.

    Some malformed PDFs only yield text under one of these, so the
    structured strategy tries several in order.
    """
    label: str = "default"
    max_pages: int = 0  # 0 = all pages
    normalize_whitespace: bool = True
    combine_text_items: bool = True


@dataclass
class PdfText:
    text: str
    page_count: int
    metadata: Dict[str, Optional[str]] = field(default_factory=dict)


class PyMuPDFTextReader:
    """
    Text reader over in-memory PDF bytes.

    - combine_text_items=True uses PyMuPDF's line/block layout ("text" mode)
    - combine_text_items=False joins the raw word list, which survives some
      broken layouts that make "text" mode return nothing
    """

    def __init__(self):
        self.version = getattr(fitz, "VersionBind", "unknown")
        logger.info(f"PDF reader initialized (PyMuPDF {self.version})")

    def read(self, data: bytes, options: PdfParseOptions = PdfParseOptions()) -> PdfText:
        with fitz.open(stream=data, filetype="pdf") as doc:
            if doc.needs_pass:
                raise DocumentProcessingError(
                    "PDF is beveiligd met een wachtwoord", ErrorCode.ENCRYPTED
                )

            page_count = doc.page_count
            limit = page_count if not options.max_pages else min(page_count, options.max_pages)
            if options.normalize_whitespace:
                flags = fitz.TEXT_PRESERVE_LIGATURES | fitz.TEXT_DEHYPHENATE
            else:
                flags = fitz.TEXT_PRESERVE_LIGATURES | fitz.TEXT_PRESERVE_WHITESPACE

            pages = []
            for page_num in range(limit):
                page = doc.load_page(page_num)
                if options.combine_text_items:
                    pages.append(page.get_text("text", flags=flags))
                else:
                    words = page.get_text("words")
                    pages.append(" ".join(w[4] for w in words))

            text = "\n\n".join(pages)
            if options.normalize_whitespace:
                text = re.sub(r"[ \t]+", " ", text)

            return PdfText(text=text, page_count=page_count, metadata=dict(doc.metadata or {}))


@lru_cache(maxsize=1)
def get_pdf_reader() -> PyMuPDFTextReader:
    """Shared reader instance; construction is cheap and idempotent."""
    return PyMuPDFTextReader()
