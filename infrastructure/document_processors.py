# infrastructure/document_processors.py
"""Content extraction for every indexable file kind (best effort, never raises).

- text/other: UTF-8, falling back to Latin-1 when the decode produced U+FFFD
- pdf: PdfExtractionPipeline (structured -> operators -> character scan)
- docx: python-docx paragraphs and table cells
- image: placeholder (name, extension, size, pixel dimensions); optional OCR hook

Whatever happens, ``extract`` returns an ExtractionResult. Failures become a
descriptive Dutch placeholder with success=False so the file stays findable
by name and path and one bad file never aborts an indexing batch.
"""
from __future__ import annotations

import io
import logging
from typing import Callable, Optional, Union

import docx
from PIL import Image

from config import settings
from core.domain import DocumentProcessingError, ExtractionResult, FileKind
from infrastructure.pdf_strategies import PdfExtractionPipeline
from infrastructure.text_cleaning import QualityGate, clean_extracted_text, post_process
from utils.common import format_kb, get_file_extension, get_file_name

logger = logging.getLogger(settings.LOGGER_NAME)

OcrHook = Callable[[bytes, str], Optional[str]]

# -----------------------------
# Placeholders
# -----------------------------
def _label(kind: FileKind) -> str:
    return {FileKind.PDF: "PDF", FileKind.DOCX: "Document", FileKind.IMAGE: "Afbeelding"}.get(
        kind, "Bestand"
    )


def extraction_failed_content(path: str, kind: FileKind, reason: str) -> str:
    if kind == FileKind.PDF:
        return (
            f"[PDF: {path}]\n"
            f"[Status: Extractie gefaald - {reason}]\n\n"
            "Dit PDF bestand kon niet automatisch worden gelezen.\n\n"
            "Mogelijke oorzaken:\n"
            "- Gescand document (alleen afbeeldingen, geen tekst)\n"
            "- Beveiligd/versleuteld PDF\n"
            "- Beschadigd bestand\n"
            "- Complexe formatting of speciale encoding\n\n"
            "Het bestand is wel geregistreerd voor bestandsnaam-zoekopdrachten."
        )
    return (
        f"[{_label(kind)}: {path}]\n"
        f"[Status: Extractie gefaald - {reason}]\n\n"
        "Dit bestand kon niet automatisch worden gelezen.\n"
        "Het bestand is wel geregistreerd voor bestandsnaam-zoekopdrachten."
    )


def no_text_content(path: str, kind: FileKind) -> str:
    return (
        f"[{_label(kind)}: {path}]\n"
        "[Status: Geen leesbare tekst gevonden]\n\n"
        "Dit bestand bevat mogelijk alleen afbeeldingen, beveiligde inhoud of "
        "complexe formatting.\n"
        "Het bestand wordt geregistreerd voor bestandsnaam-zoekopdrachten."
    )


def download_failed_content(path: str, reason: str) -> str:
    return (
        f"[Bestand: {path}]\n"
        f"[Status: Download fout - {reason}]\n\n"
        "Dit bestand kon niet worden gedownload van Dropbox.\n"
        "Het bestand wordt geregistreerd voor bestandsnaam-zoekopdrachten."
    )


def size_limit_content(path: str, size: int, limit: int) -> str:
    return (
        f"[Bestand: {path}]\n"
        f"[Status: Te groot om te indexeren - {format_kb(size)}, limiet {format_kb(limit)}]\n\n"
        "De inhoud van dit bestand is niet gedownload.\n"
        "Het bestand wordt geregistreerd voor bestandsnaam-zoekopdrachten."
    )


def image_placeholder_content(path: str, size: int, dimensions: Optional[tuple] = None) -> str:
    lines = [
        f"[Afbeelding: {get_file_name(path)}]",
        f"[Type: {get_file_extension(path).upper() or 'onbekend'}]",
        f"[Grootte: {format_kb(size)}]",
    ]
    if dimensions:
        lines.append(f"[Afmetingen: {dimensions[0]} x {dimensions[1]} pixels]")
    lines.append("")
    lines.append(
        "Afbeeldingen worden geïndexeerd op bestandsnaam. "
        "Er is geen tekstherkenning (OCR) uitgevoerd."
    )
    return "\n".join(lines)


# -----------------------------
# Extractor
# -----------------------------
class ContentExtractor:
    """Turns raw file bytes plus a declared kind into indexable text."""

    def __init__(
        self,
        pdf_pipeline: Optional[PdfExtractionPipeline] = None,
        *,
        ocr_hook: Optional[OcrHook] = None,
        max_chars: int = settings.MAX_CONTENT_CHARS,
        gate: Optional[QualityGate] = None,
    ) -> None:
        self.pdf_pipeline = pdf_pipeline or PdfExtractionPipeline()
        self.ocr_hook = ocr_hook
        self.max_chars = max_chars
        self.gate = gate or QualityGate()

    def extract(self, raw: bytes, kind: Union[FileKind, str], path: str) -> ExtractionResult:
        kind = kind if isinstance(kind, FileKind) else FileKind.from_string(kind)
        raw = raw or b""

        try:
            if kind == FileKind.PDF:
                result = self._extract_pdf(raw, path)
            elif kind == FileKind.DOCX:
                result = self._extract_docx(raw, path)
            elif kind == FileKind.IMAGE:
                result = self._extract_image(raw, path)
            else:
                result = self._extract_text(raw, path)
        except Exception as e:
            logger.exception(f"Unexpected extraction failure for {path}")
            result = ExtractionResult(
                content=extraction_failed_content(path, kind, str(e) or type(e).__name__),
                method="extraction-error-fallback",
                success=False,
            )

        return self._finalize(result, path, kind)

    def _finalize(self, result: ExtractionResult, path: str, kind: FileKind) -> ExtractionResult:
        content = post_process(result.content, max_chars=self.max_chars)
        # Text and other kinds keep whatever was decoded, however short
        min_chars = settings.MIN_CONTENT_CHARS if kind in (FileKind.PDF, FileKind.DOCX) else 1
        if len(content) < min_chars:
            logger.warning(f"No readable text left for {path} after post-processing")
            return ExtractionResult(
                content=no_text_content(path, kind), method=result.method, success=False
            )
        return ExtractionResult(content=content, method=result.method, success=result.success)

    # ---------- text / other ----------
    def _extract_text(self, raw: bytes, path: str) -> ExtractionResult:
        if not raw:
            return ExtractionResult(no_text_content(path, FileKind.TEXT), "empty-file", False)

        text = raw.decode("utf-8", errors="replace")
        if "\ufffd" in text:
            logger.debug(f"UTF-8 decode lossy for {path}, retrying as Latin-1")
            return ExtractionResult(raw.decode("latin-1"), "text-latin1", True)
        return ExtractionResult(text, "text-utf8", True)

    # ---------- pdf ----------
    def _extract_pdf(self, raw: bytes, path: str) -> ExtractionResult:
        try:
            return self.pdf_pipeline.run(raw, path)
        except DocumentProcessingError as e:
            logger.error(f"PDF extraction failed for {path}: {e}")
            return ExtractionResult(
                content=extraction_failed_content(path, FileKind.PDF, e.message),
                method="pdf-error-fallback",
                success=False,
            )

    # ---------- docx ----------
    def _extract_docx(self, raw: bytes, path: str) -> ExtractionResult:
        if not raw:
            return ExtractionResult(
                extraction_failed_content(path, FileKind.DOCX, "Document is leeg"),
                "docx-error-fallback",
                False,
            )
        try:
            document = docx.Document(io.BytesIO(raw))
        except Exception as e:
            logger.error(f"DOCX parse failed for {path}: {e}")
            return ExtractionResult(
                extraction_failed_content(path, FileKind.DOCX, "Ongeldig of beschadigd Word document"),
                "docx-error-fallback",
                False,
            )

        parts = [p.text for p in document.paragraphs if p.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    parts.append(" | ".join(cells))
        text = "\n".join(parts)

        if len(text.strip()) < settings.DOCX_MIN_CHARS:
            return ExtractionResult(no_text_content(path, FileKind.DOCX), "docx-error-fallback", False)
        return ExtractionResult(text, "python-docx", True)

    # ---------- image ----------
    def _extract_image(self, raw: bytes, path: str) -> ExtractionResult:
        if self.ocr_hook is not None and raw:
            try:
                recognized = self.ocr_hook(raw, path)
            except Exception as e:
                logger.warning(f"OCR hook failed for {path}: {e}")
                recognized = None
            if recognized:
                cleaned = clean_extracted_text(recognized)
                if self.gate(cleaned):
                    return ExtractionResult(cleaned, "image-ocr", True)

        return ExtractionResult(
            image_placeholder_content(path, len(raw), self._image_dimensions(raw)),
            "image-placeholder",
            bool(raw),
        )

    @staticmethod
    def _image_dimensions(raw: bytes) -> Optional[tuple]:
        if not raw:
            return None
        try:
            with Image.open(io.BytesIO(raw)) as img:
                return img.size
        except Exception:
            # SVG and truncated images: no dimensions, placeholder still valid
            return None
