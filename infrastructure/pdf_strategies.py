# infrastructure/pdf_strategies.py
"""PDF text extraction strategies and the runner that tries them in order.

Each strategy is a plain function ``bytes -> Iterator[Candidate]``. The
runner applies the same cleaning pass and quality gate to every candidate;
the first one that passes wins. Strategies never judge readability
themselves.

Order:
1. structured  - PyMuPDF parse, several option variants
2. operators   - regex over text-showing operators (Tj/TJ/') inside BT..ET
3. char-scan   - long runs of printable characters in the raw bytes
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence

from config import settings
from core.domain import DocumentProcessingError, ErrorCode, ExtractionResult
from infrastructure.pdf_readers import PdfParseOptions, PdfText, PyMuPDFTextReader, get_pdf_reader
from infrastructure.text_cleaning import (
    LATIN_LETTERS,
    QualityGate,
    clean_extracted_text,
    readability_score,
)

logger = logging.getLogger(settings.LOGGER_NAME)


@dataclass(frozen=True)
class Candidate:
    """Raw text proposed by a strategy, plus the limits the runner enforces."""
    text: str
    method: str
    header: str = ""
    min_chars: int = 0
    min_score: int = 0
    max_chars: Optional[int] = None


Strategy = Callable[[bytes], Iterator[Candidate]]

PDF_PARSE_VARIANTS: Sequence[PdfParseOptions] = (
    PdfParseOptions(label="default"),
    PdfParseOptions(label="raw-whitespace", normalize_whitespace=False),
    PdfParseOptions(
        label="words",
        max_pages=settings.PDF_MAX_PAGES_FALLBACK,
        combine_text_items=False,
    ),
)

# -----------------------------
# Strategy 1: structured parse
# -----------------------------
def _metadata_header(parsed: PdfText, gate: QualityGate) -> str:
    labels = (("title", "Titel"), ("author", "Auteur"), ("subject", "Onderwerp"))
    parts = []
    for key, label in labels:
        value = clean_extracted_text(parsed.metadata.get(key) or "")
        if value and gate.is_readable_fragment(value):
            parts.append(f"{label}: {value}")
    if parsed.page_count:
        parts.append(f"Aantal pagina's: {parsed.page_count}")
    return " | ".join(parts)


def structured_strategy(
    data: bytes,
    reader: Optional[PyMuPDFTextReader] = None,
    variants: Sequence[PdfParseOptions] = PDF_PARSE_VARIANTS,
) -> Iterator[Candidate]:
    reader = reader or get_pdf_reader()
    gate = QualityGate()
    last_error: Optional[Exception] = None
    parsed_any = False

    for options in variants:
        try:
            parsed = reader.read(data, options)
        except DocumentProcessingError:
            raise
        except Exception as e:
            logger.debug(f"PyMuPDF variant '{options.label}' failed: {e}")
            last_error = e
            continue

        parsed_any = True
        yield Candidate(
            text=parsed.text,
            method=f"pymupdf-{options.label}",
            header=_metadata_header(parsed, gate),
            min_chars=settings.PDF_MIN_STRUCTURED_CHARS,
        )

    if not parsed_any and last_error is not None:
        raise last_error

# -----------------------------
# Strategy 2: text operators
# -----------------------------
_BT_ET = re.compile(r"(?<![A-Za-z])BT\s(.*?)\sET(?![A-Za-z])", re.S)
_OPERATOR = re.compile(
    r"\[((?:[^\]\\]|\\.)*)\]\s*TJ"                 # [(Hel) -20 (lo)] TJ
    r"|\(((?:[^()\\]|\\.)*)\)\s*(?:Tj|'|\")"       # (Hello) Tj
    r"|<([0-9A-Fa-f\s]+)>\s*Tj",                   # <48656c6c6f> Tj
    re.S,
)
_ARRAY_ITEM = re.compile(r"\(((?:[^()\\]|\\.)*)\)|<([0-9A-Fa-f\s]+)>|(-?\d+(?:\.\d+)?)")
_LOOSE_PAREN = re.compile(r"\(([^)]{10,})\)")
_LOOSE_BRACKET = re.compile(r"\[([^\]]{10,})\]")
_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "b": "\b", "f": "\f", "(": "(", ")": ")", "\\": "\\"}
_ESCAPE_SEQ = re.compile(r"\\([0-7]{1,3}|.|\n)", re.S)
# Kerning offsets beyond this (thousandths of an em) are rendered as word gaps
TJ_SPACE_THRESHOLD = 200


def unescape_pdf_string(raw: str) -> str:
    """Decode the escape sequences of a PDF literal string."""
    def _replace(match: re.Match) -> str:
        seq = match.group(1)
        if seq == "\n":
            return ""
        if seq[0] in "01234567":
            return chr(int(seq, 8) & 0xFF)
        return _ESCAPES.get(seq, seq)
    return _ESCAPE_SEQ.sub(_replace, raw)


def decode_hex_string(raw: str) -> str:
    digits = re.sub(r"\s+", "", raw)
    if len(digits) % 2:
        digits += "0"
    data = bytes.fromhex(digits)
    if data.startswith(b"\xfe\xff"):
        return data[2:].decode("utf-16-be", errors="ignore")
    return data.decode("latin-1")


def _decode_tj_array(body: str) -> str:
    out = []
    for literal, hexstr, number in _ARRAY_ITEM.findall(body):
        if number:
            if float(number) < -TJ_SPACE_THRESHOLD:
                out.append(" ")
        elif hexstr:
            out.append(decode_hex_string(hexstr))
        else:
            out.append(unescape_pdf_string(literal))
    return "".join(out)


def extract_operator_text(text: str) -> List[str]:
    """Strings shown by text operators, in stream order; loose strings as fallback."""
    pieces: List[str] = []
    for block in _BT_ET.finditer(text):
        shown = []
        for array, literal, hexstr in _OPERATOR.findall(block.group(1)):
            if array:
                shown.append(_decode_tj_array(array))
            elif hexstr:
                shown.append(decode_hex_string(hexstr))
            else:
                shown.append(unescape_pdf_string(literal))
        block_text = " ".join(s for s in shown if s.strip())
        if re.search(r"[a-zA-Z]", block_text):
            pieces.append(block_text)

    if pieces:
        return pieces

    for pattern in (_LOOSE_PAREN, _LOOSE_BRACKET):
        for match in pattern.finditer(text):
            value = match.group(1).strip()
            if len(value) > settings.PDF_MIN_RUN_LENGTH and re.search(r"[a-zA-Z]", value):
                pieces.append(unescape_pdf_string(value))
    return pieces


def operators_strategy(data: bytes) -> Iterator[Candidate]:
    texts = []
    for encoding in ("latin-1", "utf-8"):
        pieces = extract_operator_text(data.decode(encoding, errors="ignore"))
        if pieces:
            joined = " ".join(pieces)
            if joined not in texts:
                texts.append(joined)

    for text in sorted(texts, key=readability_score, reverse=True):
        yield Candidate(
            text=text,
            method="pdf-operators",
            min_score=settings.PDF_OPERATOR_MIN_SCORE,
            max_chars=settings.PDF_OPERATOR_MAX_CHARS,
        )

# -----------------------------
# Strategy 3: character scan
# -----------------------------
_PRINTABLE_RUN = re.compile(r"[A-Za-z0-9 \t\n.,!?;:()\-" + LATIN_LETTERS + r"]+")


def scan_printable_runs(data: bytes, limit: int = settings.PDF_SCAN_LIMIT) -> List[str]:
    text = data[:limit].decode("latin-1")
    runs = []
    for match in _PRINTABLE_RUN.finditer(text):
        run = match.group(0).strip()
        if len(run) > settings.PDF_MIN_RUN_LENGTH and re.search(r"[a-zA-Z]", run):
            runs.append(run)
    return runs


def character_scan_strategy(data: bytes) -> Iterator[Candidate]:
    runs = scan_printable_runs(data)
    if runs:
        yield Candidate(
            text=" ".join(runs),
            method="pdf-character-scan",
            max_chars=settings.PDF_SCAN_MAX_CHARS,
        )


DEFAULT_STRATEGIES: Sequence[Strategy] = (
    structured_strategy,
    operators_strategy,
    character_scan_strategy,
)

# -----------------------------
# Runner
# -----------------------------
class PdfExtractionPipeline:
    """Validate the buffer, then try strategies until one passes the gate."""

    def __init__(
        self,
        strategies: Sequence[Strategy] = DEFAULT_STRATEGIES,
        gate: Optional[QualityGate] = None,
    ):
        self.strategies = list(strategies)
        self.gate = gate or QualityGate()

    def validate(self, data: bytes) -> None:
        if not data:
            raise DocumentProcessingError("PDF bestand is leeg", ErrorCode.EMPTY_FILE)
        if b"%PDF" not in data[:1024]:
            raise DocumentProcessingError(
                "Bestand is geen geldig PDF formaat", ErrorCode.INVALID_FORMAT
            )

    def accept(self, candidate: Candidate) -> Optional[str]:
        """Cleaned text when the candidate is usable, otherwise None."""
        cleaned = clean_extracted_text(candidate.text)
        if len(cleaned) < candidate.min_chars or not self.gate(cleaned):
            return None
        if candidate.min_score and readability_score(cleaned) < candidate.min_score:
            return None
        if candidate.max_chars:
            cleaned = cleaned[:candidate.max_chars]
        return f"{candidate.header}\n\n{cleaned}" if candidate.header else cleaned

    def run(self, data: bytes, path: str) -> ExtractionResult:
        self.validate(data)
        logger.info(f"Processing PDF: {path} ({len(data) / 1024:.1f} KB)")

        encrypted: Optional[DocumentProcessingError] = None
        for strategy in self.strategies:
            name = getattr(strategy, "__name__", repr(strategy))
            try:
                for candidate in strategy(data):
                    content = self.accept(candidate)
                    if content is not None:
                        logger.info(f"{candidate.method} succeeded for {path}: {len(content)} chars")
                        return ExtractionResult(content=content, method=candidate.method, success=True)
                logger.warning(f"{name} produced no readable content for {path}")
            except DocumentProcessingError as e:
                logger.warning(f"{name} failed for {path}: {e}")
                if e.error_code == ErrorCode.ENCRYPTED:
                    encrypted = e
            except Exception as e:
                logger.warning(f"{name} failed for {path}: {e}")

        if encrypted is not None:
            raise encrypted
        raise DocumentProcessingError(
            f"Alle PDF tekstextractie strategieën faalden voor {path}. Dit kan een gescand "
            "document, beveiligd PDF, of beschadigd bestand zijn.",
            ErrorCode.NO_TEXT_FOUND,
        )
