# infrastructure/text_cleaning.py
"""Text cleaning, post-processing and the readability gate for extracted content.

Naive PDF text extraction glues words together ("rubriekVoor", "pagina3"),
leaves control bytes behind and produces long whitespace runs. The cleaning
pass repairs that; the quality gate decides whether what is left is text at
all or binary noise that merely decoded.
"""
import re
import unicodedata
from dataclasses import dataclass

from config import settings

# -----------------------------
# Patterns
# -----------------------------
_PDF_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F-\x9F]")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_CAMEL_BOUNDARY = re.compile(r"([a-zß-öø-ÿ])([A-ZÀ-ÖØ-Þ])")
_SENTENCE_BOUNDARY = re.compile(r"([.!?])([A-Z])")
_LETTER_DIGIT = re.compile(r"([a-zA-Z])(\d)")
_DIGIT_LETTER = re.compile(r"(\d)([a-zA-Z])")
_HORIZONTAL_WS = re.compile(r"[^\S\n]+")
_SPACES_AROUND_NEWLINE = re.compile(r" *\n *")
_EXCESS_BLANK_LINES = re.compile(r"\n{3,}")

_WORD = re.compile(r"\b[a-zA-ZÀ-ÖØ-öø-ž]{2,}\b")
_LONG_ASCII_WORD = re.compile(r"\b[a-zA-Z]{3,}\b")

# Letters that occur in Dutch/Western European text besides plain ASCII
LATIN_LETTERS = "àáâãäåæçèéêëìíîïñòóôõöøùúûüýÿÀÁÂÃÄÅÆÇÈÉÊËÌÍÎÏÑÒÓÔÕÖØÙÚÛÜÝ"
READABLE_PUNCTUATION = ".,!?;:()-'\"/%&"


def _is_readable_char(ch: str) -> bool:
    return (
        ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ("0" <= ch <= "9")
        or ch.isspace() or ch in READABLE_PUNCTUATION or ch in LATIN_LETTERS
    )


# -----------------------------
# Cleaning pass (PDF artifacts)
# -----------------------------
def clean_extracted_text(text: str) -> str:
    """
    Repair typical PDF extraction artifacts. Idempotent: cleaning cleaned
    text returns it unchanged.
    """
    if not text:
        return ""

    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = text.replace("\f", "\n").replace("\v", "\n")
    text = unicodedata.normalize("NFKC", text)
    text = _PDF_CONTROL_CHARS.sub("", text)
    text = text.replace("\ufffd", "")

    text = _CAMEL_BOUNDARY.sub(r"\1 \2", text)
    text = _SENTENCE_BOUNDARY.sub(r"\1 \2", text)
    text = _LETTER_DIGIT.sub(r"\1 \2", text)
    text = _DIGIT_LETTER.sub(r"\1 \2", text)

    text = _HORIZONTAL_WS.sub(" ", text)
    text = _SPACES_AROUND_NEWLINE.sub("\n", text)
    text = _EXCESS_BLANK_LINES.sub("\n\n", text)
    return text.strip()


# -----------------------------
# Global post-processing (all kinds)
# -----------------------------
def normalize_content(text: str) -> str:
    """Strip control bytes, normalize line endings and whitespace, cap blank lines."""
    if not text:
        return ""

    text = text.replace("\0", "")
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = text.replace("\f", "\n").replace("\v", "\n")
    text = _CONTROL_CHARS.sub("", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n[ \t]+", "\n", text)
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{4,}", "\n\n\n", text)
    return text.strip()


def truncate_content(
    text: str,
    max_chars: int = settings.MAX_CONTENT_CHARS,
    sentence_lookback: int = settings.TRUNCATE_SENTENCE_LOOKBACK,
    paragraph_lookback: int = settings.TRUNCATE_PARAGRAPH_LOOKBACK,
) -> str:
    """
    Cut overlong content, preferring a sentence end or paragraph break close
    to the ceiling, and append a truncation notice.
    """
    if len(text) <= max_chars:
        return text

    cut = max_chars
    sentence_end = text.rfind(".", 0, max_chars)
    paragraph_end = text.rfind("\n\n", 0, max_chars)

    if sentence_end > max_chars - sentence_lookback:
        cut = sentence_end + 1
    elif paragraph_end > max_chars - paragraph_lookback:
        cut = paragraph_end + 2

    shown = f"{max_chars:,}".replace(",", ".")
    return (
        text[:cut].rstrip()
        + f"\n\n[Inhoud ingekort - eerste {shown} karakters getoond voor indexering]"
    )


def post_process(text: str, max_chars: int = settings.MAX_CONTENT_CHARS) -> str:
    """normalize_content followed by truncate_content."""
    return truncate_content(normalize_content(text), max_chars=max_chars)


# -----------------------------
# Quality gate
# -----------------------------
@dataclass(frozen=True)
class QualityGate:
    """
    Readability predicate shared by every extraction strategy.

    Thresholds are empirical (Dutch educational documents) and therefore
    configurable through settings.
    """
    min_chars: int = settings.QUALITY_MIN_CHARS
    min_words: int = settings.QUALITY_MIN_WORDS
    min_word_ratio: float = settings.QUALITY_MIN_WORD_RATIO
    min_readable_ratio: float = settings.QUALITY_MIN_READABLE_RATIO

    def __call__(self, text: str) -> bool:
        return self.is_readable(text)

    def is_readable(self, text: str) -> bool:
        if not text or len(text) < self.min_chars:
            return False

        words = _WORD.findall(text)
        tokens = text.split()
        word_ratio = len(words) / (len(tokens) or 1)
        readable_ratio = sum(1 for ch in text if _is_readable_char(ch)) / len(text)

        return (
            len(words) >= self.min_words
            and word_ratio > self.min_word_ratio
            and readable_ratio > self.min_readable_ratio
        )

    def is_readable_fragment(self, text: str) -> bool:
        """Looser check for short strings such as PDF titles: mostly readable characters."""
        if not text or not _WORD.search(text):
            return False
        readable = sum(1 for ch in text if _is_readable_char(ch))
        return readable / len(text) > self.min_readable_ratio


def readability_score(text: str) -> int:
    """Rank competing candidates: length weighted by the number of real words."""
    return len(text) * len(_LONG_ASCII_WORD.findall(text))
