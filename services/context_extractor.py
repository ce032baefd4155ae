# services/context_extractor.py
"""Snippets around term matches, used for display and as LLM context."""
import re
from typing import Iterable, List, Optional, Tuple

from config import settings

SNIPPET_SEPARATOR = "\n\n...\n\n"
TRUNCATION_MARKER = "..."

Span = Tuple[int, int]


def _unique_terms(terms: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(t for t in terms if t))


def _merge_spans(spans: List[Span]) -> List[Span]:
    merged: List[Span] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


class ContextExtractor:
    """
    Character windows around up to N occurrences per term. Overlapping
    windows are merged; distinct windows are joined with an ellipsis line.
    """

    def __init__(
        self,
        window: int = settings.CONTEXT_WINDOW,
        occurrences_per_term: int = settings.CONTEXT_OCCURRENCES_PER_TERM,
    ):
        self.window = window
        self.occurrences_per_term = occurrences_per_term

    def _spans(self, content: str, terms: List[str], whole_word: bool) -> List[Span]:
        spans: List[Span] = []
        for term in terms:
            escaped = re.escape(term)
            pattern = rf"(?<!\w){escaped}(?!\w)" if whole_word else escaped
            for i, match in enumerate(re.finditer(pattern, content, re.IGNORECASE)):
                if i >= self.occurrences_per_term:
                    break
                spans.append((
                    max(0, match.start() - self.window),
                    min(len(content), match.end() + self.window),
                ))
        return spans

    def extract(
        self,
        content: str,
        terms: Iterable[str],
        max_length: int = settings.CONTEXT_MAX_LENGTH,
        fallback_terms: Optional[Iterable[str]] = None,
    ) -> str:
        if not content:
            return ""

        spans = self._spans(content, _unique_terms(terms), whole_word=True)
        if not spans:
            spans = self._spans(content, _unique_terms(fallback_terms or terms), whole_word=False)

        if spans:
            snippets = [content[s:e].strip() for s, e in _merge_spans(spans)]
            context = SNIPPET_SEPARATOR.join(s for s in snippets if s)
        else:
            context = content[:max_length]
            if len(content) > max_length:
                context = context + TRUNCATION_MARKER

        return self._truncate(context, max_length)

    @staticmethod
    def _truncate(text: str, max_length: int) -> str:
        if len(text) <= max_length:
            return text
        keep = max(max_length - len(TRUNCATION_MARKER), 0)
        return text[:keep].rstrip() + TRUNCATION_MARKER
