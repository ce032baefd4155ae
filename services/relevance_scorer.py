# services/relevance_scorer.py
"""Weighted keyword relevance for one document against an expanded term set."""
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Pattern, Tuple

from config import settings
from core.domain import ScoreResult


@dataclass(frozen=True)
class ScoreWeights:
    """Per-occurrence weights. 'exact' = whole word, 'partial' = inside a longer word."""
    name_exact: float = 20
    path_exact: float = 10
    content_exact: float = 3
    name_partial: float = 10
    path_partial: float = 5
    content_partial: float = 1


@lru_cache(maxsize=4096)
def whole_word_pattern(term: str) -> Pattern:
    # Terms are escaped: "c++" or "(concept)" must match literally
    return re.compile(rf"(?<!\w){re.escape(term)}(?!\w)")


def count_matches(term: str, text: str) -> Tuple[int, int]:
    """(whole-word occurrences, other substring occurrences) of a lower-cased term."""
    if not term or not text:
        return 0, 0
    total = text.count(term)
    if not total:
        return 0, 0
    exact = len(whole_word_pattern(term).findall(text))
    return exact, max(total - exact, 0)


class RelevanceScorer:
    """
    score = sum over terms of weighted occurrence counts in name, path, content
            x (1 + 0.2 * (matched_terms - 1))   when more than one term matched
            x 1.2 for short documents / 0.8 for long ones
    """

    def __init__(
        self,
        weights: ScoreWeights = ScoreWeights(),
        normalizer: float = settings.SCORE_NORMALIZER,
    ):
        self.weights = weights
        self.normalizer = normalizer

    def score(self, terms: Iterable[str], name: str, path: str, content: str) -> ScoreResult:
        name_l, path_l, content_l = (name or "").lower(), (path or "").lower(), (content or "").lower()
        w = self.weights

        total = 0.0
        matched = set()
        for term in terms:
            term = term.lower()
            name_exact, name_partial = count_matches(term, name_l)
            path_exact, path_partial = count_matches(term, path_l)
            content_exact, content_partial = count_matches(term, content_l)

            contribution = (
                name_exact * w.name_exact + name_partial * w.name_partial
                + path_exact * w.path_exact + path_partial * w.path_partial
                + content_exact * w.content_exact + content_partial * w.content_partial
            )
            if contribution:
                matched.add(term)
                total += contribution

        if not matched:
            return ScoreResult(score=0.0, matched_terms=set())

        if len(matched) > 1:
            total *= 1 + settings.MULTI_TERM_BONUS * (len(matched) - 1)

        length = len(content or "")
        if length < settings.SHORT_DOCUMENT_CHARS:
            total *= settings.SHORT_DOCUMENT_BONUS
        elif length > settings.LONG_DOCUMENT_CHARS:
            total *= settings.LONG_DOCUMENT_PENALTY

        return ScoreResult(score=total, matched_terms=matched)

    def normalize(self, raw_score: float) -> float:
        """Map a raw score onto [0, 1]; monotonic, so ordering is preserved."""
        if raw_score <= 0:
            return 0.0
        return min(raw_score / self.normalizer, 1.0)
