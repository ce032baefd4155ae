# services/search_service.py
"""Search orchestration over an in-memory document collection.

Full linear scan per query. Collections are personal Dropbox folders of at
most a few thousand files, so no inverted index is built.
"""
import logging
import re
from typing import List, Optional, Sequence

from config import settings
from core.domain import IndexedDocument, SearchInputError, SearchOutcome, SearchResult
from services.context_extractor import ContextExtractor
from services.relevance_scorer import RelevanceScorer
from services.term_expander import TermExpander

logger = logging.getLogger(settings.LOGGER_NAME)

_NON_WORD = re.compile(r"[^\w\s]")


def tokenize_query(query: str) -> List[str]:
    """Lower-cased unique query words longer than one character (accented letters kept)."""
    cleaned = _NON_WORD.sub(" ", (query or "").lower())
    terms: List[str] = []
    for token in cleaned.split():
        if len(token) > 1 and token not in terms:
            terms.append(token)
    return terms


class SearchService:
    def __init__(
        self,
        expander: Optional[TermExpander] = None,
        scorer: Optional[RelevanceScorer] = None,
        context_extractor: Optional[ContextExtractor] = None,
        context_max_length: int = settings.CONTEXT_MAX_LENGTH,
    ):
        self.expander = expander or TermExpander()
        self.scorer = scorer or RelevanceScorer()
        self.context_extractor = context_extractor or ContextExtractor()
        self.context_max_length = context_max_length

    def search(
        self,
        query: str,
        documents: Optional[Sequence[IndexedDocument]],
        max_results: Optional[int] = None,
    ) -> SearchOutcome:
        if not query or documents is None:
            raise SearchInputError("Query and file index are required")

        limit = settings.DEFAULT_MAX_RESULTS if max_results is None else max(0, max_results)

        search_terms = tokenize_query(query)
        if not search_terms:
            logger.info(f"Query '{query}' has no searchable terms")
            return SearchOutcome(results=[], total_found=0, search_terms=[], expanded_terms=[])

        expanded_terms = sorted(self.expander.expand(search_terms))

        scored = []
        for document in documents:
            result = self.scorer.score(expanded_terms, document.name, document.path, document.content)
            if result.score > 0:
                scored.append((document, result))

        # sorted() is stable: equal scores keep collection order
        ranked = sorted(scored, key=lambda item: item[1].score, reverse=True)

        results = [
            SearchResult(
                document=document,
                relevance_score=self.scorer.normalize(result.score),
                matched_content=self.context_extractor.extract(
                    document.content,
                    result.matched_terms,
                    self.context_max_length,
                    fallback_terms=expanded_terms,
                ),
                raw_score=result.score,
                matched_terms=sorted(result.matched_terms),
            )
            for document, result in ranked[:limit]
        ]

        logger.info(
            f"Search '{query}': {len(search_terms)} terms -> {len(expanded_terms)} expanded, "
            f"{len(scored)} of {len(documents)} documents matched"
        )
        return SearchOutcome(
            results=results,
            total_found=len(scored),
            search_terms=search_terms,
            expanded_terms=expanded_terms,
        )
