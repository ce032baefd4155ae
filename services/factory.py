# services/factory.py
from functools import lru_cache

from fastapi import Depends

from config import settings
from core.interfaces import ILLMClient, IStorageClient
from infrastructure.document_processors import ContentExtractor
from infrastructure.dropbox_client import DropboxClient
from infrastructure.gemini_client import GeminiClient
from services.answer_service import AnswerService
from services.indexing_service import IndexingService
from services.search_service import SearchService


# Provider functions for each component
@lru_cache(maxsize=1)
def get_content_extractor() -> ContentExtractor:
    """Shared extractor; holds no per-request state."""
    return ContentExtractor(max_chars=settings.MAX_CONTENT_CHARS)


@lru_cache(maxsize=1)
def get_search_service() -> SearchService:
    return SearchService()


def get_storage_client() -> IStorageClient:
    """Create storage client. Tokens are supplied per call."""
    return DropboxClient()


def get_llm_client() -> ILLMClient:
    return GeminiClient()


def get_indexing_service(
    storage: IStorageClient = Depends(get_storage_client),
    extractor: ContentExtractor = Depends(get_content_extractor),
) -> IndexingService:
    return IndexingService(storage, extractor)


def get_answer_service(llm_client: ILLMClient = Depends(get_llm_client)) -> AnswerService:
    return AnswerService(llm_client)


def clear_cached_services() -> None:
    get_content_extractor.cache_clear()
    get_search_service.cache_clear()
