# api/endpoints.py
"""
API endpoints for the Dropbox search service.

Access tokens are supplied by the browser on every call and never stored.
The document index lives with the client and is posted back for search.
"""
import asyncio
import logging
import threading
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from config import settings
from core.domain import FileKind, InvalidPromptError, LLMServiceError, SearchInputError, StorageError
from core.interfaces import IStorageClient
from infrastructure.document_index import DocumentIndex
from infrastructure.document_processors import ContentExtractor, download_failed_content
from services.answer_service import AnswerService
from services.factory import (
    get_answer_service,
    get_content_extractor,
    get_indexing_service,
    get_search_service,
    get_storage_client,
)
from services.indexing_service import IndexingService
from services.search_service import SearchService
from utils.common import detect_file_kind
from api.schemas import (
    AskRequest,
    AskResponse,
    ConnectionTestResponse,
    ContentRequest,
    ContentResponse,
    FileMetadataModel,
    FilesResponse,
    HealthResponse,
    IndexedDocumentModel,
    IndexingStats,
    IndexRequest,
    IndexResponse,
    PromptRequest,
    SearchRequest,
    SearchResponse,
    SearchResultModel,
    TokenRequest,
)

logger = logging.getLogger(settings.LOGGER_NAME)

router = APIRouter(prefix="/api")


# ---------- Helper: stop work when the client goes away ----------
async def _watch_disconnect(request: Request, event: Union[asyncio.Event, threading.Event]) -> None:
    while not event.is_set():
        if await request.is_disconnected():
            logger.info("Client disconnected, cancelling remaining work")
            event.set()
            return
        await asyncio.sleep(settings.DISCONNECT_POLL_SECONDS)


def _require_token(access_token: Optional[str]) -> str:
    if not access_token:
        raise HTTPException(status_code=400, detail="Access token is required")
    return access_token


# ---------- Search ----------
@router.post("/search", response_model=SearchResponse)
async def search_endpoint(
    search_request: SearchRequest,
    search_service: SearchService = Depends(get_search_service),
) -> SearchResponse:
    if not search_request.query or search_request.file_index is None:
        raise HTTPException(status_code=400, detail="Query and file index are required")

    documents = [document.to_domain() for document in search_request.file_index]
    try:
        outcome = await asyncio.to_thread(
            search_service.search, search_request.query, documents, search_request.max_results
        )
    except SearchInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return SearchResponse(
        results=[SearchResultModel.from_domain(result) for result in outcome.results],
        total_found=outcome.total_found,
        query=search_request.query,
        search_terms=outcome.search_terms,
        expanded_terms=outcome.expanded_terms,
    )


# ---------- Dropbox: single file content ----------
@router.post("/dropbox/content", response_model=ContentResponse)
async def file_content(
    content_request: ContentRequest,
    storage: IStorageClient = Depends(get_storage_client),
    extractor: ContentExtractor = Depends(get_content_extractor),
) -> ContentResponse:
    if not content_request.access_token or not content_request.file_path:
        raise HTTPException(status_code=400, detail="Access token and file path are required")

    path = content_request.file_path
    kind = (
        FileKind.from_string(content_request.file_type)
        if content_request.file_type
        else detect_file_kind(path)
    )

    # Past validation the answer is always a success; failures travel as placeholder content
    try:
        raw = await asyncio.to_thread(storage.download, content_request.access_token, path)
    except StorageError as e:
        logger.warning(f"Download failed for {path}: {e.message}")
        content = download_failed_content(path, e.message)
        return ContentResponse(
            content=content,
            file_path=path,
            file_type=kind,
            size=len(content),
            original_size=0,
            extraction_method="download-error-fallback",
            extraction_success=False,
            error=e.message,
        )

    result = await asyncio.to_thread(extractor.extract, raw, kind, path)
    return ContentResponse(
        content=result.content,
        file_path=path,
        file_type=kind,
        size=len(result.content),
        original_size=len(raw),
        extraction_method=result.method,
        extraction_success=result.success,
    )


# ---------- Dropbox: listing ----------
@router.post("/dropbox/files", response_model=FilesResponse)
async def list_files(
    token_request: TokenRequest,
    storage: IStorageClient = Depends(get_storage_client),
) -> FilesResponse:
    access_token = _require_token(token_request.access_token)
    try:
        files = await asyncio.to_thread(storage.list_files, access_token)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to list files: {e.message}")

    return FilesResponse(files=[FileMetadataModel.from_domain(meta) for meta in files], count=len(files))


@router.post("/dropbox/test", response_model=ConnectionTestResponse)
async def test_connection(
    token_request: TokenRequest,
    storage: IStorageClient = Depends(get_storage_client),
) -> ConnectionTestResponse:
    access_token = _require_token(token_request.access_token)
    try:
        details = await asyncio.to_thread(storage.test_connection, access_token)
    except StorageError as e:
        raise HTTPException(status_code=400, detail=f"Dropbox connection failed: {e.message}")

    return ConnectionTestResponse(
        message="Dropbox connection successful",
        account=details["account"],
        usage=details["usage"],
    )


# ---------- Indexing ----------
@router.post("/index", response_model=IndexResponse)
async def index_files(
    request: Request,
    index_request: IndexRequest,
    indexing_service: IndexingService = Depends(get_indexing_service),
) -> IndexResponse:
    access_token = _require_token(index_request.access_token)
    existing = (
        DocumentIndex.from_payload(index_request.existing_index.model_dump(by_alias=True))
        if index_request.existing_index
        else None
    )

    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
    try:
        index, summary = await indexing_service.index(access_token, existing, cancel_event)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Indexing failed: {e.message}")
    finally:
        watcher.cancel()

    payload = index.to_payload()
    return IndexResponse(
        documents=[IndexedDocumentModel.from_domain(document) for document in index.documents()],
        last_indexed=payload["lastIndexed"],
        stats=IndexingStats.from_domain(summary),
    )


# ---------- AI: streamed answer ----------
@router.post("/ai-response")
async def ai_response(
    prompt_request: PromptRequest,
    answer_service: AnswerService = Depends(get_answer_service),
) -> StreamingResponse:
    if not answer_service.is_configured:
        logger.error("GEMINI_API_KEY not found in environment variables")
        raise HTTPException(
            status_code=500, detail="API configuratie ontbreekt. Check Environment Variables."
        )
    try:
        prompt = answer_service.validate_prompt(prompt_request.prompt)
    except InvalidPromptError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return StreamingResponse(
        answer_service.stream_events(prompt),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


# ---------- AI: search + collected answer ----------
@router.post("/ask", response_model=AskResponse)
async def ask(
    request: Request,
    ask_request: AskRequest,
    search_service: SearchService = Depends(get_search_service),
    answer_service: AnswerService = Depends(get_answer_service),
) -> AskResponse:
    """
    Search the posted index and answer from the matches. Without a file
    index the question goes to the model directly.
    """
    if not ask_request.query:
        raise HTTPException(status_code=400, detail="Query is required")
    if not answer_service.is_configured:
        raise HTTPException(
            status_code=500, detail="API configuratie ontbreekt. Check Environment Variables."
        )

    cancel_event = threading.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
    try:
        if ask_request.file_index is None:
            outcome = await asyncio.to_thread(answer_service.answer_direct, ask_request.query, cancel_event)
            return AskResponse(answer=outcome.text, complete=outcome.complete)

        documents = [document.to_domain() for document in ask_request.file_index]
        found = await asyncio.to_thread(
            search_service.search, ask_request.query, documents, ask_request.max_results
        )
        outcome = await asyncio.to_thread(
            answer_service.answer_search, ask_request.query, found.results, cancel_event
        )
    except (SearchInputError, InvalidPromptError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LLMServiceError as e:
        raise HTTPException(status_code=502, detail=f"Fout bij genereren AI antwoord: {e}")
    finally:
        watcher.cancel()

    return AskResponse(
        answer=outcome.text,
        complete=outcome.complete,
        results=[SearchResultModel.from_domain(result) for result in found.results],
        total_found=found.total_found,
    )


# ---------- Health Check ----------
@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(status="healthy", version=settings.APP_VERSION)
