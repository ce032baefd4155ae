# services/indexing_service.py
"""Batched download + extraction of every file in the user's storage"""
import asyncio
import logging
from typing import Callable, List, Optional, Tuple

from config import settings
from core.domain import FileKind, FileMetadata, FileOutcome, IndexedDocument, IndexingSummary, StorageError
from core.interfaces import IStorageClient
from infrastructure.document_index import DocumentIndex
from infrastructure.document_processors import (
    ContentExtractor,
    download_failed_content,
    extraction_failed_content,
    size_limit_content,
)
from utils.common import detect_file_kind

logger = logging.getLogger(settings.LOGGER_NAME)

ProgressCallback = Callable[[IndexingSummary, Optional[str]], None]


class IndexingService:
    """
    Builds a DocumentIndex from storage.

    Files are processed in small concurrent batches with a pause between
    batches. A failing file never aborts the run; it is indexed with
    placeholder content and counted as failed. Only a listing failure is fatal.
    """

    def __init__(
        self,
        storage: IStorageClient,
        extractor: ContentExtractor,
        batch_size: int = settings.INDEX_BATCH_SIZE,
        batch_delay: float = settings.INDEX_BATCH_DELAY_SECONDS,
        max_file_bytes: int = settings.INDEX_MAX_FILE_BYTES,
    ):
        self.storage = storage
        self.extractor = extractor
        self.batch_size = max(1, batch_size)
        self.batch_delay = max(0.0, batch_delay)
        self.max_file_bytes = max_file_bytes

    async def list_files(self, access_token: str) -> List[FileMetadata]:
        return await asyncio.to_thread(self.storage.list_files, access_token)

    @staticmethod
    def _document(meta: FileMetadata, kind: FileKind, content: str) -> IndexedDocument:
        return IndexedDocument(
            id=meta.id,
            name=meta.name,
            path=meta.path_display or meta.path,
            content=content,
            size=meta.size,
            modified=meta.server_modified,
            kind=kind,
        )

    async def process_file(self, access_token: str, meta: FileMetadata) -> FileOutcome:
        kind = detect_file_kind(meta.name)
        path = meta.path_display or meta.path

        if meta.size > self.max_file_bytes:
            logger.info(f"Skipping download of {path}: {meta.size} bytes exceeds {self.max_file_bytes}")
            return FileOutcome(
                document=self._document(meta, kind, size_limit_content(path, meta.size, self.max_file_bytes)),
                success=False,
                method="size-limit-skip",
                error=f"File exceeds {self.max_file_bytes} bytes",
            )

        try:
            raw = await asyncio.to_thread(self.storage.download, access_token, meta.path_lower)
        except StorageError as e:
            logger.warning(f"Download failed for {path}: {e.message}")
            return FileOutcome(
                document=self._document(meta, kind, download_failed_content(path, e.message)),
                success=False,
                method="download-error-fallback",
                error=e.message,
            )

        try:
            result = await asyncio.to_thread(self.extractor.extract, raw, kind, path)
        except Exception as e:
            logger.exception(f"Unexpected extraction failure for {path}: {e}")
            return FileOutcome(
                document=self._document(meta, kind, extraction_failed_content(path, kind, str(e))),
                success=False,
                method="extraction-error-fallback",
                error=str(e),
            )

        logger.info(f"Indexed {path} via {result.method} ({len(result.content)} chars)")
        return FileOutcome(
            document=self._document(meta, kind, result.content),
            success=result.success,
            method=result.method,
        )

    @staticmethod
    def _update_progress(callback: Optional[ProgressCallback], summary: IndexingSummary, current: Optional[str]):
        if callback is None:
            return
        try:
            callback(summary, current)
        except Exception as e:
            # Progress reporting must not interrupt indexing
            logger.debug(f"Progress callback failed: {e}")

    async def index(
        self,
        access_token: str,
        existing: Optional[DocumentIndex] = None,
        cancel_event: Optional[asyncio.Event] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Tuple[DocumentIndex, IndexingSummary]:
        """
        Index every file, updating `existing` in place when given.

        Cancellation is checked before each batch; documents from completed
        batches are kept. Raises StorageError when the listing fails.
        """
        index = existing if existing is not None else DocumentIndex()
        files = await self.list_files(access_token)
        summary = IndexingSummary(total=len(files))
        logger.info(f"Indexing {len(files)} files in batches of {self.batch_size}")

        for start in range(0, len(files), self.batch_size):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Indexing cancelled after {summary.processed} of {summary.total} files")
                summary = summary.cancel()
                break

            batch = files[start:start + self.batch_size]
            self._update_progress(progress_callback, summary, batch[0].name)

            outcomes = await asyncio.gather(*(self.process_file(access_token, meta) for meta in batch))
            for outcome in outcomes:
                index.upsert(outcome.document)
            summary = summary.fold(outcomes)
            self._update_progress(progress_callback, summary, None)

            if start + self.batch_size < len(files) and self.batch_delay:
                await asyncio.sleep(self.batch_delay)

        index.mark_indexed()
        logger.info(
            f"Indexing finished: {summary.succeeded} succeeded, {summary.failed} failed, "
            f"methods={summary.methods}"
        )
        return index, summary
