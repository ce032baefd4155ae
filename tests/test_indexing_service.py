"""Tests for batched indexing with failure isolation and cancellation."""
import asyncio

import pytest

from core.domain import FileKind, StorageError
from infrastructure.document_index import DocumentIndex
from infrastructure.document_processors import ContentExtractor
from services.indexing_service import IndexingService
from tests.conftest import FakeStorage, make_document


def _files():
    return {
        "/Lessen/planning.txt": b"De planning voor periode twee staat klaar.",
        "/Lessen/rubriek.md": b"Rubriek met criteria voor het verslag.",
        "/Toetsen/toets1.txt": b"Toets over breuken en procenten.",
        "/Toetsen/toets2.txt": b"Toets over vergelijkingen en grafieken.",
        "/Foto's/bord.png": b"\x89PNG not really",
    }


def _service(storage, batch_size=2):
    return IndexingService(storage, ContentExtractor(), batch_size=batch_size, batch_delay=0)


def _run(service, **kwargs):
    return asyncio.run(service.index("token", **kwargs))


class TestIndexingService:
    def test_indexes_every_file(self):
        storage = FakeStorage(_files())
        index, summary = _run(_service(storage))

        assert len(index) == 5
        assert summary.total == summary.processed == 5
        assert summary.succeeded == 5
        assert summary.failed == 0
        assert not summary.cancelled
        assert index.last_indexed is not None
        assert index.get("/Foto's/bord.png").kind == FileKind.IMAGE
        assert "planning voor periode twee" in index.get("/Lessen/planning.txt").content

    def test_method_counts(self):
        _, summary = _run(_service(FakeStorage(_files())))
        assert summary.methods == {"text-utf8": 4, "image-placeholder": 1}

    def test_download_failure_is_isolated(self):
        storage = FakeStorage(_files(), failing={"/Toetsen/toets1.txt"})
        index, summary = _run(_service(storage))

        assert len(index) == 5
        assert summary.failed == 1
        assert summary.methods["download-error-fallback"] == 1
        failed = index.get("/Toetsen/toets1.txt")
        assert "Download fout" in failed.content
        assert failed.name == "toets1.txt"

    def test_oversized_file_is_never_downloaded(self):
        files = _files()
        files["/Video/les.mp4"] = b"\x00" * 4096
        storage = FakeStorage(files)
        service = IndexingService(storage, ContentExtractor(), batch_size=2, batch_delay=0, max_file_bytes=1024)
        index, summary = _run(service)

        assert "/video/les.mp4" not in storage.downloads
        assert len(storage.downloads) == 5
        assert summary.failed == 1
        assert summary.methods["size-limit-skip"] == 1
        skipped = index.get("/Video/les.mp4")
        assert "Te groot om te indexeren" in skipped.content
        assert skipped.size == 4096

    def test_reindex_replaces_existing_paths(self):
        existing = DocumentIndex([
            make_document("planning.txt", "verouderde inhoud", path="/Lessen/planning.txt"),
            make_document("oud.txt", "blijft staan", path="/Archief/oud.txt"),
        ])
        index, _ = _run(_service(FakeStorage(_files())), existing=existing)

        assert index is existing
        assert len(index) == 6
        assert "verouderde" not in index.get("/Lessen/planning.txt").content
        assert len({d.path for d in index}) == len(index)

    def test_cancellation_keeps_completed_batches(self):
        storage = FakeStorage(_files())
        service = _service(storage, batch_size=2)

        async def scenario():
            cancel = asyncio.Event()

            def progress(summary, current):
                if summary.processed >= 2:
                    cancel.set()

            return await service.index("token", cancel_event=cancel, progress_callback=progress)

        index, summary = asyncio.run(scenario())
        assert summary.cancelled
        assert summary.processed == 2
        assert len(index) == 2
        assert len(storage.downloads) == 2

    def test_progress_callback_errors_are_ignored(self):
        def progress(summary, current):
            raise RuntimeError("ui gone")

        index, summary = _run(_service(FakeStorage(_files())), progress_callback=progress)
        assert summary.processed == 5

    def test_listing_failure_is_fatal(self):
        with pytest.raises(StorageError):
            _run(_service(FakeStorage({}, listing_error=True)))

    def test_empty_account(self):
        index, summary = _run(_service(FakeStorage({})))
        assert len(index) == 0
        assert summary.total == 0
        assert index.last_indexed is not None

    def test_batch_size_is_at_least_one(self):
        assert _service(FakeStorage({}), batch_size=0).batch_size == 1
