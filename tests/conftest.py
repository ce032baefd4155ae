"""Shared fixtures: document factories, fake collaborators and generated files."""
import io
from typing import Dict, Iterator, List, Optional

import docx
import fitz
import pytest
from PIL import Image

from core.domain import FileKind, FileMetadata, IndexedDocument, LLMServiceError, StorageError
from core.interfaces import ILLMClient, IStorageClient


def make_document(
    name: str,
    content: str = "",
    path: Optional[str] = None,
    kind: FileKind = FileKind.TEXT,
) -> IndexedDocument:
    path = path or f"/Documenten/{name}"
    return IndexedDocument(
        id=f"id:{path}",
        name=name,
        path=path,
        content=content,
        size=len(content),
        modified="2024-03-01T10:00:00Z",
        kind=kind,
    )


def make_metadata(path: str, size: int = 100) -> FileMetadata:
    return FileMetadata(
        id=f"id:{path}",
        name=path.rsplit("/", 1)[-1],
        path=path,
        path_lower=path.lower(),
        path_display=path,
        size=size,
        server_modified="2024-03-01T10:00:00Z",
    )


class FakeStorage(IStorageClient):
    """In-memory storage keyed by display path."""

    def __init__(self, files: Dict[str, bytes], failing: Optional[set] = None, listing_error: bool = False):
        self.files = files
        self.failing = failing or set()
        self.listing_error = listing_error
        self.downloads: List[str] = []

    def list_files(self, access_token: str) -> List[FileMetadata]:
        if self.listing_error:
            raise StorageError("invalid_access_token/", status_code=401)
        return [make_metadata(path, len(data)) for path, data in self.files.items()]

    def download(self, access_token: str, path_lower: str) -> bytes:
        self.downloads.append(path_lower)
        for path, data in self.files.items():
            if path.lower() == path_lower.lower():
                if path in self.failing:
                    raise StorageError("path/not_found/", status_code=409)
                return data
        raise StorageError("path/not_found/", status_code=409)

    def test_connection(self, access_token: str) -> Dict:
        return {
            "account": {"name": "Test Docent", "email": "docent@example.com", "accountId": "dbid:1"},
            "usage": {"used": 1024, "allocated": {"allocated": 2048}},
        }


class FakeLLM(ILLMClient):
    """Yields fixed tokens; optionally fails after `fail_after` tokens."""

    def __init__(self, tokens: List[str], fail_after: Optional[int] = None, configured: bool = True):
        self.tokens = tokens
        self.fail_after = fail_after
        self.configured = configured
        self.prompts: List[str] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    def stream_generate(self, prompt: str) -> Iterator[str]:
        self.prompts.append(prompt)
        for i, token in enumerate(self.tokens):
            if self.fail_after is not None and i >= self.fail_after:
                raise LLMServiceError("quota exceeded")
            yield token
        if self.fail_after is not None and self.fail_after >= len(self.tokens):
            raise LLMServiceError("quota exceeded")


@pytest.fixture
def pdf_bytes():
    """Build a one-page PDF with real text using PyMuPDF."""
    def _build(lines: List[str], title: Optional[str] = None) -> bytes:
        doc = fitz.open()
        page = doc.new_page()
        page.insert_text((72, 72), "\n".join(lines), fontsize=11)
        if title:
            doc.set_metadata({"title": title})
        data = doc.tobytes()
        doc.close()
        return data
    return _build


@pytest.fixture
def docx_bytes():
    def _build(paragraphs: List[str], table_rows: Optional[List[List[str]]] = None) -> bytes:
        document = docx.Document()
        for paragraph in paragraphs:
            document.add_paragraph(paragraph)
        if table_rows:
            table = document.add_table(rows=len(table_rows), cols=len(table_rows[0]))
            for row, values in zip(table.rows, table_rows):
                for cell, value in zip(row.cells, values):
                    cell.text = value
        buffer = io.BytesIO()
        document.save(buffer)
        return buffer.getvalue()
    return _build


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (40, 30), color=(200, 10, 10)).save(buffer, format="PNG")
    return buffer.getvalue()
