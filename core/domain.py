"""Shared enumerations, errors and domain models used across the application."""
from enum import Enum

from dataclasses import dataclass, field, replace
from typing import List, Dict, Any, Optional, Set, Iterable

# ============= Enums =============

class FileKind(str, Enum):
    """Document kind, derived from the file extension at indexing time."""
    TEXT = "text"
    PDF = "pdf"
    DOCX = "docx"
    IMAGE = "image"
    OTHER = "other"

    @staticmethod
    def from_string(kind: Optional[str]) -> 'FileKind':
        """Convert string to FileKind enum."""
        try:
            return FileKind((kind or "").lower())
        except ValueError:
            return FileKind.OTHER


class ErrorCode(str, Enum):
    """Error codes for extraction and transport failures."""
    EMPTY_FILE = "EMPTY_FILE"
    INVALID_FORMAT = "INVALID_FORMAT"
    ENCRYPTED = "ENCRYPTED"
    NO_TEXT_FOUND = "NO_TEXT_FOUND"
    PROCESSING_FAILED = "PROCESSING_FAILED"
    DOWNLOAD_FAILED = "DOWNLOAD_FAILED"


# ============= Errors =============

class DocumentProcessingError(Exception):
    """Raised when document processing fails with a specific error code"""

    def __init__(self, message: str, error_code: ErrorCode):
        self.message = message
        self.error_code = error_code
        super().__init__(message)

    def __str__(self):
        # Format used for logging
        return f"[{self.error_code.value}] {self.message}"


class StorageError(Exception):
    """Raised when the storage provider (Dropbox) rejects or fails a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class LLMServiceError(Exception):
    """Raised when the language model cannot produce a response."""


class SearchInputError(ValueError):
    """Raised when a search is requested without a query or document collection."""


class InvalidPromptError(ValueError):
    """Raised when an answer is requested with a missing or oversized prompt."""


# ============= Domain Models =============

@dataclass
class IndexedDocument:
    """One storage file after content extraction, ready for search."""
    id: str
    name: str
    path: str
    content: str
    size: int
    modified: str
    kind: FileKind = FileKind.OTHER

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "path": self.path,
            "content": self.content,
            "size": self.size,
            "modified": self.modified,
            "type": self.kind.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IndexedDocument':
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            path=str(data.get("path", "")),
            content=str(data.get("content") or ""),
            size=int(data.get("size") or 0),
            modified=str(data.get("modified") or ""),
            kind=FileKind.from_string(data.get("type", data.get("kind"))),
        )


@dataclass
class FileMetadata:
    """A file record as listed by the storage provider."""
    id: str
    name: str
    path: str
    path_lower: str
    path_display: str
    size: int
    server_modified: str


@dataclass
class ExtractionResult:
    content: str
    method: str
    success: bool


@dataclass
class ScoreResult:
    score: float
    matched_terms: Set[str] = field(default_factory=set)


@dataclass
class SearchResult:
    """Derived per search call, never cached."""
    document: IndexedDocument
    relevance_score: float
    matched_content: str
    raw_score: float = 0.0
    matched_terms: List[str] = field(default_factory=list)


@dataclass
class SearchOutcome:
    results: List[SearchResult]
    total_found: int
    search_terms: List[str]
    expanded_terms: List[str]


@dataclass(frozen=True)
class FileOutcome:
    """Result record of processing one file during indexing."""
    document: IndexedDocument
    success: bool
    method: str
    error: Optional[str] = None


@dataclass(frozen=True)
class IndexingSummary:
    """Immutable accumulator folded from per-file outcomes after each batch."""
    total: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    methods: Dict[str, int] = field(default_factory=dict)
    cancelled: bool = False

    def fold(self, outcomes: Iterable[FileOutcome]) -> 'IndexingSummary':
        """Return a new summary with the given outcomes counted in."""
        processed, succeeded, failed = self.processed, self.succeeded, self.failed
        methods = dict(self.methods)
        for outcome in outcomes:
            processed += 1
            if outcome.success:
                succeeded += 1
            else:
                failed += 1
            methods[outcome.method] = methods.get(outcome.method, 0) + 1
        return replace(
            self, processed=processed, succeeded=succeeded, failed=failed, methods=methods
        )

    def cancel(self) -> 'IndexingSummary':
        return replace(self, cancelled=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "methods": dict(self.methods),
            "cancelled": self.cancelled,
        }


@dataclass
class AnswerOutcome:
    """Collected language-model answer; complete=False when the stream was cut short."""
    text: str
    complete: bool
