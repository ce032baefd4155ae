# api/schemas.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.domain import FileKind, FileMetadata, IndexedDocument, IndexingSummary, SearchResult


class CamelModel(BaseModel):
    """Wire models use camelCase keys; Python code uses snake_case names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Documents ----------
class IndexedDocumentModel(CamelModel):
    id: str = ""
    name: str
    path: str
    content: str = ""
    size: int = 0
    modified: str = ""
    kind: FileKind = Field(default=FileKind.OTHER, alias="type")

    def to_domain(self) -> IndexedDocument:
        return IndexedDocument(
            id=self.id,
            name=self.name,
            path=self.path,
            content=self.content,
            size=self.size,
            modified=self.modified,
            kind=self.kind,
        )

    @classmethod
    def from_domain(cls, document: IndexedDocument) -> 'IndexedDocumentModel':
        return cls(
            id=document.id,
            name=document.name,
            path=document.path,
            content=document.content,
            size=document.size,
            modified=document.modified,
            kind=document.kind,
        )


class FileMetadataModel(BaseModel):
    """Listing entries keep the storage provider's snake_case field names."""
    id: str
    name: str
    path: str
    path_lower: str
    path_display: str
    size: int
    server_modified: str

    @classmethod
    def from_domain(cls, meta: FileMetadata) -> 'FileMetadataModel':
        return cls(
            id=meta.id,
            name=meta.name,
            path=meta.path,
            path_lower=meta.path_lower,
            path_display=meta.path_display,
            size=meta.size,
            server_modified=meta.server_modified,
        )


# ---------- Search ----------
class SearchRequest(CamelModel):
    query: Optional[str] = None
    file_index: Optional[List[IndexedDocumentModel]] = None
    max_results: Optional[int] = Field(default=None, ge=0)


class SearchResultModel(CamelModel):
    document: IndexedDocumentModel
    relevance_score: float
    matched_content: str
    matched_terms: List[str] = []

    @classmethod
    def from_domain(cls, result: SearchResult) -> 'SearchResultModel':
        return cls(
            document=IndexedDocumentModel.from_domain(result.document),
            relevance_score=result.relevance_score,
            matched_content=result.matched_content,
            matched_terms=result.matched_terms,
        )


class SearchResponse(CamelModel):
    success: bool = True
    results: List[SearchResultModel]
    total_found: int
    query: str
    search_terms: List[str]
    expanded_terms: List[str]


# ---------- Dropbox ----------
class TokenRequest(CamelModel):
    access_token: Optional[str] = None


class ContentRequest(TokenRequest):
    file_path: Optional[str] = None
    file_type: Optional[str] = None


class ContentResponse(CamelModel):
    success: bool = True
    content: str
    file_path: str
    file_type: FileKind
    size: int
    original_size: int
    extraction_method: str
    extraction_success: bool
    error: Optional[str] = None


class FilesResponse(CamelModel):
    success: bool = True
    files: List[FileMetadataModel]
    count: int


class ConnectionTestResponse(CamelModel):
    success: bool = True
    message: str
    account: Dict[str, Any]
    usage: Dict[str, Any]


# ---------- Indexing ----------
class IndexPayload(CamelModel):
    documents: List[IndexedDocumentModel] = []
    last_indexed: Optional[str] = None


class IndexRequest(TokenRequest):
    existing_index: Optional[IndexPayload] = None


class IndexingStats(CamelModel):
    total: int
    processed: int
    succeeded: int
    failed: int
    methods: Dict[str, int]
    cancelled: bool

    @classmethod
    def from_domain(cls, summary: IndexingSummary) -> 'IndexingStats':
        return cls(**summary.to_dict())


class IndexResponse(CamelModel):
    success: bool = True
    documents: List[IndexedDocumentModel]
    last_indexed: Optional[str] = None
    stats: IndexingStats


# ---------- AI ----------
class PromptRequest(BaseModel):
    prompt: Any = None


class AskRequest(SearchRequest):
    pass


class AskResponse(CamelModel):
    success: bool = True
    answer: str
    complete: bool
    results: List[SearchResultModel] = []
    total_found: int = 0


class HealthResponse(BaseModel):
    status: str
    version: str
