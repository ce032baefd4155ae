"""In-memory document collection keyed by path"""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

from core.domain import IndexedDocument


class DocumentIndex:
    """
    Ordered collection of IndexedDocuments with at most one entry per path.

    Re-indexing a path replaces the entry in place (original position kept).
    The payload shape {"documents": [...], "lastIndexed": "..."} matches what
    the browser keeps in local storage, so a client can hand it back verbatim.
    """

    def __init__(
        self,
        documents: Optional[Iterable[IndexedDocument]] = None,
        last_indexed: Optional[datetime] = None,
    ):
        self._documents: Dict[str, IndexedDocument] = {}
        self.last_indexed = last_indexed
        for document in documents or ():
            self.upsert(document)

    def upsert(self, document: IndexedDocument) -> bool:
        """Insert or replace by path. Returns True when an existing entry was replaced."""
        replaced = document.path in self._documents
        self._documents[document.path] = document
        return replaced

    def upsert_many(self, documents: Iterable[IndexedDocument]) -> int:
        return sum(1 for document in documents if self.upsert(document))

    def get(self, path: str) -> Optional[IndexedDocument]:
        return self._documents.get(path)

    def remove(self, path: str) -> bool:
        return self._documents.pop(path, None) is not None

    def clear(self) -> None:
        self._documents.clear()
        self.last_indexed = None

    def documents(self) -> List[IndexedDocument]:
        return list(self._documents.values())

    def mark_indexed(self, when: Optional[datetime] = None) -> None:
        self.last_indexed = when or datetime.now(timezone.utc)

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, path: str) -> bool:
        return path in self._documents

    def __iter__(self) -> Iterator[IndexedDocument]:
        return iter(self.documents())

    # ---------- persisted state ----------
    def to_payload(self) -> Dict[str, Any]:
        return {
            "documents": [document.to_dict() for document in self._documents.values()],
            "lastIndexed": self.last_indexed.isoformat() if self.last_indexed else None,
        }

    @classmethod
    def from_payload(cls, payload: Union[Dict[str, Any], List[Dict[str, Any]], None]) -> 'DocumentIndex':
        if not payload:
            return cls()
        if isinstance(payload, list):
            return cls(IndexedDocument.from_dict(item) for item in payload)

        last_indexed = None
        raw_timestamp = payload.get("lastIndexed")
        if raw_timestamp:
            try:
                last_indexed = datetime.fromisoformat(str(raw_timestamp).replace("Z", "+00:00"))
            except ValueError:
                last_indexed = None
        documents = (IndexedDocument.from_dict(item) for item in payload.get("documents") or [])
        return cls(documents, last_indexed=last_indexed)
