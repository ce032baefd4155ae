"""Core interfaces for the external collaborators"""
from abc import ABC, abstractmethod
from typing import List, Dict, Any, Iterator

from core.domain import FileMetadata

# ============= Storage Interface =============
class IStorageClient(ABC):
    """
    Interface for the cloud file-storage provider.

    Implementations: DropboxClient. Credentials are passed per call because
    tokens belong to the user session, not to the server.
    """

    @abstractmethod
    def list_files(self, access_token: str) -> List[FileMetadata]:
        """Flat, recursive list of all files. Pagination is handled internally."""
        pass

    @abstractmethod
    def download(self, access_token: str, path_lower: str) -> bytes:
        """Raw bytes of one file"""
        pass

    @abstractmethod
    def test_connection(self, access_token: str) -> Dict[str, Any]:
        """Account and space usage details, used to verify a token"""
        pass

# ============= Language Model Interface =============
class ILLMClient(ABC):
    """Interface for streamed text generation"""

    @property
    def is_configured(self) -> bool:
        """False when credentials are missing and no request can succeed"""
        return True

    @abstractmethod
    def stream_generate(self, prompt: str) -> Iterator[str]:
        """Yield text tokens as they arrive. Raises LLMServiceError on failure."""
        pass
