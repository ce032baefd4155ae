import json
import logging
from typing import Any, Dict, List, Optional

import requests

from config import settings
from core.domain import FileMetadata, StorageError
from core.interfaces import IStorageClient

logger = logging.getLogger(settings.LOGGER_NAME)


class DropboxClient(IStorageClient):
    """A client for the Dropbox HTTP API (v2) using a user access token."""

    def __init__(
        self,
        api_url: str = settings.DROPBOX_API_URL,
        content_url: str = settings.DROPBOX_CONTENT_URL,
        timeout: int = settings.REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initializes the DropboxClient.

        Args:
            api_url: Base URL of the RPC endpoints.
            content_url: Base URL of the content (download) endpoints.
            timeout: The request timeout in seconds.
            session: Optional requests session (connection reuse, testing).
        """
        self.api_url = api_url.rstrip("/")
        self.content_url = content_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @staticmethod
    def _error_summary(response: requests.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text.strip() or f"HTTP {response.status_code}"
        if isinstance(data, dict):
            summary = data.get("error_summary") or data.get("error_description") or data.get("error")
            if summary:
                return summary if isinstance(summary, str) else json.dumps(summary)
        return f"HTTP {response.status_code}"

    def _post(self, url: str, access_token: str, **kwargs) -> requests.Response:
        headers = {"Authorization": f"Bearer {access_token}"}
        headers.update(kwargs.pop("headers", {}))
        try:
            response = self.session.post(url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout:
            logger.error(f"Dropbox request timed out after {self.timeout} seconds: {url}")
            raise StorageError("Dropbox request timed out")
        except requests.exceptions.ConnectionError:
            logger.error(f"Cannot connect to Dropbox at {url}")
            raise StorageError("Cannot connect to Dropbox")

        if response.status_code >= 400:
            summary = self._error_summary(response)
            logger.error(f"Dropbox returned an error: {response.status_code} {summary}")
            raise StorageError(summary, status_code=response.status_code)
        return response

    def _rpc(self, access_token: str, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = self._post(f"{self.api_url}/{endpoint}", access_token, json=payload)
        return response.json()

    @staticmethod
    def _to_metadata(entry: Dict[str, Any]) -> FileMetadata:
        path_display = entry.get("path_display") or entry.get("path_lower") or ""
        return FileMetadata(
            id=entry.get("id", ""),
            name=entry.get("name", ""),
            path=path_display,
            path_lower=entry.get("path_lower") or path_display.lower(),
            path_display=path_display,
            size=int(entry.get("size") or 0),
            server_modified=entry.get("server_modified", ""),
        )

    def list_files(self, access_token: str) -> List[FileMetadata]:
        """All files in the account, recursively, following the continuation cursor."""
        result = self._rpc(access_token, "files/list_folder", {
            "path": "",
            "recursive": True,
            "include_media_info": False,
            "include_deleted": False,
            "include_has_explicit_shared_members": False,
        })

        files: List[FileMetadata] = []
        while True:
            files.extend(
                self._to_metadata(entry)
                for entry in result.get("entries", [])
                if entry.get(".tag") == "file"
            )
            if not result.get("has_more"):
                break
            result = self._rpc(access_token, "files/list_folder/continue", {"cursor": result["cursor"]})

        logger.info(f"Found {len(files)} files in Dropbox")
        return files

    def download(self, access_token: str, path_lower: str) -> bytes:
        logger.info(f"Downloading: {path_lower}")
        response = self._post(
            f"{self.content_url}/files/download",
            access_token,
            headers={"Dropbox-API-Arg": json.dumps({"path": path_lower})},
        )
        return response.content

    def test_connection(self, access_token: str) -> Dict[str, Any]:
        account = self._rpc(access_token, "users/get_current_account")
        usage = self._rpc(access_token, "users/get_space_usage")
        return {
            "account": {
                "name": (account.get("name") or {}).get("display_name", ""),
                "email": account.get("email", ""),
                "accountId": account.get("account_id", ""),
            },
            "usage": {
                "used": usage.get("used", 0),
                "allocated": usage.get("allocation", {}),
            },
        }
