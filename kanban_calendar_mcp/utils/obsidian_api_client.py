"""HTTP client for the Obsidian Local REST API.

Boards are read and written directly on disk when a vault path is configured.
This client is the fallback used when only a running Obsidian instance is
available, and for workspace actions such as opening a board.
"""

import httpx
import os
from typing import Optional, Dict, Any, List
from urllib.parse import quote


class ObsidianAPIClient:
    """Async client for the vault and workspace endpoints of the Local REST API."""

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the API client, falling back to environment configuration."""
        self.base_url = (base_url or os.getenv("OBSIDIAN_API_URL", "http://localhost:27124")).rstrip("/")
        self.api_key = api_key or os.getenv("OBSIDIAN_REST_API_KEY")
        self.headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        self.timeout = 30.0
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(verify=False, transport=self.transport)

    @staticmethod
    def _vault_url_path(path: str) -> str:
        return quote(path.lstrip("/"), safe="/")

    async def is_available(self) -> bool:
        """Check if Obsidian Local REST API is reachable.

        Returns:
            True if API responds successfully, False otherwise

        Note:
            Connection failures return False rather than propagating, so callers
            can degrade gracefully.
        """
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.base_url}/",
                    headers=self.headers,
                    timeout=10.0
                )
                return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def get_file_text(self, file_path: str) -> str:
        """Get the raw markdown content of a vault file.

        Args:
            file_path: Path to file in vault (relative)

        Returns:
            File content

        Raises:
            FileNotFoundError: If the file does not exist
            httpx.HTTPStatusError: If the request fails
        """
        async with self._client() as client:
            response = await client.get(
                f"{self.base_url}/vault/{self._vault_url_path(file_path)}",
                headers={**self.headers, "Accept": "text/markdown"},
                timeout=self.timeout
            )
            if response.status_code == 404:
                raise FileNotFoundError(f"File not found: {file_path}")
            response.raise_for_status()
            return response.text

    async def put_file(self, file_path: str, content: str) -> None:
        """Create or replace file content.

        Args:
            file_path: Path to file in vault (relative)
            content: Full file content to write

        Raises:
            httpx.HTTPStatusError: If the request fails
        """
        async with self._client() as client:
            response = await client.put(
                f"{self.base_url}/vault/{self._vault_url_path(file_path)}",
                headers={**self.headers, "Content-Type": "text/markdown"},
                content=content.encode("utf-8"),
                timeout=self.timeout
            )
            response.raise_for_status()

    async def list_directory(self, directory: str = "") -> List[str]:
        """List entries of a vault directory.

        Args:
            directory: Directory path relative to the vault root ("" for root)

        Returns:
            Entry names; subdirectories end with "/"

        Raises:
            httpx.HTTPStatusError: If the request fails
        """
        path = self._vault_url_path(directory.strip("/"))
        url = f"{self.base_url}/vault/{path}/" if path else f"{self.base_url}/vault/"
        async with self._client() as client:
            response = await client.get(url, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
            return list(response.json().get("files", []))

    async def open_file(self, file_path: str, new_leaf: bool = False) -> Dict[str, Any]:
        """Open a file in Obsidian.

        Args:
            file_path: Path to file in vault
            new_leaf: Whether to open in a new pane

        Returns:
            Response data from the API

        Raises:
            httpx.HTTPStatusError: If the request fails
        """
        async with self._client() as client:
            response = await client.post(
                f"{self.base_url}/open/{self._vault_url_path(file_path)}",
                headers=self.headers,
                params={"newLeaf": str(new_leaf).lower()},
                timeout=self.timeout
            )
            response.raise_for_status()

            # The open endpoint usually answers with an empty body
            try:
                return response.json()
            except ValueError:
                return {"success": True, "message": f"File {file_path} opened successfully"}
