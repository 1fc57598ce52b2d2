"""Access to the markdown documents that hold Kanban boards.

Two backends share one interface:

- VaultFileStore works directly on the vault folder (no Obsidian needed)
- RestApiStore goes through the Obsidian Local REST API

Both only read, overwrite and list whole documents; parsing and editing
happen in ``kanban_calendar_mcp.core``.
"""

import logging
from pathlib import Path
from typing import List, Optional, Protocol

import httpx

from ..config import KanbanCalendarSettings
from ..utils.api_availability import get_api_client
from ..utils.obsidian_api_client import ObsidianAPIClient

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    async def read_text(self, source: str) -> str:
        ...

    async def write_text(self, source: str, text: str) -> bool:
        ...

    async def list_sources(self) -> List[str]:
        ...


class VaultFileStore:
    """Documents stored as markdown files under a vault folder."""

    def __init__(self, vault_path: str):
        self.vault_dir = Path(vault_path).expanduser().resolve()
        if not self.vault_dir.is_dir():
            raise ValueError(f"Vault path is not a directory: {vault_path}")

    def resolve(self, source: str) -> Path:
        """Resolve a vault-relative path, refusing paths outside the vault."""
        path = (self.vault_dir / source).resolve()
        if path != self.vault_dir and self.vault_dir not in path.parents:
            raise ValueError(f"Path escapes the vault: {source}")
        return path

    async def read_text(self, source: str) -> str:
        path = self.resolve(source)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {source}")
        with path.open("r", encoding="utf-8", newline="") as handle:
            return handle.read()

    async def write_text(self, source: str, text: str) -> bool:
        path = self.resolve(source)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # newline="" on both read and write keeps the document's own line endings
            with path.open("w", encoding="utf-8", newline="") as handle:
                handle.write(text)
        except OSError as e:
            logger.error("Failed to write %s: %s", source, e)
            return False
        return True

    async def list_sources(self) -> List[str]:
        sources = []
        for md_file in self.vault_dir.rglob("*.md"):
            relative = md_file.relative_to(self.vault_dir)
            # Skip hidden files and folders
            if any(part.startswith(".") for part in relative.parts):
                continue
            sources.append(relative.as_posix())
        return sorted(sources)


class RestApiStore:
    """Documents read and written through a running Obsidian instance."""

    def __init__(self, client: ObsidianAPIClient):
        self.client = client

    async def read_text(self, source: str) -> str:
        return await self.client.get_file_text(source)

    async def write_text(self, source: str, text: str) -> bool:
        try:
            await self.client.put_file(source, text)
        except httpx.HTTPError as e:
            logger.error("Failed to write %s through the API: %s", source, e)
            return False
        return True

    async def list_sources(self) -> List[str]:
        sources: List[str] = []
        pending = [""]
        while pending:
            directory = pending.pop()
            for entry in await self.client.list_directory(directory):
                path = f"{directory}{entry}"
                if any(part.startswith(".") for part in path.split("/") if part):
                    continue
                if entry.endswith("/"):
                    pending.append(path)
                elif entry.endswith(".md"):
                    sources.append(path)
        return sorted(sources)


def get_store(settings: KanbanCalendarSettings, client: Optional[ObsidianAPIClient] = None) -> DocumentStore:
    """Pick the filesystem store when a vault path is configured, else the API store."""
    if settings.vault_path:
        return VaultFileStore(settings.vault_path)
    return RestApiStore(client or get_api_client())
