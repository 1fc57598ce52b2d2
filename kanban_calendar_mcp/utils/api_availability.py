"""Shared Local REST API client and availability guard."""

import logging
from typing import Optional

from .error_utils import create_error
from .obsidian_api_client import ObsidianAPIClient

logger = logging.getLogger(__name__)

_client: Optional[ObsidianAPIClient] = None


def get_api_client() -> ObsidianAPIClient:
    """Return the process-wide API client, creating it on first use."""
    global _client
    if _client is None:
        _client = ObsidianAPIClient()
    return _client


def set_api_client(client: Optional[ObsidianAPIClient]) -> None:
    """Replace the shared client (None resets to environment configuration)."""
    global _client
    _client = client


async def require_api_available() -> None:
    """Raise an McpError unless the Local REST API answers.

    Raises:
        McpError: If Obsidian is not running or the plugin is disabled
    """
    client = get_api_client()
    if not await client.is_available():
        logger.warning("Obsidian Local REST API unavailable at %s", client.base_url)
        raise create_error(
            "This tool requires Obsidian running with the Local REST API plugin "
            f"(tried {client.base_url})"
        )
