"""Helpers for turning failures into MCP errors."""

import httpx
from fastmcp.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, ErrorData


def create_error(message: str, code: int = INTERNAL_ERROR) -> McpError:
    """Build an McpError carrying a human readable message.

    Args:
        message: Error description shown to the client
        code: JSON-RPC error code

    Returns:
        McpError ready to be raised
    """
    return McpError(ErrorData(code=code, message=message))


def create_invalid_params_error(message: str) -> McpError:
    return create_error(message, code=INVALID_PARAMS)


def handle_api_error(error: Exception) -> McpError:
    """Map an httpx/connection failure from the Local REST API to an McpError."""
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        if status == 401:
            return create_error("Obsidian API authentication failed. Check OBSIDIAN_REST_API_KEY.")
        if status == 404:
            return create_error(f"Not found in vault: {error.request.url.path}")
        return create_error(f"Obsidian API error {status}: {error.response.text[:200]}")
    if isinstance(error, httpx.TimeoutException):
        return create_error("Obsidian API request timed out")
    if isinstance(error, (httpx.ConnectError, ConnectionError)):
        return create_error(
            "Cannot connect to Obsidian Local REST API. Is Obsidian running with the plugin enabled?"
        )
    return create_error(f"Obsidian API request failed: {str(error)}")
