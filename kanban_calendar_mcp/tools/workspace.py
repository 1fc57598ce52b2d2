"""Workspace tools via Obsidian API.

Opens the board that holds a calendar task in Obsidian. These tools require
Obsidian running with the Local REST API plugin.
"""

from typing import Dict, Optional, Any

from ..utils.api_availability import require_api_available, get_api_client
from ..utils.error_utils import create_error
from .tasks import resolve_store, find_task


async def open_file(file_path: str, new_leaf: bool = False) -> Dict[str, Any]:
    """Open a file in Obsidian.

    Args:
        file_path: Path to file (relative to vault)
        new_leaf: Whether to open in new pane

    Returns:
        Operation result

    Raises:
        McpError: If API unavailable or the file cannot be opened
    """
    await require_api_available()

    client = get_api_client()

    try:
        return await client.open_file(file_path, new_leaf)
    except Exception as e:
        raise create_error(f"Failed to open file: {str(e)}")


async def open_task_source_api_tool(
    task_id: str,
    board_path: Optional[str] = None,
    new_pane: bool = False,
    vault_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Open the board holding a task (requires Obsidian running).

    Args:
        task_id: Task id from the task listing
        board_path: Board holding the task (speeds up the lookup)
        new_pane: Whether to open in new pane/split
        vault_path: Path to vault (defaults to env var)

    Returns:
        Operation result with the opened file path and line number

    Raises:
        McpError: If the task is unknown or the API is unavailable
    """
    _, store = resolve_store(vault_path)
    task = await find_task(store, task_id, board_path)
    if task is None:
        raise create_error(f"Unknown task id: {task_id}")

    result = await open_file(task.source, new_pane)

    return {
        "success": True,
        "file_path": task.source,
        "line_number": task.line_number,
        "new_pane": new_pane,
        "result": result,
    }
