"""Main entry point for the Kanban calendar MCP server."""

import logging
import sys

import httpx
from typing import Annotated, Optional, List, Literal, Dict, Any
from pydantic import Field, ValidationError
from fastmcp import FastMCP
from fastmcp.exceptions import McpError

from .config import KanbanCalendarSettings
from .utils.error_utils import create_error, create_invalid_params_error, handle_api_error

from .tools.tasks import (
    list_tasks_tool,
    calendar_tool,
    reschedule_task_tool,
    update_task_tool,
    add_task_tool,
    task_statistics_tool,
)
from .tools.workspace import open_task_source_api_tool

API_ERRORS = (httpx.HTTPStatusError, httpx.ConnectError, httpx.TimeoutException, ConnectionError)

BOARD_PATH_DESCRIPTION = "Kanban board file relative to the vault (optional, uses KANBAN_DEFAULT_BOARD or scans the whole vault)"
VAULT_PATH_DESCRIPTION = "Path to vault (optional, uses OBSIDIAN_VAULT_PATH env if not provided)"

# Create FastMCP server instance
mcp = FastMCP(
    "kanban-calendar-mcp",
    instructions=(
        "Calendar access to dated tasks on markdown Kanban boards. Tasks are checklist items "
        "annotated with @{YYYY-MM-DD} dates, @@{HH:MM} times and #tags. Edits patch the "
        "board text in place."
    )
)


# ============================================================================
# READ TOOLS
# ============================================================================

@mcp.tool()
async def list_kanban_tasks(
    board_path: Annotated[Optional[str], Field(
        description=BOARD_PATH_DESCRIPTION,
        default=None,
        examples=["Projects/Sprint Board.md"]
    )] = None,
    date_from: Annotated[Optional[str], Field(
        description="Only tasks on or after this date (YYYY-MM-DD)",
        default=None,
        pattern=r"^\d{4}-\d{2}-\d{2}$"
    )] = None,
    date_to: Annotated[Optional[str], Field(
        description="Only tasks on or before this date (YYYY-MM-DD)",
        default=None,
        pattern=r"^\d{4}-\d{2}-\d{2}$"
    )] = None,
    tag: Annotated[Optional[str], Field(
        description="Only tasks carrying this tag",
        default=None,
        examples=["#work", "urgent"]
    )] = None,
    completed: Annotated[Optional[bool], Field(
        description="Only completed (true) or open (false) tasks",
        default=None
    )] = None,
    list_name: Annotated[Optional[str], Field(
        description="Only tasks in this Kanban column (## heading)",
        default=None,
        examples=["Doing", "Backlog"]
    )] = None,
    limit: Annotated[int, Field(
        description="Maximum number of tasks to return",
        ge=1,
        le=1000,
        default=100
    )] = 100,
    sort_by: Annotated[Literal["date", "file", "line_number"], Field(
        description="Field to sort by",
        default="date"
    )] = "date",
    sort_order: Annotated[Literal["asc", "desc"], Field(default="asc")] = "asc",
    vault_path: Annotated[Optional[str], Field(description=VAULT_PATH_DESCRIPTION, default=None)] = None,
):
    """
    List dated tasks from Kanban boards.

    A task is a checklist item with a due date on its own line or on one of
    the three lines below it:
    - [ ] **Write report**
        #work @{2024-03-01} @@{09:00-11:30}

    Subtasks (indented checklist items) inherit the parent's date and tags.
    Checklist items without any date are not listed.

    When to use:
    - Finding tasks for a period, tag or column
    - Getting task ids before rescheduling or updating a task

    Returns:
        Tasks with id, description, date, time, tags, completion, column and source board
    """
    filters: Dict[str, Any] = {}
    if date_from:
        filters["date_from"] = date_from
    if date_to:
        filters["date_to"] = date_to
    if tag:
        filters["tag"] = tag
    if completed is not None:
        filters["completed"] = completed
    if list_name:
        filters["list_name"] = list_name

    try:
        return await list_tasks_tool(board_path, filters, limit, sort_by, sort_order, vault_path)
    except McpError:
        raise
    except ValueError as e:
        raise create_invalid_params_error(str(e))
    except FileNotFoundError as e:
        raise create_error(str(e))
    except API_ERRORS as e:
        raise handle_api_error(e)
    except Exception as e:
        raise create_error(f"Failed to list Kanban tasks: {str(e)}")


@mcp.tool()
async def get_kanban_calendar(
    start_date: Annotated[str, Field(
        description="First day of the range (YYYY-MM-DD)",
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        examples=["2024-03-01"]
    )],
    end_date: Annotated[str, Field(
        description="Last day of the range, inclusive (YYYY-MM-DD)",
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        examples=["2024-03-31"]
    )],
    board_path: Annotated[Optional[str], Field(description=BOARD_PATH_DESCRIPTION, default=None)] = None,
    vault_path: Annotated[Optional[str], Field(description=VAULT_PATH_DESCRIPTION, default=None)] = None,
):
    """
    Get the tasks of a date range grouped by day.

    Days without tasks are omitted. Within a day, untimed tasks come first,
    followed by timed tasks in start-time order.

    Returns:
        Mapping of YYYY-MM-DD to task lists, plus the total task count
    """
    try:
        return await calendar_tool(start_date, end_date, board_path, vault_path)
    except McpError:
        raise
    except ValueError as e:
        raise create_invalid_params_error(str(e))
    except FileNotFoundError as e:
        raise create_error(str(e))
    except API_ERRORS as e:
        raise handle_api_error(e)
    except Exception as e:
        raise create_error(f"Failed to build calendar: {str(e)}")


@mcp.tool()
async def get_kanban_statistics(
    board_path: Annotated[Optional[str], Field(description=BOARD_PATH_DESCRIPTION, default=None)] = None,
    vault_path: Annotated[Optional[str], Field(description=VAULT_PATH_DESCRIPTION, default=None)] = None,
):
    """
    Get counts of dated tasks: open, completed, overdue, due this week,
    per Kanban column and per tag.
    """
    try:
        return await task_statistics_tool(board_path, vault_path)
    except McpError:
        raise
    except ValueError as e:
        raise create_invalid_params_error(str(e))
    except FileNotFoundError as e:
        raise create_error(str(e))
    except API_ERRORS as e:
        raise handle_api_error(e)
    except Exception as e:
        raise create_error(f"Failed to get Kanban statistics: {str(e)}")


# ============================================================================
# EDIT TOOLS
# ============================================================================

@mcp.tool()
async def reschedule_kanban_task(
    task_id: Annotated[str, Field(
        description="Task id as returned by list_kanban_tasks",
        min_length=1
    )],
    new_date: Annotated[str, Field(
        description="New due date (YYYY-MM-DD)",
        pattern=r"^\d{4}-\d{2}-\d{2}$"
    )],
    board_path: Annotated[Optional[str], Field(
        description="Board holding the task (optional, speeds up the lookup)",
        default=None
    )] = None,
    vault_path: Annotated[Optional[str], Field(description=VAULT_PATH_DESCRIPTION, default=None)] = None,
):
    """
    Move a task to another day by rewriting its @{date} token in place.

    Only the date token changes; the rest of the board is untouched. The task
    id contains the date, so the response carries the task's new id.

    Returns:
        success, status ("applied", "not_found", "no_change", "write_failed") and the new task id
    """
    try:
        return await reschedule_task_tool(task_id, new_date, board_path, vault_path)
    except McpError:
        raise
    except ValueError as e:
        raise create_invalid_params_error(str(e))
    except FileNotFoundError as e:
        raise create_error(str(e))
    except API_ERRORS as e:
        raise handle_api_error(e)
    except Exception as e:
        raise create_error(f"Failed to reschedule task: {str(e)}")


@mcp.tool()
async def update_kanban_task(
    task_id: Annotated[str, Field(
        description="Task id as returned by list_kanban_tasks",
        min_length=1
    )],
    description: Annotated[Optional[str], Field(
        description="New task text",
        default=None,
        max_length=500
    )] = None,
    date: Annotated[Optional[str], Field(
        description="New due date (YYYY-MM-DD)",
        default=None,
        pattern=r"^\d{4}-\d{2}-\d{2}$"
    )] = None,
    time: Annotated[Optional[str], Field(
        description="New time (HH:MM or HH:MM-HH:MM); an empty string removes the time",
        default=None,
        examples=["09:30", "09:00-11:30", ""]
    )] = None,
    completed: Annotated[Optional[bool], Field(
        description="Mark the task completed (true) or open (false)",
        default=None
    )] = None,
    board_path: Annotated[Optional[str], Field(
        description="Board holding the task (optional, speeds up the lookup)",
        default=None
    )] = None,
    vault_path: Annotated[Optional[str], Field(description=VAULT_PATH_DESCRIPTION, default=None)] = None,
):
    """
    Change a task's text, date, time or completion state in place.

    Omitted fields stay as they are. When nothing would change, the result
    status is "no_change" and the board is not written.

    Returns:
        success, status ("applied", "not_found", "no_change", "write_failed") and the task id
    """
    try:
        return await update_task_tool(task_id, description, date, time, completed, board_path, vault_path)
    except McpError:
        raise
    except (ValueError, ValidationError) as e:
        raise create_invalid_params_error(str(e))
    except FileNotFoundError as e:
        raise create_error(str(e))
    except API_ERRORS as e:
        raise handle_api_error(e)
    except Exception as e:
        raise create_error(f"Failed to update task: {str(e)}")


@mcp.tool()
async def add_kanban_task(
    board_path: Annotated[str, Field(
        description="Kanban board file relative to the vault",
        pattern=r"^[^/].*\.md$",
        min_length=1,
        max_length=255,
        examples=["Projects/Sprint Board.md"]
    )],
    description: Annotated[str, Field(
        description="Task text",
        min_length=1,
        max_length=500
    )],
    date: Annotated[str, Field(
        description="Due date (YYYY-MM-DD)",
        pattern=r"^\d{4}-\d{2}-\d{2}$"
    )],
    time: Annotated[Optional[str], Field(
        description="Optional time (HH:MM or HH:MM-HH:MM)",
        default=None
    )] = None,
    tags: Annotated[Optional[List[str]], Field(
        description="Tags (letters and digits, '#' optional)",
        default=None,
        examples=[["work", "#urgent"]]
    )] = None,
    vault_path: Annotated[Optional[str], Field(description=VAULT_PATH_DESCRIPTION, default=None)] = None,
):
    """
    Add a task to the end of the first column that is not a "Done" column.

    The task is written as:
    - [ ] **<description>**
        #tag @{YYYY-MM-DD} @@{HH:MM}

    Returns:
        success, status ("applied", "no_target_section", "write_failed") and the new task
    """
    try:
        return await add_task_tool(board_path, description, date, time, tags, vault_path)
    except McpError:
        raise
    except (ValueError, ValidationError) as e:
        raise create_invalid_params_error(str(e))
    except FileNotFoundError as e:
        raise create_error(str(e))
    except API_ERRORS as e:
        raise handle_api_error(e)
    except Exception as e:
        raise create_error(f"Failed to add task: {str(e)}")


# ============================================================================
# WORKSPACE TOOLS
# ============================================================================

@mcp.tool()
async def open_kanban_task(
    task_id: Annotated[str, Field(description="Task id as returned by list_kanban_tasks")],
    board_path: Annotated[Optional[str], Field(default=None)] = None,
    new_pane: Annotated[bool, Field(default=False)] = False,
    vault_path: Annotated[Optional[str], Field(description=VAULT_PATH_DESCRIPTION, default=None)] = None,
):
    """Open the board holding a task in Obsidian (requires Obsidian running)."""
    try:
        return await open_task_source_api_tool(task_id, board_path, new_pane, vault_path)
    except McpError:
        raise
    except API_ERRORS as e:
        raise handle_api_error(e)
    except Exception as e:
        raise create_error(f"Failed to open task: {str(e)}")


# ============================================================================
# SERVER ENTRY POINT
# ============================================================================

def main():
    """Entry point for packaged distribution."""
    settings = KanbanCalendarSettings.from_env()
    # stdout carries the MCP protocol, so logs go to stderr
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    mcp.run()


if __name__ == "__main__":
    main()
