"""Calendar tools for tasks kept on markdown Kanban boards.

This module connects the board parser and editor in ``core`` to a document
store (vault folder or Local REST API). Every edit re-reads the board's live
text right before patching it, so edits never work from a stale copy.

Cards are annotated the way the Obsidian Kanban plugin writes them:

    - [ ] **Write report**
    	#work @{2024-03-01} @@{09:00-11:30}
"""

import datetime
import logging
from collections import Counter
from typing import Any, Dict, List, Literal, Optional, Tuple

import httpx

from ..config import KanbanCalendarSettings
from ..core.extractor import extract_tasks, make_task_id
from ..core.mutator import append_task, reschedule_task, update_task
from ..models.kanban import MutationResult, MutationStatus, NewTask, TaskRecord, TaskUpdate
from .store import DocumentStore, get_store

logger = logging.getLogger(__name__)


def parse_date(value: str) -> datetime.date:
    """Parse a YYYY-MM-DD string, raising ValueError on anything else."""
    return datetime.datetime.strptime(value, "%Y-%m-%d").date()


# ============================================================================
# SCANNING AND FILTERING
# ============================================================================

async def scan_sources(store: DocumentStore, sources: List[str]) -> List[TaskRecord]:
    """Extract tasks from each source in order, skipping unreadable documents."""
    tasks: List[TaskRecord] = []
    for source in sources:
        try:
            text = await store.read_text(source)
        except (OSError, UnicodeDecodeError, ValueError, httpx.HTTPError) as e:
            logger.warning("Skipping %s: %s", source, e)
            continue
        tasks.extend(extract_tasks(text, source))
    return tasks


async def load_tasks(
    store: DocumentStore,
    settings: KanbanCalendarSettings,
    source: Optional[str] = None,
) -> List[TaskRecord]:
    """Load tasks for the calendar, honouring the board and column settings.

    Args:
        store: Document store to read from
        settings: Board selection and filtering settings
        source: Board to scan; defaults to the configured board, else every document

    Returns:
        Tasks from the selected boards, filtered by the settings
    """
    board = source or settings.default_board
    sources = [board] if board else await store.list_sources()
    tasks = await scan_sources(store, sources)

    if not settings.show_completed:
        tasks = [t for t in tasks if not t.completed]
    if settings.included_lists:
        tasks = [t for t in tasks if t.list_name in settings.included_lists]
    if settings.excluded_lists:
        tasks = [t for t in tasks if t.list_name not in settings.excluded_lists]

    logger.debug("Loaded %d tasks from %d document(s)", len(tasks), len(sources))
    return tasks


def filter_tasks(
    tasks: List[TaskRecord],
    date_from: Optional[datetime.date] = None,
    date_to: Optional[datetime.date] = None,
    tag: Optional[str] = None,
    completed: Optional[bool] = None,
    list_name: Optional[str] = None,
) -> List[TaskRecord]:
    """Filter tasks by criteria.

    Args:
        tasks: List of tasks to filter
        date_from: Keep tasks on or after this date
        date_to: Keep tasks on or before this date
        tag: Keep tasks carrying this tag (with or without '#')
        completed: Keep only completed (True) or open (False) tasks
        list_name: Keep tasks from this Kanban column

    Returns:
        Filtered list of tasks
    """
    filtered = tasks

    if date_from:
        filtered = [t for t in filtered if t.date >= date_from]

    if date_to:
        filtered = [t for t in filtered if t.date <= date_to]

    if tag:
        wanted = tag if tag.startswith("#") else f"#{tag}"
        filtered = [t for t in filtered if wanted in t.tags]

    if completed is not None:
        filtered = [t for t in filtered if t.completed == completed]

    if list_name:
        filtered = [t for t in filtered if t.list_name == list_name]

    return filtered


def sort_tasks(
    tasks: List[TaskRecord],
    sort_by: Literal["date", "file", "line_number"] = "date",
    sort_order: Literal["asc", "desc"] = "asc",
) -> List[TaskRecord]:
    """Sort tasks; untimed tasks come before timed ones on the same day."""
    reverse = sort_order == "desc"

    if sort_by == "date":
        return sorted(tasks, key=lambda t: (t.date, t.start_time or ""), reverse=reverse)
    elif sort_by == "file":
        return sorted(tasks, key=lambda t: (t.source, t.line_number), reverse=reverse)
    elif sort_by == "line_number":
        return sorted(tasks, key=lambda t: t.line_number, reverse=reverse)

    return tasks


def group_tasks_by_date(tasks: List[TaskRecord]) -> Dict[str, List[Dict[str, Any]]]:
    """Group tasks into an ordered ``{YYYY-MM-DD: [task, ...]}`` mapping."""
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for task in sort_tasks(tasks, "date"):
        grouped.setdefault(task.date.isoformat(), []).append(task.model_dump(mode="json"))
    return grouped


async def find_task(store: DocumentStore, task_id: str, source: Optional[str] = None) -> Optional[TaskRecord]:
    """Re-scan live text and return the first task with ``task_id``."""
    sources = [source] if source else await store.list_sources()
    for task in await scan_sources(store, sources):
        if task.id == task_id:
            return task
    return None


# ============================================================================
# EDITING
# ============================================================================

async def _persist(store: DocumentStore, source: str, result: MutationResult) -> MutationResult:
    if not result.ok:
        return result
    if not await store.write_text(source, result.text):
        return MutationResult(status=MutationStatus.WRITE_FAILED, message=f"Could not write {source}")
    logger.info("Updated %s", source)
    return result


async def reschedule(store: DocumentStore, task: TaskRecord, new_date: datetime.date) -> MutationResult:
    """Move a task to a new date in its board and save the board."""
    text = await store.read_text(task.source)
    return await _persist(store, task.source, reschedule_task(text, task, new_date))


async def update(store: DocumentStore, task: TaskRecord, changes: TaskUpdate) -> MutationResult:
    """Change a task's description, date, time or completion and save the board."""
    text = await store.read_text(task.source)
    result = update_task(text, task, changes)
    if result.status == MutationStatus.NO_CHANGE:
        logger.warning("Update of %s changed nothing", task.id)
    return await _persist(store, task.source, result)


async def append(store: DocumentStore, source: str, new_task: NewTask) -> MutationResult:
    """Add a task to the first open column of a board and save the board."""
    text = await store.read_text(source)
    return await _persist(store, source, append_task(text, new_task))


# ============================================================================
# MCP TOOL FUNCTIONS
# ============================================================================

def resolve_store(vault_path: Optional[str]) -> Tuple[KanbanCalendarSettings, DocumentStore]:
    settings = KanbanCalendarSettings.from_env()
    if vault_path:
        settings = settings.model_copy(update={"vault_path": vault_path})
    return settings, get_store(settings)


def _mutation_response(result: MutationResult, **extra: Any) -> Dict[str, Any]:
    response: Dict[str, Any] = {"success": result.ok, "status": result.status.value}
    if result.message:
        response["error" if not result.ok else "message"] = result.message
    response.update(extra)
    return response


async def list_tasks_tool(
    board_path: Optional[str] = None,
    filters: Optional[Dict[str, Any]] = None,
    limit: int = 100,
    sort_by: Literal["date", "file", "line_number"] = "date",
    sort_order: Literal["asc", "desc"] = "asc",
    vault_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Search dated Kanban tasks.

    Args:
        board_path: Board to scan (defaults to KANBAN_DEFAULT_BOARD, else the whole vault)
        filters: Filter criteria (date_from, date_to, tag, completed, list_name)
        limit: Maximum number of results to return
        sort_by: Field to sort by
        sort_order: Sort direction
        vault_path: Path to vault (defaults to OBSIDIAN_VAULT_PATH env var)

    Returns:
        Dictionary with tasks list, total count, and truncation flag
    """
    settings, store = resolve_store(vault_path)

    filter_args: Dict[str, Any] = {}
    if filters:
        if filters.get("date_from"):
            filter_args["date_from"] = parse_date(filters["date_from"])
        if filters.get("date_to"):
            filter_args["date_to"] = parse_date(filters["date_to"])
        if "tag" in filters:
            filter_args["tag"] = filters["tag"]
        if "completed" in filters:
            filter_args["completed"] = filters["completed"]
        if "list_name" in filters:
            filter_args["list_name"] = filters["list_name"]

    all_tasks = await load_tasks(store, settings, board_path)
    sorted_tasks = sort_tasks(filter_tasks(all_tasks, **filter_args), sort_by, sort_order)

    total_found = len(sorted_tasks)
    return {
        "tasks": [t.model_dump(mode="json") for t in sorted_tasks[:limit]],
        "total_found": total_found,
        "truncated": total_found > limit,
    }


async def calendar_tool(
    start_date: str,
    end_date: str,
    board_path: Optional[str] = None,
    vault_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Get tasks between two dates (inclusive), grouped by day.

    Args:
        start_date: First day (YYYY-MM-DD)
        end_date: Last day (YYYY-MM-DD)
        board_path: Board to scan (defaults to settings)
        vault_path: Path to vault (defaults to env var)

    Returns:
        Dictionary with per-day task lists and the task count
    """
    start, end = parse_date(start_date), parse_date(end_date)
    if end < start:
        raise ValueError("end_date must not be before start_date")

    settings, store = resolve_store(vault_path)
    tasks = filter_tasks(await load_tasks(store, settings, board_path), date_from=start, date_to=end)

    return {
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "days": group_tasks_by_date(tasks),
        "task_count": len(tasks),
    }


async def reschedule_task_tool(
    task_id: str,
    new_date: str,
    board_path: Optional[str] = None,
    vault_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Move a task to another date.

    Args:
        task_id: Task id from list_tasks_tool
        new_date: Target date (YYYY-MM-DD)
        board_path: Board holding the task (speeds up the lookup)
        vault_path: Path to vault (defaults to env var)

    Returns:
        Dictionary with success flag, status and the rescheduled task id
    """
    target = parse_date(new_date)
    _, store = resolve_store(vault_path)

    task = await find_task(store, task_id, board_path)
    if task is None:
        return {"success": False, "status": MutationStatus.NOT_FOUND.value, "error": f"Unknown task id: {task_id}"}

    result = await reschedule(store, task, target)
    # The id embeds the date, so callers need the new one for follow-up edits.
    new_id = make_task_id(task.source, task.description, target) if result.ok else task.id
    return _mutation_response(
        result,
        task_id=new_id,
        source=task.source,
        old_date=task.date.isoformat(),
        new_date=target.isoformat(),
    )


async def update_task_tool(
    task_id: str,
    description: Optional[str] = None,
    date: Optional[str] = None,
    time: Optional[str] = None,
    completed: Optional[bool] = None,
    board_path: Optional[str] = None,
    vault_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Update task fields in place.

    Args:
        task_id: Task id from list_tasks_tool
        description: New description
        date: New date (YYYY-MM-DD)
        time: New time (HH:MM or HH:MM-HH:MM); empty string removes the time
        completed: New completion state
        board_path: Board holding the task (speeds up the lookup)
        vault_path: Path to vault (defaults to env var)

    Returns:
        Dictionary with success flag and status (not_found, no_change, applied)
    """
    changes = TaskUpdate(
        description=description,
        date=parse_date(date) if date else None,
        time=time,
        completed=completed,
    )
    _, store = resolve_store(vault_path)

    task = await find_task(store, task_id, board_path)
    if task is None:
        return {"success": False, "status": MutationStatus.NOT_FOUND.value, "error": f"Unknown task id: {task_id}"}

    result = await update(store, task, changes)
    new_id = task.id
    if result.ok:
        new_id = make_task_id(task.source, changes.description or task.description, changes.date or task.date)
    return _mutation_response(result, task_id=new_id, source=task.source)


async def add_task_tool(
    board_path: str,
    description: str,
    date: str,
    time: Optional[str] = None,
    tags: Optional[List[str]] = None,
    vault_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Add a task to the first column of a board that is not a done column.

    Args:
        board_path: Board file (relative to vault)
        description: Task text
        date: Due date (YYYY-MM-DD)
        time: Optional time (HH:MM or HH:MM-HH:MM)
        tags: Optional tags, with or without '#'
        vault_path: Path to vault (defaults to env var)

    Returns:
        Dictionary with success flag, status and the new task
    """
    new_task = NewTask(description=description, date=parse_date(date), time=time, tags=tags or [])
    _, store = resolve_store(vault_path)

    result = await append(store, board_path, new_task)
    extra: Dict[str, Any] = {"source": board_path}
    if result.ok:
        added = [t for t in extract_tasks(result.text, board_path) if t.description == new_task.description.strip()
                 and t.date == new_task.date]
        if added:
            extra["task"] = added[0].model_dump(mode="json")
    return _mutation_response(result, **extra)


async def task_statistics_tool(
    board_path: Optional[str] = None,
    vault_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Get aggregate statistics for dated Kanban tasks.

    Args:
        board_path: Board to scan (defaults to settings)
        vault_path: Path to vault (defaults to env var)

    Returns:
        Dictionary with task counts overall, per column and per tag
    """
    settings, store = resolve_store(vault_path)
    tasks = await load_tasks(store, settings, board_path)

    today = datetime.date.today()
    open_tasks = [t for t in tasks if not t.completed]
    by_list = Counter(t.list_name or "(none)" for t in tasks)
    by_tag = Counter(tag for t in tasks for tag in t.tags)

    return {
        "total_tasks": len(tasks),
        "open_tasks": len(open_tasks),
        "completed_tasks": len(tasks) - len(open_tasks),
        "overdue_tasks": sum(1 for t in open_tasks if t.date < today),
        "due_this_week": sum(1 for t in open_tasks if today <= t.date <= today + datetime.timedelta(days=7)),
        "by_list": [{"list_name": k, "count": v} for k, v in by_list.most_common()],
        "by_tag": [{"tag": k, "count": v} for k, v in by_tag.most_common()],
    }
