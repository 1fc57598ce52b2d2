"""Targeted, in-place edits of Kanban board text.

Every edit re-locates a previously extracted task inside the *current* board
text and rewrites only the tokens that change. There is no stable per-task
address in the format, so a task is located by its description and date:

1. the first checklist line whose text after the marker contains
   ``task.description`` literally (an empty description matches a line that
   holds only annotations),
2. whose metadata window (the line plus up to three following lines, ending
   at the next checklist line) contains ``@{task.date}``.

Two tasks with the same description and date cannot be told apart; the first
one in the document is always the one edited.

All functions return a ``MutationResult``. On success ``result.text`` is the
complete rewritten board; on failure the input text is left untouched and no
exception is raised.
"""

import datetime
import logging
import re
from typing import List, NamedTuple, Optional, Tuple

from ..models.kanban import MutationResult, MutationStatus, NewTask, TaskRecord, TaskUpdate
from ..utils.patterns import (
    BOLD,
    DATE_TOKEN,
    DONE_MARKER,
    ITALIC,
    OPEN_MARKER,
    SECTION_HEADING,
    SETTINGS_BLOCK,
    TAG_PATTERN,
    TASK_MARKER,
    TIME_TOKEN,
    UNDERLINE,
)

logger = logging.getLogger(__name__)

WINDOW_LINES = 3
METADATA_INDENT = "\t"


class TaskLocation(NamedTuple):
    """Line range ``[start, end)`` of a located task's metadata window."""

    start: int
    end: int


def date_token(date: datetime.date) -> str:
    return f"@{{{date.isoformat()}}}"


def time_token(value: str) -> str:
    """Format a time value in the canonical braced form."""
    return f"@@{{{value}}}"


def _has_marker(line: str) -> bool:
    return OPEN_MARKER in line or DONE_MARKER in line


def _window_end(lines: List[str], start: int) -> int:
    end = start + 1
    while end < len(lines) and end <= start + WINDOW_LINES and not _has_marker(lines[end]):
        end += 1
    return end


def split_task_line(line: str) -> Optional[Tuple[str, str]]:
    """Split a checklist line into ``(prefix up to the marker, text after it)``."""
    match = TASK_MARKER.search(line)
    if not match:
        return None
    return line[: match.end()], line[match.end():]


def _bare_text(text: str) -> str:
    """Text left after removing annotations and emphasis characters."""
    for pattern in (DATE_TOKEN, TIME_TOKEN, TAG_PATTERN):
        text = pattern.sub("", text)
    for pattern in (BOLD, ITALIC, UNDERLINE):
        text = pattern.sub(r"\1", text)
    return text.strip()


def _describes(text: str, description: str) -> bool:
    # An empty description only matches a line that carries nothing but annotations.
    if not description:
        return not _bare_text(text)
    return description in text


def locate_task(lines: List[str], task: TaskRecord) -> Optional[TaskLocation]:
    """Find the metadata window of ``task`` in the given lines.

    The description is only matched against the text after the checklist
    marker.

    Args:
        lines: Current board text split on newlines
        task: Previously extracted record

    Returns:
        TaskLocation of the first matching task, None if no line matches
    """
    token = date_token(task.date)
    for index, line in enumerate(lines):
        parts = split_task_line(line)
        if parts is None or not _describes(parts[1], task.description):
            continue
        end = _window_end(lines, index)
        if any(token in candidate for candidate in lines[index:end]):
            return TaskLocation(index, end)
    return None


def _not_found(task: TaskRecord) -> MutationResult:
    logger.warning("Task not found in %s: %r on %s", task.source, task.description, task.date)
    return MutationResult(
        status=MutationStatus.NOT_FOUND,
        message=f"Task '{task.description}' ({task.date.isoformat()}) not found in {task.source}",
    )


def _replace_in_window(lines: List[str], location: TaskLocation, old: str, new: str) -> Optional[int]:
    """Replace the first ``old`` in the window, returning the line index changed."""
    for index in range(location.start, location.end):
        if old in lines[index]:
            lines[index] = lines[index].replace(old, new, 1)
            return index
    return None


def _find_time_token(lines: List[str], location: TaskLocation, value: str) -> Optional[Tuple[int, re.Match]]:
    for index in range(location.start, location.end):
        for match in TIME_TOKEN.finditer(lines[index]):
            found = match.group("braced") or match.group("bare")
            if re.sub(r"\s+", "", found) == re.sub(r"\s+", "", value):
                return index, match
    return None


def reschedule_task(text: str, task: TaskRecord, new_date: datetime.date) -> MutationResult:
    """Move a task to ``new_date`` by rewriting its date token.

    Args:
        text: Current board text
        task: Previously extracted record
        new_date: Target date

    Returns:
        MutationResult with the rewritten text, or a not_found/no_change status
    """
    lines = text.split("\n")
    location = locate_task(lines, task)
    if location is None:
        return _not_found(task)

    if new_date == task.date:
        return MutationResult(status=MutationStatus.NO_CHANGE, message="Task already has this date")

    if _replace_in_window(lines, location, date_token(task.date), date_token(new_date)) is None:
        return _not_found(task)

    return MutationResult(status=MutationStatus.APPLIED, text="\n".join(lines))


def update_task(text: str, task: TaskRecord, update: TaskUpdate) -> MutationResult:
    """Apply field changes to a task.

    The checklist marker and description are changed on the task line; date
    and time tokens are changed wherever they sit in the metadata window. A
    new time is appended to the line holding the date token.

    Args:
        text: Current board text
        task: Previously extracted record
        update: Fields to change

    Returns:
        MutationResult; no_change when no field altered the text
    """
    lines = text.split("\n")
    location = locate_task(lines, task)
    if location is None:
        return _not_found(task)

    prefix, rest = split_task_line(lines[location.start])

    if update.completed is not None and update.completed != task.completed:
        prefix = prefix[: -len(OPEN_MARKER)] + (DONE_MARKER if update.completed else OPEN_MARKER)

    if update.description is not None and update.description != task.description:
        if task.description:
            rest = rest.replace(task.description, update.description, 1)
        else:
            rest = " " + update.description + rest

    lines[location.start] = prefix + rest

    current_date = task.date
    if update.date is not None and update.date != task.date:
        if _replace_in_window(lines, location, date_token(task.date), date_token(update.date)) is not None:
            current_date = update.date

    if update.time is not None and update.time != (task.time or ""):
        if task.time:
            found = _find_time_token(lines, location, task.time)
            if found:
                index, match = found
                current = lines[index]
                if update.time:
                    replacement = time_token(update.time)
                    lines[index] = current[: match.start()] + replacement + current[match.end():]
                else:
                    head = current[: match.start()]
                    tail = current[match.end():]
                    if head.endswith(" "):
                        head = head[:-1]
                    elif tail.startswith(" "):
                        tail = tail[1:]
                    lines[index] = head + tail
        elif update.time:
            token = date_token(current_date)
            for index in range(location.start, location.end):
                if token in lines[index]:
                    body = lines[index].rstrip("\r")
                    eol = lines[index][len(body):]
                    lines[index] = body.rstrip(" \t") + " " + time_token(update.time) + eol
                    break

    new_text = "\n".join(lines)
    if new_text == text:
        return MutationResult(status=MutationStatus.NO_CHANGE, message="No field changed")
    return MutationResult(status=MutationStatus.APPLIED, text=new_text)


def _is_section_boundary(line: str) -> bool:
    return bool(SECTION_HEADING.match(line) or SETTINGS_BLOCK.match(line))


def format_new_task(task: NewTask) -> List[str]:
    """Render the checklist line and the indented metadata line of a new task."""
    metadata = list(task.tags)
    metadata.append(date_token(task.date))
    if task.time:
        metadata.append(time_token(task.time))
    return [
        f"{OPEN_MARKER} **{task.description.strip()}**",
        METADATA_INDENT + " ".join(metadata),
    ]


def append_task(text: str, task: NewTask) -> MutationResult:
    """Insert a new task at the end of the first column that is not a done column.

    Args:
        text: Current board text
        task: Task to add

    Returns:
        MutationResult; no_target_section when the board has no open column
    """
    lines = text.split("\n")

    section = None
    for index, line in enumerate(lines):
        if SECTION_HEADING.match(line) and "done" not in line.lower():
            section = index
            break
    if section is None:
        return MutationResult(
            status=MutationStatus.NO_TARGET_SECTION,
            message="Board has no column other than a done column",
        )

    boundary = len(lines)
    for index in range(section + 1, len(lines)):
        if _is_section_boundary(lines[index]):
            boundary = index
            break

    # Keep blank lines that separate the column from the next heading below the new task.
    insert_at = boundary
    while insert_at > section + 1 and not lines[insert_at - 1].strip():
        insert_at -= 1

    eol = "\r" if lines[section].endswith("\r") else ""
    lines[insert_at:insert_at] = [line + eol for line in format_new_task(task)]
    return MutationResult(status=MutationStatus.APPLIED, text="\n".join(lines))
