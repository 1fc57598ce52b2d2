"""Extract dated tasks from markdown Kanban boards.

A board is a markdown document whose ``## `` headings are columns and whose
checklist items are cards. Card metadata (``@{date}``, ``@@time``, ``#tags``)
may sit on the checklist line itself or on one of the three lines below it:

    ## Doing

    - [ ] **Write report**
    	#work @{2024-03-01} @@{09:00-11:30}
    	- [ ] Collect figures

Indented checklist items are subtasks; they inherit the parent's date when
they declare none and accumulate the parent's tags.

Extraction is a pure function of the text. Checklist items without a
resolvable date are skipped rather than reported as errors.
"""

import datetime
import logging
from typing import List, NamedTuple, Optional, Tuple

from ..models.kanban import TaskRecord
from ..utils.patterns import (
    BOLD,
    DATE_TOKEN,
    DONE_MARKER,
    ID_FILLER,
    ITALIC,
    OPEN_MARKER,
    SECTION_HEADING,
    TAG_PATTERN,
    TASK_MARKER,
    TIME_RANGE,
    TIME_TOKEN,
    UNDERLINE,
    WIKILINK_PATTERN,
)

logger = logging.getLogger(__name__)

LOOKAHEAD_LINES = 3
ID_DESCRIPTION_LENGTH = 50


class ParentContext(NamedTuple):
    """Date and tags remembered from the last top-level task."""

    date: Optional[datetime.date] = None
    tags: Tuple[str, ...] = ()


class TaskTime(NamedTuple):
    display: str
    start: str
    end: Optional[str] = None


def is_task_line(line: str) -> bool:
    return OPEN_MARKER in line or DONE_MARKER in line


def is_indented(line: str) -> bool:
    return line.startswith("\t") or line.startswith("    ")


def is_heading(line: str) -> bool:
    return bool(SECTION_HEADING.match(line))


def find_date(line: str) -> Optional[datetime.date]:
    """Return the first well-formed ``@{YYYY-MM-DD}`` date on a line.

    Tokens that match the pattern but are not real calendar dates are ignored.
    """
    for match in DATE_TOKEN.finditer(line):
        try:
            return datetime.date.fromisoformat(match.group(1))
        except ValueError:
            continue
    return None


def find_tags(line: str) -> List[str]:
    return TAG_PATTERN.findall(line)


def find_time(line: str) -> Optional[Tuple[str, str]]:
    """Return ``(token, value)`` for the first time token on a line."""
    match = TIME_TOKEN.search(line)
    if not match:
        return None
    return match.group(0), match.group("braced") or match.group("bare")


def parse_time(value: str) -> TaskTime:
    """Split a time value into display, start and end components.

    Examples:
        "09:00-11:30" -> TaskTime("09:00-11:30", "09:00", "11:30")
        "09:30"       -> TaskTime("09:30", "09:30", None)
    """
    value = value.strip()
    range_match = TIME_RANGE.match(value)
    if range_match:
        return TaskTime(value, range_match.group(1), range_match.group(2))
    return TaskTime(value, value, None)


def extract_linked_note(line: str) -> Optional[str]:
    match = WIKILINK_PATTERN.search(line)
    return match.group(1).strip() if match else None


def merge_tags(own: List[str], inherited: Tuple[str, ...]) -> List[str]:
    """Append inherited tags the task does not already declare."""
    tags = list(own)
    for tag in inherited:
        if tag not in tags:
            tags.append(tag)
    return tags


def clean_description(line: str, time_token: Optional[str], tags: List[str]) -> str:
    """Strip the checklist marker, annotations and emphasis from a task line.

    Tags are removed textually, so a tag that also occurs as a substring of
    another word loses that occurrence instead.
    """
    description = TASK_MARKER.sub("", line, count=1).strip()
    description = DATE_TOKEN.sub("", description, count=1).strip()
    if time_token and time_token in description:
        description = description.replace(time_token, "", 1).strip()
    for tag in tags:
        description = description.replace(tag, "", 1).strip()
    description = BOLD.sub(r"\1", description).strip()
    description = ITALIC.sub(r"\1", description).strip()
    description = UNDERLINE.sub(r"\1", description).strip()
    return description


def make_task_id(source: str, description: str, date: datetime.date) -> str:
    raw = f"{source}-{description[:ID_DESCRIPTION_LENGTH]}-{date.isoformat()}"
    return ID_FILLER.sub("_", raw)


def _lookahead(lines: List[str], index: int) -> Optional[Tuple[datetime.date, List[str], Optional[str]]]:
    """Find metadata for the task at ``index`` in the lines that follow it.

    Returns ``(date, tags, time_value)`` taken from the first line with a date,
    or None. Scanning stops at the next top-level task line.
    """
    for offset in range(1, LOOKAHEAD_LINES + 1):
        if index + offset >= len(lines):
            break
        next_line = lines[index + offset]
        if is_task_line(next_line) and not is_indented(next_line):
            break
        date = find_date(next_line)
        if date:
            found_time = find_time(next_line)
            return date, find_tags(next_line), found_time[1] if found_time else None
    return None


def _parse_task(
    lines: List[str],
    index: int,
    source: str,
    parent: ParentContext,
    list_name: Optional[str],
) -> Tuple[Optional[TaskRecord], ParentContext]:
    line = lines[index]
    subtask = is_indented(line)

    date = find_date(line)
    tags = find_tags(line)
    found_time = find_time(line)
    time_token = found_time[0] if found_time else None
    time_value = found_time[1] if found_time else None

    if subtask and parent.date:
        if not date:
            date = parent.date
        tags = merge_tags(tags, parent.tags)
    elif not subtask:
        parent = ParentContext(date, tuple(tags))

    if not date:
        metadata = _lookahead(lines, index)
        if metadata:
            date, window_tags, window_time = metadata
            tags = merge_tags(tags, tuple(window_tags))
            if window_time:
                time_value = window_time
            if not subtask:
                parent = ParentContext(date, tuple(merge_tags(list(parent.tags), tuple(window_tags))))

    if not date:
        logger.debug("Skipping undated task at %s:%d", source, index + 1)
        return None, parent

    description = clean_description(line, time_token, tags)
    task_time = parse_time(time_value) if time_value else None

    record = TaskRecord(
        id=make_task_id(source, description, date),
        description=description,
        date=date,
        time=task_time.display if task_time else None,
        start_time=task_time.start if task_time else None,
        end_time=task_time.end if task_time else None,
        tags=tags,
        completed=DONE_MARKER in line,
        source=source,
        linked_note=extract_linked_note(line),
        list_name=list_name,
        line_number=index + 1,
    )
    return record, parent


def extract_tasks(text: str, source: str) -> List[TaskRecord]:
    """Parse Kanban board text into dated task records.

    Args:
        text: Full markdown content of the board
        source: Identifier of the board (vault-relative path)

    Returns:
        Task records in document order
    """
    tasks: List[TaskRecord] = []
    lines = text.split("\n")
    parent = ParentContext()
    list_name: Optional[str] = None

    for index, line in enumerate(lines):
        if not line.strip():
            continue

        if is_heading(line):
            list_name = line[3:].strip()
            continue

        if not is_task_line(line):
            continue

        record, parent = _parse_task(lines, index, source, parent, list_name)
        if record:
            tasks.append(record)

    return tasks
