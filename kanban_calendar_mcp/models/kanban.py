"""Data models for Kanban board tasks and board mutations."""

import re
import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

TIME_VALUE = re.compile(r"^\d{2}:\d{2}(?:-\d{2}:\d{2})?$")
TAG_VALUE = re.compile(r"^#?[a-zA-Z0-9]+$")


def _single_line_description(value: str) -> str:
    if not value.strip():
        raise ValueError("description must not be blank")
    if "\n" in value or "\r" in value:
        raise ValueError("description must be a single line")
    return value


class TaskRecord(BaseModel):
    """A dated checklist item parsed from a Kanban board."""

    id: str = Field(description="Deterministic identifier (source + description + date)")
    description: str = Field(description="Task text with annotations and emphasis stripped")
    date: datetime.date = Field(description="Due date")
    time: Optional[str] = Field(default=None, description="Display time, e.g. '09:00' or '09:00-11:30'")
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    tags: List[str] = Field(default_factory=list, description="Tags including the leading '#'")
    completed: bool = False
    source: str = Field(description="Path of the owning board, relative to the vault")
    linked_note: Optional[str] = Field(default=None, description="Target of the first [[wikilink]]")
    list_name: Optional[str] = Field(default=None, description="Kanban column (## heading) holding the task")
    line_number: int = Field(default=0, description="1-based line of the checklist marker when parsed")

    @property
    def date_token(self) -> str:
        return f"@{{{self.date.isoformat()}}}"


class TaskUpdate(BaseModel):
    """Field changes for an existing task. ``None`` leaves a field unchanged.

    An empty ``time`` string removes the task's time token.
    """

    description: Optional[str] = None
    date: Optional[datetime.date] = None
    time: Optional[str] = None
    completed: Optional[bool] = None

    @field_validator("description")
    @classmethod
    def _valid_description(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            _single_line_description(value)
        return value

    @field_validator("time")
    @classmethod
    def _valid_time(cls, value: Optional[str]) -> Optional[str]:
        if value:
            value = value.strip()
            if not TIME_VALUE.match(value):
                raise ValueError("time must be HH:MM or HH:MM-HH:MM")
        return value


class NewTask(BaseModel):
    """A task to append to a board."""

    description: str = Field(min_length=1)
    date: datetime.date
    time: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("description")
    @classmethod
    def _valid_description(cls, value: str) -> str:
        return _single_line_description(value)

    @field_validator("time")
    @classmethod
    def _valid_time(cls, value: Optional[str]) -> Optional[str]:
        if value:
            value = value.strip()
            if not TIME_VALUE.match(value):
                raise ValueError("time must be HH:MM or HH:MM-HH:MM")
            return value
        return None

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: List[str]) -> List[str]:
        tags: List[str] = []
        for tag in value:
            tag = tag.strip()
            if not TAG_VALUE.match(tag):
                raise ValueError(f"invalid tag: {tag!r}")
            tag = tag if tag.startswith("#") else f"#{tag}"
            if tag not in tags:
                tags.append(tag)
        return tags


class MutationStatus(str, Enum):
    APPLIED = "applied"
    NOT_FOUND = "not_found"
    NO_CHANGE = "no_change"
    NO_TARGET_SECTION = "no_target_section"
    WRITE_FAILED = "write_failed"


class MutationResult(BaseModel):
    """Outcome of a board mutation.

    ``text`` holds the complete rewritten document when ``status`` is
    ``applied`` and is ``None`` otherwise.
    """

    status: MutationStatus
    text: Optional[str] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == MutationStatus.APPLIED
