"""Runtime settings, read from environment variables."""

import os
from typing import List, Optional

from pydantic import BaseModel, Field


def _env_list(name: str) -> List[str]:
    value = os.getenv(name, "")
    return [item.strip() for item in value.split(",") if item.strip()]


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class KanbanCalendarSettings(BaseModel):
    """Which boards are scanned and which tasks are reported."""

    vault_path: Optional[str] = Field(default=None, description="Vault root; API access is used when unset")
    default_board: str = Field(default="", description="Board path relative to the vault; empty scans all files")
    show_completed: bool = True
    included_lists: List[str] = Field(default_factory=list, description="Columns to include; empty includes all")
    excluded_lists: List[str] = Field(default_factory=list, description="Columns to leave out")
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "KanbanCalendarSettings":
        return cls(
            vault_path=os.getenv("OBSIDIAN_VAULT_PATH") or None,
            default_board=os.getenv("KANBAN_DEFAULT_BOARD", ""),
            show_completed=_env_bool("KANBAN_SHOW_COMPLETED", True),
            included_lists=_env_list("KANBAN_INCLUDED_LISTS"),
            excluded_lists=_env_list("KANBAN_EXCLUDED_LISTS"),
            log_level=os.getenv("KANBAN_LOG_LEVEL", "INFO").upper(),
        )
