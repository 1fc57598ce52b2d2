"""Shared fixtures for the Kanban calendar tests."""

from pathlib import Path

import pytest

SPRINT_BOARD = """---
kanban-plugin: basic
---

## Backlog

- [ ] **Plan offsite** [[Offsite]]
\t#team @{2024-03-12}

## Doing

- [ ] **Write report**
\t#work @{2024-03-01} @@{09:00-11:30}
\t- [ ] Collect figures
- [ ] Standup @{2024-03-01} @@09:30 #daily

## Done

- [x] Ship release @{2024-02-28} #work


%% kanban:settings
```
{"kanban-plugin":"basic"}
```
%%
"""

BOARD_PATH = "Boards/Sprint.md"

ENV_VARS = (
    "OBSIDIAN_VAULT_PATH",
    "KANBAN_DEFAULT_BOARD",
    "KANBAN_SHOW_COMPLETED",
    "KANBAN_INCLUDED_LISTS",
    "KANBAN_EXCLUDED_LISTS",
    "KANBAN_LOG_LEVEL",
)


@pytest.fixture
def sprint_board() -> str:
    return SPRINT_BOARD


@pytest.fixture
def clean_env(monkeypatch):
    """Remove settings inherited from the developer's environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def vault(tmp_path: Path, clean_env) -> Path:
    """A vault with one board, one undated note and a hidden config folder."""
    board = tmp_path / BOARD_PATH
    board.parent.mkdir(parents=True)
    board.write_text(SPRINT_BOARD, encoding="utf-8")

    notes = tmp_path / "Notes"
    notes.mkdir()
    (notes / "plain.md").write_text("# Ideas\n\n- [ ] someday maybe\n", encoding="utf-8")

    hidden = tmp_path / ".obsidian"
    hidden.mkdir()
    (hidden / "cache.md").write_text("- [ ] hidden task @{2024-03-01}\n", encoding="utf-8")

    clean_env.setenv("OBSIDIAN_VAULT_PATH", str(tmp_path))
    return tmp_path
