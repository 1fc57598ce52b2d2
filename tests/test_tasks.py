"""
Tests for the task tool functions against a vault folder.
"""

import datetime

import httpx
import pytest

from conftest import BOARD_PATH
from kanban_calendar_mcp.core.extractor import extract_tasks, make_task_id
from kanban_calendar_mcp.tools.tasks import (
    add_task_tool,
    calendar_tool,
    filter_tasks,
    list_tasks_tool,
    reschedule_task_tool,
    scan_sources,
    task_statistics_tool,
    update_task_tool,
)

MARCH_1 = datetime.date(2024, 3, 1)


def task_id(description: str, date: datetime.date = MARCH_1) -> str:
    return make_task_id(BOARD_PATH, description, date)


def read_board(vault) -> str:
    return (vault / BOARD_PATH).read_text(encoding="utf-8")


class TestListTasks:
    """Test listing and filtering."""

    @pytest.mark.asyncio
    async def test_scans_whole_vault(self, vault):
        result = await list_tasks_tool()

        assert result["total_found"] == 5
        assert result["truncated"] is False
        assert {t["source"] for t in result["tasks"]} == {BOARD_PATH}

    @pytest.mark.asyncio
    async def test_sorted_by_date(self, vault):
        result = await list_tasks_tool()

        dates = [t["date"] for t in result["tasks"]]
        assert dates == sorted(dates)
        assert dates[0] == "2024-02-28"

    @pytest.mark.asyncio
    async def test_filters(self, vault):
        result = await list_tasks_tool(filters={"tag": "work", "completed": False})

        assert [t["description"] for t in result["tasks"]] == ["Collect figures", "Write report"]

    @pytest.mark.asyncio
    async def test_date_range_and_column(self, vault):
        result = await list_tasks_tool(
            filters={"date_from": "2024-03-01", "date_to": "2024-03-31", "list_name": "Backlog"}
        )

        assert [t["description"] for t in result["tasks"]] == ["Plan offsite [[Offsite]]"]

    @pytest.mark.asyncio
    async def test_limit_truncates(self, vault):
        result = await list_tasks_tool(limit=2, sort_by="line_number", sort_order="desc")

        assert len(result["tasks"]) == 2
        assert result["truncated"] is True
        assert result["tasks"][0]["description"] == "Ship release"

    @pytest.mark.asyncio
    async def test_hide_completed_setting(self, vault, clean_env):
        clean_env.setenv("KANBAN_SHOW_COMPLETED", "false")

        result = await list_tasks_tool()

        assert result["total_found"] == 4
        assert not any(t["completed"] for t in result["tasks"])

    @pytest.mark.asyncio
    async def test_column_settings(self, vault, clean_env):
        clean_env.setenv("KANBAN_EXCLUDED_LISTS", "Backlog, Done")

        result = await list_tasks_tool()

        assert {t["list_name"] for t in result["tasks"]} == {"Doing"}

    @pytest.mark.asyncio
    async def test_default_board_setting(self, vault, clean_env):
        (vault / "Other.md").write_text("## Todo\n- [ ] Elsewhere @{2024-03-01}\n", encoding="utf-8")
        clean_env.setenv("KANBAN_DEFAULT_BOARD", "Other.md")

        result = await list_tasks_tool()

        assert [t["description"] for t in result["tasks"]] == ["Elsewhere"]

    @pytest.mark.asyncio
    async def test_explicit_vault_path(self, vault, clean_env):
        clean_env.delenv("OBSIDIAN_VAULT_PATH")

        result = await list_tasks_tool(board_path=BOARD_PATH, vault_path=str(vault))

        assert result["total_found"] == 5

    def test_filter_tag_with_or_without_hash(self, sprint_board):
        tasks = extract_tasks(sprint_board, "b.md")

        assert filter_tasks(tasks, tag="#daily") == filter_tasks(tasks, tag="daily")


class TestCalendar:
    """Test per-day grouping."""

    @pytest.mark.asyncio
    async def test_days_grouped_and_ordered(self, vault):
        result = await calendar_tool("2024-03-01", "2024-03-07")

        assert list(result["days"]) == ["2024-03-01"]
        assert [t["description"] for t in result["days"]["2024-03-01"]] == [
            "Collect figures",
            "Write report",
            "Standup",
        ]
        assert result["task_count"] == 3

    @pytest.mark.asyncio
    async def test_range_is_inclusive(self, vault):
        result = await calendar_tool("2024-02-28", "2024-03-12")

        assert list(result["days"]) == ["2024-02-28", "2024-03-01", "2024-03-12"]

    @pytest.mark.asyncio
    async def test_end_before_start(self, vault):
        with pytest.raises(ValueError):
            await calendar_tool("2024-03-07", "2024-03-01")


class TestReschedule:
    """Test rescheduling through the vault."""

    @pytest.mark.asyncio
    async def test_reschedule_writes_board(self, vault):
        result = await reschedule_task_tool(task_id("Write report"), "2024-03-04", board_path=BOARD_PATH)

        assert result["success"] is True
        assert result["status"] == "applied"
        assert result["task_id"] == task_id("Write report", datetime.date(2024, 3, 4))
        board = read_board(vault)
        assert "\t#work @{2024-03-04} @@{09:00-11:30}" in board
        assert "- [ ] Standup @{2024-03-01} @@09:30 #daily" in board

    @pytest.mark.asyncio
    async def test_new_id_finds_task_again(self, vault):
        first = await reschedule_task_tool(task_id("Standup"), "2024-03-04")
        second = await reschedule_task_tool(first["task_id"], "2024-03-05")

        assert second["status"] == "applied"
        assert "- [ ] Standup @{2024-03-05} @@09:30 #daily" in read_board(vault)

    @pytest.mark.asyncio
    async def test_unknown_task(self, vault):
        result = await reschedule_task_tool("nope", "2024-03-04")

        assert result == {"success": False, "status": "not_found", "error": "Unknown task id: nope"}

    @pytest.mark.asyncio
    async def test_same_date(self, vault):
        before = read_board(vault)

        result = await reschedule_task_tool(task_id("Standup"), "2024-03-01")

        assert result["success"] is False
        assert result["status"] == "no_change"
        assert read_board(vault) == before

    @pytest.mark.asyncio
    async def test_invalid_date(self, vault):
        with pytest.raises(ValueError):
            await reschedule_task_tool(task_id("Standup"), "2024-03-32")


class TestUpdate:
    """Test field updates through the vault."""

    @pytest.mark.asyncio
    async def test_complete_and_retime(self, vault):
        result = await update_task_tool(task_id("Standup"), completed=True, time="10:00")

        assert result["success"] is True
        assert "- [x] Standup @{2024-03-01} @@{10:00} #daily" in read_board(vault)

    @pytest.mark.asyncio
    async def test_rename_returns_new_id(self, vault):
        result = await update_task_tool(task_id("Write report"), description="Write summary")

        assert result["task_id"] == task_id("Write summary")
        assert "- [ ] **Write summary**" in read_board(vault)

    @pytest.mark.asyncio
    async def test_empty_update(self, vault):
        result = await update_task_tool(task_id("Write report"))

        assert result["success"] is False
        assert result["status"] == "no_change"

    @pytest.mark.asyncio
    async def test_blank_description_rejected(self, vault):
        with pytest.raises(ValueError):
            await update_task_tool(task_id("Write report"), description="  ")


class TestAdd:
    """Test adding tasks through the vault."""

    @pytest.mark.asyncio
    async def test_add_to_first_open_column(self, vault):
        result = await add_task_tool(BOARD_PATH, "Book venue", "2024-03-15", "14:00", ["team"])

        assert result["success"] is True
        assert result["task"]["list_name"] == "Backlog"
        assert result["task"]["tags"] == ["#team"]
        assert result["task"]["time"] == "14:00"

        listed = await list_tasks_tool(board_path=BOARD_PATH)
        assert listed["total_found"] == 6

    @pytest.mark.asyncio
    async def test_board_without_open_column(self, vault):
        (vault / "done.md").write_text("## Done\n", encoding="utf-8")

        result = await add_task_tool("done.md", "X", "2024-03-15")

        assert result["success"] is False
        assert result["status"] == "no_target_section"

    @pytest.mark.asyncio
    async def test_missing_board(self, vault):
        with pytest.raises(FileNotFoundError):
            await add_task_tool("missing.md", "X", "2024-03-15")

    @pytest.mark.asyncio
    async def test_invalid_tag(self, vault):
        with pytest.raises(ValueError):
            await add_task_tool(BOARD_PATH, "X", "2024-03-15", tags=["two words"])


class TestStatistics:
    """Test aggregate counts."""

    @pytest.mark.asyncio
    async def test_counts(self, vault):
        result = await task_statistics_tool()

        assert result["total_tasks"] == 5
        assert result["completed_tasks"] == 1
        assert result["open_tasks"] == 4
        assert {"list_name": "Doing", "count": 3} in result["by_list"]
        assert result["by_tag"][0] == {"tag": "#work", "count": 3}


class FailingReadStore:
    """Store whose API read fails for one document."""

    documents = {
        "a.md": "- [ ] First @{2024-03-01}\n",
        "c.md": "- [ ] Third @{2024-03-03}\n",
    }

    async def read_text(self, source):
        if source not in self.documents:
            request = httpx.Request("GET", f"http://obsidian.test/vault/{source}")
            raise httpx.HTTPStatusError("server error", request=request, response=httpx.Response(500, request=request))
        return self.documents[source]

    async def write_text(self, source, text):
        return False

    async def list_sources(self):
        return ["a.md", "bad.md", "c.md"]


class TestScanSources:
    """Test scanning with unreadable documents."""

    @pytest.mark.asyncio
    async def test_api_error_skips_document(self):
        tasks = await scan_sources(FailingReadStore(), ["a.md", "bad.md", "c.md"])

        assert [t.description for t in tasks] == ["First", "Third"]

    @pytest.mark.asyncio
    async def test_connection_error_skips_document(self):
        class Unreachable(FailingReadStore):
            async def read_text(self, source):
                raise httpx.ConnectError("refused")

        assert await scan_sources(Unreachable(), ["a.md"]) == []
