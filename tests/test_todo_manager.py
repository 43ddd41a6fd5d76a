"""Tests for the todo board."""

from datetime import datetime, timezone

import pytest

from lifesync.list_manager import ItemNotFoundError
from lifesync.models import TodoPriority, TodoStatus


class TestAddTodo:
    """Tests for adding todos."""

    def test_add_todo(self, todo_manager):
        result = todo_manager.add_todo("File taxes", priority=TodoPriority.HIGH)

        todo = result["data"]["todo"]
        assert result["message"] == "Added todo File taxes"
        assert todo["status"] == "need-to-start"
        assert todo["priority"] == "high"
        assert todo["assignedTo"] == "alice"

    def test_add_with_category(self, todo_manager):
        category_id = todo_manager.add_category("Home")["data"]["category"]["id"]
        todo = todo_manager.add_todo("Fix sink", category_id=category_id)["data"]["todo"]
        assert todo["categoryId"] == category_id

    def test_unknown_category(self, todo_manager):
        with pytest.raises(ItemNotFoundError, match="Category with ID 'nope' not found"):
            todo_manager.add_todo("Fix sink", category_id="nope")


class TestListTodos:
    """Tests for listing todos."""

    def test_sorted_by_priority_then_due(self, todo_manager):
        todo_manager.add_todo("Low", priority=TodoPriority.LOW)
        todo_manager.add_todo(
            "High later",
            priority=TodoPriority.HIGH,
            due_date=datetime(2024, 2, 1, tzinfo=timezone.utc),
        )
        todo_manager.add_todo(
            "High sooner",
            priority=TodoPriority.HIGH,
            due_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        todo_manager.add_todo("Urgent", priority=TodoPriority.URGENT)

        titles = [t["title"] for t in todo_manager.list_todos()["data"]["todos"]]
        assert titles == ["Urgent", "High sooner", "High later", "Low"]

    def test_done_hidden_by_default(self, todo_manager):
        todo_id = todo_manager.add_todo("Finished")["data"]["todo"]["id"]
        todo_manager.add_todo("Open")
        todo_manager.set_status(todo_id, TodoStatus.DONE)

        def titles(**kwargs):
            return [t["title"] for t in todo_manager.list_todos(**kwargs)["data"]["todos"]]

        assert titles() == ["Open"]
        assert set(titles(include_done=True)) == {"Finished", "Open"}
        assert titles(status=TodoStatus.DONE) == ["Finished"]

    def test_category_name_added(self, todo_manager):
        category_id = todo_manager.add_category("Home")["data"]["category"]["id"]
        todo_manager.add_todo("Fix sink", category_id=category_id)
        todo_manager.add_todo("Call bank")

        rows = todo_manager.list_todos(category_id=category_id)["data"]["todos"]
        assert len(rows) == 1
        assert rows[0]["categoryName"] == "Home"


class TestSetStatus:
    """Tests for moving todos between columns."""

    def test_done_stamps_completed(self, todo_manager):
        todo_id = todo_manager.add_todo("Taxes")["data"]["todo"]["id"]
        result = todo_manager.set_status(todo_id, TodoStatus.DONE)

        assert result["message"] == "Moved Taxes to done"
        assert "completedAt" in result["data"]["todo"]

    def test_reopen_clears_completed(self, todo_manager):
        todo_id = todo_manager.add_todo("Taxes")["data"]["todo"]["id"]
        todo_manager.set_status(todo_id, TodoStatus.DONE)
        todo = todo_manager.set_status(todo_id, TodoStatus.CURRENTLY_WORKING)["data"]["todo"]
        assert "completedAt" not in todo

    def test_blocked_by_only_when_pending(self, todo_manager):
        todo_id = todo_manager.add_todo("Taxes")["data"]["todo"]["id"]
        todo = todo_manager.set_status(
            todo_id, TodoStatus.PENDING_OTHERS, blocked_by="accountant"
        )["data"]["todo"]
        assert todo["blockedBy"] == "accountant"

        todo = todo_manager.set_status(
            todo_id, TodoStatus.CURRENTLY_WORKING, blocked_by="accountant"
        )["data"]["todo"]
        assert "blockedBy" not in todo

    def test_missing_todo(self, todo_manager):
        with pytest.raises(ItemNotFoundError, match="Todo with ID"):
            todo_manager.set_status("nope", TodoStatus.DONE)

    def test_remove_todo(self, todo_manager):
        todo_id = todo_manager.add_todo("Taxes")["data"]["todo"]["id"]
        todo_manager.remove_todo(todo_id)
        assert todo_manager.list_todos(include_done=True)["data"]["todos"] == []


class TestCategories:
    """Tests for todo categories."""

    def test_add_category_default_color(self, todo_manager):
        category = todo_manager.add_category("Work")["data"]["category"]
        assert category["color"] == "#6b7280"

    def test_open_counts(self, todo_manager):
        category_id = todo_manager.add_category("Home", color="#ff0000")["data"]["category"]["id"]
        first = todo_manager.add_todo("Fix sink", category_id=category_id)["data"]["todo"]["id"]
        todo_manager.add_todo("Paint fence", category_id=category_id)
        todo_manager.set_status(first, TodoStatus.DONE)

        categories = todo_manager.list_categories()["data"]["categories"]
        assert categories[0]["color"] == "#ff0000"
        assert categories[0]["openTodos"] == 1
