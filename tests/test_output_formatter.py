"""Tests for output formatting."""

import json
import re
from datetime import date, datetime, timezone
from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console

from lifesync.models import TodoStatus
from lifesync.output_formatter import JSONEncoder, OutputFormatter


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text."""
    ansi_escape = re.compile(r"\x1b\[[0-9;]*m")
    return ansi_escape.sub("", text)


@pytest.fixture
def rich_formatter():
    """Rich-mode formatter writing to a buffer."""
    formatter = OutputFormatter(json_mode=False)
    formatter.console = Console(file=StringIO(), force_terminal=True, width=160)
    return formatter


def rendered(formatter: OutputFormatter) -> str:
    return strip_ansi(formatter.console.file.getvalue())


class TestJSONEncoder:
    """Tests for JSONEncoder."""

    def test_encode_datetime(self):
        dt = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        result = json.dumps({"time": dt}, cls=JSONEncoder)
        assert "2024-01-15T10:30:00+00:00" in result

    def test_encode_date(self):
        result = json.dumps({"date": date(2024, 1, 15)}, cls=JSONEncoder)
        assert "2024-01-15" in result

    def test_encode_path_and_enum(self):
        result = json.loads(
            json.dumps({"path": Path("/tmp/x"), "status": TodoStatus.DONE}, cls=JSONEncoder)
        )
        assert result == {"path": "/tmp/x", "status": "done"}

    def test_encode_fallback(self):
        """Non-special types raise TypeError."""
        with pytest.raises(TypeError):
            json.dumps({"bad": object()}, cls=JSONEncoder)


class TestOutputFormatterJSON:
    """Tests for JSON output mode."""

    def test_json_mode_output(self, capsys):
        formatter = OutputFormatter(json_mode=True)
        formatter.output({"success": True, "data": {"test": "value"}})
        data = json.loads(capsys.readouterr().out)
        assert data["data"]["test"] == "value"

    def test_json_error(self, capsys):
        formatter = OutputFormatter(json_mode=True)
        formatter.error("Something went wrong", error_code="TEST_ERROR")
        data = json.loads(capsys.readouterr().out)
        assert data == {
            "success": False,
            "error": "Something went wrong",
            "error_code": "TEST_ERROR",
        }

    def test_json_success(self, capsys):
        formatter = OutputFormatter(json_mode=True)
        formatter.success("Operation completed", data={"count": 5})
        data = json.loads(capsys.readouterr().out)
        assert data["message"] == "Operation completed"
        assert data["data"]["count"] == 5

    def test_json_warning(self, capsys):
        formatter = OutputFormatter(json_mode=True)
        formatter.warning("This is a warning")
        data = json.loads(capsys.readouterr().out)
        assert data["warning"] == "This is a warning"


class TestRichMessages:
    """Tests for Rich status messages."""

    def test_error(self, rich_formatter):
        rich_formatter.error("Test error message")
        assert "Test error message" in rendered(rich_formatter)

    def test_success(self, rich_formatter):
        rich_formatter.success("Test success message")
        assert "Test success message" in rendered(rich_formatter)

    def test_output_message(self, rich_formatter):
        rich_formatter.output({"success": True, "data": {}}, "Added Milk to shopping list")
        assert "Added Milk to shopping list" in rendered(rich_formatter)


class TestRichShopping:
    """Tests for shopping renderers."""

    def test_empty_list(self, rich_formatter):
        rich_formatter.output(
            {"data": {"shopping": {"items": [], "total_items": 0, "remaining": 0}}}
        )
        assert "No items on the list" in rendered(rich_formatter)

    def test_list_with_items(self, rich_formatter):
        rich_formatter.output(
            {
                "data": {
                    "shopping": {
                        "items": [
                            {"id": "a1b2c3d4e5", "name": "Milk", "quantity": 2, "store": "Giant"},
                            {"id": "f6g7h8i9j0", "name": "Bread", "purchased": True},
                        ],
                        "total_items": 2,
                        "remaining": 1,
                    }
                }
            }
        )
        output = rendered(rich_formatter)
        assert "Milk" in output
        assert "Bread" in output
        assert "a1b2c3d4" in output
        assert "Total items: 2 (1 remaining)" in output

    def test_item_details(self, rich_formatter):
        rich_formatter.output(
            {
                "data": {
                    "item": {
                        "id": "item-1",
                        "name": "Milk",
                        "quantity": 1,
                        "brand": "Horizon",
                        "estimatedPrice": 3.5,
                    }
                }
            }
        )
        output = rendered(rich_formatter)
        assert "Brand: Horizon" in output
        assert "Est. Price: $3.50" in output

    def test_by_category(self, rich_formatter):
        rich_formatter.output(
            {"data": {"by_category": {"dairy": [{"name": "Milk", "quantity": 2}]}}}
        )
        output = rendered(rich_formatter)
        assert "dairy" in output
        assert "- Milk (2)" in output


class TestRichRecipesAndMeals:
    """Tests for recipe and meal renderers."""

    def test_recipe_panel(self, rich_formatter):
        rich_formatter.output(
            {
                "data": {
                    "recipe": {
                        "id": "r1",
                        "name": "Pancakes",
                        "prepTime": 5,
                        "cookTime": 15,
                        "ingredients": [{"name": "flour", "amount": 2.0, "unit": "cups"}],
                        "instructions": ["Mix", "Fry"],
                    }
                }
            }
        )
        output = rendered(rich_formatter)
        assert "- 2 cups flour" in output
        assert "2. Fry" in output

    def test_recipes_table_total_time(self, rich_formatter):
        rich_formatter.output(
            {"data": {"recipes": [{"id": "r1", "name": "Soup", "prepTime": 10, "cookTime": 20}]}}
        )
        assert "30 min" in rendered(rich_formatter)

    def test_meals_table(self, rich_formatter):
        rich_formatter.output(
            {
                "data": {
                    "meals": [
                        {"id": "m1", "date": "2024-06-01", "mealType": "lunch", "title": "Tacos"}
                    ]
                }
            }
        )
        output = rendered(rich_formatter)
        assert "2024-06-01" in output
        assert "Tacos" in output

    def test_no_meals(self, rich_formatter):
        rich_formatter.output({"data": {"meals": []}})
        assert "No meals planned" in rendered(rich_formatter)


class TestRichTodos:
    """Tests for todo renderers."""

    def test_todos_table(self, rich_formatter):
        rich_formatter.output(
            {
                "data": {
                    "todos": [
                        {
                            "id": "t1",
                            "title": "File taxes",
                            "status": "pending-others",
                            "categoryName": "Home",
                            "dueDate": "2024-04-15T00:00:00Z",
                        }
                    ]
                }
            }
        )
        output = rendered(rich_formatter)
        assert "File taxes" in output
        assert "pending-others" in output
        assert "2024-04-15" in output

    def test_categories(self, rich_formatter):
        rich_formatter.output(
            {"data": {"categories": [{"id": "c1", "name": "Home", "openTodos": 2}]}}
        )
        assert "Home" in rendered(rich_formatter)
        assert "2 open" in rendered(rich_formatter)


class TestRichSyncAndDiagnostics:
    """Tests for sync and diagnostics renderers."""

    def test_sync_report(self, rich_formatter):
        result = {
            "collection": "recipes",
            "pulled_new": 3,
            "pulled_updated": 0,
            "unchanged": 1,
            "pushed_created": 0,
            "pushed_updated": 0,
            "failed": 0,
            "error": "HTTP 500: Internal Server Error",
        }
        rich_formatter.output({"data": {"sync_report": {"results": [result]}}})
        output = rendered(rich_formatter)
        assert "recipes" in output
        assert "HTTP 500" in output

    def test_sync_report_aborted(self, rich_formatter):
        rich_formatter.output(
            {"data": {"sync_report": {"results": [], "error": "Web app is not running."}}}
        )
        assert "Sync aborted" in rendered(rich_formatter)

    def test_sync_status(self, rich_formatter):
        rich_formatter.output(
            {
                "data": {
                    "web_app": {"running": False, "url": "http://localhost:3000"},
                    "local_counts": {"shopping": 4},
                }
            }
        )
        output = rendered(rich_formatter)
        assert "Web app not reachable at http://localhost:3000" in output
        assert "shopping: 4" in output

    def test_diagnostics(self, rich_formatter):
        rich_formatter.output(
            {
                "data": {
                    "diagnostics": {
                        "healthy": False,
                        "checks": {
                            "api": {"status": "needs_fix", "details": ["API at x: HTTP 500"]}
                        },
                        "recommendations": ["Restart the API server: lifesync monitor"],
                    }
                }
            }
        )
        output = rendered(rich_formatter)
        assert "NEEDS ATTENTION" in output
        assert "API at x: HTTP 500" in output
        assert "lifesync monitor" in output

    def test_config_flattens_sections(self, rich_formatter):
        rich_formatter.output(
            {"data": {"config": {"apiUrl": "http://localhost:3000", "monitor": {"port": 3001}}}}
        )
        assert "monitor.port" in rendered(rich_formatter)
