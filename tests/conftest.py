"""Shared test fixtures for LifeSync."""

import json

import pytest
from loguru import logger

from lifesync.data_store import DataStore
from lifesync.list_manager import ListManager
from lifesync.meal_planner import MealPlanner
from lifesync.todo_manager import TodoManager


@pytest.fixture
def temp_data_dir(tmp_path):
    """Create a temporary data directory."""
    data_dir = tmp_path / "test_data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def data_store(temp_data_dir):
    """Create a DataStore with temporary directory."""
    return DataStore(data_dir=temp_data_dir)


@pytest.fixture
def list_manager(data_store):
    """Create a ListManager with temporary storage."""
    return ListManager(data_store=data_store, username="alice")


@pytest.fixture
def meal_planner(data_store):
    """Create a MealPlanner with temporary storage."""
    return MealPlanner(data_store=data_store)


@pytest.fixture
def todo_manager(data_store):
    """Create a TodoManager with temporary storage."""
    return TodoManager(data_store=data_store, username="alice")


@pytest.fixture
def config_path(tmp_path):
    """Path for a config file that does not exist yet."""
    return tmp_path / "lifesync" / "config.json"


@pytest.fixture
def cli_args(temp_data_dir, config_path):
    """Global CLI options pointing at temporary storage."""
    return ["--json", "--data-dir", str(temp_data_dir), "--config", str(config_path)]


@pytest.fixture
def log_messages():
    """Capture loguru records as 'LEVEL|message' strings."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.rstrip("\n")), format="{level}|{message}")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def sample_export():
    """A minimal export document as written by SyncClient.export_data."""
    return {
        "shoppingItems": [
            {
                "id": "item-1",
                "name": "Milk",
                "quantity": 1,
                "category": "dairy",
                "priority": "medium",
                "purchased": False,
                "createdAt": "2024-01-01T00:00:00Z",
                "updatedAt": "2024-01-01T00:00:00Z",
            }
        ],
        "recipes": [
            {
                "id": "recipe-1",
                "name": "Pancakes",
                "ingredients": [{"name": "flour", "amount": 2, "unit": "cups"}],
                "instructions": ["Mix", "Fry"],
                "createdAt": "2024-01-01T00:00:00Z",
            }
        ],
        "mealPlans": [
            {"id": "meal-1", "date": "2024-01-02", "mealType": "breakfast", "recipeId": "recipe-1"}
        ],
        "exportedAt": "2024-01-03T00:00:00Z",
        "version": "1.0.0",
    }


@pytest.fixture
def export_file(tmp_path, sample_export):
    """Export document written to disk."""
    path = tmp_path / "export.json"
    path.write_text(json.dumps(sample_export))
    return path
