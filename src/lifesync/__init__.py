"""LifeSync - local lists synced with the LifeSync web app."""

from .config import ConfigManager
from .data_store import DataStore, DuplicateRecordError
from .diagnostics import CheckStatus, DiagnosticReport, Diagnostics
from .list_manager import DuplicateItemError, ItemNotFoundError, ListManager
from .meal_planner import MealPlanner
from .models import (
    Collection,
    Cuisine,
    Difficulty,
    ExportBundle,
    ImportResult,
    Ingredient,
    MealPlan,
    MealStatus,
    Priority,
    Recipe,
    ShoppingCategory,
    ShoppingItem,
    Store,
    StoreRatings,
    StoreType,
    SyncDirection,
    SyncReport,
    SyncResult,
    TodoCategory,
    TodoItem,
    TodoPriority,
    TodoStatus,
)
from .output_formatter import OutputFormatter
from .sync import SyncClient, SyncError, WebAppNotRunningError
from .todo_manager import TodoManager
from .watchdog import (
    HealthChecker,
    HealthStatus,
    ProcessWatchdog,
    RestartPolicy,
    WatchdogState,
    fixed_delay,
)

__version__ = "0.1.0"

__all__ = [
    "CheckStatus",
    "Collection",
    "ConfigManager",
    "Cuisine",
    "DataStore",
    "DiagnosticReport",
    "Diagnostics",
    "Difficulty",
    "DuplicateItemError",
    "DuplicateRecordError",
    "ExportBundle",
    "fixed_delay",
    "HealthChecker",
    "HealthStatus",
    "ImportResult",
    "Ingredient",
    "ItemNotFoundError",
    "ListManager",
    "MealPlan",
    "MealPlanner",
    "MealStatus",
    "OutputFormatter",
    "Priority",
    "ProcessWatchdog",
    "Recipe",
    "RestartPolicy",
    "ShoppingCategory",
    "ShoppingItem",
    "Store",
    "StoreRatings",
    "StoreType",
    "SyncClient",
    "SyncDirection",
    "SyncError",
    "SyncReport",
    "SyncResult",
    "TodoCategory",
    "TodoItem",
    "TodoManager",
    "TodoPriority",
    "TodoStatus",
    "WatchdogState",
    "WebAppNotRunningError",
]
