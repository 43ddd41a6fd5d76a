"""CLI entry point for LifeSync."""

import asyncio
import signal
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Annotated

import typer

from .config import ConfigManager
from .data_store import DataStore
from .diagnostics import Diagnostics
from .list_manager import DuplicateItemError, ItemNotFoundError, ListManager
from .logging_config import configure_logging
from .meal_planner import MealPlanner
from .models import (
    Collection,
    Cuisine,
    Difficulty,
    MealStatus,
    Priority,
    ShoppingCategory,
    StoreType,
    SyncDirection,
    TodoPriority,
    TodoStatus,
)
from .output_formatter import OutputFormatter
from .sync import SyncClient, SyncError, WebAppNotRunningError
from .todo_manager import TodoManager
from .watchdog import (
    HealthChecker,
    ProcessWatchdog,
    RestartPolicy,
    WatchdogState,
    fixed_delay,
)

app = typer.Typer(
    name="lifesync",
    help="LifeSync companion CLI: shopping, recipes, meals, todos and web app sync",
    no_args_is_help=True,
)

# Global state for formatter and config (set by callback)
formatter: OutputFormatter = OutputFormatter()
config: ConfigManager | None = None
data_store: DataStore | None = None


def get_config() -> ConfigManager:
    """Get or create ConfigManager instance."""
    global config
    if config is None:
        config = ConfigManager()
    return config


def get_data_store() -> DataStore:
    """Get or create DataStore instance using config values."""
    global data_store
    if data_store is None:
        data_store = DataStore(get_config().data_path)
    return data_store


def get_list_manager() -> ListManager:
    return ListManager(get_data_store(), username=get_config().cli.username)


def get_meal_planner() -> MealPlanner:
    return MealPlanner(get_data_store())


def get_todo_manager() -> TodoManager:
    return TodoManager(get_data_store(), username=get_config().cli.username)


def get_sync_client() -> SyncClient:
    return SyncClient(get_data_store(), api_url=get_config().api_url)


def resolve(collection: Collection, record_id: str) -> str:
    """Accept the short IDs shown in tables."""
    return get_data_store().resolve_id(collection, record_id)


def parse_day(value: str) -> date:
    """Parse 'today', 'tomorrow' or an ISO date."""
    lowered = value.lower()
    if lowered == "today":
        return date.today()
    if lowered == "tomorrow":
        return date.today() + timedelta(days=1)
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"'{value}' is not a date (use YYYY-MM-DD, today or tomorrow)")


@app.callback()
def main(
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON for programmatic use")
    ] = False,
    data_dir: Annotated[Path | None, typer.Option("--data-dir", help="Data directory path")] = None,
    config_path: Annotated[
        Path | None, typer.Option("--config", help="Config file path")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logs")] = False,
) -> None:
    """LifeSync CLI - keep your lists in step with the LifeSync web app."""
    global formatter, config, data_store

    configure_logging("DEBUG" if verbose else "WARNING")
    formatter = OutputFormatter(json_mode=json_output)

    config = ConfigManager(config_path)

    # CLI --data-dir overrides config, which overrides default
    data_store = DataStore(data_dir or config.data_path)


# --- Shopping ---

shopping_app = typer.Typer(help="Shopping list commands")
app.add_typer(shopping_app, name="shopping")


@shopping_app.command("add")
def shopping_add(
    item: Annotated[str, typer.Argument(help="Item name to add")],
    quantity: Annotated[int, typer.Option("--quantity", "-q", help="Quantity to buy")] = 1,
    category: Annotated[
        ShoppingCategory | None, typer.Option("--category", "-c", help="Product category")
    ] = None,
    unit: Annotated[str | None, typer.Option("--unit", "-u", help="Unit of measurement")] = None,
    priority: Annotated[
        Priority, typer.Option("--priority", help="Item priority")
    ] = Priority.MEDIUM,
    store: Annotated[str | None, typer.Option("--store", "-s", help="Store to buy from")] = None,
    brand: Annotated[str | None, typer.Option("--brand", "-b", help="Preferred brand")] = None,
    price: Annotated[float | None, typer.Option("--price", "-p", help="Estimated price")] = None,
    notes: Annotated[str | None, typer.Option("--notes", "-n", help="Additional notes")] = None,
    force: Annotated[bool, typer.Option("--force", "-f", help="Allow duplicate items")] = False,
) -> None:
    """Add an item to the shopping list."""
    try:
        cfg = get_config()
        result = get_list_manager().add_item(
            name=item,
            quantity=quantity,
            category=category or cfg.cli.default_category,
            unit=unit,
            priority=priority,
            store=store or cfg.cli.default_store,
            brand=brand,
            estimated_price=price,
            notes=notes,
            allow_duplicate=force,
        )
        formatter.output(result, result["message"])
    except DuplicateItemError as e:
        formatter.error(str(e), error_code="DUPLICATE_ITEM")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@shopping_app.command("list")
def shopping_list(
    store: Annotated[str | None, typer.Option("--store", "-s", help="Filter by store")] = None,
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Filter by category")
    ] = None,
    pending: Annotated[bool, typer.Option("--pending", help="Only items not yet bought")] = False,
    by_category: Annotated[bool, typer.Option("--by-category", help="Group by category")] = False,
) -> None:
    """View the shopping list."""
    try:
        manager = get_list_manager()
        if by_category:
            result = manager.get_by_category()
        else:
            result = manager.get_list(
                store=store, category=category, purchased=False if pending else None
            )
        formatter.output(result)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@shopping_app.command("bought")
def shopping_bought(
    item_id: Annotated[str, typer.Argument(help="Item ID to mark as bought")],
    price: Annotated[float | None, typer.Option("--price", "-p", help="Actual price paid")] = None,
    undo: Annotated[bool, typer.Option("--undo", help="Mark as not bought")] = False,
) -> None:
    """Mark an item as bought."""
    try:
        result = get_list_manager().mark_bought(
            resolve(Collection.SHOPPING, item_id), price=price, bought=not undo
        )
        formatter.output(result, result["message"])
    except ItemNotFoundError as e:
        formatter.error(str(e), error_code="ITEM_NOT_FOUND")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@shopping_app.command("update")
def shopping_update(
    item_id: Annotated[str, typer.Argument(help="Item ID to update")],
    name: Annotated[str | None, typer.Option("--name", help="New name")] = None,
    quantity: Annotated[int | None, typer.Option("--quantity", "-q", help="New quantity")] = None,
    category: Annotated[
        ShoppingCategory | None, typer.Option("--category", "-c", help="New category")
    ] = None,
    unit: Annotated[str | None, typer.Option("--unit", "-u", help="New unit")] = None,
    priority: Annotated[Priority | None, typer.Option("--priority", help="New priority")] = None,
    store: Annotated[str | None, typer.Option("--store", "-s", help="New store")] = None,
    brand: Annotated[str | None, typer.Option("--brand", "-b", help="New brand")] = None,
    price: Annotated[float | None, typer.Option("--price", "-p", help="New estimated price")] = None,
    notes: Annotated[str | None, typer.Option("--notes", "-n", help="New notes")] = None,
) -> None:
    """Update an existing item."""
    try:
        result = get_list_manager().update_item(
            item_id=resolve(Collection.SHOPPING, item_id),
            name=name,
            quantity=quantity,
            category=category,
            unit=unit,
            priority=priority,
            store=store,
            brand=brand,
            estimated_price=price,
            notes=notes,
        )
        formatter.output(result, result["message"])
    except ItemNotFoundError as e:
        formatter.error(str(e), error_code="ITEM_NOT_FOUND")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@shopping_app.command("remove")
def shopping_remove(
    item_id: Annotated[str, typer.Argument(help="Item ID to remove")],
) -> None:
    """Remove an item from the shopping list."""
    try:
        result = get_list_manager().remove_item(resolve(Collection.SHOPPING, item_id))
        formatter.output(result, result["message"])
    except ItemNotFoundError as e:
        formatter.error(str(e), error_code="ITEM_NOT_FOUND")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@shopping_app.command("clear")
def shopping_clear() -> None:
    """Remove bought items from the list."""
    try:
        result = get_list_manager().clear_purchased()
        formatter.success(result["message"], result.get("data"))
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


# --- Stores ---

stores_app = typer.Typer(help="Store commands")
app.add_typer(stores_app, name="stores")


@stores_app.command("add")
def stores_add(
    name: Annotated[str, typer.Argument(help="Store name")],
    store_type: Annotated[
        StoreType, typer.Option("--type", "-t", help="Kind of store")
    ] = StoreType.GROCERY,
    address: Annotated[str | None, typer.Option("--address", help="Street address")] = None,
    website: Annotated[str | None, typer.Option("--website", help="Website URL")] = None,
    favorite: Annotated[bool, typer.Option("--favorite", help="Mark as favorite")] = False,
) -> None:
    """Add a store."""
    try:
        result = get_list_manager().add_store(
            name, store_type=store_type, address=address, website=website, favorite=favorite
        )
        formatter.output(result, result["message"])
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@stores_app.command("list")
def stores_list(
    favorites: Annotated[bool, typer.Option("--favorites", help="Only favorites")] = False,
) -> None:
    """List stores."""
    try:
        formatter.output(get_list_manager().list_stores(favorites_only=favorites))
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@stores_app.command("favorite")
def stores_favorite(
    store_id: Annotated[str, typer.Argument(help="Store ID")],
    unset: Annotated[bool, typer.Option("--unset", help="Remove from favorites")] = False,
) -> None:
    """Mark a store as favorite."""
    try:
        result = get_list_manager().set_favorite(
            resolve(Collection.STORES, store_id), favorite=not unset
        )
        formatter.output(result, result["message"])
    except ItemNotFoundError as e:
        formatter.error(str(e), error_code="STORE_NOT_FOUND")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@stores_app.command("remove")
def stores_remove(
    store_id: Annotated[str, typer.Argument(help="Store ID")],
) -> None:
    """Remove a store."""
    try:
        result = get_list_manager().remove_store(resolve(Collection.STORES, store_id))
        formatter.output(result, result["message"])
    except ItemNotFoundError as e:
        formatter.error(str(e), error_code="STORE_NOT_FOUND")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


# --- Recipes ---

recipes_app = typer.Typer(help="Recipe commands")
app.add_typer(recipes_app, name="recipes")


@recipes_app.command("add")
def recipes_add(
    name: Annotated[str, typer.Argument(help="Recipe name")],
    ingredient: Annotated[
        list[str] | None,
        typer.Option("--ingredient", "-i", help="Ingredient line, e.g. '2 cups flour' (repeatable)"),
    ] = None,
    step: Annotated[
        list[str] | None, typer.Option("--step", "-s", help="Instruction step (repeatable)")
    ] = None,
    cuisine: Annotated[Cuisine, typer.Option("--cuisine", help="Cuisine")] = Cuisine.OTHER,
    difficulty: Annotated[
        Difficulty, typer.Option("--difficulty", help="Difficulty")
    ] = Difficulty.MEDIUM,
    prep: Annotated[int, typer.Option("--prep", help="Prep time in minutes")] = 0,
    cook: Annotated[int, typer.Option("--cook", help="Cook time in minutes")] = 0,
    servings: Annotated[int, typer.Option("--servings", help="Servings")] = 1,
    tag: Annotated[list[str] | None, typer.Option("--tag", "-t", help="Tag (repeatable)")] = None,
    description: Annotated[
        str | None, typer.Option("--description", "-d", help="Short description")
    ] = None,
) -> None:
    """Add a recipe."""
    try:
        result = get_meal_planner().add_recipe(
            name,
            ingredients=ingredient,
            instructions=step,
            cuisine=cuisine,
            difficulty=difficulty,
            prep_time=prep,
            cook_time=cook,
            servings=servings,
            tags=tag,
            description=description,
        )
        formatter.output(result, result["message"])
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@recipes_app.command("list")
def recipes_list(
    cuisine: Annotated[Cuisine | None, typer.Option("--cuisine", help="Filter by cuisine")] = None,
    tag: Annotated[str | None, typer.Option("--tag", "-t", help="Filter by tag")] = None,
    search: Annotated[str | None, typer.Option("--search", help="Search name/description")] = None,
) -> None:
    """List recipes."""
    try:
        formatter.output(get_meal_planner().list_recipes(cuisine=cuisine, tag=tag, search=search))
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@recipes_app.command("show")
def recipes_show(
    recipe_id: Annotated[str, typer.Argument(help="Recipe ID")],
) -> None:
    """Show a recipe."""
    try:
        formatter.output(get_meal_planner().show_recipe(resolve(Collection.RECIPES, recipe_id)))
    except ItemNotFoundError as e:
        formatter.error(str(e), error_code="RECIPE_NOT_FOUND")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@recipes_app.command("remove")
def recipes_remove(
    recipe_id: Annotated[str, typer.Argument(help="Recipe ID")],
) -> None:
    """Remove a recipe."""
    try:
        result = get_meal_planner().remove_recipe(resolve(Collection.RECIPES, recipe_id))
        formatter.output(result, result["message"])
    except ItemNotFoundError as e:
        formatter.error(str(e), error_code="RECIPE_NOT_FOUND")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


# --- Meals ---

meals_app = typer.Typer(help="Meal planning commands")
app.add_typer(meals_app, name="meals")


@meals_app.command("plan")
def meals_plan(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD, today, tomorrow)")],
    meal_type: Annotated[
        str | None, typer.Option("--type", "-t", help="breakfast, lunch, dinner or snack")
    ] = None,
    recipe: Annotated[str | None, typer.Option("--recipe", "-r", help="Recipe ID")] = None,
    custom: Annotated[
        str | None, typer.Option("--custom", "-c", help="Free-text meal instead of a recipe")
    ] = None,
    servings: Annotated[int, typer.Option("--servings", help="Servings")] = 1,
    notes: Annotated[str | None, typer.Option("--notes", "-n", help="Notes")] = None,
) -> None:
    """Plan a meal."""
    meal_date = parse_day(day)
    try:
        result = get_meal_planner().plan_meal(
            meal_date,
            meal_type=meal_type or get_config().cli.default_meal_type,
            recipe_id=resolve(Collection.RECIPES, recipe) if recipe else None,
            custom_meal=custom,
            servings=servings,
            notes=notes,
        )
        formatter.output(result, result["message"])
    except ItemNotFoundError as e:
        formatter.error(str(e), error_code="RECIPE_NOT_FOUND")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@meals_app.command("list")
def meals_list(
    start: Annotated[
        str | None, typer.Option("--from", help="First day (default today)")
    ] = None,
    days: Annotated[int, typer.Option("--days", help="Days to show, 0 for all")] = 7,
) -> None:
    """List planned meals."""
    start_date = parse_day(start) if start else None
    try:
        formatter.output(get_meal_planner().list_meals(start=start_date, days=days or None))
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@meals_app.command("status")
def meals_status(
    meal_id: Annotated[str, typer.Argument(help="Meal ID")],
    status: Annotated[MealStatus, typer.Argument(help="New status")],
) -> None:
    """Update a meal's status."""
    try:
        result = get_meal_planner().set_status(resolve(Collection.MEALS, meal_id), status)
        formatter.output(result, result["message"])
    except ItemNotFoundError as e:
        formatter.error(str(e), error_code="MEAL_NOT_FOUND")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@meals_app.command("remove")
def meals_remove(
    meal_id: Annotated[str, typer.Argument(help="Meal ID")],
) -> None:
    """Remove a planned meal."""
    try:
        result = get_meal_planner().remove_meal(resolve(Collection.MEALS, meal_id))
        formatter.output(result, result["message"])
    except ItemNotFoundError as e:
        formatter.error(str(e), error_code="MEAL_NOT_FOUND")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


# --- Todos ---

todos_app = typer.Typer(help="Todo board commands")
app.add_typer(todos_app, name="todos")


@todos_app.command("add")
def todos_add(
    title: Annotated[str, typer.Argument(help="What needs doing")],
    description: Annotated[
        str | None, typer.Option("--description", "-d", help="Details")
    ] = None,
    priority: Annotated[
        TodoPriority, typer.Option("--priority", "-p", help="Priority")
    ] = TodoPriority.MEDIUM,
    category: Annotated[str | None, typer.Option("--category", "-c", help="Category ID")] = None,
    due: Annotated[str | None, typer.Option("--due", help="Due date")] = None,
    tag: Annotated[list[str] | None, typer.Option("--tag", "-t", help="Tag (repeatable)")] = None,
    estimate: Annotated[
        int | None, typer.Option("--estimate", help="Estimated minutes")
    ] = None,
) -> None:
    """Add a todo."""
    due_date = None
    if due:
        due_date = datetime.combine(parse_day(due), datetime.min.time(), tzinfo=timezone.utc)
    try:
        result = get_todo_manager().add_todo(
            title,
            description=description,
            priority=priority,
            category_id=resolve(Collection.TODO_CATEGORIES, category) if category else None,
            due_date=due_date,
            tags=tag,
            estimated_time=estimate,
        )
        formatter.output(result, result["message"])
    except ItemNotFoundError as e:
        formatter.error(str(e), error_code="CATEGORY_NOT_FOUND")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@todos_app.command("list")
def todos_list(
    status: Annotated[TodoStatus | None, typer.Option("--status", help="Filter by status")] = None,
    category: Annotated[str | None, typer.Option("--category", "-c", help="Category ID")] = None,
    show_all: Annotated[bool, typer.Option("--all", help="Include done items")] = False,
) -> None:
    """List todos."""
    try:
        formatter.output(
            get_todo_manager().list_todos(
                status=status,
                category_id=resolve(Collection.TODO_CATEGORIES, category) if category else None,
                include_done=show_all,
            )
        )
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@todos_app.command("status")
def todos_status(
    todo_id: Annotated[str, typer.Argument(help="Todo ID")],
    status: Annotated[TodoStatus, typer.Argument(help="New status")],
    blocked_by: Annotated[
        str | None, typer.Option("--blocked-by", help="Who it is waiting on")
    ] = None,
) -> None:
    """Move a todo to another column."""
    try:
        result = get_todo_manager().set_status(
            resolve(Collection.TODOS, todo_id), status, blocked_by=blocked_by
        )
        formatter.output(result, result["message"])
    except ItemNotFoundError as e:
        formatter.error(str(e), error_code="TODO_NOT_FOUND")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@todos_app.command("remove")
def todos_remove(
    todo_id: Annotated[str, typer.Argument(help="Todo ID")],
) -> None:
    """Delete a todo."""
    try:
        result = get_todo_manager().remove_todo(resolve(Collection.TODOS, todo_id))
        formatter.output(result, result["message"])
    except ItemNotFoundError as e:
        formatter.error(str(e), error_code="TODO_NOT_FOUND")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@todos_app.command("category-add")
def todos_category_add(
    name: Annotated[str, typer.Argument(help="Category name")],
    description: Annotated[
        str | None, typer.Option("--description", "-d", help="Description")
    ] = None,
    color: Annotated[str | None, typer.Option("--color", help="Hex color")] = None,
    icon: Annotated[str | None, typer.Option("--icon", help="Icon")] = None,
) -> None:
    """Add a todo category."""
    try:
        result = get_todo_manager().add_category(
            name, description=description, color=color, icon=icon
        )
        formatter.output(result, result["message"])
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@todos_app.command("categories")
def todos_categories() -> None:
    """List todo categories."""
    try:
        formatter.output(get_todo_manager().list_categories())
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


# --- Config ---

config_app = typer.Typer(help="Configuration commands")
app.add_typer(config_app, name="config")


@config_app.command("show")
def config_show() -> None:
    """Show the current configuration."""
    cfg = get_config()
    formatter.output(
        {
            "success": True,
            "data": {"config": cfg.to_dict(), "config_path": str(cfg.config_path)},
        }
    )


@config_app.command("set")
def config_set(
    key: Annotated[str, typer.Argument(help="Setting name, e.g. apiUrl")],
    value: Annotated[str, typer.Argument(help="New value")],
) -> None:
    """Change a setting and save the config file."""
    try:
        cfg = get_config()
        stored = cfg.set(key, value)
        path = cfg.save()
        formatter.success(
            f"Set {key} = {stored}", {"key": key, "value": str(stored), "path": str(path)}
        )
    except ValueError as e:
        formatter.error(str(e), error_code="INVALID_CONFIG_KEY")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@config_app.command("reset")
def config_reset(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Restore the default configuration."""
    if not yes and not typer.confirm("Reset all settings to their defaults?"):
        formatter.warning("Reset cancelled")
        raise typer.Exit(code=1)

    try:
        cfg = get_config()
        cfg.reset()
        path = cfg.save()
        formatter.output(
            {
                "success": True,
                "message": "Configuration reset to defaults",
                "data": {"config": cfg.to_dict(), "config_path": str(path)},
            },
            "Configuration reset to defaults",
        )
    except OSError as e:
        formatter.error(f"Could not write config: {e}")
        raise typer.Exit(code=1)


# --- Sync ---

sync_app = typer.Typer(help="Sync with the LifeSync web app")
app.add_typer(sync_app, name="sync")

PushOption = Annotated[bool, typer.Option("--push", help="Only push local records")]
PullOption = Annotated[bool, typer.Option("--pull", help="Only pull remote records")]


def _direction(push: bool, pull: bool) -> SyncDirection:
    if push and not pull:
        return SyncDirection.PUSH
    if pull and not push:
        return SyncDirection.PULL
    return SyncDirection.BOTH


def _sync_one(collection: Collection, push: bool, pull: bool) -> None:
    try:
        with get_sync_client() as client:
            result = client.sync_collection(collection, _direction(push, pull))
        formatter.output(
            {
                "success": True,
                "message": f"Synced {collection.value}",
                "data": {"sync_result": result.model_dump(mode="json")},
            },
            f"Synced {collection.value}",
        )
    except WebAppNotRunningError as e:
        formatter.error(str(e), error_code="WEB_APP_NOT_RUNNING")
        raise typer.Exit(code=1)
    except SyncError as e:
        formatter.error(str(e), error_code="SYNC_FAILED")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@sync_app.command("all")
def sync_all(push: PushOption = False, pull: PullOption = False) -> None:
    """Sync shopping items, recipes and meal plans."""
    try:
        with get_sync_client() as client:
            report = client.sync_all(_direction(push, pull))
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)

    if report.error:
        error_code = "WEB_APP_NOT_RUNNING" if not report.web_app_running else "SYNC_FAILED"
        formatter.error(report.error, error_code=error_code)
        raise typer.Exit(code=1)

    message = "Sync complete" if report.success else "Sync finished with errors"
    formatter.output(
        {
            "success": report.success,
            "message": message,
            "data": {"sync_report": report.model_dump(mode="json")},
        },
        message,
    )
    if not report.success:
        raise typer.Exit(code=1)


@sync_app.command("shopping")
def sync_shopping(push: PushOption = False, pull: PullOption = False) -> None:
    """Sync shopping items."""
    _sync_one(Collection.SHOPPING, push, pull)


@sync_app.command("recipes")
def sync_recipes(push: PushOption = False, pull: PullOption = False) -> None:
    """Sync recipes."""
    _sync_one(Collection.RECIPES, push, pull)


@sync_app.command("meals")
def sync_meals(push: PushOption = False, pull: PullOption = False) -> None:
    """Sync meal plans."""
    _sync_one(Collection.MEALS, push, pull)


@sync_app.command("export")
def sync_export(
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Export file")] = None,
) -> None:
    """Export local data to a JSON file."""
    try:
        with get_sync_client() as client:
            path = client.export_data(output)
        formatter.success(f"Exported data to {path}", {"path": str(path)})
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@sync_app.command("import")
def sync_import(
    file: Annotated[Path, typer.Argument(help="Export file to import")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Import data from an export file."""
    if not yes and not typer.confirm(f"Import records from {file} into the local store?"):
        formatter.warning("Import cancelled")
        raise typer.Exit(code=1)

    try:
        with get_sync_client() as client:
            result = client.import_data(file)
        formatter.output(
            {
                "success": True,
                "message": f"Imported {result.total_imported} records",
                "data": {"import": result.model_dump(mode="json")},
            },
            f"Imported {result.total_imported} records",
        )
    except SyncError as e:
        formatter.error(str(e), error_code="INVALID_IMPORT")
        raise typer.Exit(code=1)
    except Exception as e:
        formatter.error(str(e))
        raise typer.Exit(code=1)


@sync_app.command("status")
def sync_status() -> None:
    """Show web app reachability and local record counts."""
    store = get_data_store()
    web_app: dict = {"url": get_config().api_url, "running": False}
    try:
        with get_sync_client() as client:
            client.check_health()
        web_app["running"] = True
    except SyncError as e:
        web_app["error"] = str(e)

    counts = {collection.value: len(store.list(collection)) for collection in Collection}
    formatter.output({"success": True, "data": {"web_app": web_app, "local_counts": counts}})


# --- Monitor ---


async def _supervise(watchdog: ProcessWatchdog, checker: HealthChecker) -> WatchdogState:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, lambda: asyncio.ensure_future(watchdog.stop()))
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl+C raises instead
            pass
    try:
        return await watchdog.run()
    finally:
        await checker.aclose()


@app.command()
def monitor(
    port: Annotated[int | None, typer.Option("--port", help="API server port")] = None,
    max_restarts: Annotated[
        int | None, typer.Option("--max-restarts", help="Give up after this many restarts")
    ] = None,
    interval: Annotated[
        float | None, typer.Option("--interval", help="Seconds between health checks")
    ] = None,
    log_file: Annotated[Path | None, typer.Option("--log-file", help="Monitor log file")] = None,
) -> None:
    """Run the API server and restart it when it fails."""
    settings = get_config().monitor
    configure_logging("INFO", log_file=log_file or settings.log_file)

    api_url = settings.api_url if port is None else f"http://localhost:{port}"
    checker = HealthChecker(api_url)
    watchdog = ProcessWatchdog(
        command=settings.command,
        checker=checker,
        policy=RestartPolicy(
            max_restarts=settings.max_restarts if max_restarts is None else max_restarts,
            delay=fixed_delay(settings.restart_delay),
        ),
        port=settings.port if port is None else port,
        cwd=settings.project_dir,
        check_interval=settings.check_interval if interval is None else interval,
        initial_delay=settings.initial_delay,
    )

    final_state = asyncio.run(_supervise(watchdog, checker))
    if final_state == WatchdogState.STOPPED_PERMANENTLY:
        formatter.error(
            f"API server failed {watchdog.restart_count} times in a row; giving up",
            error_code="MAX_RESTARTS_REACHED",
        )
        raise typer.Exit(code=1)
    formatter.success("Monitor stopped")


# --- Diagnostics ---


@app.command()
def diagnose(
    check: Annotated[
        str, typer.Argument(help="full, api, db, sync or ports")
    ] = "full",
    project_dir: Annotated[
        Path | None, typer.Option("--project-dir", help="Web app checkout holding .env")
    ] = None,
) -> None:
    """Check the local web app setup."""
    settings = get_config().monitor
    diagnostics = Diagnostics(
        api_url=settings.api_url,
        project_dir=project_dir or settings.project_dir,
        api_port=settings.port,
    )
    try:
        report = diagnostics.run(check)
    except ValueError as e:
        formatter.error(str(e), error_code="UNKNOWN_CHECK")
        raise typer.Exit(code=1)

    formatter.output({"success": report.healthy, "data": {"diagnostics": report.to_dict()}})


if __name__ == "__main__":
    app()
