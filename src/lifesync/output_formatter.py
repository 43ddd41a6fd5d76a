"""Output formatting for CLI and programmatic use."""

import json
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for output."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.isoformat()
        if isinstance(obj, Path):
            return str(obj)
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


STATUS_ICONS = {
    "good": "[green]✓[/green]",
    "needs_fix": "[red]✗[/red]",
    "unknown": "[yellow]?[/yellow]",
}

TODO_STATUS_STYLE = {
    "need-to-start": "white",
    "currently-working": "cyan",
    "pending-others": "yellow",
    "done": "green",
}


def _short_id(record_id: str) -> str:
    return record_id[:8]


class OutputFormatter:
    """Formats output for both Rich terminal and JSON modes."""

    def __init__(self, json_mode: bool = False):
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode
        self.console = Console()

    def output(self, data: dict[str, Any], message: str = "") -> None:
        """Output data in appropriate format.

        Args:
            data: Data to output
            message: Optional message for Rich mode
        """
        if self.json_mode:
            self._output_json(data)
        else:
            self._output_rich(data, message)

    def _output_json(self, data: dict[str, Any]) -> None:
        """Output as JSON to stdout."""
        print(json.dumps(data, cls=JSONEncoder, indent=2))

    def _output_rich(self, data: dict[str, Any], message: str) -> None:
        """Output with Rich formatting."""
        if message:
            self.console.print(f"[green]✓[/green] {message}")

        payload = data.get("data", {})
        renderers = (
            ("shopping", self._render_shopping_list),
            ("item", self._render_item),
            ("by_category", self._render_by_category),
            ("recipes", self._render_recipes),
            ("recipe", self._render_recipe),
            ("meals", self._render_meals),
            ("todos", self._render_todos),
            ("categories", self._render_categories),
            ("stores", self._render_stores),
            ("config", self._render_config),
            ("sync_report", self._render_sync_report),
            ("sync_result", self._render_sync_result),
            ("import", self._render_import),
            ("diagnostics", self._render_diagnostics),
            ("local_counts", self._render_sync_status),
        )
        for key, render in renderers:
            if key in payload:
                render(payload)
                return

    # --- Shopping ---

    def _render_shopping_list(self, data: dict) -> None:
        """Render the shopping list with Rich."""
        items = data["shopping"]["items"]

        if not items:
            self.console.print("[dim]No items on the list[/dim]")
            return

        table = Table(title="Shopping List", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim")
        table.add_column("Item", style="cyan", no_wrap=False)
        table.add_column("Qty", style="magenta", justify="right")
        table.add_column("Category", style="yellow")
        table.add_column("Store", style="green")
        table.add_column("Priority")
        table.add_column("Bought", justify="center")

        for item in items:
            quantity = f"{item.get('quantity', 1)} {item.get('unit') or ''}".strip()
            table.add_row(
                _short_id(item["id"]),
                item["name"],
                quantity,
                item.get("category", "other"),
                item.get("store") or "-",
                item.get("priority", "medium"),
                "[green]✓[/green]" if item.get("purchased") else "○",
            )

        self.console.print(table)
        self.console.print(
            f"\nTotal items: {data['shopping']['total_items']} "
            f"({data['shopping']['remaining']} remaining)"
        )

    def _render_item(self, data: dict) -> None:
        """Render a single shopping item with Rich."""
        item = data["item"]

        panel_content = f"""[bold]{item["name"]}[/bold]

ID: {item["id"]}
Quantity: {item.get("quantity", 1)} {item.get("unit") or ""}
Category: {item.get("category", "other")}
Priority: {item.get("priority", "medium")}
Purchased: {"yes" if item.get("purchased") else "no"}"""

        if item.get("store"):
            panel_content += f"\nStore: {item['store']}"

        if item.get("brand"):
            panel_content += f"\nBrand: {item['brand']}"

        if item.get("price") is not None:
            panel_content += f"\nPrice: ${item['price']:.2f}"
        elif item.get("estimatedPrice") is not None:
            panel_content += f"\nEst. Price: ${item['estimatedPrice']:.2f}"

        if item.get("notes"):
            panel_content += f"\nNotes: {item['notes']}"

        self.console.print(Panel(panel_content, title="Item Details", border_style="green"))

    def _render_by_category(self, data: dict) -> None:
        """Render items grouped by category."""
        by_category = data["by_category"]
        if not by_category:
            self.console.print("[dim]Nothing left to buy[/dim]")
            return

        for category, items in by_category.items():
            self.console.print(f"\n[bold yellow]{category}[/bold yellow]")
            for item in items:
                self.console.print(f"  - {item['name']} ({item.get('quantity', 1)})")

    def _render_stores(self, data: dict) -> None:
        stores = data["stores"]
        if not stores:
            self.console.print("[dim]No stores saved[/dim]")
            return

        table = Table(title="Stores", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Type", style="yellow")
        table.add_column("Address")
        table.add_column("Favorite", justify="center")

        for store in stores:
            table.add_row(
                _short_id(store["id"]),
                store["name"],
                store.get("type", "grocery"),
                store.get("address") or "-",
                "[yellow]★[/yellow]" if store.get("favorite") else "",
            )
        self.console.print(table)

    # --- Recipes & Meals ---

    def _render_recipes(self, data: dict) -> None:
        recipes = data["recipes"]
        if not recipes:
            self.console.print("[dim]No recipes found[/dim]")
            return

        table = Table(title="Recipes", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Cuisine", style="yellow")
        table.add_column("Difficulty")
        table.add_column("Time", justify="right")
        table.add_column("Serves", justify="right")

        for recipe in recipes:
            total = recipe.get("prepTime", 0) + recipe.get("cookTime", 0)
            table.add_row(
                _short_id(recipe["id"]),
                recipe["name"],
                recipe.get("cuisine", "other"),
                recipe.get("difficulty", "medium"),
                f"{total} min",
                str(recipe.get("servings", 1)),
            )
        self.console.print(table)

    def _render_recipe(self, data: dict) -> None:
        """Render one recipe with its ingredients and steps."""
        recipe = data["recipe"]

        lines = [f"[bold]{recipe['name']}[/bold]", ""]
        if recipe.get("description"):
            lines += [recipe["description"], ""]
        lines.append(
            f"Cuisine: {recipe.get('cuisine', 'other')}  "
            f"Difficulty: {recipe.get('difficulty', 'medium')}  "
            f"Serves: {recipe.get('servings', 1)}"
        )
        lines.append(
            f"Prep: {recipe.get('prepTime', 0)} min  Cook: {recipe.get('cookTime', 0)} min"
        )

        if recipe.get("ingredients"):
            lines += ["", "[bold]Ingredients[/bold]"]
            for ingredient in recipe["ingredients"]:
                amount = f"{ingredient.get('amount', 1):g} {ingredient.get('unit', '')}".strip()
                lines.append(f"  - {amount} {ingredient['name']}")

        if recipe.get("instructions"):
            lines += ["", "[bold]Instructions[/bold]"]
            for number, step in enumerate(recipe["instructions"], start=1):
                lines.append(f"  {number}. {step}")

        self.console.print(Panel("\n".join(lines), title="Recipe", border_style="green"))

    def _render_meals(self, data: dict) -> None:
        meals = data["meals"]
        if not meals:
            self.console.print("[dim]No meals planned[/dim]")
            return

        table = Table(title="Meal Plan", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim")
        table.add_column("Date", style="green")
        table.add_column("Meal", style="yellow")
        table.add_column("What", style="cyan")
        table.add_column("Serves", justify="right")
        table.add_column("Status")

        for meal in meals:
            table.add_row(
                _short_id(meal["id"]),
                meal["date"],
                meal.get("mealType", "dinner"),
                meal.get("title", "-"),
                str(meal.get("servings", 1)),
                meal.get("status", "planned"),
            )
        self.console.print(table)

    # --- Todos ---

    def _render_todos(self, data: dict) -> None:
        todos = data["todos"]
        if not todos:
            self.console.print("[dim]Nothing to do[/dim]")
            return

        table = Table(title="Todos", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim")
        table.add_column("Title", style="cyan", no_wrap=False)
        table.add_column("Status")
        table.add_column("Priority")
        table.add_column("Category", style="yellow")
        table.add_column("Due", style="green")

        for todo in todos:
            status = todo.get("status", "need-to-start")
            style = TODO_STATUS_STYLE.get(status, "white")
            due = todo.get("dueDate")
            table.add_row(
                _short_id(todo["id"]),
                todo["title"],
                f"[{style}]{status}[/{style}]",
                todo.get("priority", "medium"),
                todo.get("categoryName") or "-",
                due[:10] if due else "-",
            )
        self.console.print(table)

    def _render_categories(self, data: dict) -> None:
        categories = data["categories"]
        if not categories:
            self.console.print("[dim]No categories[/dim]")
            return

        for category in categories:
            icon = f"{category['icon']} " if category.get("icon") else ""
            self.console.print(
                f"{icon}[bold]{category['name']}[/bold] "
                f"[dim]({_short_id(category['id'])})[/dim] "
                f"{category.get('openTodos', 0)} open"
            )

    # --- Config ---

    def _render_config(self, data: dict) -> None:
        config = data["config"]
        table = Table(title="Configuration", show_header=True, header_style="bold cyan")
        table.add_column("Key", style="cyan")
        table.add_column("Value")

        for key, value in config.items():
            if isinstance(value, dict):
                for sub_key, sub_value in value.items():
                    table.add_row(f"{key}.{sub_key}", str(sub_value))
            else:
                table.add_row(key, str(value))
        self.console.print(table)

    # --- Sync ---

    def _sync_table(self, results: list[dict]) -> Table:
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Collection", style="cyan")
        table.add_column("New", justify="right")
        table.add_column("Updated", justify="right")
        table.add_column("Unchanged", justify="right")
        table.add_column("Pushed", justify="right")
        table.add_column("Failed", justify="right")
        table.add_column("Error", style="red")

        for result in results:
            table.add_row(
                result["collection"],
                str(result["pulled_new"]),
                str(result["pulled_updated"]),
                str(result["unchanged"]),
                str(result["pushed_created"] + result["pushed_updated"]),
                str(result["failed"]),
                result.get("error") or "",
            )
        return table

    def _render_sync_report(self, data: dict) -> None:
        report = data["sync_report"]
        if report.get("error"):
            self.console.print(f"[red]✗ Sync aborted:[/red] {report['error']}")
            return
        self.console.print(self._sync_table(report["results"]))

    def _render_sync_result(self, data: dict) -> None:
        self.console.print(self._sync_table([data["sync_result"]]))

    def _render_import(self, data: dict) -> None:
        result = data["import"]
        for key, count in result["imported"].items():
            skipped = result["skipped"].get(key, 0)
            self.console.print(f"  {key}: {count} imported, {skipped} skipped")

    def _render_sync_status(self, data: dict) -> None:
        web = data.get("web_app", {})
        if web.get("running"):
            self.console.print(f"[green]✓[/green] Web app running at {web['url']}")
        else:
            self.console.print(f"[red]✗[/red] Web app not reachable at {web.get('url')}")
            if web.get("error"):
                self.console.print(f"  [dim]{web['error']}[/dim]")

        self.console.print("\n[bold]Local records[/bold]")
        for name, count in data["local_counts"].items():
            self.console.print(f"  {name}: {count}")

    # --- Diagnostics ---

    def _render_diagnostics(self, data: dict) -> None:
        report = data["diagnostics"]
        overall = (
            "[green]HEALTHY[/green]" if report["healthy"] else "[yellow]NEEDS ATTENTION[/yellow]"
        )
        self.console.print(f"\n[bold]LifeSync Diagnostics[/bold]: {overall}\n")

        for name, check in report["checks"].items():
            icon = STATUS_ICONS.get(check["status"], "?")
            self.console.print(f"{icon} [bold]{name.upper()}[/bold]")
            for detail in check["details"]:
                self.console.print(f"    {detail}")

        self.console.print("\n[bold]Recommendations[/bold]")
        for recommendation in report["recommendations"]:
            self.console.print(f"  • {recommendation}")

    def error(self, message: str, error_code: str | None = None) -> None:
        """Output error message.

        Args:
            message: Error message
            error_code: Optional error code
        """
        if self.json_mode:
            output = {"success": False, "error": message}
            if error_code:
                output["error_code"] = error_code
            print(json.dumps(output))
        else:
            self.console.print(f"[red]✗ Error:[/red] {message}")

    def success(self, message: str, data: dict | None = None) -> None:
        """Output success message.

        Args:
            message: Success message
            data: Optional data to include
        """
        if self.json_mode:
            output: dict[str, Any] = {"success": True, "message": message}
            if data:
                output["data"] = data
            print(json.dumps(output, cls=JSONEncoder))
        else:
            self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        """Output warning message.

        Args:
            message: Warning message
        """
        if self.json_mode:
            print(json.dumps({"warning": message}))
        else:
            self.console.print(f"[yellow]⚠[/yellow] {message}")
