"""Todo board operations."""

from datetime import datetime

from .data_store import DataStore
from .list_manager import ItemNotFoundError
from .models import Collection, TodoCategory, TodoItem, TodoPriority, TodoStatus, utc_now

PRIORITY_RANK = {
    TodoPriority.URGENT: 0,
    TodoPriority.HIGH: 1,
    TodoPriority.MEDIUM: 2,
    TodoPriority.LOW: 3,
}


class TodoManager:
    """Manages todo items and their categories."""

    def __init__(self, data_store: DataStore | None = None, username: str | None = None):
        self.data_store = data_store or DataStore()
        self.username = username

    def _category_exists(self, category_id: str) -> bool:
        return self.data_store.get(Collection.TODO_CATEGORIES, category_id) is not None

    def add_todo(
        self,
        title: str,
        description: str | None = None,
        priority: TodoPriority = TodoPriority.MEDIUM,
        category_id: str | None = None,
        due_date: datetime | None = None,
        assigned_to: str | None = None,
        tags: list[str] | None = None,
        estimated_time: int | None = None,
    ) -> dict:
        """Add a todo in the need-to-start column.

        Raises:
            ItemNotFoundError: If the category does not exist
        """
        if category_id and not self._category_exists(category_id):
            raise ItemNotFoundError(category_id, kind="Category")

        todo = self.data_store.add(
            Collection.TODOS,
            TodoItem(
                title=title,
                description=description,
                priority=priority,
                category_id=category_id,
                due_date=due_date,
                assigned_to=assigned_to or self.username,
                tags=tags or [],
                estimated_time=estimated_time,
            ),
        )
        return {
            "success": True,
            "message": f"Added todo {title}",
            "data": {"todo": todo.to_json()},
        }

    def list_todos(
        self,
        status: TodoStatus | None = None,
        category_id: str | None = None,
        include_done: bool = False,
    ) -> dict:
        """List todos, most urgent first.

        Done items are hidden unless asked for by status or include_done.
        """
        todos: list[TodoItem] = self.data_store.list(Collection.TODOS)  # type: ignore[assignment]

        if status:
            todos = [t for t in todos if t.status == status]
        elif not include_done:
            todos = [t for t in todos if t.status != TodoStatus.DONE]

        if category_id:
            todos = [t for t in todos if t.category_id == category_id]

        todos.sort(
            key=lambda t: (PRIORITY_RANK[t.priority], t.due_date is None, t.due_date or t.created_at)
        )

        categories = {c.id: c.label for c in self.data_store.list(Collection.TODO_CATEGORIES)}
        rows = []
        for todo in todos:
            row = todo.to_json()
            if todo.category_id:
                row["categoryName"] = categories.get(todo.category_id)
            rows.append(row)

        return {
            "success": True,
            "data": {"todos": rows},
        }

    def set_status(self, todo_id: str, status: TodoStatus, blocked_by: str | None = None) -> dict:
        """Move a todo to another column.

        Moving to done stamps completedAt; moving out of done clears it.

        Raises:
            ItemNotFoundError: If todo not found
        """
        patch = {
            "status": status,
            "completed_at": utc_now() if status == TodoStatus.DONE else None,
            "blocked_by": blocked_by if status == TodoStatus.PENDING_OTHERS else None,
        }

        todo = self.data_store.update(Collection.TODOS, todo_id, patch)
        if todo is None:
            raise ItemNotFoundError(todo_id, kind="Todo")

        return {
            "success": True,
            "message": f"Moved {todo.label} to {status.value}",
            "data": {"todo": todo.to_json()},
        }

    def remove_todo(self, todo_id: str) -> dict:
        """Delete a todo.

        Raises:
            ItemNotFoundError: If todo not found
        """
        todo = self.data_store.get(Collection.TODOS, todo_id)
        if todo is None:
            raise ItemNotFoundError(todo_id, kind="Todo")

        self.data_store.delete(Collection.TODOS, todo_id)
        return {
            "success": True,
            "message": f"Removed todo {todo.label}",
            "data": {"todo": todo.to_json()},
        }

    # --- Categories ---

    def add_category(
        self,
        name: str,
        description: str | None = None,
        color: str | None = None,
        icon: str | None = None,
    ) -> dict:
        """Add a todo category."""
        fields: dict = {"name": name, "description": description, "icon": icon}
        if color:
            fields["color"] = color

        category = self.data_store.add(Collection.TODO_CATEGORIES, TodoCategory(**fields))
        return {
            "success": True,
            "message": f"Added category {name}",
            "data": {"category": category.to_json()},
        }

    def list_categories(self) -> dict:
        """List categories with their open todo counts."""
        todos: list[TodoItem] = self.data_store.list(Collection.TODOS)  # type: ignore[assignment]
        rows = []
        for category in self.data_store.list(Collection.TODO_CATEGORIES):
            row = category.to_json()
            row["openTodos"] = sum(
                1 for t in todos if t.category_id == category.id and t.status != TodoStatus.DONE
            )
            rows.append(row)

        return {
            "success": True,
            "data": {"categories": rows},
        }
