"""Shopping list management operations."""

from .data_store import DataStore
from .models import (
    Collection,
    Priority,
    ShoppingCategory,
    ShoppingItem,
    Store,
    StoreType,
    utc_now,
)


class DuplicateItemError(Exception):
    """Raised when attempting to add a duplicate item."""

    def __init__(self, existing_item: ShoppingItem):
        self.existing_item = existing_item
        super().__init__(
            f"Item '{existing_item.name}' is already on the list "
            f"(quantity: {existing_item.quantity}, store: {existing_item.store})"
        )


class ItemNotFoundError(Exception):
    """Raised when a record is not found."""

    def __init__(self, item_id: str, kind: str = "Item"):
        self.item_id = item_id
        super().__init__(f"{kind} with ID '{item_id}' not found")


class ListManager:
    """Manages shopping list and store operations."""

    def __init__(self, data_store: DataStore | None = None, username: str | None = None):
        """Initialize list manager.

        Args:
            data_store: DataStore instance. Creates new one if not provided.
            username: Recorded as addedBy/purchasedBy
        """
        self.data_store = data_store or DataStore()
        self.username = username

    def _items(self) -> list[ShoppingItem]:
        return self.data_store.list(Collection.SHOPPING)  # type: ignore[return-value]

    def add_item(
        self,
        name: str,
        quantity: int = 1,
        category: ShoppingCategory | str | None = None,
        unit: str | None = None,
        priority: Priority = Priority.MEDIUM,
        store: str | None = None,
        brand: str | None = None,
        estimated_price: float | None = None,
        notes: str | None = None,
        allow_duplicate: bool = False,
    ) -> dict:
        """Add an item to the shopping list.

        Raises:
            DuplicateItemError: If an unpurchased item with the same name exists
        """
        if not allow_duplicate:
            for existing in self._items():
                if existing.name.lower() == name.lower() and not existing.purchased:
                    raise DuplicateItemError(existing)

        item = self.data_store.add(
            Collection.SHOPPING,
            ShoppingItem(
                name=name,
                quantity=quantity,
                category=category or ShoppingCategory.OTHER,
                unit=unit,
                priority=priority,
                store=store or None,
                brand=brand,
                estimated_price=estimated_price,
                notes=notes,
                added_by=self.username,
            ),
        )

        return {
            "success": True,
            "message": f"Added {name} to shopping list",
            "data": {"item": item.to_json()},
        }

    def remove_item(self, item_id: str) -> dict:
        """Remove an item from the shopping list.

        Raises:
            ItemNotFoundError: If item not found
        """
        item = self.get_item(item_id)
        self.data_store.delete(Collection.SHOPPING, item_id)
        return {
            "success": True,
            "message": f"Removed {item.name} from shopping list",
            "data": {"item": item.to_json()},
        }

    def get_item(self, item_id: str) -> ShoppingItem:
        """Get a specific item by ID.

        Raises:
            ItemNotFoundError: If item not found
        """
        item = self.data_store.get(Collection.SHOPPING, item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item  # type: ignore[return-value]

    def get_list(
        self,
        store: str | None = None,
        category: str | None = None,
        purchased: bool | None = None,
    ) -> dict:
        """Get the shopping list with optional filtering.

        Args:
            store: Filter by store
            category: Filter by category
            purchased: Filter by purchased flag

        Returns:
            Dict with list data
        """
        items = self._items()

        if store:
            items = [i for i in items if i.store and i.store.lower() == store.lower()]

        if category:
            items = [i for i in items if i.category.value == category.lower()]

        if purchased is not None:
            items = [i for i in items if i.purchased == purchased]

        return {
            "success": True,
            "data": {
                "shopping": {
                    "items": [item.to_json() for item in items],
                    "total_items": len(items),
                    "remaining": sum(1 for i in items if not i.purchased),
                }
            },
        }

    def mark_bought(
        self,
        item_id: str,
        price: float | None = None,
        bought: bool = True,
    ) -> dict:
        """Mark an item as purchased (or back to unpurchased).

        Raises:
            ItemNotFoundError: If item not found
        """
        patch: dict = {
            "purchased": bought,
            "purchased_at": utc_now() if bought else None,
            "purchased_by": self.username if bought else None,
        }
        if price is not None:
            patch["price"] = price

        item = self.data_store.update(Collection.SHOPPING, item_id, patch)
        if item is None:
            raise ItemNotFoundError(item_id)

        verb = "bought" if bought else "not bought"
        return {
            "success": True,
            "message": f"Marked {item.name} as {verb}",
            "data": {"item": item.to_json()},
        }

    def update_item(
        self,
        item_id: str,
        name: str | None = None,
        quantity: int | None = None,
        category: ShoppingCategory | str | None = None,
        unit: str | None = None,
        priority: Priority | None = None,
        store: str | None = None,
        brand: str | None = None,
        estimated_price: float | None = None,
        notes: str | None = None,
    ) -> dict:
        """Update an existing item.

        Only the arguments that are not None are changed.

        Raises:
            ItemNotFoundError: If item not found
        """
        patch = {
            key: value
            for key, value in {
                "name": name,
                "quantity": quantity,
                "category": category,
                "unit": unit,
                "priority": priority,
                "store": store,
                "brand": brand,
                "estimated_price": estimated_price,
                "notes": notes,
            }.items()
            if value is not None
        }

        item = self.data_store.update(Collection.SHOPPING, item_id, patch)
        if item is None:
            raise ItemNotFoundError(item_id)

        return {
            "success": True,
            "message": f"Updated {item.name}",
            "data": {"item": item.to_json()},
        }

    def clear_purchased(self) -> dict:
        """Remove all purchased items from the list.

        Returns:
            Dict with count of removed items
        """
        items = self._items()
        remaining = [item for item in items if not item.purchased]
        removed_count = len(items) - len(remaining)

        if removed_count:
            self.data_store.save(Collection.SHOPPING, remaining)

        return {
            "success": True,
            "message": f"Cleared {removed_count} purchased items",
            "data": {"removed_count": removed_count},
        }

    def get_by_category(self) -> dict:
        """Get unpurchased items grouped by category."""
        by_category: dict[str, list[dict]] = {}
        for item in self._items():
            if item.purchased:
                continue
            by_category.setdefault(item.category.value, []).append(item.to_json())

        return {
            "success": True,
            "data": {"by_category": by_category},
        }

    # --- Stores ---

    def add_store(
        self,
        name: str,
        store_type: StoreType = StoreType.GROCERY,
        address: str | None = None,
        website: str | None = None,
        favorite: bool = False,
    ) -> dict:
        """Add a store."""
        store = self.data_store.add(
            Collection.STORES,
            Store(name=name, type=store_type, address=address, website=website, favorite=favorite),
        )
        return {
            "success": True,
            "message": f"Added store {name}",
            "data": {"store": store.to_json()},
        }

    def list_stores(self, favorites_only: bool = False) -> dict:
        """List stores, favorites first."""
        stores: list[Store] = self.data_store.list(Collection.STORES)  # type: ignore[assignment]
        if favorites_only:
            stores = [s for s in stores if s.favorite]
        stores.sort(key=lambda s: (not s.favorite, s.name.lower()))

        return {
            "success": True,
            "data": {"stores": [s.to_json() for s in stores]},
        }

    def set_favorite(self, store_id: str, favorite: bool = True) -> dict:
        """Mark or unmark a store as favorite.

        Raises:
            ItemNotFoundError: If store not found
        """
        store = self.data_store.update(Collection.STORES, store_id, {"favorite": favorite})
        if store is None:
            raise ItemNotFoundError(store_id, kind="Store")

        verb = "Favorited" if favorite else "Unfavorited"
        return {
            "success": True,
            "message": f"{verb} {store.label}",
            "data": {"store": store.to_json()},
        }

    def remove_store(self, store_id: str) -> dict:
        """Remove a store.

        Raises:
            ItemNotFoundError: If store not found
        """
        store = self.data_store.get(Collection.STORES, store_id)
        if store is None:
            raise ItemNotFoundError(store_id, kind="Store")

        self.data_store.delete(Collection.STORES, store_id)
        return {
            "success": True,
            "message": f"Removed store {store.label}",
            "data": {"store": store.to_json()},
        }
