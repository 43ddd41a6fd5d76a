"""JSON file persistence for LifeSync.

Each collection lives in its own pretty-printed JSON array under the data
directory (``shopping.json``, ``recipes.json``, ...). Every mutation rewrites
the whole file, keeping entries that fail validation as they were. There is
no locking: two processes writing the same collection can lose updates.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError

from .models import Collection, Record, new_record_id, utc_now

RecordInput = Record | Mapping[str, Any]


class DuplicateRecordError(Exception):
    """Raised when inserting a record whose ID already exists."""

    def __init__(self, collection: Collection, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"Record '{record_id}' already exists in {collection.value}")


def field_names(model: type[Record], data: Mapping[str, Any]) -> dict[str, Any]:
    """Map camelCase keys onto the model's field names.

    Keys that match neither a field nor an alias are kept as-is so they
    survive as extra fields.
    """
    aliases = {info.alias: name for name, info in model.model_fields.items() if info.alias}
    return {aliases.get(key, key): value for key, value in data.items()}


def _next_stamp(previous: datetime | None) -> datetime:
    # Two updates inside the clock's resolution must still be ordered
    now = utc_now()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def _entry_id(entry: Any) -> Any:
    if isinstance(entry, Record):
        return entry.id
    if isinstance(entry, Mapping):
        # The web app's SQL rows use integer keys
        raw = entry.get("id")
        return str(raw) if isinstance(raw, int) else raw
    return None


class DataStore:
    """Manages JSON file persistence for LifeSync records."""

    def __init__(self, data_dir: Path | None = None):
        """Initialize data store.

        Args:
            data_dir: Directory for collection files. Defaults to ~/.lifesync/data
        """
        self.data_dir = data_dir or Path.home() / ".lifesync" / "data"
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Create the data directory if it doesn't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _collection_path(self, collection: Collection) -> Path:
        """Path to a collection file."""
        return self.data_dir / collection.filename

    def _as_data(self, model: type[Record], record: RecordInput) -> dict[str, Any]:
        if isinstance(record, BaseModel):
            return record.model_dump()
        return field_names(model, record)

    def _write(self, collection: Collection, entries: list[Any]) -> None:
        path = self._collection_path(collection)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                json.dump(
                    [e.to_json() if isinstance(e, Record) else e for e in entries], f, indent=2
                )
        except OSError as e:
            logger.error("Failed to write {}: {}", path, e)

    def _load(self, collection: Collection) -> list[Any]:
        """Read a collection file in order.

        Entries that fail validation are returned as their raw JSON values so
        a rewrite of the file puts them back unchanged.
        """
        path = self._collection_path(collection)
        if not path.exists():
            return []

        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Failed to read {}: {}", path, e)
            return []

        if not isinstance(data, list):
            logger.error("Expected a JSON array in {}", path)
            return []

        model = collection.model
        entries: list[Any] = []
        for raw in data:
            try:
                entries.append(model.model_validate(raw))
            except ValidationError as e:
                logger.warning(
                    "Ignoring invalid {} record in {} (left on disk): {}",
                    collection.value,
                    path.name,
                    e.errors()[0]["msg"],
                )
                entries.append(raw)
        return entries

    # --- Read Operations ---

    def list(self, collection: Collection) -> list[Record]:
        """Load every valid record in a collection.

        Args:
            collection: Collection to read

        Returns:
            Records in file order, empty if the file is missing or unreadable
        """
        return [entry for entry in self._load(collection) if isinstance(entry, Record)]

    def get(self, collection: Collection, record_id: str) -> Record | None:
        """Get a specific record by ID.

        Returns:
            The record if found, None otherwise
        """
        for record in self.list(collection):
            if record.id == record_id:
                return record
        return None

    def resolve_id(self, collection: Collection, id_or_prefix: str) -> str:
        """Expand a unique ID prefix, as shown in CLI tables, to the full ID.

        Values that match nothing are returned unchanged.

        Raises:
            ValueError: If the prefix matches more than one record
        """
        ids = [record.id for record in self.list(collection)]
        if id_or_prefix in ids:
            return id_or_prefix

        matches = [record_id for record_id in ids if record_id.startswith(id_or_prefix)]
        if len(matches) > 1:
            raise ValueError(
                f"ID prefix '{id_or_prefix}' matches {len(matches)} {collection.value} records"
            )
        return matches[0] if matches else id_or_prefix

    # --- Write Operations ---

    def add(self, collection: Collection, record: RecordInput) -> Record:
        """Add a new record with a fresh ID and timestamps.

        Args:
            collection: Target collection
            record: Model instance or mapping (camelCase or snake_case keys)

        Returns:
            The stored record
        """
        model = collection.model
        data = self._as_data(model, record)
        data["id"] = new_record_id()

        now = utc_now()
        for stamp in ("created_at", "updated_at"):
            if stamp in model.model_fields:
                data[stamp] = now

        stored = model.model_validate(data)
        entries = self._load(collection)
        entries.append(stored)
        self._write(collection, entries)
        logger.debug("Added {} record {}", collection.value, stored.id)
        return stored

    def insert(self, collection: Collection, record: RecordInput) -> Record:
        """Add a record as-is, keeping its own ID and timestamps.

        Raises:
            DuplicateRecordError: If an entry with the same ID exists, valid or not
        """
        model = collection.model
        stored = record if isinstance(record, model) else model.model_validate(
            self._as_data(model, record)
        )

        entries = self._load(collection)
        if any(_entry_id(e) == stored.id for e in entries):
            raise DuplicateRecordError(collection, stored.id)

        entries.append(stored)
        self._write(collection, entries)
        return stored

    def update(
        self, collection: Collection, record_id: str, patch: Mapping[str, Any]
    ) -> Record | None:
        """Merge a patch into an existing record.

        The ID is never patched. ``updatedAt`` is re-stamped strictly later
        than its previous value for collections that carry it.

        Returns:
            The updated record, or None if no record has that ID
        """
        model = collection.model
        entries = self._load(collection)

        for index, existing in enumerate(entries):
            if not isinstance(existing, Record) or existing.id != record_id:
                continue

            changes = field_names(model, patch)
            changes.pop("id", None)
            data = existing.model_dump()
            data.update(changes)
            if "updated_at" in model.model_fields:
                data["updated_at"] = _next_stamp(existing.updated_at)

            updated = model.model_validate(data)
            entries[index] = updated
            self._write(collection, entries)
            return updated

        return None

    def replace(self, collection: Collection, record: RecordInput) -> bool:
        """Overwrite the record with the same ID verbatim.

        Returns:
            True if a record was replaced, False if the ID is unknown
        """
        model = collection.model
        incoming = record if isinstance(record, model) else model.model_validate(
            self._as_data(model, record)
        )

        entries = self._load(collection)
        for index, existing in enumerate(entries):
            if isinstance(existing, Record) and existing.id == incoming.id:
                entries[index] = incoming
                self._write(collection, entries)
                return True
        return False

    def delete(self, collection: Collection, record_id: str) -> bool:
        """Delete a record by ID.

        Returns:
            True if a record was removed
        """
        entries = self._load(collection)
        remaining = [
            e for e in entries if not (isinstance(e, Record) and e.id == record_id)
        ]
        if len(remaining) == len(entries):
            return False

        self._write(collection, remaining)
        logger.debug("Deleted {} record {}", collection.value, record_id)
        return True

    def save(self, collection: Collection, records: list[Record]) -> None:
        """Rewrite a collection with the given records.

        Entries on disk that fail validation are kept after them.
        """
        invalid = [e for e in self._load(collection) if not isinstance(e, Record)]
        self._write(collection, [*records, *invalid])
