"""Two-way sync between the local JSON store and the LifeSync web app.

Pull inserts records the local store is missing and overwrites local records
when the remote copy is strictly newer. Push offers every local record to the
web app as a create and falls back to an update when the create is refused.
Nothing is merged field by field; the newer record wins whole.
"""

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from .data_store import DataStore, DuplicateRecordError
from .models import (
    Collection,
    ExportBundle,
    ImportResult,
    Record,
    SyncDirection,
    SyncReport,
    SyncResult,
)

# Collection -> (endpoint, field compared to decide which copy is newer)
SYNC_ENDPOINTS: dict[Collection, tuple[str, str | None]] = {
    Collection.SHOPPING: ("/shopping", "updated_at"),
    Collection.RECIPES: ("/recipes", "created_at"),
    Collection.MEALS: ("/meals", None),
}

EXPORT_KEYS: dict[str, Collection] = {
    "shoppingItems": Collection.SHOPPING,
    "recipes": Collection.RECIPES,
    "mealPlans": Collection.MEALS,
}


class SyncError(Exception):
    """Raised when talking to the web app fails."""


class WebAppNotRunningError(SyncError):
    """Raised when the web app refuses the connection."""

    def __init__(self, api_url: str | None = None):
        self.api_url = api_url
        super().__init__("Web app is not running. Start the web app first.")


def _remote_records(payload: Any, endpoint: str) -> list[Any]:
    # The API answers with a bare array; some routes wrap it in {"data": [...]}
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping) and isinstance(payload.get("data"), list):
        return payload["data"]
    raise SyncError(f"Unexpected response from {endpoint}: expected a list of records")


def _has_id(raw: Any) -> bool:
    # Without its own ID a record would get a fresh one on every pull
    return isinstance(raw, Mapping) and raw.get("id") not in (None, "")


def _carries(raw: Any, model: type[Record], field: str) -> bool:
    if not isinstance(raw, Mapping):
        return False
    return field in raw or model.model_fields[field].alias in raw


class SyncClient:
    """Client for the web app's REST API."""

    def __init__(
        self,
        data_store: DataStore,
        api_url: str = "http://localhost:3000",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the sync client.

        Args:
            data_store: Local store to read from and write to
            api_url: Web app base URL; requests go to {api_url}/api/...
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.data_store = data_store
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=f"{self.api_url}/api",
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "SyncClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(self, method: str, endpoint: str, body: dict | None = None) -> Any:
        """Send one request and decode the JSON answer.

        Raises:
            WebAppNotRunningError: If the connection is refused
            SyncError: On non-2xx answers, transport errors or bad JSON
        """
        try:
            response = self.client.request(method, endpoint, json=body)
            response.raise_for_status()
        except httpx.ConnectError as e:
            raise WebAppNotRunningError(self.api_url) from e
        except httpx.HTTPStatusError as e:
            raise SyncError(
                f"HTTP {e.response.status_code}: {e.response.reason_phrase}"
            ) from e
        except httpx.HTTPError as e:
            raise SyncError(f"{method} {endpoint} failed: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise SyncError(f"Invalid JSON from {endpoint}") from e

    def check_health(self) -> dict[str, Any]:
        """Check that the web app is up.

        Raises:
            SyncError: If the health endpoint is unreachable or failing
        """
        payload = self._request("GET", "/health")
        return payload if isinstance(payload, dict) else {}

    # --- Pull / Push ---

    def _pull(self, collection: Collection, result: SyncResult) -> None:
        endpoint, stamp = SYNC_ENDPOINTS[collection]
        model = collection.model
        remote = _remote_records(self._request("GET", endpoint), endpoint)
        local = {record.id: record for record in self.data_store.list(collection)}

        for raw in remote:
            if not _has_id(raw):
                logger.warning("Skipping remote {} record without an id", collection.value)
                result.failed += 1
                continue
            try:
                incoming = model.model_validate(raw)
            except ValidationError as e:
                logger.warning("Skipping invalid remote {} record: {}", collection.value, e)
                result.failed += 1
                continue

            existing = local.get(incoming.id)
            if existing is None:
                try:
                    self.data_store.insert(collection, incoming)
                except DuplicateRecordError as e:
                    # The ID belongs to a local entry that no longer validates
                    logger.warning("Not pulling {}: {}", incoming.label, e)
                    result.failed += 1
                    continue
                local[incoming.id] = incoming
                result.pulled_new += 1
            elif (
                stamp is not None
                and _carries(raw, model, stamp)
                and getattr(incoming, stamp) > getattr(existing, stamp)
            ):
                self.data_store.replace(collection, incoming)
                local[incoming.id] = incoming
                result.pulled_updated += 1
            else:
                result.unchanged += 1

    def _push(self, collection: Collection, result: SyncResult) -> None:
        endpoint, _ = SYNC_ENDPOINTS[collection]

        for record in self.data_store.list(collection):
            body = record.to_json()
            try:
                self._request("POST", endpoint, body)
                result.pushed_created += 1
                continue
            except SyncError as e:
                logger.debug("Create of {} {} refused ({}), trying update", collection.value, record.id, e)

            try:
                self._request("PUT", f"{endpoint}/{record.id}", body)
                result.pushed_updated += 1
            except SyncError as e:
                logger.warning("Failed to push {} '{}': {}", collection.value, record.label, e)
                result.failed += 1

    def _run(self, collection: Collection, direction: SyncDirection, result: SyncResult) -> None:
        if direction.pulls:
            self._pull(collection, result)
        if direction.pushes:
            self._push(collection, result)
        logger.info(
            "Synced {}: {} new, {} updated, {} pushed, {} failed",
            collection.value,
            result.pulled_new,
            result.pulled_updated,
            result.pushed_created + result.pushed_updated,
            result.failed,
        )

    def sync_collection(
        self, collection: Collection, direction: SyncDirection = SyncDirection.BOTH
    ) -> SyncResult:
        """Sync one collection.

        Args:
            collection: One of shopping, recipes, meals
            direction: pull, push, or both (pull then push)

        Raises:
            ValueError: If the collection is not synced with the web app
            SyncError: If the remote list cannot be fetched
        """
        if collection not in SYNC_ENDPOINTS:
            raise ValueError(f"Collection '{collection.value}' is not synced with the web app")

        result = SyncResult(collection=collection, direction=direction)
        self._run(collection, direction, result)
        return result

    def sync_shopping_items(self, direction: SyncDirection = SyncDirection.BOTH) -> SyncResult:
        return self.sync_collection(Collection.SHOPPING, direction)

    def sync_recipes(self, direction: SyncDirection = SyncDirection.BOTH) -> SyncResult:
        return self.sync_collection(Collection.RECIPES, direction)

    def sync_meal_plans(self, direction: SyncDirection = SyncDirection.BOTH) -> SyncResult:
        return self.sync_collection(Collection.MEALS, direction)

    def sync_all(self, direction: SyncDirection = SyncDirection.BOTH) -> SyncReport:
        """Sync every collection after a health check.

        A failed health check aborts the whole run. A collection that fails
        is recorded with its error and the remaining ones still run.
        """
        report = SyncReport(direction=direction)
        try:
            self.check_health()
        except SyncError as e:
            logger.error("Sync aborted: {}", e)
            report.error = str(e)
            report.web_app_running = not isinstance(e, WebAppNotRunningError)
            return report

        for collection in SYNC_ENDPOINTS:
            result = SyncResult(collection=collection, direction=direction)
            try:
                self._run(collection, direction, result)
            except SyncError as e:
                logger.error("Sync of {} failed: {}", collection.value, e)
                result.error = str(e)
            report.results.append(result)

        report.success = all(result.success for result in report.results)
        return report

    # --- Export / Import ---

    def export_data(self, path: Path | None = None) -> Path:
        """Write shopping items, recipes and meal plans to one JSON file.

        Args:
            path: Target file. Defaults to <data dir>/export.json

        Returns:
            Path written

        Raises:
            SyncError: If the file cannot be written
        """
        bundle = ExportBundle(
            shopping_items=self.data_store.list(Collection.SHOPPING),
            recipes=self.data_store.list(Collection.RECIPES),
            meal_plans=self.data_store.list(Collection.MEALS),
        )
        target = path or self.data_store.data_dir / "export.json"

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "w") as f:
                json.dump(
                    bundle.model_dump(mode="json", by_alias=True, exclude_none=True), f, indent=2
                )
        except OSError as e:
            raise SyncError(f"Could not write export file: {e}") from e

        logger.info("Exported data to {}", target)
        return target

    def import_data(self, path: Path) -> ImportResult:
        """Insert the records of an export file into the local store.

        Records without an ID, whose ID already exists, or that fail
        validation are skipped and counted.

        Raises:
            SyncError: If the file is missing or not an export file
        """
        if not path.exists():
            raise SyncError("Import file not found")

        try:
            with open(path) as f:
                payload = json.load(f)
        except (OSError, ValueError) as e:
            raise SyncError("Invalid import file format") from e

        if not isinstance(payload, dict) or "version" not in payload:
            raise SyncError("Invalid import file format")

        result = ImportResult()
        for key, collection in EXPORT_KEYS.items():
            imported = skipped = 0
            for raw in payload.get(key) or []:
                if not _has_id(raw):
                    skipped += 1
                    continue
                try:
                    self.data_store.insert(collection, raw)
                    imported += 1
                except (DuplicateRecordError, ValidationError):
                    skipped += 1
            result.imported[key] = imported
            result.skipped[key] = skipped

        logger.info(
            "Imported {} records from {} ({} skipped)",
            result.total_imported,
            path,
            result.total_skipped,
        )
        return result
