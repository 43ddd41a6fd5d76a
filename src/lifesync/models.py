"""Core data models for LifeSync."""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any
from uuid import uuid4

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel

EXPORT_VERSION = "1.0.0"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_record_id() -> str:
    """Generate a record identifier."""
    return str(uuid4())


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps (older files, some API rows) are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _date_part(value: Any) -> Any:
    if isinstance(value, str) and "T" in value:
        return value.split("T", 1)[0]
    if isinstance(value, datetime):
        return value.date()
    return value


Timestamp = Annotated[datetime, AfterValidator(_as_utc)]
CalendarDate = Annotated[date, BeforeValidator(_date_part)]
Rating = Annotated[int, Field(ge=1, le=5)]


class Priority(str, Enum):
    """Shopping item priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ShoppingCategory(str, Enum):
    """Shopping and ingredient categories."""

    PRODUCE = "produce"
    DAIRY = "dairy"
    MEAT = "meat"
    PANTRY = "pantry"
    FROZEN = "frozen"
    BAKERY = "bakery"
    DELI = "deli"
    HOUSEHOLD = "household"
    PERSONAL = "personal"
    ELECTRONICS = "electronics"
    OTHER = "other"


class Cuisine(str, Enum):
    """Recipe cuisines."""

    AMERICAN = "american"
    ITALIAN = "italian"
    MEXICAN = "mexican"
    ASIAN = "asian"
    INDIAN = "indian"
    MEDITERRANEAN = "mediterranean"
    OTHER = "other"


class Difficulty(str, Enum):
    """Recipe difficulty."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class MealStatus(str, Enum):
    """Meal plan progress."""

    PLANNED = "planned"
    PREPPED = "prepped"
    COOKED = "cooked"
    EATEN = "eaten"


class StoreType(str, Enum):
    """Kinds of stores."""

    GROCERY = "grocery"
    WHOLESALE = "wholesale"
    SPECIALTY = "specialty"
    ORGANIC = "organic"
    INTERNATIONAL = "international"
    PHARMACY = "pharmacy"


class TodoStatus(str, Enum):
    """Todo board columns."""

    NEED_TO_START = "need-to-start"
    CURRENTLY_WORKING = "currently-working"
    PENDING_OTHERS = "pending-others"
    DONE = "done"


class TodoPriority(str, Enum):
    """Todo priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class CamelModel(BaseModel):
    """Base model with camelCase JSON serialization."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,  # Allow both snake_case and camelCase in input
    )


class Record(CamelModel):
    """A persisted record; unknown keys from the web app are kept."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(default_factory=new_record_id)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # The web app's SQL rows use integer keys
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def label(self) -> str:
        """Human-readable name for messages."""
        return self.id

    def to_json(self) -> dict[str, Any]:
        """Serialize in the web app's wire format."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ShoppingItem(Record):
    """A shopping list item."""

    name: str
    quantity: int = Field(default=1, ge=0)
    unit: str | None = None
    category: ShoppingCategory = ShoppingCategory.OTHER
    subcategory: str | None = None
    priority: Priority = Priority.MEDIUM
    purchased: bool = False
    price: float | None = None
    estimated_price: float | None = None
    store: str | None = None
    brand: str | None = None
    size: str | None = None
    aisle: str | None = None
    notes: str | None = None
    barcode: str | None = None
    tags: list[str] = Field(default_factory=list)
    added_by: str | None = None
    purchased_at: Timestamp | None = None
    purchased_by: str | None = None
    created_at: Timestamp = Field(default_factory=utc_now)
    updated_at: Timestamp = Field(default_factory=utc_now)

    @property
    def label(self) -> str:
        return self.name


class Ingredient(CamelModel):
    """A recipe ingredient."""

    name: str
    amount: float = 1
    unit: str = "pcs"
    category: ShoppingCategory = ShoppingCategory.OTHER
    optional: bool = False
    notes: str | None = None


class Recipe(Record):
    """A recipe with ordered ingredients and instructions."""

    name: str
    description: str | None = None
    cuisine: Cuisine = Cuisine.OTHER
    difficulty: Difficulty = Difficulty.MEDIUM
    prep_time: int = Field(default=0, ge=0)
    cook_time: int = Field(default=0, ge=0)
    servings: int = Field(default=1, ge=0)
    ingredients: list[Ingredient] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    rating: Rating | None = None
    dietary_restrictions: list[str] = Field(default_factory=list)
    source: str | None = None
    source_url: str | None = None
    notes: str | None = None
    created_at: Timestamp = Field(default_factory=utc_now)
    last_made: Timestamp | None = None

    @property
    def total_time(self) -> int:
        """Prep plus cook time in minutes."""
        return self.prep_time + self.cook_time

    @property
    def label(self) -> str:
        return self.name


class MealPlan(Record):
    """A planned meal on a given day."""

    date: CalendarDate
    meal_type: str = "dinner"
    recipe_id: str | None = None
    custom_meal: str | None = None
    servings: int = Field(default=1, ge=0)
    people_count: int | None = None
    notes: str | None = None
    status: MealStatus = MealStatus.PLANNED

    @field_validator("recipe_id", mode="before")
    @classmethod
    def _coerce_recipe_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def label(self) -> str:
        return f"{self.meal_type} on {self.date.isoformat()}"


class StoreRatings(CamelModel):
    """Per-store ratings, each 1-5."""

    price_rating: Rating = 3
    quality_rating: Rating = 3
    cleanliness_rating: Rating = 3
    service_rating: Rating = 3
    overall_rating: Rating = 3


class Store(Record):
    """A store the household shops at."""

    name: str
    type: StoreType = StoreType.GROCERY
    address: str | None = None
    phone: str | None = None
    website: str | None = None
    color: str = "#3b82f6"
    preferences: StoreRatings = Field(default_factory=StoreRatings)
    specialties: list[str] = Field(default_factory=list)
    best_for: list[str] = Field(default_factory=list)
    favorite: bool = False
    last_visited: Timestamp | None = None

    @property
    def label(self) -> str:
        return self.name


class TodoCategory(Record):
    """A grouping for todo items."""

    name: str
    description: str | None = None
    color: str = "#6b7280"
    icon: str | None = None
    created_at: Timestamp = Field(default_factory=utc_now)

    @property
    def label(self) -> str:
        return self.name


class TodoItem(Record):
    """A todo board card."""

    title: str
    description: str | None = None
    status: TodoStatus = TodoStatus.NEED_TO_START
    priority: TodoPriority = TodoPriority.MEDIUM
    category_id: str | None = None
    due_date: Timestamp | None = None
    assigned_to: str | None = None
    blocked_by: str | None = None
    tags: list[str] = Field(default_factory=list)
    estimated_time: int | None = None
    completed_at: Timestamp | None = None
    created_at: Timestamp = Field(default_factory=utc_now)
    updated_at: Timestamp = Field(default_factory=utc_now)

    @property
    def label(self) -> str:
        return self.title


class Collection(str, Enum):
    """Entity collections, one JSON file each."""

    SHOPPING = "shopping"
    RECIPES = "recipes"
    MEALS = "meals"
    STORES = "stores"
    TODOS = "todos"
    TODO_CATEGORIES = "todoCategories"

    @property
    def model(self) -> type[Record]:
        """Record model stored in this collection."""
        return COLLECTION_MODELS[self]

    @property
    def filename(self) -> str:
        return f"{self.value}.json"


COLLECTION_MODELS: dict[Collection, type[Record]] = {
    Collection.SHOPPING: ShoppingItem,
    Collection.RECIPES: Recipe,
    Collection.MEALS: MealPlan,
    Collection.STORES: Store,
    Collection.TODOS: TodoItem,
    Collection.TODO_CATEGORIES: TodoCategory,
}


# --- Sync Models ---


class SyncDirection(str, Enum):
    """Which way a sync moves records."""

    PULL = "pull"
    PUSH = "push"
    BOTH = "both"

    @property
    def pulls(self) -> bool:
        return self in (SyncDirection.PULL, SyncDirection.BOTH)

    @property
    def pushes(self) -> bool:
        return self in (SyncDirection.PUSH, SyncDirection.BOTH)


class SyncResult(BaseModel):
    """Outcome of syncing one collection."""

    collection: Collection
    direction: SyncDirection
    pulled_new: int = 0
    pulled_updated: int = 0
    unchanged: int = 0
    pushed_created: int = 0
    pushed_updated: int = 0
    failed: int = 0
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class SyncReport(BaseModel):
    """Outcome of a full sync pass."""

    direction: SyncDirection
    success: bool = False
    results: list[SyncResult] = Field(default_factory=list)
    error: str | None = None
    web_app_running: bool = True


class ExportBundle(CamelModel):
    """Single-file export of the synced collections."""

    shopping_items: list[ShoppingItem] = Field(default_factory=list)
    recipes: list[Recipe] = Field(default_factory=list)
    meal_plans: list[MealPlan] = Field(default_factory=list)
    exported_at: Timestamp = Field(default_factory=utc_now)
    version: str = EXPORT_VERSION


class ImportResult(BaseModel):
    """Counts of records imported from an export file."""

    imported: dict[str, int] = Field(default_factory=dict)
    skipped: dict[str, int] = Field(default_factory=dict)

    @property
    def total_imported(self) -> int:
        return sum(self.imported.values())

    @property
    def total_skipped(self) -> int:
        return sum(self.skipped.values())
