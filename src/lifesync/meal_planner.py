"""Recipe and meal plan operations."""

import re
from datetime import date, timedelta

from .data_store import DataStore
from .list_manager import ItemNotFoundError
from .models import (
    Collection,
    Cuisine,
    Difficulty,
    Ingredient,
    MealPlan,
    MealStatus,
    Recipe,
    utc_now,
)

MEAL_ORDER = {"breakfast": 0, "lunch": 1, "dinner": 2, "snack": 3}

_AMOUNT = re.compile(r"^(\d+(?:\.\d+)?|\d+/\d+)$")


def parse_ingredient(text: str) -> Ingredient:
    """Parse '2 cups flour' style text into an Ingredient.

    A leading number is the amount; when more than one word follows it, the
    first of them is the unit.
    """
    words = text.split()
    if len(words) > 1 and _AMOUNT.match(words[0]):
        raw = words[0]
        if "/" in raw:
            numerator, denominator = raw.split("/")
            amount = int(numerator) / int(denominator) if int(denominator) else 1.0
        else:
            amount = float(raw)
        rest = words[1:]
        if len(rest) > 1:
            return Ingredient(name=" ".join(rest[1:]), amount=amount, unit=rest[0])
        return Ingredient(name=rest[0], amount=amount)
    return Ingredient(name=text.strip())


class MealPlanner:
    """Manages recipes and the meal plan."""

    def __init__(self, data_store: DataStore | None = None):
        self.data_store = data_store or DataStore()

    # --- Recipes ---

    def add_recipe(
        self,
        name: str,
        ingredients: list[str] | None = None,
        instructions: list[str] | None = None,
        cuisine: Cuisine = Cuisine.OTHER,
        difficulty: Difficulty = Difficulty.MEDIUM,
        prep_time: int = 0,
        cook_time: int = 0,
        servings: int = 1,
        tags: list[str] | None = None,
        description: str | None = None,
    ) -> dict:
        """Add a recipe.

        Args:
            name: Recipe name
            ingredients: Ingredient lines such as '2 cups flour'
            instructions: Ordered steps
        """
        recipe = self.data_store.add(
            Collection.RECIPES,
            Recipe(
                name=name,
                description=description,
                cuisine=cuisine,
                difficulty=difficulty,
                prep_time=prep_time,
                cook_time=cook_time,
                servings=servings,
                ingredients=[parse_ingredient(line) for line in ingredients or []],
                instructions=instructions or [],
                tags=tags or [],
            ),
        )
        return {
            "success": True,
            "message": f"Added recipe {name}",
            "data": {"recipe": recipe.to_json()},
        }

    def get_recipe(self, recipe_id: str) -> Recipe:
        """Get a recipe by ID.

        Raises:
            ItemNotFoundError: If recipe not found
        """
        recipe = self.data_store.get(Collection.RECIPES, recipe_id)
        if recipe is None:
            raise ItemNotFoundError(recipe_id, kind="Recipe")
        return recipe  # type: ignore[return-value]

    def show_recipe(self, recipe_id: str) -> dict:
        recipe = self.get_recipe(recipe_id)
        return {"success": True, "data": {"recipe": recipe.to_json()}}

    def list_recipes(
        self,
        cuisine: Cuisine | None = None,
        tag: str | None = None,
        search: str | None = None,
    ) -> dict:
        """List recipes with optional filtering."""
        recipes: list[Recipe] = self.data_store.list(Collection.RECIPES)  # type: ignore[assignment]

        if cuisine:
            recipes = [r for r in recipes if r.cuisine == cuisine]
        if tag:
            recipes = [r for r in recipes if tag.lower() in (t.lower() for t in r.tags)]
        if search:
            needle = search.lower()
            recipes = [
                r
                for r in recipes
                if needle in r.name.lower() or needle in (r.description or "").lower()
            ]

        return {
            "success": True,
            "data": {"recipes": [r.to_json() for r in recipes]},
        }

    def remove_recipe(self, recipe_id: str) -> dict:
        """Remove a recipe.

        Meal plans that reference it keep the dangling recipeId.

        Raises:
            ItemNotFoundError: If recipe not found
        """
        recipe = self.get_recipe(recipe_id)
        self.data_store.delete(Collection.RECIPES, recipe_id)
        return {
            "success": True,
            "message": f"Removed recipe {recipe.name}",
            "data": {"recipe": recipe.to_json()},
        }

    # --- Meal Plans ---

    def plan_meal(
        self,
        meal_date: date,
        meal_type: str = "dinner",
        recipe_id: str | None = None,
        custom_meal: str | None = None,
        servings: int = 1,
        notes: str | None = None,
    ) -> dict:
        """Plan a meal from a recipe or a free-text meal.

        Raises:
            ValueError: If neither a recipe nor a custom meal is given
            ItemNotFoundError: If the recipe does not exist
        """
        if not recipe_id and not custom_meal:
            raise ValueError("A meal needs a recipe or a custom meal description")

        title = custom_meal
        if recipe_id:
            title = self.get_recipe(recipe_id).name

        meal = self.data_store.add(
            Collection.MEALS,
            MealPlan(
                date=meal_date,
                meal_type=meal_type,
                recipe_id=recipe_id,
                custom_meal=custom_meal,
                servings=servings,
                notes=notes,
            ),
        )
        return {
            "success": True,
            "message": f"Planned {title} for {meal.label}",
            "data": {"meal": meal.to_json()},
        }

    def list_meals(self, start: date | None = None, days: int | None = 7) -> dict:
        """List planned meals in date order.

        Args:
            start: First day to include. Defaults to today.
            days: Window length; None lists everything from start on.
        """
        start = start or date.today()
        end = start + timedelta(days=days) if days else None

        meals: list[MealPlan] = [
            m
            for m in self.data_store.list(Collection.MEALS)  # type: ignore[misc]
            if m.date >= start and (end is None or m.date < end)
        ]
        meals.sort(key=lambda m: (m.date, MEAL_ORDER.get(m.meal_type, len(MEAL_ORDER))))

        recipes = {r.id: r.label for r in self.data_store.list(Collection.RECIPES)}
        rows = []
        for meal in meals:
            row = meal.to_json()
            row["title"] = meal.custom_meal or recipes.get(meal.recipe_id or "", "Unknown recipe")
            rows.append(row)

        return {
            "success": True,
            "data": {"meals": rows},
        }

    def set_status(self, meal_id: str, status: MealStatus) -> dict:
        """Move a meal along planned -> prepped -> cooked -> eaten.

        Raises:
            ItemNotFoundError: If meal not found
        """
        meal = self.data_store.update(Collection.MEALS, meal_id, {"status": status})
        if meal is None:
            raise ItemNotFoundError(meal_id, kind="Meal")

        if status == MealStatus.COOKED and meal.recipe_id:  # type: ignore[attr-defined]
            self.data_store.update(
                Collection.RECIPES, meal.recipe_id, {"last_made": utc_now()}  # type: ignore[attr-defined]
            )

        return {
            "success": True,
            "message": f"Marked {meal.label} as {status.value}",
            "data": {"meal": meal.to_json()},
        }

    def remove_meal(self, meal_id: str) -> dict:
        """Remove a planned meal.

        Raises:
            ItemNotFoundError: If meal not found
        """
        meal = self.data_store.get(Collection.MEALS, meal_id)
        if meal is None:
            raise ItemNotFoundError(meal_id, kind="Meal")

        self.data_store.delete(Collection.MEALS, meal_id)
        return {
            "success": True,
            "message": f"Removed {meal.label}",
            "data": {"meal": meal.to_json()},
        }
