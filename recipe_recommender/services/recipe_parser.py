"""Map model text onto ingredient lists and Recipe records.

Neither entry point lets a malformed or partial answer become a hard failure
on its own:

- to_ingredients(): strict JSON string array → text heuristic → error.
  Ingredients are never invented; an answer with nothing usable raises
  IngredientDetectionError.
- to_recipes(): JSON array of objects → per-field defaults → padding with
  synthesized fallback recipes. Always returns exactly ``requested_count``
  records.

Model objects are decoded into RecipeDraft (every field optional), then
apply_recipe_defaults() fills each missing field. All randomness comes from
the injected ``rng``.
"""

import json
import logging
import random
from typing import Iterable, Optional

from pydantic import ValidationError

from recipe_recommender.models.errors import IngredientDetectionError
from recipe_recommender.models.models import (
    DietaryRestriction,
    NutritionDraft,
    NutritionFacts,
    Recipe,
    RecipeDraft,
    RecipePreference,
)
from recipe_recommender.services.extraction import extract_array, extract_ingredients_from_text
from recipe_recommender.utils.logger import logger as default_logger

PLACEHOLDER_INGREDIENT = "Ingredients"

DEFAULT_INSTRUCTIONS = ("Combine all ingredients", "Cook until done", "Serve and enjoy")
DEFAULT_COOK_TIME = "20 mins"
DEFAULT_CUISINE = "Fusion"
DEFAULT_NUTRITION = NutritionFacts(calories=300, protein=10, carbs=30, fat=15)

FALLBACK_CUISINES = ["Italian", "Mexican", "Asian", "Mediterranean", "American", "Indian", "French"]
FALLBACK_METHODS = ["baked", "grilled", "stir-fried", "sautéed", "steamed", "roasted"]
FALLBACK_QUANTITIES = ["1 cup", "2 tablespoons", "1/2 teaspoon", "3", "a handful of"]

FALLBACK_PREP_STEPS = [
    "Prepare all ingredients by washing and chopping as needed.",
    "Heat a pan over medium heat with a little oil or butter.",
]
FALLBACK_METHOD_STEPS = {
    "baked": [
        "Preheat oven to 375°F (190°C).",
        "Place ingredients in a baking dish and season with salt and pepper.",
        "Bake for 25-30 minutes until golden brown.",
    ],
    "grilled": [
        "Preheat grill to medium-high heat.",
        "Season ingredients with salt, pepper, and your favorite spices.",
        "Grill for 5-7 minutes per side until properly cooked.",
    ],
    "stir-fried": [
        "Heat wok or large pan over high heat until very hot.",
        "Add ingredients in order of cooking time, stir-frying quickly.",
        "Add sauce at the end and toss until everything is coated.",
    ],
    "sautéed": [
        "Heat oil in a large skillet over medium-high heat.",
        "Add ingredients one by one, starting with aromatics.",
        "Cook while stirring frequently until ingredients are tender.",
    ],
    "steamed": [
        "Set up a steamer basket over simmering water.",
        "Arrange ingredients in the steamer, being careful not to overcrowd.",
        "Steam until ingredients are tender but still vibrant.",
    ],
    "roasted": [
        "Preheat oven to 425°F (220°C).",
        "Toss ingredients with oil and seasoning on a baking sheet.",
        "Roast for 20-25 minutes, turning halfway through cooking.",
    ],
}
FALLBACK_FINAL_STEP = "Serve hot and enjoy your creation."

# Nutrition for fallback recipe i is base(n) + i * increment
FALLBACK_CALORIE_INCREMENT = 25
FALLBACK_PROTEIN_INCREMENT = 1
FALLBACK_CARB_INCREMENT = 2
FALLBACK_FAT_INCREMENT = 1


def _sorted_restrictions(restrictions: Iterable[DietaryRestriction]) -> list[DietaryRestriction]:
    order = list(DietaryRestriction)
    return sorted(set(restrictions), key=order.index)


def _first_ingredient(ingredients: list[str]) -> str:
    return ingredients[0] if ingredients else PLACEHOLDER_INGREDIENT


# ============================================================================
# Ingredients
# ============================================================================


def _parse_string_array(span: str) -> Optional[list[str]]:
    try:
        parsed = json.loads(span)
    except json.JSONDecodeError:
        return None
    if isinstance(parsed, list) and all(isinstance(item, str) for item in parsed):
        return parsed
    return None


def to_ingredients(raw_text: str, logger: Optional[logging.Logger] = None) -> list[str]:
    """Turn the detection answer into ingredient names.

    A strict JSON string array is returned as-is. Anything else goes through
    the text heuristic (split on , . newline [ ] ").

    Raises:
        IngredientDetectionError: Neither path produced a single ingredient.
    """
    log = logger or default_logger

    span = extract_array(raw_text, logger=log)
    if span is not None:
        ingredients = _parse_string_array(span)
        if ingredients is not None:
            log.info(f"Successfully parsed {len(ingredients)} ingredients")
            return ingredients
        log.warning("JSON parsing failed - not a string array, using text extraction")
    else:
        log.warning("No JSON array found in response, using text extraction")

    ingredients = extract_ingredients_from_text(raw_text, logger=log)
    if not ingredients:
        log.error("No ingredients could be extracted from the response")
        raise IngredientDetectionError(
            "No ingredients detected in the image. Please try another image.",
            details={"response_preview": (raw_text or "")[:100]},
        )

    log.info(f"Text extraction found {len(ingredients)} ingredients")
    return ingredients


# ============================================================================
# Recipes from model JSON
# ============================================================================


def decode_recipe_draft(obj: dict, logger: Optional[logging.Logger] = None) -> RecipeDraft:
    """Decode one model object; wrong-typed fields become None instead of errors."""
    log = logger or default_logger
    try:
        return RecipeDraft.model_validate(obj)
    except ValidationError as e:
        # Validators already drop mistyped values, so this is not expected
        log.warning(f"Recipe object failed to decode, using defaults: {e}")
        return RecipeDraft()


def fill_nutrition(draft: NutritionDraft) -> NutritionFacts:
    """Fill each missing nutrition field independently (300 kcal / 10g / 30g / 15g)."""
    return NutritionFacts(
        calories=draft.calories if draft.calories is not None else DEFAULT_NUTRITION.calories,
        protein=draft.protein if draft.protein is not None else DEFAULT_NUTRITION.protein,
        carbs=draft.carbs if draft.carbs is not None else DEFAULT_NUTRITION.carbs,
        fat=draft.fat if draft.fat is not None else DEFAULT_NUTRITION.fat,
    )


def apply_recipe_defaults(
    draft: RecipeDraft,
    ingredients: list[str],
    restrictions: Iterable[DietaryRestriction] = (),
    preference: Optional[RecipePreference] = None,
    rng: Optional[random.Random] = None,
    logger: Optional[logging.Logger] = None,
) -> Recipe:
    """Build a Recipe from a draft, filling every absent field.

    Defaults (n = number of input ingredients):
    - title: "Recipe with <first ingredient>" (blank counts as absent)
    - description: "A delicious dish made with <ingredients>."
    - instructions: DEFAULT_INSTRUCTIONS (empty list counts as absent)
    - recipe ingredients: () (logged, not rebuilt from the input)
    - prep time: "<5 + 2n> mins"; cook time: "20 mins"
    - servings: 2 + rng.randint(0, 2)  (randomized; also used when < 1)
    - difficulty: "Easy" if n <= 4 else "Medium"; cuisine: "Fusion"
    - nutrition: only if the object had one, each field defaulted on its own
    """
    log = logger or default_logger
    rng = rng or random.Random()
    count = len(ingredients)

    title = draft.title if draft.title and draft.title.strip() else f"Recipe with {_first_ingredient(ingredients)}"
    description = draft.description if draft.description is not None else (
        f"A delicious dish made with {', '.join(ingredients)}."
    )
    instructions = tuple(step for step in (draft.instructions or []) if step.strip()) or DEFAULT_INSTRUCTIONS

    if draft.ingredients is not None:
        recipe_ingredients = tuple(draft.ingredients)
        log.debug(f"Found {len(recipe_ingredients)} ingredients in JSON response")
    else:
        recipe_ingredients = ()
        log.warning("No ingredients array in recipe JSON, leaving recipe ingredients empty")

    prep_time = draft.prep_time if draft.prep_time is not None else f"{5 + count * 2} mins"
    cook_time = draft.cook_time if draft.cook_time is not None else DEFAULT_COOK_TIME
    servings = draft.servings if draft.servings is not None and draft.servings >= 1 else 2 + rng.randint(0, 2)
    difficulty = draft.difficulty if draft.difficulty is not None else ("Easy" if count <= 4 else "Medium")
    cuisine = draft.cuisine if draft.cuisine is not None else DEFAULT_CUISINE

    nutrition_facts = None
    if draft.nutrition_facts is not None:
        nutrition_facts = fill_nutrition(draft.nutrition_facts)
    else:
        log.debug("No nutrition facts found in JSON")

    log.debug(f"Recipe basics - Title: {title}, Prep: {prep_time}, Cook: {cook_time}")
    return Recipe(
        title=title,
        detected_ingredients=tuple(ingredients),
        recipe_ingredients=recipe_ingredients,
        instructions=instructions,
        prep_time=prep_time,
        cook_time=cook_time,
        servings=servings,
        difficulty=difficulty,
        cuisine=cuisine,
        description=description,
        nutrition_facts=nutrition_facts,
        dietary_restrictions=frozenset(restrictions),
        preference=preference,
    )


def _parse_recipe_objects(raw_text: str, log: logging.Logger) -> Optional[list[dict]]:
    span = extract_array(raw_text, logger=log)
    if span is None:
        return None
    try:
        parsed = json.loads(span)
    except json.JSONDecodeError as e:
        log.warning(f"Recipe JSON array is malformed: {e}")
        return None
    if not isinstance(parsed, list):
        return None

    objects = [item for item in parsed if isinstance(item, dict)]
    if len(objects) < len(parsed):
        log.warning(f"Skipped {len(parsed) - len(objects)} non-object entries in recipe array")
    return objects


# ============================================================================
# Fallback synthesis
# ============================================================================


def create_fallback_recipe(
    ingredients: list[str],
    index: int,
    restrictions: Iterable[DietaryRestriction] = (),
    preference: Optional[RecipePreference] = None,
    rng: Optional[random.Random] = None,
    logger: Optional[logging.Logger] = None,
) -> Recipe:
    """Synthesize placeholder recipe number ``index``.

    Everything except the quantity prefixes on recipe ingredients is a pure
    function of ``index`` and the inputs, so consecutive indices give varied
    but reproducible recipes.
    """
    log = logger or default_logger
    rng = rng or random.Random()
    log.debug(f"Creating fallback recipe #{index + 1}")

    count = len(ingredients)
    restrictions = _sorted_restrictions(restrictions)
    method = FALLBACK_METHODS[index % len(FALLBACK_METHODS)]
    cuisine = FALLBACK_CUISINES[index % len(FALLBACK_CUISINES)]
    first = _first_ingredient(ingredients)

    title = f"{method.capitalize()} {first}"
    if preference is not None:
        title = f"{preference.display_name} {title}"

    instructions = tuple(FALLBACK_PREP_STEPS + FALLBACK_METHOD_STEPS[method] + [FALLBACK_FINAL_STEP])

    descriptions = [
        f"A delicious {cuisine.lower()} inspired dish featuring fresh ingredients.",
        f"This {method} specialty brings out the natural flavors of your ingredients.",
        f"A quick and easy {cuisine} recipe perfect for any occasion.",
        f"Enjoy this flavorful dish that highlights the best of {cuisine} cuisine.",
        "A simple yet delicious way to use your available ingredients.",
    ]
    description = descriptions[index % len(descriptions)]
    if preference is not None:
        description += f" This {preference.display_name.lower()} recipe will satisfy your cravings."
    if restrictions:
        names = ", ".join(r.display_name for r in restrictions)
        description += f" Suitable for {names} diets."

    nutrition_facts = NutritionFacts(
        calories=250 + count * 25 + index * FALLBACK_CALORIE_INCREMENT,
        protein=5 + count * 2 + index * FALLBACK_PROTEIN_INCREMENT,
        carbs=15 + count * 3 + index * FALLBACK_CARB_INCREMENT,
        fat=8 + count + index * FALLBACK_FAT_INCREMENT,
    )

    if count <= 3:
        difficulty = "Easy"
    else:
        difficulty = "Medium" if index % 3 == 0 else "Hard"

    return Recipe(
        title=title,
        detected_ingredients=tuple(ingredients),
        recipe_ingredients=tuple(f"{rng.choice(FALLBACK_QUANTITIES)} {name}" for name in ingredients),
        instructions=instructions,
        prep_time=f"{5 + count + index * 2} mins",
        cook_time=f"{10 + count * 2 + index * 5} mins",
        servings=2 + index % 3,
        difficulty=difficulty,
        cuisine=cuisine,
        description=description,
        nutrition_facts=nutrition_facts,
        dietary_restrictions=frozenset(restrictions),
        preference=preference,
        is_fallback=True,
    )


def to_recipes(
    raw_text: str,
    ingredients: list[str],
    restrictions: Iterable[DietaryRestriction] = (),
    preference: Optional[RecipePreference] = None,
    requested_count: int = 3,
    rng: Optional[random.Random] = None,
    logger: Optional[logging.Logger] = None,
) -> list[Recipe]:
    """Turn the generation answer into exactly ``requested_count`` recipes.

    Only an array of objects is looked for (a lone JSON object is not
    accepted). Parsed recipes come first, extras beyond the request are
    dropped, and any shortfall is filled with fallbacks at the remaining
    indices. If nothing parses, all ``requested_count`` recipes are
    fallbacks. Never raises for bad model output.
    """
    log = logger or default_logger
    rng = rng or random.Random()
    restrictions = frozenset(restrictions)

    recipes: list[Recipe] = []
    objects = _parse_recipe_objects(raw_text, log)
    if objects is not None:
        log.info(f"Successfully extracted JSON recipe array with {len(objects)} recipes")
        if len(objects) > requested_count:
            log.warning(f"Model returned {len(objects)} recipes, keeping the first {requested_count}")
            objects = objects[:requested_count]
        for obj in objects:
            draft = decode_recipe_draft(obj, logger=log)
            recipes.append(apply_recipe_defaults(draft, ingredients, restrictions, preference, rng=rng, logger=log))
    else:
        log.warning("Failed to extract JSON recipes array, creating fallback recipes")

    if len(recipes) < requested_count:
        if recipes:
            log.warning(
                f"Only got {len(recipes)} recipes, adding {requested_count - len(recipes)} fallback recipes"
            )
        for index in range(len(recipes), requested_count):
            recipes.append(
                create_fallback_recipe(ingredients, index, restrictions, preference, rng=rng, logger=log)
            )

    return recipes
