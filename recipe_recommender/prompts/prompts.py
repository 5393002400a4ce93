"""Prompts and request bodies for the messages endpoint.

Provides factory functions for the detection and generation prompts and the
JSON bodies that carry them. Generation prompts adapt to the selected dietary
restrictions and recipe preference.
"""

from typing import Any, Iterable, Optional

from recipe_recommender.models.models import DietaryRestriction, RecipePreference
from recipe_recommender.utils.config import Config, config

DETECTION_SYSTEM_PROMPT = (
    "You are an expert ingredient identifier. Only identify food ingredients visible in the image. "
    "Return just a JSON array of strings."
)

DETECTION_PROMPT = """This image shows food ingredients. Please identify all food items and ingredients visible in the image.
Return only a JSON array of strings with the detected ingredients. For example:
["Tomato", "Basil", "Garlic", "Olive Oil"]"""

GENERATION_SYSTEM_PROMPT = "You are a creative chef who creates delicious recipes. Always format your response as JSON."

_RESTRICTION_REQUIREMENTS = """
Specific requirements:
- For vegan restrictions: NO animal products whatsoever (no meat, poultry, fish, dairy, eggs, or honey). Replace these with plant-based alternatives.
- For vegetarian restrictions: NO meat, poultry, or fish. Dairy and eggs are allowed.
- For gluten-free restrictions: NO wheat, barley, rye, or regular oats.
- For dairy-free restrictions: NO milk, cheese, butter, cream, or yogurt.
- For nut-free restrictions: NO tree nuts or peanuts."""

_RECIPE_SCHEMA_EXAMPLE = """[
  {
    "title": "Recipe 1 Title",
    "description": "Brief description of dish 1",
    "ingredients": ["Ingredient 1 with quantity", "Ingredient 2 with quantity", "..."],
    "instructions": ["Step 1", "Step 2", "Step 3"],
    "prepTime": "XX mins",
    "cookTime": "XX mins",
    "servings": X,
    "difficulty": "Easy/Medium/Hard",
    "cuisine": "Cuisine Type",
    "nutritionFacts": {
      "calories": XXX,
      "protein": XX,
      "carbs": XX,
      "fat": XX
    }
  }
]"""


def _get_restrictions_section(restrictions: Iterable[DietaryRestriction]) -> str:
    """Generate the dietary restriction section, or "" when there are none."""
    order = list(DietaryRestriction)
    selected = sorted(set(restrictions), key=order.index)
    if not selected:
        return ""
    names = ", ".join(r.display_name for r in selected)
    return (
        f"\nCRITICAL DIETARY RESTRICTIONS: All recipes MUST comply with these restrictions: {names}.\n"
        f"{_RESTRICTION_REQUIREMENTS}\n"
    )


def _get_preference_section(preference: Optional[RecipePreference]) -> str:
    """Generate the recipe preference section, or "" when there is none."""
    if preference is None:
        return ""
    return (
        f"\nRECIPE PREFERENCE: All recipes should be {preference.display_name.lower()}.\n\n"
        f"Based on this preference: {preference.prompt_hint}\n"
    )


def get_generation_prompt(
    ingredients: list[str],
    count: int,
    restrictions: Iterable[DietaryRestriction] = (),
    preference: Optional[RecipePreference] = None,
) -> str:
    """Build the user prompt asking for ``count`` different recipes as a JSON array.

    Args:
        ingredients: Ingredient names to cook with.
        count: Number of recipes requested.
        restrictions: Dietary restrictions every recipe must satisfy.
        preference: Optional recipe style.

    Returns:
        str: Prompt text.
    """
    return f"""Based on these ingredients: {", ".join(ingredients)}
{_get_restrictions_section(restrictions)}{_get_preference_section(preference)}
Generate {count} DIFFERENT creative recipes that use these ingredients. Make each recipe unique in style, cooking method, or cuisine.

Return your response as a JSON array of {count} recipe objects with the following structure:

{_RECIPE_SCHEMA_EXAMPLE}

IMPORTANT: Make ALL {count} recipes DIFFERENT from each other in cooking style, method, or cuisine.
Include all ingredients needed for each recipe with measurements.
Be creative and make diverse, delicious options!"""


def build_detection_body(
    image_base64: str, media_type: str = "image/jpeg", settings: Optional[Config] = None
) -> dict[str, Any]:
    """Request body for ingredient detection: text prompt plus one base64 image."""
    settings = settings or config
    return {
        "model": settings.CLAUDE_MODEL,
        "max_tokens": settings.DETECTION_MAX_TOKENS,
        "temperature": settings.DETECTION_TEMPERATURE,
        "system": DETECTION_SYSTEM_PROMPT,
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": DETECTION_PROMPT},
                    {
                        "type": "image",
                        "source": {"type": "base64", "media_type": media_type, "data": image_base64},
                    },
                ],
            }
        ],
    }


def build_generation_body(prompt: str, settings: Optional[Config] = None) -> dict[str, Any]:
    """Request body for recipe generation (text only)."""
    settings = settings or config
    return {
        "model": settings.CLAUDE_MODEL,
        "max_tokens": settings.GENERATION_MAX_TOKENS,
        "temperature": settings.GENERATION_TEMPERATURE,
        "system": GENERATION_SYSTEM_PROMPT,
        "messages": [
            {
                "role": "user",
                "content": [{"type": "text", "text": prompt}],
            }
        ],
    }
