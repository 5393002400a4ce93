"""Data models for the recipe client.

Defines Pydantic models for the values that flow through a detection or
generation call: the encoded image payload, the outbound request envelope,
retry bookkeeping, the recipe records handed back to callers, and the lenient
partial-record decode of a model's recipe JSON.
All models use Pydantic v2.
"""

import base64
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DietaryRestriction(str, Enum):
    """Closed set of dietary restrictions a generation request may carry."""

    VEGAN = "vegan"
    VEGETARIAN = "vegetarian"
    GLUTEN_FREE = "gluten-free"
    DAIRY_FREE = "dairy-free"
    NUT_FREE = "nut-free"
    KOSHER = "kosher"
    HALAL = "halal"

    @property
    def display_name(self) -> str:
        return _RESTRICTION_NAMES[self]


_RESTRICTION_NAMES = {
    DietaryRestriction.VEGAN: "Vegan",
    DietaryRestriction.VEGETARIAN: "Vegetarian",
    DietaryRestriction.GLUTEN_FREE: "Gluten Free",
    DietaryRestriction.DAIRY_FREE: "Dairy Free",
    DietaryRestriction.NUT_FREE: "Nut Free",
    DietaryRestriction.KOSHER: "Kosher",
    DietaryRestriction.HALAL: "Halal",
}


class RecipePreference(str, Enum):
    """Closed set of recipe styles; at most one per request."""

    SWEET = "sweet"
    SAVORY = "savory"
    BAKED = "baked"
    GRILLED = "grilled"
    FRIED = "fried"
    HEALTHY = "healthy"
    QUICK = "quick"
    GOURMET = "gourmet"

    @property
    def display_name(self) -> str:
        return _PREFERENCE_INFO[self][0]

    @property
    def description(self) -> str:
        return _PREFERENCE_INFO[self][1]

    @property
    def prompt_hint(self) -> str:
        return _PREFERENCE_INFO[self][2]


# display name, user-facing description, generation prompt hint
_PREFERENCE_INFO = {
    RecipePreference.SWEET: (
        "Sweet",
        "Desserts, cakes, cookies, and sweet treats",
        "Create sweet or dessert recipes (like cakes, cookies, sweet treats, etc).",
    ),
    RecipePreference.SAVORY: (
        "Savory",
        "Savory and hearty meals",
        "Create savory, hearty meals rather than desserts or sweet dishes.",
    ),
    RecipePreference.BAKED: (
        "Baked",
        "Anything baked in the oven",
        "The cooking method should be baking in the oven.",
    ),
    RecipePreference.GRILLED: (
        "Grilled",
        "Grilled food and BBQ",
        "The cooking method should involve grilling or barbecuing.",
    ),
    RecipePreference.FRIED: (
        "Fried",
        "Pan-fried or deep-fried dishes",
        "The cooking method should involve frying (pan-frying or deep-frying).",
    ),
    RecipePreference.HEALTHY: (
        "Healthy",
        "Nutritious and balanced meals",
        "The recipes should be nutritionally balanced and health-focused.",
    ),
    RecipePreference.QUICK: (
        "Quick & Easy",
        "Ready in 30 minutes or less",
        "The recipes should be quick and easy to prepare (under 30 minutes total).",
    ),
    RecipePreference.GOURMET: (
        "Gourmet",
        "Fancy restaurant-style cooking",
        "Create fancy, restaurant-quality dishes with sophisticated techniques.",
    ),
}


class EncodedPayload(BaseModel):
    """Baseline JPEG bytes ready to be base64-embedded in a detection request.

    ``size_bytes`` is at most the normalizer's ceiling unless the aggressive
    resize rounds were exhausted; ``oversized`` flags payloads past the
    warning threshold (default 5 MB).
    """

    model_config = ConfigDict(frozen=True)

    data: bytes
    media_type: Literal["image/jpeg"] = "image/jpeg"
    size_bytes: Annotated[int, Field(ge=0)]
    width: Annotated[int, Field(ge=1)]
    height: Annotated[int, Field(ge=1)]
    quality: Annotated[float, Field(gt=0.0, le=1.0, description="Encoder quality used for `data` (0.1-1.0)")]
    oversized: bool = False

    @property
    def size_mb(self) -> float:
        return self.size_bytes / 1_000_000

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


class RequestEnvelope(BaseModel):
    """One outbound call. Built fresh for every attempt, never mutated."""

    model_config = ConfigDict(frozen=True)

    url: str
    headers: dict[str, str]
    body: dict[str, Any]
    timeout: Annotated[float, Field(gt=0)] = 60.0

    def redacted_headers(self) -> dict[str, str]:
        return {key: ("[REDACTED]" if key.lower() == "x-api-key" else value) for key, value in self.headers.items()}


class RetryState(BaseModel):
    """Attempt bookkeeping for one logical request."""

    model_config = ConfigDict(frozen=True)

    attempt: Annotated[int, Field(ge=0, description="0-based attempt index")] = 0
    max_retries: Annotated[int, Field(ge=0, description="Retries after the first attempt")] = 3

    @property
    def can_retry(self) -> bool:
        return self.attempt < self.max_retries

    @property
    def total_attempts(self) -> int:
        return self.max_retries + 1

    def next(self) -> "RetryState":
        return self.model_copy(update={"attempt": self.attempt + 1})


class NutritionFacts(BaseModel):
    """Per-serving nutrition; protein, carbs and fat are in grams."""

    model_config = ConfigDict(frozen=True)

    calories: int
    protein: int
    carbs: int
    fat: int


class Recipe(BaseModel):
    """A fully populated recipe handed back from generation.

    Built only by the recipe parser, either from model JSON or synthesized
    as a fallback (``is_fallback``).
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    title: Annotated[str, Field(min_length=1, description="Recipe name")]
    # Tuples so a frozen recipe cannot be changed in place
    detected_ingredients: Annotated[
        Tuple[str, ...], Field(default_factory=tuple, description="Ingredients the request was made with")
    ]
    recipe_ingredients: Annotated[
        Tuple[str, ...], Field(default_factory=tuple, description="Ingredients with quantities (may be empty)")
    ]
    instructions: Annotated[Tuple[str, ...], Field(min_length=1, description="Ordered cooking steps")]
    prep_time: str
    cook_time: str
    servings: Annotated[int, Field(ge=1)]
    difficulty: str
    cuisine: str
    description: str
    nutrition_facts: Optional[NutritionFacts] = None
    dietary_restrictions: frozenset[DietaryRestriction] = frozenset()
    preference: Optional[RecipePreference] = None
    image_url: Optional[str] = None
    is_fallback: bool = False


# ============================================================================
# Partial-record decode of model JSON
# ============================================================================


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _as_int(value: Any) -> Optional[int]:
    # bool is an int subclass; JSON true/false is never a count
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value if isinstance(value, int) else None


def _as_str_list(value: Any) -> Optional[list[str]]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        return None
    return value


class NutritionDraft(BaseModel):
    """Nutrition sub-object as the model sent it; each field may be missing."""

    model_config = ConfigDict(extra="ignore")

    calories: Optional[int] = None
    protein: Optional[int] = None
    carbs: Optional[int] = None
    fat: Optional[int] = None

    @field_validator("calories", "protein", "carbs", "fat", mode="before")
    @classmethod
    def drop_non_integers(cls, v: Any) -> Optional[int]:
        return _as_int(v)


class RecipeDraft(BaseModel):
    """One recipe object from the model, decoded without ever failing.

    A field that is absent or has the wrong JSON type decodes to ``None``;
    filling defaults is a separate step in the recipe parser.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    ingredients: Optional[List[str]] = None
    instructions: Optional[List[str]] = None
    prep_time: Optional[str] = Field(None, alias="prepTime")
    cook_time: Optional[str] = Field(None, alias="cookTime")
    servings: Optional[int] = None
    difficulty: Optional[str] = None
    cuisine: Optional[str] = None
    nutrition_facts: Optional[NutritionDraft] = Field(None, alias="nutritionFacts")

    @field_validator("title", "description", "prep_time", "cook_time", "difficulty", "cuisine", mode="before")
    @classmethod
    def drop_non_strings(cls, v: Any) -> Optional[str]:
        return _as_str(v)

    @field_validator("ingredients", "instructions", mode="before")
    @classmethod
    def drop_non_string_lists(cls, v: Any) -> Optional[list[str]]:
        return _as_str_list(v)

    @field_validator("servings", mode="before")
    @classmethod
    def drop_non_integer_servings(cls, v: Any) -> Optional[int]:
        return _as_int(v)

    @field_validator("nutrition_facts", mode="before")
    @classmethod
    def drop_non_objects(cls, v: Any) -> Optional[dict]:
        return v if isinstance(v, dict) else None
