"""Unit tests for Pydantic models and enums."""

import base64

import pytest
from pydantic import ValidationError

from recipe_recommender.models.errors import (
    ImagePreprocessingError,
    RecipeClientError,
    TransportError,
    TransportErrorCategory,
)
from recipe_recommender.models.models import (
    DietaryRestriction,
    EncodedPayload,
    NutritionFacts,
    Recipe,
    RecipePreference,
    RequestEnvelope,
    RetryState,
)


def make_recipe(**overrides) -> Recipe:
    fields = {
        "title": "Soup",
        "instructions": ["Boil water"],
        "prep_time": "5 mins",
        "cook_time": "20 mins",
        "servings": 2,
        "difficulty": "Easy",
        "cuisine": "French",
        "description": "Warm.",
    }
    fields.update(overrides)
    return Recipe(**fields)


class TestEnums:
    """Test restriction and preference enums."""

    def test_restriction_values(self):
        """Restrictions use their kebab-case wire values."""
        assert DietaryRestriction("gluten-free") == DietaryRestriction.GLUTEN_FREE
        assert len(DietaryRestriction) == 7

    def test_restriction_display_names(self):
        """Display names are human-readable."""
        assert DietaryRestriction.GLUTEN_FREE.display_name == "Gluten Free"
        assert DietaryRestriction.VEGAN.display_name == "Vegan"

    def test_preference_metadata(self):
        """Every preference has a display name, description and prompt hint."""
        assert RecipePreference.QUICK.display_name == "Quick & Easy"
        for preference in RecipePreference:
            assert preference.display_name
            assert preference.description
            assert preference.prompt_hint

    def test_invalid_restriction(self):
        """Unknown values are rejected."""
        with pytest.raises(ValueError):
            DietaryRestriction("paleo")


class TestEncodedPayload:
    """Test the encoded image payload."""

    def test_base64_and_size(self):
        """Payload exposes base64 data and size in decimal megabytes."""
        payload = EncodedPayload(data=b"\xff\xd8jpeg", size_bytes=2_500_000, width=10, height=10, quality=0.7)
        assert base64.b64decode(payload.to_base64()) == b"\xff\xd8jpeg"
        assert payload.size_mb == 2.5
        assert payload.media_type == "image/jpeg"

    def test_only_jpeg_media_type(self):
        """Other media types are not representable."""
        with pytest.raises(ValidationError):
            EncodedPayload(data=b"", media_type="image/png", size_bytes=0, width=1, height=1, quality=0.5)

    def test_frozen(self):
        """Payloads are immutable."""
        payload = EncodedPayload(data=b"x", size_bytes=1, width=1, height=1, quality=0.5)
        with pytest.raises(ValidationError):
            payload.quality = 0.9


class TestRequestEnvelope:
    """Test the outbound request envelope."""

    def test_redacted_headers(self):
        """The API key is never shown in logged headers."""
        envelope = RequestEnvelope(url="https://x", headers={"x-api-key": "secret", "anthropic-version": "v"}, body={})
        assert envelope.redacted_headers() == {"x-api-key": "[REDACTED]", "anthropic-version": "v"}
        assert envelope.timeout == 60.0

    def test_timeout_must_be_positive(self):
        """A zero timeout is invalid."""
        with pytest.raises(ValidationError):
            RequestEnvelope(url="https://x", headers={}, body={}, timeout=0)


class TestRetryState:
    """Test attempt bookkeeping."""

    def test_progression(self):
        """Three retries allow four attempts."""
        state = RetryState()
        attempts = 1
        while state.can_retry:
            state = state.next()
            attempts += 1
        assert attempts == 4
        assert state.total_attempts == 4

    def test_next_does_not_mutate(self):
        """next() returns a new state."""
        state = RetryState(max_retries=2)
        advanced = state.next()
        assert state.attempt == 0
        assert advanced.attempt == 1
        assert advanced.max_retries == 2


class TestRecipe:
    """Test the recipe record."""

    def test_minimal_recipe(self):
        """Optional fields default sensibly."""
        recipe = make_recipe()
        assert recipe.nutrition_facts is None
        assert recipe.dietary_restrictions == frozenset()
        assert recipe.is_fallback is False
        assert recipe.image_url is None

    def test_sequences_are_immutable(self):
        """List input is stored as tuples, so a frozen recipe cannot be changed in place."""
        recipe = make_recipe()
        assert isinstance(recipe.instructions, tuple)
        assert isinstance(recipe.recipe_ingredients, tuple)
        assert isinstance(recipe.detected_ingredients, tuple)
        with pytest.raises(AttributeError):
            recipe.instructions.append("Eat")
        with pytest.raises(ValidationError):
            recipe.instructions = ("Eat",)

    def test_requires_instructions(self):
        """A recipe needs at least one step."""
        with pytest.raises(ValidationError):
            make_recipe(instructions=[])

    def test_requires_positive_servings(self):
        """Servings must be at least one."""
        with pytest.raises(ValidationError):
            make_recipe(servings=0)

    def test_json_round_trip_keeps_restrictions(self):
        """Restrictions and nutrition survive serialization."""
        recipe = make_recipe(
            dietary_restrictions=frozenset({DietaryRestriction.VEGAN}),
            nutrition_facts=NutritionFacts(calories=100, protein=1, carbs=2, fat=3),
            preference=RecipePreference.HEALTHY,
        )
        restored = Recipe.model_validate_json(recipe.model_dump_json())
        assert restored == recipe


class TestErrors:
    """Test the error taxonomy."""

    def test_error_codes(self):
        """Each error carries a machine-readable code."""
        assert ImagePreprocessingError("bad").error_code == "IMAGE_PREPROCESSING_ERROR"
        error = TransportError("HTTP Error: 429", TransportErrorCategory.HTTP_CLIENT, status_code=429, attempts=1)
        assert error.error_code == "TRANSPORT_HTTP_CLIENT"
        assert error.details == {"status_code": 429, "attempts": 1}
        assert isinstance(error, RecipeClientError)

    def test_str_without_status(self):
        """Messages without a status are shown as-is."""
        assert str(TransportError("Network error: reset", TransportErrorCategory.NETWORK)) == "Network error: reset"
