"""Unit tests for prompt and request body construction."""

from recipe_recommender.models.models import DietaryRestriction, RecipePreference
from recipe_recommender.prompts.prompts import (
    DETECTION_PROMPT,
    DETECTION_SYSTEM_PROMPT,
    GENERATION_SYSTEM_PROMPT,
    build_detection_body,
    build_generation_body,
    get_generation_prompt,
)
from recipe_recommender.utils.config import Config


class TestGenerationPrompt:
    """Test the generation prompt text."""

    def test_ingredients_and_count(self):
        """The prompt lists the ingredients and asks for N recipes."""
        prompt = get_generation_prompt(["Tomato", "Basil"], 4)
        assert "Based on these ingredients: Tomato, Basil" in prompt
        assert "Generate 4 DIFFERENT creative recipes" in prompt
        assert '"prepTime"' in prompt
        assert '"nutritionFacts"' in prompt

    def test_no_options(self):
        """Without options there are no restriction or preference sections."""
        prompt = get_generation_prompt(["Tomato"], 3)
        assert "CRITICAL DIETARY RESTRICTIONS" not in prompt
        assert "RECIPE PREFERENCE" not in prompt

    def test_restrictions_section(self):
        """Restrictions are listed in a fixed order with their rules."""
        prompt = get_generation_prompt(
            ["Tofu"], 3, restrictions=[DietaryRestriction.NUT_FREE, DietaryRestriction.VEGAN]
        )
        assert "All recipes MUST comply with these restrictions: Vegan, Nut Free." in prompt
        assert "NO animal products whatsoever" in prompt

    def test_preference_section(self):
        """The preference name and hint are included."""
        prompt = get_generation_prompt(["Flour"], 3, preference=RecipePreference.BAKED)
        assert "All recipes should be baked." in prompt
        assert RecipePreference.BAKED.prompt_hint in prompt


class TestRequestBodies:
    """Test the messages request bodies."""

    def test_detection_body(self):
        """Detection carries the system prompt, text prompt and base64 image."""
        settings = Config()
        body = build_detection_body("aGVsbG8=", settings=settings)

        assert body["model"] == settings.CLAUDE_MODEL
        assert body["max_tokens"] == settings.DETECTION_MAX_TOKENS
        assert body["temperature"] == settings.DETECTION_TEMPERATURE
        assert body["system"] == DETECTION_SYSTEM_PROMPT
        message = body["messages"][0]
        assert message["role"] == "user"
        assert message["content"][0] == {"type": "text", "text": DETECTION_PROMPT}
        assert message["content"][1]["source"] == {
            "type": "base64",
            "media_type": "image/jpeg",
            "data": "aGVsbG8=",
        }

    def test_generation_body(self):
        """Generation is a single text message with its own token budget."""
        settings = Config()
        body = build_generation_body("Make soup", settings=settings)

        assert body["max_tokens"] == settings.GENERATION_MAX_TOKENS
        assert body["temperature"] == settings.GENERATION_TEMPERATURE
        assert body["system"] == GENERATION_SYSTEM_PROMPT
        assert body["messages"] == [{"role": "user", "content": [{"type": "text", "text": "Make soup"}]}]
