"""Unit tests for the ad hoc query runner helpers."""

from unittest.mock import AsyncMock, patch

import pytest

from query import build_parser, parse_ingredient_list, render_recipe_markdown, run_query
from recipe_recommender.models.models import DietaryRestriction, NutritionFacts, Recipe, RecipePreference


def make_recipe(**overrides) -> Recipe:
    fields = {
        "title": "Tomato Soup",
        "detected_ingredients": ["Tomato"],
        "recipe_ingredients": ["4 tomatoes"],
        "instructions": ["Chop", "Simmer"],
        "prep_time": "10 mins",
        "cook_time": "30 mins",
        "servings": 2,
        "difficulty": "Easy",
        "cuisine": "Italian",
        "description": "Comforting.",
    }
    fields.update(overrides)
    return Recipe(**fields)


class TestRenderRecipeMarkdown:
    """Test markdown rendering of recipes."""

    def test_basic_sections(self):
        """Title, summary, ingredients and numbered steps are rendered."""
        markdown = render_recipe_markdown(make_recipe())

        assert markdown.startswith("## Tomato Soup")
        assert "**Cuisine:** Italian" in markdown
        assert "- 4 tomatoes" in markdown
        assert "1. Chop" in markdown
        assert "2. Simmer" in markdown
        assert "Generated offline" not in markdown

    def test_options_and_nutrition(self):
        """Restrictions, preference and nutrition appear when present."""
        recipe = make_recipe(
            dietary_restrictions=frozenset({DietaryRestriction.NUT_FREE, DietaryRestriction.VEGAN}),
            preference=RecipePreference.HEALTHY,
            nutrition_facts=NutritionFacts(calories=320, protein=8, carbs=40, fat=12),
        )
        markdown = render_recipe_markdown(recipe)

        assert "**Suitable for:** Vegan, Nut Free" in markdown
        assert "**Style:** Healthy" in markdown
        assert "320 kcal" in markdown

    def test_falls_back_to_detected_ingredients(self):
        """Without recipe ingredients, the input list is shown."""
        markdown = render_recipe_markdown(make_recipe(recipe_ingredients=[]))
        assert "- Tomato" in markdown

    def test_fallback_note(self):
        """Synthesized recipes are marked."""
        assert "Generated offline" in render_recipe_markdown(make_recipe(is_fallback=True))

    def test_preference_description_shown(self):
        """The preference is rendered with its user-facing description."""
        markdown = render_recipe_markdown(make_recipe(preference=RecipePreference.QUICK))
        assert "**Style:** Quick & Easy (Ready in 30 minutes or less)" in markdown

    def test_image_rendered_when_present(self):
        """An attached image URL is shown under the title; none is shown otherwise."""
        markdown = render_recipe_markdown(make_recipe(image_url="https://example.com/soup.jpg"))
        assert "![Tomato Soup](https://example.com/soup.jpg)" in markdown
        assert markdown.index("![Tomato Soup]") < markdown.index("### Ingredients")
        assert "![" not in render_recipe_markdown(make_recipe())


class TestArguments:
    """Test command-line parsing helpers."""

    def test_parse_ingredient_list(self):
        """Comma-separated names are trimmed and blanks dropped."""
        assert parse_ingredient_list(" tomato, basil ,, mozzarella ") == ["tomato", "basil", "mozzarella"]

    def test_parser_options(self):
        """Restrictions repeat and map onto enums."""
        args = build_parser().parse_args(
            ["--restriction", "vegan", "--restriction", "gluten-free", "--preference", "quick", "--count", "5", "rice"]
        )
        assert args.restriction == [DietaryRestriction.VEGAN, DietaryRestriction.GLUTEN_FREE]
        assert args.preference == RecipePreference.QUICK
        assert args.count == 5
        assert args.ingredients == "rice"

    def test_preference_help_lists_descriptions(self, monkeypatch):
        """The --preference help text names every style with its description."""
        monkeypatch.setenv("COLUMNS", "1000")
        help_text = build_parser().format_help()
        for preference in RecipePreference:
            assert preference.value in help_text
        assert "Desserts, cakes, cookies" in help_text


class TestRunQuery:
    """Test the query runner with a mocked client."""

    @pytest.mark.asyncio
    @patch("query.RecipeAPIClient")
    async def test_generate_only(self, mock_client_cls):
        """Ingredient text goes straight to generation."""
        client = mock_client_cls.return_value
        client.__aenter__ = AsyncMock(return_value=client)
        client.__aexit__ = AsyncMock(return_value=False)
        client.generate_recipes = AsyncMock(return_value=[make_recipe()])

        assert await run_query("tomato, basil", count=1) == 0
        client.generate_recipes.assert_awaited_once()
        assert client.generate_recipes.call_args.args[0] == ["tomato", "basil"]

    @pytest.mark.asyncio
    @patch("query.RecipeAPIClient")
    async def test_missing_image(self, mock_client_cls, tmp_path):
        """A missing image path exits with an error code."""
        client = mock_client_cls.return_value
        client.__aenter__ = AsyncMock(return_value=client)
        client.__aexit__ = AsyncMock(return_value=False)

        assert await run_query(None, image_path=str(tmp_path / "missing.jpg")) == 1
