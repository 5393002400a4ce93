#!/usr/bin/env python3
"""Ad hoc query runner for the recipe client.

Run detection or generation directly against the live API.

Usage:
    python query.py --image images/fridge.jpg                      # Detect ingredients
    python query.py --image images/fridge.jpg --generate           # Detect, then generate recipes
    python query.py "tomato, basil, mozzarella"                    # Generate recipes
    python query.py --count 5 --restriction vegan --preference quick "rice, tofu"
    python query.py --debug "tomato, basil"                        # Show full JSON and recent logs

Features:
- Single detection or generation run with formatted markdown output
- Dietary restrictions (repeatable) and recipe preference flags
- Debug mode to display the full recipe JSON and the client's log history
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markdown import Markdown

from recipe_recommender.models.errors import RecipeClientError
from recipe_recommender.models.models import DietaryRestriction, Recipe, RecipePreference
from recipe_recommender.services.client import RecipeAPIClient
from recipe_recommender.utils.logger import logger

console = Console()


def render_recipe_markdown(recipe: Recipe) -> str:
    """Format a recipe as markdown for terminal display.

    Args:
        recipe: Recipe to render.

    Returns:
        Markdown text with title, optional image, summary line, ingredients, steps and nutrition.
    """
    lines = [f"## {recipe.title}", ""]
    if recipe.image_url:
        lines += [f"![{recipe.title}]({recipe.image_url})", ""]
    if recipe.description:
        lines += [recipe.description, ""]

    lines.append(
        f"**Cuisine:** {recipe.cuisine} · **Difficulty:** {recipe.difficulty} · "
        f"**Prep:** {recipe.prep_time} · **Cook:** {recipe.cook_time} · **Serves:** {recipe.servings}"
    )
    if recipe.dietary_restrictions:
        order = list(DietaryRestriction)
        names = ", ".join(r.display_name for r in sorted(recipe.dietary_restrictions, key=order.index))
        lines.append(f"**Suitable for:** {names}")
    if recipe.preference:
        lines.append(f"**Style:** {recipe.preference.display_name} ({recipe.preference.description})")
    lines.append("")

    lines.append("### Ingredients")
    for item in recipe.recipe_ingredients or recipe.detected_ingredients:
        lines.append(f"- {item}")
    lines.append("")

    lines.append("### Instructions")
    for number, step in enumerate(recipe.instructions, start=1):
        lines.append(f"{number}. {step}")

    if recipe.nutrition_facts:
        facts = recipe.nutrition_facts
        lines += [
            "",
            f"*Nutrition per serving: {facts.calories} kcal, {facts.protein}g protein, "
            f"{facts.carbs}g carbs, {facts.fat}g fat*",
        ]
    if recipe.is_fallback:
        lines += ["", "_Generated offline: the model did not return this recipe._"]

    return "\n".join(lines)


def parse_ingredient_list(text: str) -> list[str]:
    """Split a comma-separated ingredient argument into trimmed names."""
    return [item.strip() for item in text.split(",") if item.strip()]


async def run_query(
    ingredients_text: Optional[str],
    image_path: Optional[str] = None,
    generate: bool = False,
    count: Optional[int] = None,
    restrictions: Optional[list[DietaryRestriction]] = None,
    preference: Optional[RecipePreference] = None,
    debug: bool = False,
) -> int:
    """Execute a single detection and/or generation run and print the result.

    Returns:
        Process exit code (0 on success).
    """
    async with RecipeAPIClient() as client:
        try:
            ingredients = parse_ingredient_list(ingredients_text or "")

            if image_path:
                image_file = Path(image_path)
                if not image_file.exists():
                    console.print(f"[red]✗ Error: Image file not found: {image_path}[/red]")
                    return 1
                logger.info(f"Loading image: {image_file.name}...")
                detected = await client.detect_ingredients(image_file.read_bytes())
                console.print(Markdown("### Detected Ingredients\n" + "\n".join(f"- {i}" for i in detected)))
                ingredients = list(dict.fromkeys(ingredients + detected))
                if not generate:
                    return 0

            recipes = await client.generate_recipes(
                ingredients,
                count=count,
                dietary_restrictions=restrictions or [],
                preference=preference,
            )
            console.print()
            for recipe in recipes:
                console.print(Markdown(render_recipe_markdown(recipe)))
                console.print()

            if debug:
                console.print("[bold cyan]Debug Mode: Full Response[/bold cyan]")
                console.print("[dim]" + "=" * 60 + "[/dim]")
                console.print_json(data=[recipe.model_dump(mode="json") for recipe in recipes])
                console.print("[dim]" + "=" * 60 + "[/dim]")
            return 0

        except RecipeClientError as e:
            console.print(f"[red]✗ {e.error_code}: {e}[/red]")
            if debug:
                console.print(client.get_full_logs())
            return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Detect ingredients and generate recipes.")
    parser.add_argument("ingredients", nargs="?", help="Comma-separated ingredient list")
    parser.add_argument("--image", dest="image_path", help="Path to a JPEG/PNG photo of ingredients")
    parser.add_argument("--generate", action="store_true", help="Generate recipes after detection")
    parser.add_argument("--count", type=int, default=None, help="Number of recipes (default: 3)")
    parser.add_argument(
        "--restriction",
        action="append",
        type=DietaryRestriction,
        choices=list(DietaryRestriction),
        default=[],
        help="Dietary restriction (repeatable)",
    )
    parser.add_argument(
        "--preference",
        type=RecipePreference,
        choices=list(RecipePreference),
        default=None,
        metavar="STYLE",
        help="Recipe style: " + "; ".join(f"{p.value} ({p.description})" for p in RecipePreference),
    )
    parser.add_argument("--debug", action="store_true", help="Show full JSON and log history")
    return parser


if __name__ == "__main__":
    args = build_parser().parse_args()
    if not args.ingredients and not args.image_path:
        build_parser().print_usage()
        sys.exit(1)

    try:
        exit_code = asyncio.run(
            run_query(
                args.ingredients,
                image_path=args.image_path,
                generate=args.generate,
                count=args.count,
                restrictions=args.restriction,
                preference=args.preference,
                debug=args.debug,
            )
        )
    except KeyboardInterrupt:
        logger.info("\nQuery interrupted by user.")
        exit_code = 0
    except ValueError as e:
        logger.error(f"Query execution failed: {e}")
        exit_code = 1
    sys.exit(exit_code)
