"""Recipe client: ingredient detection from photos and multi-recipe generation.

Composes the image normalizer, request transport, response extraction and
recipe parser into the two public operations:

1. detect_ingredients(image) -> list[str]
   load/validate → normalize (off the event loop) → send with retries → parse
   Errors propagate: a bad image or an answer with no ingredients is never
   papered over with made-up data.

2. generate_recipes(ingredients, count, dietary_restrictions, preference) -> list[Recipe]
   build prompt → send with retries → parse with fallback synthesis
   Only transport failures escape; model output problems are absorbed and the
   caller always gets ``count`` recipes.

Calls are independent: concurrent detections (asyncio.gather) share nothing
but the HTTP connection pool.
"""

import asyncio
import logging
import random
from typing import Iterable, Optional

from PIL import Image

from recipe_recommender.models.errors import ImagePreprocessingError
from recipe_recommender.models.models import (
    DietaryRestriction,
    EncodedPayload,
    Recipe,
    RecipePreference,
    RequestEnvelope,
)
from recipe_recommender.prompts.prompts import (
    build_detection_body,
    build_generation_body,
    get_generation_prompt,
)
from recipe_recommender.services.image_normalizer import load_image, normalize
from recipe_recommender.services.recipe_parser import to_ingredients, to_recipes
from recipe_recommender.services.transport import RequestTransport
from recipe_recommender.utils.config import Config, config
from recipe_recommender.utils.logger import get_log_history
from recipe_recommender.utils.logger import logger as default_logger


class RecipeAPIClient:
    """Async client for the messages endpoint.

    Usage:
        async with RecipeAPIClient(api_key="...") as client:
            ingredients = await client.detect_ingredients(photo_bytes)
            recipes = await client.generate_recipes(ingredients, count=3)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        transport: Optional[RequestTransport] = None,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
        settings: Optional[Config] = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: API key. Default: ANTHROPIC_API_KEY from configuration.
            transport: Transport to send with. Default: a RequestTransport sharing
                this client's rng and logger.
            rng: Random source for jitter and randomized recipe defaults.
            logger: Logger injected into every component.
            settings: Configuration. Default: module-level config.

        Raises:
            ValueError: If no API key is available or configuration is invalid.
        """
        self.settings = settings or config
        self.api_key = api_key or self.settings.ANTHROPIC_API_KEY
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY is required")
        self.settings.validate(require_api_key=api_key is None)

        self.logger = logger or default_logger
        self.rng = rng or random.Random()
        self.transport = transport or RequestTransport(
            max_retries=self.settings.MAX_RETRIES,
            rng=self.rng,
            logger=self.logger,
        )
        self._history = get_log_history(self.logger)
        self.logger.info("Initializing recipe API client")

    async def __aenter__(self) -> "RecipeAPIClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.transport.close()

    def get_full_logs(self) -> str:
        """Recent log lines from this client's logger, for debugging failed runs."""
        return self._history.get_full_log()

    def _envelope_factory(self, body: dict):
        def build() -> RequestEnvelope:
            return RequestEnvelope(
                url=self.settings.ANTHROPIC_API_URL,
                headers={
                    "content-type": "application/json",
                    "x-api-key": self.api_key,
                    "anthropic-version": self.settings.ANTHROPIC_VERSION,
                },
                body=body,
                timeout=self.settings.REQUEST_TIMEOUT,
            )

        return build

    def _normalize(self, image: Image.Image | bytes) -> EncodedPayload:
        if isinstance(image, (bytes, bytearray)):
            image = load_image(
                bytes(image),
                logger=self.logger,
                max_dimension=self.settings.IMAGE_MAX_DIMENSION,
                max_pixels=self.settings.MAX_IMAGE_PIXELS,
            )
        elif not isinstance(image, Image.Image):
            raise ImagePreprocessingError(f"Unsupported image type: {type(image).__name__}")

        return normalize(
            image,
            self.settings.max_image_size_bytes,
            max_dimension=self.settings.IMAGE_MAX_DIMENSION,
            warning_threshold_bytes=self.settings.oversized_image_warning_bytes,
            logger=self.logger,
        )

    async def detect_ingredients(self, image: Image.Image | bytes) -> list[str]:
        """Identify the food ingredients visible in a photo.

        Args:
            image: A Pillow image, or raw JPEG/PNG bytes.

        Returns:
            Ingredient names as returned by the model (or recovered from its text).

        Raises:
            ImagePreprocessingError: The image could not be decoded or normalized.
            TransportError: The request failed terminally.
            IngredientDetectionError: The answer contained no ingredients.
        """
        self.logger.info("Starting ingredient detection from image")

        # Pillow work is CPU-bound; keep it off the event loop
        payload = await asyncio.to_thread(self._normalize, image)
        if payload.oversized:
            self.logger.warning(f"Sending oversized image ({payload.size_mb:.2f} MB); the API may reject it")
        self.logger.info(
            f"Sending image of size {payload.size_mb:.2f} MB ({payload.width}x{payload.height}) for analysis"
        )

        body = build_detection_body(payload.to_base64(), payload.media_type, settings=self.settings)
        text = await self.transport.send(self._envelope_factory(body))

        ingredients = to_ingredients(text, logger=self.logger)
        self.logger.info(f"Detected {len(ingredients)} ingredients")
        return ingredients

    async def generate_recipes(
        self,
        ingredients: list[str],
        count: Optional[int] = None,
        dietary_restrictions: Iterable[DietaryRestriction] = (),
        preference: Optional[RecipePreference] = None,
    ) -> list[Recipe]:
        """Generate ``count`` different recipes from an ingredient list.

        Args:
            ingredients: Ingredient names (may be empty).
            count: Number of recipes. Default: DEFAULT_RECIPE_COUNT (3).
            dietary_restrictions: Restrictions every recipe must satisfy; echoed onto each recipe.
            preference: Optional recipe style; echoed onto each recipe.

        Returns:
            Exactly ``count`` recipes. Missing or malformed model output is
            replaced with synthesized fallback recipes.

        Raises:
            ValueError: If count is less than 1.
            TransportError: The request failed terminally.
        """
        count = self.settings.DEFAULT_RECIPE_COUNT if count is None else count
        if count < 1:
            raise ValueError(f"count must be at least 1, got: {count}")

        restrictions = frozenset(dietary_restrictions)
        self.logger.info(f"Starting generation of {count} recipes from {len(ingredients)} ingredients")

        prompt = get_generation_prompt(ingredients, count, restrictions, preference)
        body = build_generation_body(prompt, settings=self.settings)
        text = await self.transport.send(self._envelope_factory(body))

        recipes = to_recipes(
            text,
            ingredients,
            restrictions,
            preference,
            requested_count=count,
            rng=self.rng,
            logger=self.logger,
        )
        fallbacks = sum(1 for recipe in recipes if recipe.is_fallback)
        self.logger.info(f"Generated {len(recipes)} recipes ({fallbacks} fallback)")
        return recipes
