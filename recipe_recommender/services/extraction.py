"""Locate JSON fragments inside free-form model text.

The model is asked for bare JSON but often wraps it in prose ("Here are your
recipes: [...] Enjoy!"). These helpers cut out the JSON-shaped span and leave
strict parsing to the caller. All functions are pure.
"""

import logging
import re
from typing import Optional

from recipe_recommender.utils.logger import logger as default_logger

# Array whose first element is an object or a string literal, first opener to last closer
_ARRAY_PATTERN = re.compile(r'\[\s*[{"][\s\S]*[}"]\s*\]')
_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")
_SEPARATORS = re.compile(r'[,.\n\[\]"]')


def extract_array(text: str, logger: Optional[logging.Logger] = None) -> Optional[str]:
    """Return the greedy array span in ``text``, or None if there is none.

    Args:
        text: Raw assistant text.
        logger: Logger for diagnostics. Defaults to the package logger.

    Returns:
        The substring from the first ``[`` (followed by ``{`` or ``"``) to the
        last matching ``}]`` / ``"]``, exactly as it appears in ``text``.
    """
    log = logger or default_logger
    match = _ARRAY_PATTERN.search(text or "")
    if match:
        span = match.group()
        log.debug(f"Found JSON array: {span[:50]}...")
        return span

    log.debug(f"No JSON array found in response: {(text or '')[:100]}...")
    return None


def extract_object(text: str, logger: Optional[logging.Logger] = None) -> Optional[str]:
    """Return the greedy ``{...}`` span in ``text``, or None if there is none."""
    log = logger or default_logger
    match = _OBJECT_PATTERN.search(text or "")
    if match:
        span = match.group()
        log.debug(f"Found JSON object: {span[:50]}...")
        return span

    log.debug("No JSON object found in response")
    return None


def extract_ingredients_from_text(text: str, logger: Optional[logging.Logger] = None) -> list[str]:
    """Heuristically pull ingredient names out of non-JSON text.

    Splits on commas, periods, newlines, brackets and double quotes, trims each
    fragment and keeps fragments longer than two characters. Duplicates are
    dropped by exact text; first-seen order is kept.
    """
    log = logger or default_logger
    candidates = [fragment.strip() for fragment in _SEPARATORS.split(text or "")]
    candidates = [fragment for fragment in candidates if len(fragment) > 2]
    log.debug(f"Raw ingredient candidates: {len(candidates)} items")

    unique = list(dict.fromkeys(candidates))
    log.debug(f"Extracted {len(unique)} unique ingredients from text")
    return unique
