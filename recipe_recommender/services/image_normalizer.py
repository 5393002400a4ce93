"""Image normalization for the vision endpoint.

The messages endpoint rejects large or exotic images without saying what the
limit is, so every photo goes through the same pipeline before upload:

1. Downscale so the long edge is at most IMAGE_MAX_DIMENSION (1000px)
2. Redraw onto an opaque white 8-bit RGBA canvas (drops ICC profiles, alpha, CMYK...)
3. Baseline JPEG at quality 0.7, stepping down by 0.1 while over the ceiling
4. If still too large: up to 5 rounds of shrinking by sqrt(ceiling / size) * 0.8 at quality 0.5

The ceiling is advisory. After the last resize round whatever was produced is
returned, and payloads above the warning threshold are flagged rather than refused.

Core Functions:
- load_image(): Validate (JPEG/PNG magic bytes) and decode raw bytes with Pillow
- downscale(): Step 1
- canonicalize(): Step 2
- encode_jpeg(): Single baseline JPEG encode at a 0.0-1.0 quality
- normalize(): Full pipeline, returns EncodedPayload
"""

import logging
import math
import threading
from contextlib import contextmanager
from io import BytesIO
from typing import Optional

import filetype
from PIL import Image, ImageOps, UnidentifiedImageError

from recipe_recommender.models.errors import ImagePreprocessingError
from recipe_recommender.models.models import EncodedPayload
from recipe_recommender.utils.config import config
from recipe_recommender.utils.logger import logger as default_logger

INITIAL_QUALITY_TENTHS = 7
MIN_QUALITY_TENTHS = 1
RESIZE_QUALITY = 0.5
RESIZE_ROUNDS = 5
RESIZE_EXTRA_REDUCTION = 0.8

_PIL_ERRORS = (OSError, ValueError, MemoryError, Image.DecompressionBombError)

# Image.MAX_IMAGE_PIXELS is process-wide; normalization runs in worker threads
_PIXEL_LIMIT_LOCK = threading.Lock()


@contextmanager
def _pixel_limit(max_pixels: int):
    """Temporarily replace Pillow's decompression-bomb limit."""
    with _PIXEL_LIMIT_LOCK:
        previous = Image.MAX_IMAGE_PIXELS
        Image.MAX_IMAGE_PIXELS = max_pixels
        try:
            yield
        finally:
            Image.MAX_IMAGE_PIXELS = previous


def load_image(
    image_bytes: bytes,
    logger: Optional[logging.Logger] = None,
    *,
    max_dimension: Optional[int] = None,
    max_pixels: Optional[int] = None,
) -> Image.Image:
    """Decode raw upload bytes into a Pillow image.

    Uses the filetype library to detect the actual format from magic bytes,
    not from an extension. Only JPEG and PNG are accepted. EXIF orientation
    is applied so the pixels match what the user saw.

    Pillow's own pixel limit (about 179 MP) would refuse photos from 200 MP
    phone sensors, so ``max_pixels`` replaces it. JPEGs are decoded at a
    reduced scale no smaller than ``max_dimension`` on either side, which
    keeps decode memory bounded for very large photos.

    Args:
        image_bytes: Raw JPEG or PNG bytes.
        logger: Logger for diagnostics. Defaults to the package logger.
        max_dimension: Target long edge for JPEG draft decoding. Default: IMAGE_MAX_DIMENSION.
        max_pixels: Largest accepted width * height. Default: MAX_IMAGE_PIXELS.

    Raises:
        ImagePreprocessingError: Empty input, unsupported format, too many pixels, or decoder failure.
    """
    log = logger or default_logger
    max_dimension = max_dimension or config.IMAGE_MAX_DIMENSION
    max_pixels = max_pixels or config.MAX_IMAGE_PIXELS
    if not image_bytes:
        raise ImagePreprocessingError("Image data is empty")

    kind = filetype.guess(image_bytes)
    if kind is None or kind.extension not in ("jpg", "jpeg", "png"):
        log.warning(f"Invalid image format: {kind}. Only JPEG and PNG supported.")
        raise ImagePreprocessingError(
            "Invalid image format. Only JPEG and PNG are supported.",
            details={"detected": getattr(kind, "mime", None)},
        )

    try:
        with _pixel_limit(max_pixels):
            image = Image.open(BytesIO(image_bytes))

        width, height = image.size
        if width * height > max_pixels:
            raise ImagePreprocessingError(
                f"Image has too many pixels: {width}x{height} exceeds {max_pixels}",
                details={"width": width, "height": height, "max_pixels": max_pixels},
            )

        if image.format == "JPEG":
            image.draft("RGB", (max_dimension, max_dimension))
            if image.size != (width, height):
                log.info(f"Decoding JPEG at reduced scale: {width}x{height} -> {image.width}x{image.height}")
        image.load()
        return ImageOps.exif_transpose(image)
    except Image.DecompressionBombError as e:
        log.warning(f"Refusing oversized image: {e}")
        raise ImagePreprocessingError(
            f"Image has too many pixels: {e}", details={"max_pixels": max_pixels}
        ) from e
    except (UnidentifiedImageError, SyntaxError, *_PIL_ERRORS) as e:
        log.error(f"Failed to decode image: {e}")
        raise ImagePreprocessingError(f"Failed to decode image: {e}") from e


def downscale(image: Image.Image, max_dimension: int = 1000, logger: Optional[logging.Logger] = None) -> Image.Image:
    """Scale so the larger side equals ``max_dimension``; smaller images are returned as-is."""
    log = logger or default_logger
    width, height = image.size

    if width <= max_dimension and height <= max_dimension:
        log.debug(f"Image already within size limits: {width}x{height}")
        return image

    scale = max_dimension / max(width, height)
    new_size = (max(1, round(width * scale)), max(1, round(height * scale)))
    log.info(f"Downsizing image from {width}x{height} to {new_size[0]}x{new_size[1]}")
    return image.resize(new_size, Image.Resampling.LANCZOS)


def canonicalize(image: Image.Image, logger: Optional[logging.Logger] = None) -> Image.Image:
    """Redraw ``image`` on an opaque white 8-bit canvas.

    Returns an RGB image (the JPEG encoder has no alpha channel) carrying no
    ICC profile, regardless of the input's mode or colour space.

    Raises:
        ImagePreprocessingError: If the canvas cannot be created or drawn.
    """
    log = logger or default_logger
    width, height = image.size
    if width < 1 or height < 1:
        raise ImagePreprocessingError(
            "Invalid input image - empty raster", details={"width": width, "height": height}
        )

    log.debug(f"Creating canvas with dimensions: {width} x {height} (source mode {image.mode})")
    try:
        source = image.convert("RGBA")
        canvas = Image.new("RGBA", (width, height), (255, 255, 255, 255))
        canvas.alpha_composite(source)
        return canvas.convert("RGB")
    except _PIL_ERRORS as e:
        log.error(f"Failed to create graphics context: {e}")
        raise ImagePreprocessingError(f"Failed to create graphics context: {e}") from e


def encode_jpeg(image: Image.Image, quality: float) -> bytes:
    """Encode as baseline (non-progressive) JPEG at ``quality`` in 0.0-1.0."""
    output = BytesIO()
    image.save(
        output,
        format="JPEG",
        quality=max(1, min(95, round(quality * 100))),
        optimize=True,
        progressive=False,
    )
    return output.getvalue()


def _shrink_to_ceiling(
    image: Image.Image, ceiling: int, log: logging.Logger
) -> tuple[Image.Image, bytes]:
    """Aggressive resize rounds. Returns the last image and its quality-0.5 encoding."""
    width, height = float(image.width), float(image.height)
    current = image

    for round_number in range(1, RESIZE_ROUNDS + 1):
        data = encode_jpeg(current, RESIZE_QUALITY)
        size = len(data)

        if size <= ceiling:
            log.info(f"Reached target size on resize round {round_number}: {size / 1_000_000:.2f} MB")
            return current, data

        log.info(
            f"Resize round {round_number}: image is {size / 1_000_000:.2f} MB, "
            f"target is {ceiling / 1_000_000:.2f} MB"
        )

        factor = math.sqrt(ceiling / size) * RESIZE_EXTRA_REDUCTION
        width *= factor
        height *= factor
        new_size = (max(1, int(width)), max(1, int(height)))
        log.debug(f"Reducing dimensions to {new_size[0]} x {new_size[1]}")
        # Always resample from the canonical image, not the previous round's output
        current = image.resize(new_size, Image.Resampling.LANCZOS)

    log.warning(f"Failed to reach target size after {RESIZE_ROUNDS} resize rounds")
    return current, encode_jpeg(current, RESIZE_QUALITY)


def normalize(
    image: Image.Image,
    size_ceiling_bytes: Optional[int] = None,
    *,
    max_dimension: Optional[int] = None,
    warning_threshold_bytes: Optional[int] = None,
    logger: Optional[logging.Logger] = None,
) -> EncodedPayload:
    """Turn an arbitrary image into an API-safe JPEG payload.

    Never fails for a decodable, non-empty image: quality and then dimensions
    are sacrificed until the payload fits, and past the last resize round the
    ceiling is treated as advisory.

    Args:
        image: Source image. Not modified.
        size_ceiling_bytes: Target maximum encoded size. Default: MAX_IMAGE_SIZE_MB (1 MB).
        max_dimension: Long-edge limit for the first downscale. Default: IMAGE_MAX_DIMENSION.
        warning_threshold_bytes: Sizes above this set ``oversized``. Default: 5 MB.
        logger: Logger for progress. Defaults to the package logger.

    Returns:
        EncodedPayload with the JPEG bytes, final dimensions and quality.

    Raises:
        ImagePreprocessingError: The image cannot be decoded or redrawn.
    """
    log = logger or default_logger
    ceiling = size_ceiling_bytes if size_ceiling_bytes is not None else config.max_image_size_bytes
    max_dimension = max_dimension or config.IMAGE_MAX_DIMENSION
    warning_threshold = (
        warning_threshold_bytes if warning_threshold_bytes is not None else config.oversized_image_warning_bytes
    )

    log.debug(f"Original image: {image.width}x{image.height}, mode {image.mode}")

    try:
        resized = downscale(image, max_dimension, logger=log)
    except _PIL_ERRORS as e:
        log.error(f"Image downsizing failed: {e}")
        raise ImagePreprocessingError(f"Failed to resize image: {e}") from e

    processed = canonicalize(resized, logger=log)
    log.debug("Image preprocessing complete")

    quality_tenths = INITIAL_QUALITY_TENTHS
    try:
        data = encode_jpeg(processed, quality_tenths / 10)
    except _PIL_ERRORS as e:
        log.error(f"JPEG conversion failed: {e}")
        raise ImagePreprocessingError(f"Failed to convert image to JPEG data: {e}") from e
    log.info(f"Image size after initial compression: {len(data) / 1_000_000:.2f} MB")

    while len(data) > ceiling and quality_tenths > MIN_QUALITY_TENTHS:
        quality_tenths -= 1
        data = encode_jpeg(processed, quality_tenths / 10)
        log.debug(f"Reduced quality to {quality_tenths / 10:.1f}: {len(data) / 1_000_000:.2f} MB")

    final_image = processed
    quality = quality_tenths / 10
    if len(data) > ceiling:
        log.warning(
            f"Image still too large ({len(data) / 1_000_000:.2f} MB), attempting further resizing"
        )
        final_image, data = _shrink_to_ceiling(processed, ceiling, log)
        quality = RESIZE_QUALITY

    oversized = len(data) > warning_threshold
    if oversized:
        log.warning(
            f"Image is still very large ({len(data) / 1_000_000:.2f} MB). This may cause API issues."
        )

    return EncodedPayload(
        data=data,
        size_bytes=len(data),
        width=final_image.width,
        height=final_image.height,
        quality=quality,
        oversized=oversized,
    )
