"""Configuration management for the recipe client.

Loads environment variables from system environment and .env file.
Priority order: system environment > .env file > hardcoded defaults
"""

import os

from dotenv import load_dotenv


# Load .env file (if exists, silently continues if missing)
load_dotenv()


class Config:
    """Client configuration loaded from environment variables."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        self.ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
        # Messages endpoint and protocol version header
        self.ANTHROPIC_API_URL: str = os.getenv("ANTHROPIC_API_URL", "https://api.anthropic.com/v1/messages")
        self.ANTHROPIC_VERSION: str = os.getenv("ANTHROPIC_VERSION", "2023-06-01")
        # Same model is used for image detection and recipe generation
        self.CLAUDE_MODEL: str = os.getenv("CLAUDE_MODEL", "claude-3-haiku-20240307")

        # Image normalization
        # MAX_IMAGE_SIZE_MB: advisory ceiling for the encoded JPEG (1 MB = 1,000,000 bytes)
        self.MAX_IMAGE_SIZE_MB: float = float(os.getenv("MAX_IMAGE_SIZE_MB", "1.0"))
        # IMAGE_MAX_DIMENSION: long edge is scaled down to this many pixels
        self.IMAGE_MAX_DIMENSION: int = int(os.getenv("IMAGE_MAX_DIMENSION", "1000"))
        # OVERSIZED_IMAGE_WARNING_MB: payloads above this are flagged but still sent
        self.OVERSIZED_IMAGE_WARNING_MB: float = float(os.getenv("OVERSIZED_IMAGE_WARNING_MB", "5.0"))
        # MAX_IMAGE_PIXELS: decoder limit for uploaded bytes (200 MP phone sensors must pass)
        self.MAX_IMAGE_PIXELS: int = int(os.getenv("MAX_IMAGE_PIXELS", "250000000"))

        # Transport
        # REQUEST_TIMEOUT: per-attempt timeout in seconds (no timeout wraps the whole retry sequence)
        self.REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "60"))
        # MAX_RETRIES: retries after the first attempt (3 => 4 attempts, backoff 1s, 2s, 4s)
        self.MAX_RETRIES: int = int(os.getenv("MAX_RETRIES", "3"))

        # Generation
        self.DEFAULT_RECIPE_COUNT: int = int(os.getenv("DEFAULT_RECIPE_COUNT", "3"))

        # LLM Model Parameters
        self.DETECTION_MAX_TOKENS: int = int(os.getenv("DETECTION_MAX_TOKENS", "1000"))
        self.DETECTION_TEMPERATURE: float = float(os.getenv("DETECTION_TEMPERATURE", "0.7"))
        # Multiple recipes need a bigger budget; higher temperature for variety
        self.GENERATION_MAX_TOKENS: int = int(os.getenv("GENERATION_MAX_TOKENS", "4000"))
        self.GENERATION_TEMPERATURE: float = float(os.getenv("GENERATION_TEMPERATURE", "0.8"))

    @property
    def max_image_size_bytes(self) -> int:
        return int(self.MAX_IMAGE_SIZE_MB * 1_000_000)

    @property
    def oversized_image_warning_bytes(self) -> int:
        return int(self.OVERSIZED_IMAGE_WARNING_MB * 1_000_000)

    def validate(self, require_api_key: bool = True) -> None:
        """Validate required configuration.

        Args:
            require_api_key: Check ANTHROPIC_API_KEY too. False when the key is passed in code.

        Raises:
            ValueError: If the API key is missing or invalid values provided.
        """
        if require_api_key and not self.ANTHROPIC_API_KEY:
            raise ValueError("ANTHROPIC_API_KEY environment variable is required")
        if self.MAX_IMAGE_SIZE_MB <= 0:
            raise ValueError(f"MAX_IMAGE_SIZE_MB must be positive, got: {self.MAX_IMAGE_SIZE_MB}")
        if self.IMAGE_MAX_DIMENSION < 1:
            raise ValueError(f"IMAGE_MAX_DIMENSION must be at least 1, got: {self.IMAGE_MAX_DIMENSION}")
        if self.MAX_IMAGE_PIXELS < 1:
            raise ValueError(f"MAX_IMAGE_PIXELS must be at least 1, got: {self.MAX_IMAGE_PIXELS}")
        if self.REQUEST_TIMEOUT <= 0:
            raise ValueError(f"REQUEST_TIMEOUT must be positive, got: {self.REQUEST_TIMEOUT}")
        if self.MAX_RETRIES < 0:
            raise ValueError(f"MAX_RETRIES must be at least 0, got: {self.MAX_RETRIES}")
        if self.DEFAULT_RECIPE_COUNT < 1:
            raise ValueError(f"DEFAULT_RECIPE_COUNT must be at least 1, got: {self.DEFAULT_RECIPE_COUNT}")
        for name in ("DETECTION_TEMPERATURE", "GENERATION_TEMPERATURE"):
            value = getattr(self, name)
            if not (0.0 <= value <= 1.0):
                raise ValueError(f"{name} must be between 0.0 and 1.0, got: {value}")
        for name in ("DETECTION_MAX_TOKENS", "GENERATION_MAX_TOKENS"):
            value = getattr(self, name)
            if value < 1:
                raise ValueError(f"{name} must be at least 1, got: {value}")


# Module-level config instance; validated when a client is constructed
config = Config()
