"""Error taxonomy for the recipe client.

Parsing degradation is deliberately absent here: a malformed model answer is
absorbed by heuristic extraction or fallback synthesis and only logged.
"""

from enum import Enum
from typing import Any, Optional


class TransportErrorCategory(str, Enum):
    """Why a request ended without usable text."""

    NETWORK = "network"
    HTTP_CLIENT = "http-client"
    HTTP_SERVER_EXHAUSTED = "http-server-exhausted"
    MALFORMED_RESPONSE = "malformed-response"
    APPLICATION_ERROR = "application-error"


class RecipeClientError(Exception):
    """Base class for terminal errors surfaced to callers."""

    def __init__(
        self,
        message: str,
        error_code: str = "CLIENT_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ImagePreprocessingError(RecipeClientError):
    """The input image could not be decoded, redrawn or encoded."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, error_code="IMAGE_PREPROCESSING_ERROR", details=details)


class TransportError(RecipeClientError):
    """Terminal request failure after the retry budget (or a non-retryable status)."""

    def __init__(
        self,
        message: str,
        category: TransportErrorCategory,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        attempts: int = 1,
    ):
        super().__init__(
            message,
            error_code=f"TRANSPORT_{category.name}",
            details={"status_code": status_code, "attempts": attempts},
        )
        self.category = category
        self.status_code = status_code
        self.body = body
        self.attempts = attempts

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class IngredientDetectionError(RecipeClientError):
    """No ingredients could be recovered from the model's answer."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, error_code="INGREDIENT_DETECTION_ERROR", details=details)
