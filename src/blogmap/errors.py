"""Error taxonomy for discovery and preview.

Transient fetch failures inside a discovery stage or the enricher never
surface as exceptions; they are logged and the pipeline moves on. The
errors below are the ones a caller is expected to handle.
"""

from enum import Enum
from typing import Optional


class ErrorType(str, Enum):
    """Categorizes pipeline errors for routing to HTTP status codes."""

    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    DISCOVERY_ERROR = "discovery_error"
    EXTRACTION_ERROR = "extraction_error"
    PROVIDER_ERROR = "provider_error"
    UNKNOWN = "unknown"


class BlogmapError(Exception):
    """Base class for all blogmap errors.

    Attributes:
        message: Human-readable error message
        error_type: Categorization for handling
        original_error: The underlying exception, if any
    """

    error_type: ErrorType = ErrorType.UNKNOWN

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, error_type={self.error_type})"


class InvalidUrlError(BlogmapError):
    """Raised when user input cannot be turned into an absolute http(s) URL."""

    error_type = ErrorType.VALIDATION_ERROR

    def __init__(self, raw_url: str, reason: str = ""):
        self.raw_url = raw_url
        message = f"Invalid URL: {raw_url!r}."
        if reason:
            message += f" {reason}"
        message += " Enter a full address such as https://example.com/blog"
        super().__init__(message)


class NoPostsFoundError(BlogmapError):
    """Raised when every discovery method, fallback included, came back empty."""

    error_type = ErrorType.NOT_FOUND

    def __init__(self, blog_url: str):
        self.blog_url = blog_url
        super().__init__("No blog posts found on this page. Please check the URL.")


class DiscoveryError(BlogmapError):
    """Raised when the expensive fallback itself fails."""

    error_type = ErrorType.DISCOVERY_ERROR


class ExtractionError(BlogmapError):
    """Raised by the legacy listing-page extractor."""

    error_type = ErrorType.EXTRACTION_ERROR


class FirecrawlError(BlogmapError):
    """Raised by the Firecrawl client.

    Attributes:
        code: Short machine-readable code (e.g. ``ERR::CREDITS::LIMIT_REACHED``)
        status_code: HTTP-like status for the failure
        retryable: Whether a later attempt could succeed
    """

    error_type = ErrorType.PROVIDER_ERROR

    def __init__(
        self,
        message: str,
        code: str = "ERR::UNKNOWN",
        status_code: int = 500,
        retryable: bool = True,
        original_error: Optional[Exception] = None,
    ):
        self.code = code
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message, original_error=original_error)


class InvalidDateError(BlogmapError):
    """Raised when a date-range bound is not a valid date."""

    error_type = ErrorType.VALIDATION_ERROR

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid date: {value!r}. Use YYYY-MM-DD.")
