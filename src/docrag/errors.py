"""
docrag error hierarchy.

Every failure raised by the retrieval core derives from ``DocRAGError`` so a
caller can catch the whole family with one clause, while the retry layer only
needs to know whether an error is retryable or permanent.

Error Categories:
-----------------
1. Retryable Errors: transient provider failures
   - Rate limiting (HTTP 429)
   - Service unavailable (HTTP 503) and other 5xx
   - Timeouts and connection failures

2. Permanent Errors: failures that will not succeed on retry
   - Payload over the provider ceiling
   - Authentication / invalid request
   - Malformed provider responses
   - Cache read/write failures
   - Configuration problems

Usage:
------
    from docrag.errors import DocRAGError, ProviderError, PayloadTooLarge

    try:
        embeddings = await pipeline.get_or_compute_embeddings(doc_id, text)
    except PayloadTooLarge as e:
        logger.error(f"Chunk too large: {e.details}")
    except ProviderError as e:
        logger.error(f"Provider failed ({e.status_code}): {e.body}")
"""

from typing import Any


class DocRAGError(Exception):
    """
    Base exception for all docrag errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error (stage, chunk index, ...)
        original_error: The underlying exception that caused this error (optional)
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        base = self.message
        if self.details:
            base += f" | Details: {self.details}"
        if self.original_error:
            base += f" | Caused by: {type(self.original_error).__name__}: {self.original_error}"
        return base

    @property
    def stage(self) -> str | None:
        """Pipeline stage that raised the error, if recorded."""
        return self.details.get("stage")

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "details": self.details,
            "original_error": str(self.original_error) if self.original_error else None
        }


class RetryableError(DocRAGError):
    """
    Base class for errors that may succeed on retry.

    Attributes:
        retry_after: Suggested wait time before retry (seconds), if known
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message, details, original_error)
        self.retry_after = retry_after


class PermanentError(DocRAGError):
    """
    Base class for errors that will not succeed on retry.

    Retrying these errors is wasteful and may trigger rate limiting.
    """
    pass


# =============================================================================
# Chunking
# =============================================================================

class ChunkingError(PermanentError):
    """Raised when input text cannot be chunked (non-text or unencodable input)."""

    def __init__(
        self,
        message: str = "Document text could not be chunked",
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        details = {"stage": "chunking", **(details or {})}
        super().__init__(message, details, original_error)


# =============================================================================
# Embedding provider
# =============================================================================

class PayloadTooLarge(PermanentError):
    """
    Raised by the local pre-flight check when a serialized embedding request
    exceeds the provider's payload ceiling. No network call is made.
    """

    def __init__(
        self,
        payload_bytes: int,
        limit_bytes: int,
        details: dict[str, Any] | None = None,
    ):
        details = {
            "stage": "embedding",
            "payload_bytes": payload_bytes,
            "limit_bytes": limit_bytes,
            **(details or {}),
        }
        super().__init__(
            f"Embedding request of {payload_bytes} bytes exceeds the {limit_bytes} byte limit",
            details,
        )
        self.payload_bytes = payload_bytes
        self.limit_bytes = limit_bytes


class ProviderError(DocRAGError):
    """
    Raised when the embedding provider returns a non-success status or the
    call cannot be completed.

    Attributes:
        status_code: HTTP status returned by the provider (None for transport failures)
        body: Raw response body, kept for operational diagnosis
    """

    def __init__(
        self,
        message: str = "Embedding provider request failed",
        status_code: int | None = None,
        body: str | None = None,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        details = {"stage": "embedding", **(details or {})}
        if status_code is not None:
            details["status_code"] = status_code
        if body:
            details["body"] = body
        super().__init__(message, details, original_error)
        self.status_code = status_code
        self.body = body


class RetryableProviderError(ProviderError, RetryableError):
    """Provider failure that is worth retrying."""

    def __init__(
        self,
        message: str = "Embedding provider temporarily failed",
        status_code: int | None = None,
        body: str | None = None,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        super().__init__(message, status_code, body, details, original_error)
        self.retry_after = retry_after


class RateLimitError(RetryableProviderError):
    """Raised when the provider rate limit is exceeded (HTTP 429)."""


class ServiceUnavailableError(RetryableProviderError):
    """Raised when the provider is temporarily unavailable (HTTP 503)."""


class TransientProviderError(RetryableProviderError):
    """Generic retryable provider failure (other 5xx, dropped connections)."""


class ProviderTimeoutError(RetryableProviderError):
    """
    Raised when an embedding call exceeds its timeout.

    Treated exactly like any other ProviderError by the fail-fast policy.
    """

    def __init__(
        self,
        message: str = "Embedding request timed out",
        timeout: float | None = None,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        details = {"timeout": timeout, **(details or {})}
        super().__init__(message, details=details, original_error=original_error)
        self.timeout = timeout


class AuthenticationError(ProviderError, PermanentError):
    """Raised when the provider rejects the credential (HTTP 401/403)."""


class InvalidRequestError(ProviderError, PermanentError):
    """Raised when the provider rejects the request parameters (HTTP 400/404)."""


class DeserializationError(PermanentError):
    """Raised when a provider response cannot be parsed into a vector."""

    def __init__(
        self,
        message: str = "Embedding response could not be parsed",
        body: str | None = None,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        details = {"stage": "embedding", **(details or {})}
        if body:
            details["body"] = body
        super().__init__(message, details, original_error)
        self.body = body


# =============================================================================
# Cache
# =============================================================================

class CacheError(PermanentError):
    """Base class for embedding cache failures."""

    def __init__(
        self,
        message: str = "Embedding cache operation failed",
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        details = {"stage": "cache", **(details or {})}
        super().__init__(message, details, original_error)


class CacheReadError(CacheError):
    """Raised when the cache store cannot be read."""


class CacheWriteError(CacheError):
    """Raised when a batch cannot be persisted; nothing of the batch is visible."""


# =============================================================================
# Ranking / configuration
# =============================================================================

class DimensionMismatch(PermanentError):
    """
    Raised by strict vector comparisons when dimensionalities differ.

    The ranker uses the lenient comparison and scores such pairs as 0.
    """

    def __init__(self, left: int, right: int):
        super().__init__(
            f"Vector dimension mismatch: {left} != {right}",
            details={"stage": "ranking", "left": left, "right": right},
        )
        self.left = left
        self.right = right


class ConfigurationError(PermanentError):
    """Raised when the configuration is missing values or inconsistent."""

    def __init__(
        self,
        message: str = "Configuration error",
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None
    ):
        details = {"stage": "config", **(details or {})}
        super().__init__(message, details, original_error)


# =============================================================================
# Helper Functions
# =============================================================================

def is_retryable(error: Exception) -> bool:
    """Check if an error is an instance of RetryableError."""
    return isinstance(error, RetryableError)


def classify_http_error(
    status_code: int,
    body: str = "",
    headers: dict | None = None,
    details: dict[str, Any] | None = None,
) -> ProviderError:
    """
    Classify a provider HTTP error based on status code.

    Args:
        status_code: HTTP status code
        body: Raw response body
        headers: Response headers (used to extract Retry-After)
        details: Extra context merged into the error details

    Returns:
        Appropriate ProviderError subclass instance
    """
    headers = headers or {}
    retry_after = None

    raw_retry_after = headers.get("Retry-After") or headers.get("retry-after")
    if raw_retry_after is not None:
        try:
            retry_after = float(raw_retry_after)
        except (ValueError, TypeError):
            pass

    message = f"Embedding provider returned HTTP {status_code}"

    if status_code == 429:
        return RateLimitError(message, status_code, body, retry_after, details)
    elif status_code in (401, 403):
        return AuthenticationError(message, status_code, body, details)
    elif status_code in (400, 404, 413, 422):
        return InvalidRequestError(message, status_code, body, details)
    elif status_code == 503:
        return ServiceUnavailableError(message, status_code, body, retry_after, details)
    elif status_code >= 500:
        return TransientProviderError(message, status_code, body, retry_after, details)
    else:
        return ProviderError(message, status_code, body, details)
