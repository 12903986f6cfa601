"""
Application errors for clean API error handling.

Use ServiceUnavailableError when a dependency (vector store, embeddings, LLM,
OpenAQ) is misconfigured or unreachable so the API can return 503 with a
user-facing message. Upstream errors split into client errors (4xx from the
air-quality provider, never retried) and transient errors (timeouts, 5xx,
network failures) that the broadening loop recovers from.
"""


class ServiceUnavailableError(Exception):
    """Raised when a required service (e.g. vector store, embeddings API) is unavailable or misconfigured."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class GeoQueryValidationError(ValueError):
    """Raised when air-quality params carry both a bbox and point coordinates."""


class UpstreamError(Exception):
    """Base class for failures talking to the external air-quality provider."""


class UpstreamClientError(UpstreamError):
    """4xx from the provider: the request itself was rejected, retrying would not help."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        self.status_code = status_code
        self.detail = detail[:300]
        super().__init__(f"OpenAQ error {status_code}: {self.detail}")


class UpstreamTransientError(UpstreamError):
    """Timeout, 5xx or network failure; the next broadening attempt may still succeed."""
