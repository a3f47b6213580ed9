"""Error taxonomy shared by the client, the batch path and the proxy."""

from __future__ import annotations


class RelayError(RuntimeError):
    """Base class for failures raised by the relay layer."""

    def __init__(self, message: str, *, error_type: str = "relay_error") -> None:
        super().__init__(message)
        self.error_type = error_type


class UpstreamError(RelayError):
    """Raised when the proxy or Gemini answers with a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: str = "",
    ) -> None:
        error_type = f"http_{status_code}" if status_code is not None else "upstream_error"
        super().__init__(message, error_type=error_type)
        self.status_code = status_code
        self.detail = detail


class ParseError(RelayError):
    """Raised when a body or a generated item is not the expected JSON."""

    def __init__(self, message: str, *, excerpt: str = "") -> None:
        super().__init__(message, error_type="parse_error")
        self.excerpt = excerpt


class ResponseShapeError(RelayError):
    """Raised when a well-formed JSON document lacks the expected nested fields."""

    def __init__(self, message: str) -> None:
        super().__init__(message, error_type="response_shape_error")


class QuotaExceededError(RelayError):
    """Raised by the advisory quota guard when a usage share is exhausted."""

    def __init__(self, message: str, *, usage_type: str, used: int, limit: int) -> None:
        super().__init__(message, error_type="quota_exceeded")
        self.usage_type = usage_type
        self.used = used
        self.limit = limit


__all__ = [
    "ParseError",
    "QuotaExceededError",
    "RelayError",
    "ResponseShapeError",
    "UpstreamError",
]
