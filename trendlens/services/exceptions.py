"""Domain exceptions surfaced to HTTP callers."""

from __future__ import annotations

from trendlens.middleware.error_codes import ErrorCode


class TrendLensError(Exception):
    """Base exception. Subclasses fix the HTTP status and error code."""

    status_code: int = 500
    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequestError(TrendLensError):
    """Raised for malformed query or body parameters."""

    status_code = 400
    code = ErrorCode.BAD_REQUEST


class UnauthorizedError(TrendLensError):
    """Raised when no authenticated session user is present."""

    status_code = 401
    code = ErrorCode.UNAUTHORIZED


class NotFoundError(TrendLensError):
    status_code = 404
    code = ErrorCode.NOT_FOUND


class ConflictError(TrendLensError):
    status_code = 409
    code = ErrorCode.CONFLICT


class UpstreamUnavailableError(TrendLensError):
    """Raised when an upstream source cannot be called at all (e.g. missing credentials)."""

    status_code = 503
    code = ErrorCode.SERVICE_UNAVAILABLE


class UpstreamError(TrendLensError):
    """Raised when the upstream trending API answers with an error or garbage."""

    status_code = 500
    code = ErrorCode.GATEWAY_ERROR

    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class UpstreamRateLimitError(UpstreamError):
    code = ErrorCode.RATE_LIMITED


class UpstreamAuthError(UpstreamError):
    pass


class UpstreamPayloadError(UpstreamError):
    """Raised when the upstream payload does not match the expected schema."""
