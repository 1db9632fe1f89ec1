"""Custom exceptions for application-specific error handling."""

from __future__ import annotations

from typing import Optional, Dict, Any


class HelpdeskException(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 400,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class NotFoundError(HelpdeskException):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "not_found", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="NOT_FOUND", details=details, status_code=404)


class ConflictError(HelpdeskException):
    """Raised when a request conflicts with existing data."""

    def __init__(self, message: str = "conflict", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="CONFLICT", details=details, status_code=409)


class BadRequestError(HelpdeskException):
    """Raised when request is invalid."""

    def __init__(self, message: str = "bad_request", *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="BAD_REQUEST", details=details, status_code=400)


class ForbiddenError(HelpdeskException):
    """Raised when the access policy denies an operation."""

    def __init__(
        self,
        message: str = "forbidden",
        *,
        reason_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        payload = dict(details or {})
        if reason_code:
            payload["reason_code"] = reason_code
        super().__init__(message, error_code="FORBIDDEN", details=payload, status_code=403)
        self.reason_code = reason_code


class RateLimitExceeded(HelpdeskException):
    """Raised when a client exceeds rate limits."""

    def __init__(self, *, retry_after: int, limit: int, window_seconds: int):
        headers = {
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Window": str(window_seconds),
        }
        super().__init__(
            "rate_limit_exceeded",
            error_code="RATE_LIMIT",
            details={"retry_after": retry_after, "limit": limit, "window_seconds": window_seconds},
            status_code=429,
            headers=headers,
        )


# ===== AI EXCEPTIONS =====


class AIException(HelpdeskException):
    """Base exception for AI-related errors."""


class AIUnavailableError(AIException):
    """Raised when the LLM backend cannot be reached."""

    def __init__(self, message: str = "AI backend unavailable"):
        super().__init__(message, error_code="AI_UNAVAILABLE", status_code=502)


class AIResponseParsingError(AIException):
    """Raised when cannot parse AI response."""

    def __init__(self, message: str = "Failed to parse AI response"):
        super().__init__(message, error_code="AI_PARSING_ERROR", status_code=502)


# ===== AUTHENTICATION EXCEPTIONS =====


class AuthenticationException(HelpdeskException):
    """Base exception for authentication errors."""


class ExpiredTokenError(AuthenticationException):
    """Raised when token has expired."""

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message, error_code="EXPIRED_TOKEN", status_code=401)
