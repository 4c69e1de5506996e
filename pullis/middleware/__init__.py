"""HTTP middleware."""

from pullis.middleware.logging import RequestLoggingMiddleware

__all__ = ["RequestLoggingMiddleware"]
