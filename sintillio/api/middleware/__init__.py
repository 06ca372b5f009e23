"""HTTP middleware."""

from sintillio.api.middleware.timeout import TimeoutMiddleware

__all__ = ["TimeoutMiddleware"]
