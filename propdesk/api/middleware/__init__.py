"""Middleware package."""

from propdesk.api.middleware.request_id import RequestIdMiddleware
from propdesk.api.middleware.logging import LoggingMiddleware

__all__ = [
    "RequestIdMiddleware",
    "LoggingMiddleware",
]
