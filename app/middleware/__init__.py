"""ASGI middleware for the charts API."""

from .request_context import REQUEST_ID_HEADER, RequestContextMiddleware

__all__ = ["REQUEST_ID_HEADER", "RequestContextMiddleware"]
