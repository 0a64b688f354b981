"""API route handlers."""

from api.routes import health, records

__all__ = ["health", "records"]
