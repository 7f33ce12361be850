"""Application layer: configuration, HTTP surface and CLI."""

from .server import create_app
from .settings import Settings

__all__ = ["Settings", "create_app"]
