"""HTTP API for lava."""

from .app import create_app

__all__ = ["create_app"]
