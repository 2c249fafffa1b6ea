"""HTTP boundary for the rewrite pipeline."""

from .app import create_app

__all__ = ["create_app"]
