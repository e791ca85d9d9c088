"""Web interface for the vocabulary lessons application."""

from .server import create_app

__all__ = ["create_app"]
