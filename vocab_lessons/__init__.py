"""Vocabulary lesson authoring and replay."""

__version__ = "0.1.0"
