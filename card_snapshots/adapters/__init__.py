"""Adapters for the card data layer."""

from .cards import CardSource, HttpCardSource, InMemoryCardSource

__all__ = ["CardSource", "HttpCardSource", "InMemoryCardSource"]
