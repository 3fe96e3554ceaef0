"""Storage infrastructure."""

from datafetch.infrastructure.storage.markers import MarkerStore

__all__ = ['MarkerStore']
