"""Dataset catalog."""

from datafetch.infrastructure.catalog.loader import CatalogLoader, DEFAULT_CATALOG

__all__ = ["CatalogLoader", "DEFAULT_CATALOG"]
