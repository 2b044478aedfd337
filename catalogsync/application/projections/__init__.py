"""Read side of the catalog projection.

This package provides:
- Projection: Base class routing typed queries to @handles_query methods
- CatalogQueryService: List-all, list-by-owner and search over the store
"""

from .catalog import CatalogQueryService
from .projection import Projection

__all__ = [
    "CatalogQueryService",
    "Projection",
]
