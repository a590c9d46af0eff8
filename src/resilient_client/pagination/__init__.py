"""
Resilient Client: Pagination

Filtres et pages des endpoints de liste:
- Query string canonique depuis un filtre clairsemé
- Décodage de l'enveloppe paginée
"""

from .interfaces import (
    FilterMap,
    FilterValue,
    PaginatedResult,
    # Exceptions
    DecodeError,
)
from .query_builder import build_query, build_url, stringify_value
from .page_decoder import decode_page, page_decoder

__all__ = [
    "FilterMap",
    "FilterValue",
    "PaginatedResult",
    "build_query",
    "build_url",
    "stringify_value",
    "decode_page",
    "page_decoder",
    "DecodeError",
]
