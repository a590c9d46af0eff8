"""
Resilient Client: Pagination - Interfaces

Filtres clairsemés pour les endpoints de liste et enveloppe paginée
{data, total, page, limit, totalPages, hasNext, hasPrev}.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Mapping, Optional, TypeVar, Union

T = TypeVar("T")

FilterValue = Optional[Union[str, int, float, bool]]
FilterMap = Mapping[str, FilterValue]

# Champs de l'enveloppe plate → attribut de PaginatedResult
ENVELOPE_FIELDS: Dict[str, str] = {
    "total": "total",
    "page": "page",
    "limit": "limit",
    "totalPages": "total_pages",
    "hasNext": "has_next",
    "hasPrev": "has_prev",
}

# Variante imbriquée {"data": [...], "pagination": {...}}
NESTED_ENVELOPE_FIELDS: Dict[str, str] = {
    "total": "total",
    "page": "page",
    "limit": "limit",
    "total_pages": "total_pages",
    "has_next": "has_next",
    "has_previous": "has_prev",
}


class DecodeError(ValueError):
    """Enveloppe paginée ou élément non décodable."""

    def __init__(self, message: str, index: Optional[int] = None) -> None:
        self.index = index
        super().__init__(message)


@dataclass
class PaginatedResult(Generic[T]):
    """
    Page décodée d'un endpoint de liste.

    Les champs de l'enveloppe sont transmis tels quels: le client ne
    vérifie pas len(data) <= limit ni has_next == (page < total_pages).
    """

    data: List[T] = field(default_factory=list)
    total: Any = 0
    page: Any = 1
    limit: Any = 0
    total_pages: Any = 0
    has_next: Any = False
    has_prev: Any = False

    def __len__(self) -> int:
        return len(self.data)

    def __iter__(self):
        return iter(self.data)

    def to_dict(self) -> Dict[str, Any]:
        """Ré-encode au format de l'enveloppe plate."""
        result: Dict[str, Any] = {"data": list(self.data)}
        for wire_name, attr in ENVELOPE_FIELDS.items():
            result[wire_name] = getattr(self, attr)
        return result
