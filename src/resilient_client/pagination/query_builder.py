"""
Resilient Client: Pagination - Query Builder

Construction de la query string canonique d'un filtre clairsemé:
- ordre d'insertion conservé (pas de tri)
- valeurs None omises
- scalaires convertis en texte (true/false, 20 plutôt que 20.0)
- encodage formulaire (espace → +)
"""

from enum import Enum
from typing import List, Optional, Tuple
from urllib.parse import urlencode

from .interfaces import FilterMap, FilterValue


def stringify_value(value: FilterValue) -> str:
    """
    Convertit un scalaire de filtre en texte.

    Raises:
        TypeError: Si la valeur n'est pas un scalaire
    """
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (str, int, float)):
        return str(value)
    raise TypeError(f"Filter values must be scalars, got {type(value).__name__}")


def build_query(filter_map: Optional[FilterMap] = None) -> str:
    """
    Construit la query string d'un filtre.

    Example:
        build_query({"a": 1, "b": None, "c": "x"})  # "a=1&c=x"

    Args:
        filter_map: Filtre clé → scalaire (None = absent)

    Returns:
        Query string sans "?" initial, vide si aucun filtre
    """
    if not filter_map:
        return ""

    pairs: List[Tuple[str, str]] = []
    for key, value in filter_map.items():
        if value is None:
            continue
        pairs.append((str(key), stringify_value(value)))

    return urlencode(pairs)


def build_url(base_url: str, path: str = "", filter_map: Optional[FilterMap] = None) -> str:
    """
    Joint base_url et path, puis ajoute la query si non vide.

    Example:
        build_url("https://api.example.com/v1", "/listings", {"page": 2})
        # "https://api.example.com/v1/listings?page=2"
    """
    url = base_url.rstrip("/")
    if path:
        url = f"{url}/{path.lstrip('/')}"

    query = build_query(filter_map)
    if query:
        separator = "&" if "?" in url else "?"
        url = f"{url}{separator}{query}"
    return url
