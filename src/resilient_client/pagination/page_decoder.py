"""
Resilient Client: Pagination - Page Decoder

Décodage d'une enveloppe paginée en PaginatedResult typé.

Formats acceptés:
    {"data": [...], "total", "page", "limit", "totalPages", "hasNext", "hasPrev"}
    {"data": [...], "pagination": {"page", "limit", "total", "total_pages",
                                   "has_next", "has_previous"}}
"""

from typing import Any, Callable, Dict, Mapping, Optional

from .interfaces import (
    ENVELOPE_FIELDS,
    NESTED_ENVELOPE_FIELDS,
    DecodeError,
    PaginatedResult,
)


def decode_page(
    raw: Any,
    item_decoder: Optional[Callable[[Any], Any]] = None,
) -> PaginatedResult:
    """
    Décode une enveloppe paginée.

    Chaque élément de raw["data"] passe par item_decoder, dans l'ordre;
    les champs de l'enveloppe sont transmis sans conversion.

    Args:
        raw: JSON décodé de la réponse
        item_decoder: Décodeur d'un élément (défaut: identité)

    Returns:
        PaginatedResult

    Raises:
        DecodeError: Enveloppe invalide, champ manquant ou élément rejeté
    """
    if not isinstance(raw, Mapping):
        raise DecodeError(f"Page envelope must be an object, got {type(raw).__name__}")

    data = raw.get("data")
    if not isinstance(data, list):
        raise DecodeError("Page envelope field 'data' must be a list")

    envelope = _read_envelope(raw)

    decoder = item_decoder or (lambda item: item)
    items = []
    for index, item in enumerate(data):
        try:
            items.append(decoder(item))
        except Exception as e:
            raise DecodeError(f"Item {index} failed to decode: {e}", index=index) from e

    return PaginatedResult(data=items, **envelope)


def page_decoder(
    item_decoder: Optional[Callable[[Any], Any]] = None,
) -> Callable[[Any], PaginatedResult]:
    """
    Retourne un décodeur de page utilisable comme `decode` de l'exécuteur.

    Example:
        page = await executor.execute(descriptor, page_decoder(Listing.from_dict))
    """

    def decode(raw: Any) -> PaginatedResult:
        return decode_page(raw, item_decoder)

    return decode


def _read_envelope(raw: Mapping) -> Dict[str, Any]:
    nested = raw.get("pagination")
    if isinstance(nested, Mapping):
        source, fields = nested, NESTED_ENVELOPE_FIELDS
    else:
        source, fields = raw, ENVELOPE_FIELDS

    missing = [name for name in fields if name not in source]
    if missing:
        raise DecodeError(f"Page envelope missing field(s): {', '.join(missing)}")

    return {attr: source[name] for name, attr in fields.items()}
