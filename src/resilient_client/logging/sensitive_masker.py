"""
Resilient Client: Logging - Sensitive Masker

Masquage automatique des données sensibles avant écriture des logs:
- valeurs des clés sensibles (headers Authorization, tokens, secrets)
- bearer tokens et paramètres de query sensibles dans le texte libre
  (URLs, messages d'erreur)
"""

import re
from typing import Any, Dict, List, Optional

from .interfaces import ISensitiveMasker

BEARER_PATTERN = re.compile(r"\b(bearer)\s+[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE)
QUERY_PARAM_PATTERN = re.compile(r"([?&])([^=&#\s]+)=([^&#\s]*)")


class SensitiveMasker(ISensitiveMasker):
    """
    Masquage récursif des données sensibles.

    Example:
        masker = SensitiveMasker()
        masker.mask({"headers": {"Authorization": "Bearer abc"}})
        # {"headers": {"Authorization": "***MASKED***"}}
        masker.mask({"url": "https://api.example.com/files?token=abc&id=1"})
        # {"url": "https://api.example.com/files?token=***MASKED***&id=1"}
    """

    def __init__(self, additional_patterns: Optional[List[str]] = None) -> None:
        """
        Args:
            additional_patterns: Noms de clés supplémentaires à masquer
        """
        self._patterns: List[str] = list(self.SENSITIVE_PATTERNS)
        for pattern in additional_patterns or []:
            if pattern and pattern.strip():
                self.add_pattern(pattern)

    @property
    def patterns(self) -> List[str]:
        return list(self._patterns)

    def mask(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Retourne une copie de data où rien de sensible n'apparaît en clair.

        Les dicts et listes imbriqués sont parcourus; les chaînes sont
        passées par mask_text.
        """
        if not isinstance(data, dict):
            return data

        return {
            key: self.MASK_VALUE if self.is_sensitive_key(str(key)) else self._mask_value(value)
            for key, value in data.items()
        }

    def _mask_value(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self.mask(value)
        if isinstance(value, (list, tuple)):
            return [self._mask_value(item) for item in value]
        if isinstance(value, str):
            return self.mask_text(value)
        return value

    def mask_text(self, text: str) -> str:
        """
        Masque les secrets embarqués dans du texte libre.

        Example:
            mask_text("Authorization: Bearer eyJhbGciOi...")
            # "Authorization: Bearer ***MASKED***"
        """
        if not text:
            return text

        masked = BEARER_PATTERN.sub(lambda m: f"{m.group(1)} {self.MASK_VALUE}", text)
        return QUERY_PARAM_PATTERN.sub(self._mask_query_param, masked)

    def _mask_query_param(self, match: "re.Match[str]") -> str:
        separator, name, _ = match.groups()
        if self.is_sensitive_key(name):
            return f"{separator}{name}={self.MASK_VALUE}"
        return match.group(0)

    def is_sensitive_key(self, key: str) -> bool:
        """True si la clé contient un pattern sensible (case-insensitive)."""
        if not key:
            return False

        key_lower = key.lower()
        return any(pattern in key_lower for pattern in self._patterns)

    def add_pattern(self, pattern: str) -> None:
        """
        Raises:
            ValueError: Si pattern vide
        """
        if not pattern or not pattern.strip():
            raise ValueError("Pattern cannot be empty")

        pattern_lower = pattern.lower().strip()
        if pattern_lower not in self._patterns:
            self._patterns.append(pattern_lower)
