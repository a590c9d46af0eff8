"""
Resilient Client: Logging - Interfaces

Interfaces pour logging structuré.

Chaque entrée contient: timestamp ISO 8601 UTC, level, correlation_id,
component, message. Les données sensibles (tokens, headers d'auth)
ne sont jamais écrites en clair.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class LogLevel(Enum):
    """
    Niveaux de log standard.

    Ordre de sévérité: DEBUG < INFO < WARN < ERROR < CRITICAL
    """

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @classmethod
    def get_priority(cls, level: "LogLevel") -> int:
        """Retourne la priorité du niveau (plus haut = plus sévère)."""
        priorities = {
            cls.DEBUG: 0,
            cls.INFO: 1,
            cls.WARN: 2,
            cls.ERROR: 3,
            cls.CRITICAL: 4,
        }
        return priorities.get(level, 0)

    @classmethod
    def from_name(cls, name: str) -> "LogLevel":
        """
        Résout un niveau depuis son nom (case-insensitive, WARNING accepté).

        Raises:
            ValueError: Si nom inconnu
        """
        normalized = (name or "").strip().upper()
        if normalized == "WARNING":
            normalized = "WARN"
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown log level: {name}") from None


@dataclass
class LogEntry:
    """Structure d'une entrée de log avec champs obligatoires."""

    timestamp: str  # ISO 8601 UTC
    level: LogLevel
    correlation_id: str
    component: str
    message: str
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convertit en dictionnaire."""
        result = {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "correlation_id": self.correlation_id,
            "component": self.component,
            "message": self.message,
        }
        if self.extra:
            result["extra"] = self.extra
        return result

    def to_json(self) -> str:
        """Convertit en JSON structuré."""
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)


@dataclass
class LogConfig:
    """Configuration du logger structuré."""

    min_level: LogLevel = LogLevel.INFO
    include_extra: bool = True
    mask_sensitive: bool = True
    default_correlation_id: Optional[str] = None
    max_buffered_entries: int = 1000


class IStructuredLogger(ABC):
    """
    Interface logger structuré.

    Les composants du client reçoivent un logger par injection; les
    tests en fournissent un sans output pour inspecter les entrées.
    """

    @abstractmethod
    def log(
        self,
        level: LogLevel,
        message: str,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> Optional[LogEntry]:
        """
        Log structuré JSON.

        Args:
            level: Niveau de log
            message: Message à logger
            correlation_id: ID de corrélation (généré si absent)
            **extra: Données supplémentaires, masquées avant écriture

        Returns:
            LogEntry créé ou None si filtré par niveau
        """
        pass

    @abstractmethod
    def with_context(
        self, correlation_id: Optional[str] = None, **context: Any
    ) -> "ContextualLogger":
        """
        Logger lié à un appel logique: même correlation_id et mêmes
        champs de contexte pour toutes ses entrées.
        """
        pass

    @abstractmethod
    def get_entries(self) -> List[LogEntry]:
        """Retourne les entrées de log capturées."""
        pass


class ISensitiveMasker(ABC):
    """Interface masquage données sensibles."""

    SENSITIVE_PATTERNS: List[str] = [
        "password",
        "passwd",
        "token",
        "secret",
        "api_key",
        "apikey",
        "private_key",
        "credential",
        "authorization",
        "bearer",
        "jwt",
        "session_id",
        "cookie",
    ]

    MASK_VALUE: str = "***MASKED***"

    @abstractmethod
    def mask(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Masque données sensibles dans un dictionnaire.

        Args:
            data: Dictionnaire à masquer

        Returns:
            Copie avec données sensibles masquées
        """
        pass

    @abstractmethod
    def mask_text(self, text: str) -> str:
        """
        Masque les secrets embarqués dans une chaîne (bearer tokens,
        paramètres de query sensibles).
        """
        pass

    @abstractmethod
    def is_sensitive_key(self, key: str) -> bool:
        """
        Vérifie si clé est sensible.

        Args:
            key: Nom de la clé

        Returns:
            True si clé contient pattern sensible
        """
        pass

    @abstractmethod
    def add_pattern(self, pattern: str) -> None:
        """
        Ajoute pattern sensible personnalisé.

        Args:
            pattern: Pattern à ajouter
        """
        pass
