"""
Resilient Client: Logging - Structured Logger

Logger JSON structuré avec champs obligatoires et masquage des
données sensibles.
"""

import sys
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List, Optional

from .interfaces import (
    ISensitiveMasker,
    IStructuredLogger,
    LogConfig,
    LogEntry,
    LogLevel,
)
from .sensitive_masker import SensitiveMasker


class MissingRequiredFieldError(Exception):
    """Champ obligatoire manquant."""

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        super().__init__(f"Required field missing: {field_name}")


def stderr_output(line: str) -> None:
    """Handler d'output par défaut: une ligne JSON sur stderr."""
    sys.stderr.write(line + "\n")


class StructuredLogger(IStructuredLogger):
    """
    Logger JSON structuré.

    Les entrées sont conservées dans un buffer borné (inspection, tests)
    et écrites via l'output handler.

    Example:
        logger = StructuredLogger("request-executor")
        logger.info("Dispatching request", operation="Fetch listings")
    """

    def __init__(
        self,
        name: str,
        config: Optional[LogConfig] = None,
        masker: Optional[ISensitiveMasker] = None,
        output_handler: Optional[Callable[[str], None]] = stderr_output,
    ) -> None:
        """
        Args:
            name: Nom du composant (identifiant du module)
            config: Configuration optionnelle
            masker: Masker pour données sensibles
            output_handler: Handler d'output, None pour bufferiser seulement

        Raises:
            ValueError: Si name vide
        """
        if not name or not name.strip():
            raise ValueError("Logger name cannot be empty")

        self._name = name.strip()
        self._config = config or LogConfig()
        self._masker = masker or SensitiveMasker()
        self._output_handler = output_handler
        self._entries: Deque[LogEntry] = deque(
            maxlen=self._config.max_buffered_entries
        )
        self._default_correlation_id: Optional[str] = self._config.default_correlation_id

    @property
    def name(self) -> str:
        """Retourne le nom du logger."""
        return self._name

    @property
    def config(self) -> LogConfig:
        """Retourne la configuration."""
        return self._config

    def set_default_correlation(self, correlation_id: str) -> None:
        """Définit correlation_id par défaut."""
        self._default_correlation_id = correlation_id

    def log(
        self,
        level: LogLevel,
        message: str,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> Optional[LogEntry]:
        """
        Crée une entrée de log structurée.

        Processus:
            1. Vérifie niveau >= min_level
            2. Résout correlation_id (défaut ou UUID v4)
            3. Masque données sensibles dans extra
            4. Crée LogEntry et l'écrit en JSON

        Args:
            level: Niveau de log
            message: Message à logger
            correlation_id: ID de corrélation (ou default)
            **extra: Données supplémentaires

        Returns:
            LogEntry créé ou None si filtré

        Raises:
            MissingRequiredFieldError: Si message vide
        """
        if not self._should_log(level):
            return None

        if not message:
            raise MissingRequiredFieldError("message")

        resolved_correlation = (
            correlation_id or self._default_correlation_id or self._generate_correlation_id()
        )

        masked_extra = {}
        if extra and self._config.include_extra:
            if self._config.mask_sensitive:
                masked_extra = self._masker.mask(dict(extra))
            else:
                masked_extra = dict(extra)

        entry = LogEntry(
            timestamp=self._generate_timestamp(),
            level=level,
            correlation_id=resolved_correlation,
            component=self._name,
            message=message,
            extra=masked_extra,
        )

        self._entries.append(entry)

        if self._output_handler:
            self._output_handler(entry.to_json())

        return entry

    def _generate_timestamp(self) -> str:
        """
        Génère timestamp ISO 8601 UTC avec millisecondes.

        Format: 2024-12-04T14:30:00.123Z
        """
        now = datetime.now(timezone.utc)
        return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"

    def _generate_correlation_id(self) -> str:
        return str(uuid.uuid4())

    def _should_log(self, level: LogLevel) -> bool:
        return LogLevel.get_priority(level) >= LogLevel.get_priority(
            self._config.min_level
        )

    def debug(self, message: str, **extra: Any) -> Optional[LogEntry]:
        """Log niveau DEBUG."""
        return self.log(LogLevel.DEBUG, message, **extra)

    def info(self, message: str, **extra: Any) -> Optional[LogEntry]:
        """Log niveau INFO."""
        return self.log(LogLevel.INFO, message, **extra)

    def warn(self, message: str, **extra: Any) -> Optional[LogEntry]:
        """Log niveau WARN."""
        return self.log(LogLevel.WARN, message, **extra)

    def error(self, message: str, **extra: Any) -> Optional[LogEntry]:
        """Log niveau ERROR."""
        return self.log(LogLevel.ERROR, message, **extra)

    def critical(self, message: str, **extra: Any) -> Optional[LogEntry]:
        """Log niveau CRITICAL."""
        return self.log(LogLevel.CRITICAL, message, **extra)

    def get_entries(self) -> List[LogEntry]:
        """
        Retourne les entrées de log capturées.

        Returns:
            Liste des LogEntry (les plus anciennes sont évincées au-delà
            de max_buffered_entries)
        """
        return list(self._entries)

    def clear_entries(self) -> None:
        """Efface les entrées capturées."""
        self._entries.clear()

    def get_entries_by_level(self, level: LogLevel) -> List[LogEntry]:
        """Filtre les entrées par niveau."""
        return [e for e in self._entries if e.level == level]

    def get_entries_by_correlation(self, correlation_id: str) -> List[LogEntry]:
        """Filtre les entrées par correlation_id."""
        return [e for e in self._entries if e.correlation_id == correlation_id]

    def with_context(
        self, correlation_id: Optional[str] = None, **context: Any
    ) -> "ContextualLogger":
        """
        Crée un logger lié à un appel logique.

        Un correlation_id est généré si aucun n'est fourni ni défini par
        défaut, de sorte que toutes les entrées d'un même appel partagent
        le même identifiant.

        Example:
            log = logger.with_context(operation="Fetch listings")
            log.warn("Retryable failure, retrying", attempt=1)
            # extra: {"operation": "Fetch listings", "attempt": 1}
        """
        return ContextualLogger(
            self,
            correlation_id=(
                correlation_id
                or self._default_correlation_id
                or self._generate_correlation_id()
            ),
            context=context,
        )


class ContextualLogger:
    """
    Logger avec correlation_id et champs de contexte pré-définis.

    Les champs passés à chaque appel complètent (et surchargent) le
    contexte lié.
    """

    def __init__(
        self,
        logger: StructuredLogger,
        correlation_id: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._logger = logger
        self._correlation_id = correlation_id
        self._context: Dict[str, Any] = dict(context or {})

    @property
    def correlation_id(self) -> str:
        return self._correlation_id

    @property
    def context(self) -> Dict[str, Any]:
        return dict(self._context)

    def bind(self, **context: Any) -> "ContextualLogger":
        """Retourne un logger avec le même correlation_id et un contexte étendu."""
        return ContextualLogger(
            self._logger, self._correlation_id, {**self._context, **context}
        )

    def log(self, level: LogLevel, message: str, **extra: Any) -> Optional[LogEntry]:
        return self._logger.log(
            level, message, correlation_id=self._correlation_id, **{**self._context, **extra}
        )

    def debug(self, message: str, **extra: Any) -> Optional[LogEntry]:
        return self.log(LogLevel.DEBUG, message, **extra)

    def info(self, message: str, **extra: Any) -> Optional[LogEntry]:
        return self.log(LogLevel.INFO, message, **extra)

    def warn(self, message: str, **extra: Any) -> Optional[LogEntry]:
        return self.log(LogLevel.WARN, message, **extra)

    def error(self, message: str, **extra: Any) -> Optional[LogEntry]:
        return self.log(LogLevel.ERROR, message, **extra)
