"""
Resilient Client - Core Interfaces
Configuration du client et validation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel


# ══════════════════════════════════════════════════════════════════════════════
# TYPES
# ══════════════════════════════════════════════════════════════════════════════


class ValidationSeverity(Enum):
    BLOCKING = "blocking"
    WARNING = "warning"
    INFO = "info"


class ValidationIssue(BaseModel):
    """Problème détecté dans une configuration."""

    rule_id: str
    message: str
    location: str
    value: Optional[str] = None
    severity: ValidationSeverity = ValidationSeverity.BLOCKING


class ValidationResult(BaseModel):
    """Résultat de validation d'une configuration."""

    valid: bool
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
    checked_at: datetime


@dataclass
class RetrySettings:
    max_retries: int = 3
    base_delay: float = 1.0


@dataclass
class TimeoutSettings:
    connection_timeout: float = 10.0
    request_timeout: float = 30.0
    # operation_name → {"connection_timeout": ..., "request_timeout": ...}
    operations: Dict[str, Dict[str, float]] = field(default_factory=dict)


@dataclass
class AuthSettings:
    token_key: str = "auth_token"
    token_store_path: Optional[str] = None  # None = stockage en mémoire
    send_empty_bearer: bool = False


@dataclass
class ConnectivitySettings:
    probe: str = "interfaces"  # interfaces | socket | always_online
    host: str = "1.1.1.1"
    port: int = 53
    timeout: float = 3.0


@dataclass
class LoggingSettings:
    min_level: str = "INFO"


@dataclass
class ClientConfig:
    """Configuration complète du client distant."""

    base_url: str
    retry: RetrySettings = field(default_factory=RetrySettings)
    timeouts: TimeoutSettings = field(default_factory=TimeoutSettings)
    auth: AuthSettings = field(default_factory=AuthSettings)
    connectivity: ConnectivitySettings = field(default_factory=ConnectivitySettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        """
        Construit la configuration depuis un dict déjà validé.

        Les sections absentes prennent leurs valeurs par défaut.
        """
        timeouts = dict(data.get("timeouts") or {})
        operations = {
            str(name): dict(values or {})
            for name, values in (timeouts.pop("operations", None) or {}).items()
        }
        return cls(
            base_url=str(data["base_url"]).rstrip("/"),
            retry=RetrySettings(**(data.get("retry") or {})),
            timeouts=TimeoutSettings(operations=operations, **timeouts),
            auth=AuthSettings(**(data.get("auth") or {})),
            connectivity=ConnectivitySettings(**(data.get("connectivity") or {})),
            logging=LoggingSettings(**(data.get("logging") or {})),
        )


# ══════════════════════════════════════════════════════════════════════════════
# INTERFACES
# ══════════════════════════════════════════════════════════════════════════════


class IConfigLoader(ABC):
    """Charge la configuration du client depuis un fichier."""

    @abstractmethod
    async def load(self, profile: str) -> dict[str, Any]:
        """
        Charge la config brute d'un profil.

        Raises:
            ConfigIntegrityError: Si fichier absent ou illisible
        """
        pass


class IConfigValidator(ABC):
    """Valide une configuration brute."""

    @abstractmethod
    def validate(self, config: dict[str, Any]) -> ValidationResult:
        """
        Valide une config contre toutes les règles.
        Retourne TOUTES les erreurs (pas fail-fast).
        """
        pass

    @abstractmethod
    def validate_rule(self, rule_id: str, config: dict[str, Any]) -> Optional[ValidationIssue]:
        """Valide UNE règle spécifique."""
        pass
