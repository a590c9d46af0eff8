"""
Resilient Client: Network - Timeout Manager

Gestion centralisée des timeouts d'appel.

Limites:
    - Timeout connexion: 10 secondes max
    - Timeout global d'un appel: 30 secondes max (configurable par opération)
"""

from typing import Dict, Optional

import httpx

from .interfaces import TimeoutConfig, TimeoutType


class InvalidTimeoutError(Exception):
    """Configuration timeout invalide."""

    pass


class TimeoutManager:
    """
    Timeouts par défaut et surcharges par opération.

    Les surcharges sont indexées par operation_name du descripteur, de
    sorte qu'un service peut allonger le timeout d'un upload sans
    toucher aux autres appels.
    """

    MAX_CONNECTION_TIMEOUT: float = 10.0
    MAX_REQUEST_TIMEOUT: float = 30.0

    def __init__(self, default_config: Optional[TimeoutConfig] = None) -> None:
        """
        Args:
            default_config: Configuration par défaut (optionnel)

        Raises:
            InvalidTimeoutError: Si la configuration par défaut est invalide
        """
        self._default = default_config or TimeoutConfig()
        self._operation_configs: Dict[str, TimeoutConfig] = {}

        self._validate_config(self._default)

    def _validate_config(self, config: TimeoutConfig) -> None:
        if config.connection_timeout <= 0:
            raise InvalidTimeoutError("connection_timeout must be positive")

        if config.connection_timeout > self.MAX_CONNECTION_TIMEOUT:
            raise InvalidTimeoutError(
                f"connection_timeout ({config.connection_timeout}s) exceeds "
                f"maximum ({self.MAX_CONNECTION_TIMEOUT}s)"
            )

        if config.request_timeout <= 0:
            raise InvalidTimeoutError("request_timeout must be positive")

        if config.request_timeout > self.MAX_REQUEST_TIMEOUT:
            raise InvalidTimeoutError(
                f"request_timeout ({config.request_timeout}s) exceeds "
                f"maximum ({self.MAX_REQUEST_TIMEOUT}s)"
            )

    def get_timeout(
        self, timeout_type: TimeoutType, operation_name: Optional[str] = None
    ) -> float:
        """
        Retourne le timeout configuré (spécifique à l'opération ou défaut).

        Args:
            timeout_type: Type de timeout demandé
            operation_name: Opération pour config spécifique (optionnel)

        Returns:
            Valeur du timeout en secondes
        """
        config = self._default
        if operation_name and operation_name in self._operation_configs:
            config = self._operation_configs[operation_name]

        if timeout_type == TimeoutType.CONNECTION:
            return config.connection_timeout
        elif timeout_type == TimeoutType.REQUEST:
            return config.request_timeout
        else:
            raise ValueError(f"Unknown timeout type: {timeout_type}")

    def build_httpx_timeout(self, operation_name: Optional[str] = None) -> httpx.Timeout:
        """
        Construit le httpx.Timeout d'un appel.

        Chaque phase est bornée par le timeout global, la connexion par
        le timeout de connexion.
        """
        request_timeout = self.get_timeout(TimeoutType.REQUEST, operation_name)
        connection_timeout = min(
            self.get_timeout(TimeoutType.CONNECTION, operation_name), request_timeout
        )
        return httpx.Timeout(request_timeout, connect=connection_timeout)

    def set_operation_timeout(self, operation_name: str, config: TimeoutConfig) -> None:
        """
        Configure un timeout spécifique à une opération.

        Raises:
            InvalidTimeoutError: Si configuration invalide
            ValueError: Si operation_name vide
        """
        if not operation_name or not operation_name.strip():
            raise ValueError("operation_name cannot be empty")

        self._validate_config(config)
        self._operation_configs[operation_name] = config

    def validate_timeout(self, timeout_type: TimeoutType, value: float) -> bool:
        """
        Valide qu'un timeout respecte les limites.

        Returns:
            True si valide, False sinon
        """
        if value <= 0:
            return False

        if timeout_type == TimeoutType.CONNECTION:
            return value <= self.MAX_CONNECTION_TIMEOUT
        elif timeout_type == TimeoutType.REQUEST:
            return value <= self.MAX_REQUEST_TIMEOUT
        return False
