"""
Resilient Client - Client Factory
Construit une seule fois les composants du client et les relie
(injection de dépendances explicite, pas de singletons cachés).
"""

from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from ..auth import AuthTokenProvider, InMemoryTokenStore, ITokenStore, JsonFileTokenStore
from ..logging import LogConfig, LogLevel, StructuredLogger, stderr_output
from ..network import (
    ConnectivityGate,
    ErrorClassifier,
    IReachabilityProbe,
    InterfaceReachabilityProbe,
    ReachabilityState,
    RetryingRequestExecutor,
    RetryPolicy,
    SocketReachabilityProbe,
    StaticReachabilityProbe,
    TimeoutConfig,
    TimeoutManager,
)
from ..pagination import FilterMap, build_url
from .interfaces import ClientConfig, ConnectivitySettings


@dataclass
class RemoteClient:
    """Composants du client distant, partagés par les services de ressources."""

    config: ClientConfig
    gate: ConnectivityGate
    token_provider: AuthTokenProvider
    classifier: ErrorClassifier
    executor: RetryingRequestExecutor

    def url(self, path: str = "", filter_map: Optional[FilterMap] = None) -> str:
        """URL absolue d'un endpoint sous base_url, avec query éventuelle."""
        return build_url(self.config.base_url, path, filter_map)

    async def aclose(self) -> None:
        await self.executor.aclose()

    async def __aenter__(self) -> "RemoteClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def build_probe(settings: ConnectivitySettings) -> IReachabilityProbe:
    """
    Construit la sonde de joignabilité configurée.

    Raises:
        ValueError: Si probe inconnue
    """
    if settings.probe == "interfaces":
        return InterfaceReachabilityProbe()
    if settings.probe == "socket":
        return SocketReachabilityProbe(settings.host, settings.port, settings.timeout)
    if settings.probe == "always_online":
        return StaticReachabilityProbe(ReachabilityState.CONNECTED)
    raise ValueError(f"Unknown connectivity probe: {settings.probe}")


def build_timeout_manager(config: ClientConfig) -> TimeoutManager:
    manager = TimeoutManager(
        TimeoutConfig(
            connection_timeout=config.timeouts.connection_timeout,
            request_timeout=config.timeouts.request_timeout,
        )
    )
    for operation_name, values in config.timeouts.operations.items():
        manager.set_operation_timeout(
            operation_name,
            TimeoutConfig(
                connection_timeout=values.get(
                    "connection_timeout", config.timeouts.connection_timeout
                ),
                request_timeout=values.get("request_timeout", config.timeouts.request_timeout),
            ),
        )
    return manager


def build_client(
    config: ClientConfig,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
    probe: Optional[IReachabilityProbe] = None,
    token_store: Optional[ITokenStore] = None,
    output_handler: Optional[Callable[[str], None]] = stderr_output,
    correlation_id: Optional[str] = None,
) -> RemoteClient:
    """
    Construit le client complet depuis la configuration.

    Les paramètres optionnels remplacent les composants par défaut
    (faux transport, fausse sonde, stockage en mémoire).

    Args:
        config: Configuration validée
        http_client: Client httpx injecté
        probe: Sonde de joignabilité injectée
        token_store: Stockage du token injecté
        output_handler: Sortie des logs JSON
        correlation_id: ID de corrélation de l'appelant (ex: requête
            entrante); sinon un ID est généré par appel logique

    Returns:
        RemoteClient prêt à être passé aux services de ressources
    """
    log_config = LogConfig(min_level=LogLevel.from_name(config.logging.min_level))

    def logger(name: str) -> StructuredLogger:
        component_logger = StructuredLogger(
            name, config=log_config, output_handler=output_handler
        )
        if correlation_id:
            component_logger.set_default_correlation(correlation_id)
        return component_logger

    if token_store is None:
        if config.auth.token_store_path:
            token_store = JsonFileTokenStore(config.auth.token_store_path)
        else:
            token_store = InMemoryTokenStore()

    gate = ConnectivityGate(
        probe=probe or build_probe(config.connectivity),
        logger=logger("connectivity-gate"),
    )
    token_provider = AuthTokenProvider(
        token_store,
        token_key=config.auth.token_key,
        logger=logger("auth-token-provider"),
    )
    classifier = ErrorClassifier()
    executor = RetryingRequestExecutor(
        gate=gate,
        token_provider=token_provider,
        classifier=classifier,
        policy=RetryPolicy(
            max_retries=config.retry.max_retries,
            base_delay=config.retry.base_delay,
        ),
        timeout_manager=build_timeout_manager(config),
        client=http_client,
        send_empty_bearer=config.auth.send_empty_bearer,
        logger=logger("request-executor"),
    )

    return RemoteClient(
        config=config,
        gate=gate,
        token_provider=token_provider,
        classifier=classifier,
        executor=executor,
    )
