"""
Resilient Client: Network - Connectivity Gate

Vérification de la joignabilité réseau avant chaque tentative.

Le signal de la plateforme est tri-état. Seul un état DISCONNECTED
explicite ferme le gate; UNKNOWN ou un échec de la sonde laissent
passer l'appel (comportement optimiste).
"""

import asyncio
import errno
import inspect
import socket
from typing import Optional

import psutil

from ..logging import StructuredLogger
from .interfaces import (
    IConnectivityGate,
    IReachabilityProbe,
    ProbeCallable,
    ReachabilityState,
)

UNREACHABLE_ERRNOS = frozenset({errno.ENETUNREACH, errno.EHOSTUNREACH, errno.ENETDOWN})


class InterfaceReachabilityProbe(IReachabilityProbe):
    """
    Sonde basée sur l'état des interfaces réseau de la machine (psutil).

    DISCONNECTED si aucune interface hors loopback n'est active.
    """

    async def probe(self) -> ReachabilityState:
        stats = await asyncio.to_thread(psutil.net_if_stats)
        if not stats:
            return ReachabilityState.UNKNOWN

        for name, nic in stats.items():
            if self._is_loopback(name, nic):
                continue
            if nic.isup:
                return ReachabilityState.CONNECTED

        return ReachabilityState.DISCONNECTED

    @staticmethod
    def _is_loopback(name: str, nic: object) -> bool:
        flags = getattr(nic, "flags", "") or ""
        if "loopback" in flags.split(","):
            return True
        lowered = name.lower()
        return lowered == "lo" or lowered.startswith("lo0") or "loopback" in lowered


class SocketReachabilityProbe(IReachabilityProbe):
    """
    Sonde par connexion TCP vers un hôte de référence.

    Un refus de connexion prouve qu'un chemin réseau existe; seules les
    erreurs "réseau/hôte injoignable" et l'échec DNS sont des
    déconnexions explicites. Un timeout reste UNKNOWN.
    """

    def __init__(self, host: str = "1.1.1.1", port: int = 53, timeout: float = 3.0) -> None:
        """
        Args:
            host: Hôte de référence
            port: Port TCP
            timeout: Délai max de la sonde en secondes
        """
        if not host:
            raise ValueError("host cannot be empty")
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        self.host = host
        self.port = port
        self.timeout = timeout

    async def probe(self) -> ReachabilityState:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            return ReachabilityState.UNKNOWN
        except socket.gaierror:
            return ReachabilityState.DISCONNECTED
        except ConnectionRefusedError:
            return ReachabilityState.CONNECTED
        except OSError as e:
            if e.errno in UNREACHABLE_ERRNOS:
                return ReachabilityState.DISCONNECTED
            return ReachabilityState.UNKNOWN

        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass  # Fermeture best-effort, la sonde a déjà réussi
        return ReachabilityState.CONNECTED


class CallableReachabilityProbe(IReachabilityProbe):
    """
    Sonde adossée à un callable (sync ou async) retournant True/False/None.

    None signifie "état inconnu", à la manière d'un isConnected nullable
    des APIs plateforme.
    """

    def __init__(self, func: ProbeCallable) -> None:
        self._func = func

    async def probe(self) -> ReachabilityState:
        value = self._func()
        if inspect.isawaitable(value):
            value = await value

        if value is None:
            return ReachabilityState.UNKNOWN
        return ReachabilityState.CONNECTED if value else ReachabilityState.DISCONNECTED


class StaticReachabilityProbe(IReachabilityProbe):
    """Sonde à état fixe (environnements sans signal plateforme, tests)."""

    def __init__(self, state: ReachabilityState = ReachabilityState.CONNECTED) -> None:
        self.state = state

    async def probe(self) -> ReachabilityState:
        return self.state


class ConnectivityGate(IConnectivityGate):
    """
    Gate de connectivité interrogé avant chaque tentative.

    Aucune mise en cache: chaque appel ré-interroge la sonde, la
    connectivité pouvant changer entre deux retries.

    Example:
        gate = ConnectivityGate()
        if not await gate.is_online():
            ...
    """

    def __init__(
        self,
        probe: Optional[IReachabilityProbe] = None,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        """
        Args:
            probe: Source du signal (défaut: interfaces réseau via psutil)
            logger: Logger structuré
        """
        self._probe = probe or InterfaceReachabilityProbe()
        self._logger = logger or StructuredLogger("connectivity-gate")

    @property
    def probe(self) -> IReachabilityProbe:
        return self._probe

    async def current_state(self) -> ReachabilityState:
        """
        Retourne l'état brut rapporté par la sonde.

        Un échec de la sonde est rapporté comme UNKNOWN.
        """
        try:
            return await self._probe.probe()
        except Exception as e:
            self._logger.warn(
                "Reachability probe failed, assuming online",
                probe=type(self._probe).__name__,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ReachabilityState.UNKNOWN

    async def is_online(self) -> bool:
        """
        Returns:
            False uniquement si la sonde rapporte DISCONNECTED
        """
        state = await self.current_state()
        if state == ReachabilityState.DISCONNECTED:
            self._logger.info("Device reported offline", probe=type(self._probe).__name__)
            return False
        return True
