"""
Resilient Client: Network - Interfaces

Types et interfaces du client distant:
- Descripteur de requête immuable
- Politique de retry (backoff linéaire-multiplicatif)
- Classes d'erreur et retryabilité
- Timeouts par appel (30 secondes par défaut)
- Gate de connectivité et exécuteur
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union
from urllib.parse import urlsplit

T = TypeVar("T")

Decoder = Callable[[Any], T]


class HttpMethod(Enum):
    """Méthodes HTTP supportées."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class ErrorKind(Enum):
    """Classes d'erreur possibles pour une tentative échouée."""

    NETWORK_UNAVAILABLE = "network_unavailable"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    PARSE_ERROR = "parse_error"
    AUTH_ERROR = "auth_error"
    UNKNOWN = "unknown"


RETRYABLE_KINDS = frozenset(
    {ErrorKind.NETWORK_UNAVAILABLE, ErrorKind.SERVER_ERROR, ErrorKind.UNKNOWN}
)


class ExecutionState(Enum):
    """États de la machine d'exécution d'un appel logique."""

    IDLE = "idle"
    GATING = "gating"
    DISPATCHING = "dispatching"
    CLASSIFYING = "classifying"
    RETRYING = "retrying"
    SUCCESS = "success"
    FAILED = "failed"


class ReachabilityState(Enum):
    """Signal de joignabilité réseau rapporté par la plateforme."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    UNKNOWN = "unknown"


class TimeoutType(Enum):
    """Types de timeout supportés."""

    CONNECTION = "connection"
    REQUEST = "request"


@dataclass(frozen=True)
class RequestDescriptor:
    """
    Description immuable d'un appel distant.

    Construit par le service appelant pour un seul appel logique.

    Raises:
        ValueError: Si url non absolue ou operation_name vide
    """

    method: HttpMethod
    url: str
    body: Optional[Any] = None
    operation_name: str = "Request"

    def __post_init__(self) -> None:
        if isinstance(self.method, str):
            object.__setattr__(self, "method", HttpMethod(self.method.upper()))

        parts = urlsplit(self.url or "")
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"url must be an absolute http(s) URL: {self.url!r}")

        if not self.operation_name or not self.operation_name.strip():
            raise ValueError("operation_name cannot be empty")


@dataclass(frozen=True)
class ErrorClass:
    """
    Classification d'une tentative échouée.

    Dérivée à chaque échec, jamais persistée.
    """

    kind: ErrorKind
    message: str
    status_code: Optional[int] = None

    @property
    def retryable(self) -> bool:
        """True si une nouvelle tentative a une chance raisonnable de réussir."""
        return self.kind in RETRYABLE_KINDS

    @property
    def terminal(self) -> bool:
        return not self.retryable


def linear_backoff(base_delay: float) -> Callable[[int], float]:
    """Backoff base_delay * (attempt + 1): 1s, 2s, 3s pour base_delay=1."""

    def backoff(attempt: int) -> float:
        return base_delay * (attempt + 1)

    return backoff


@dataclass(frozen=True)
class RetryPolicy:
    """
    Politique de retry, constante pour la durée de vie de l'exécuteur.

    max_retries compte les retries, pas les tentatives: un appel fait au
    plus max_retries + 1 tentatives.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    backoff_fn: Optional[Callable[[int], float]] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt: int) -> float:
        """
        Délai à attendre après l'échec de la tentative `attempt` (0-indexed).

        Returns:
            Délai en secondes
        """
        backoff = self.backoff_fn or linear_backoff(self.base_delay)
        return backoff(attempt)


@dataclass
class TimeoutConfig:
    """Configuration des timeouts d'un appel."""

    connection_timeout: float = 10.0
    request_timeout: float = 30.0


@dataclass
class ExecutionResult(Generic[T]):
    """Résultat détaillé d'un appel logique avec retry."""

    success: bool
    result: Optional[T]
    attempts: int
    total_delay: float
    last_error: Optional[BaseException] = None
    error_class: Optional[ErrorClass] = None


StateObserver = Callable[[ExecutionState, int], None]


class IConnectivityGate(ABC):
    """Interface gate de connectivité."""

    @abstractmethod
    async def is_online(self) -> bool:
        """
        Interroge l'état de joignabilité courant (pas de cache).

        Returns:
            False uniquement si la plateforme rapporte explicitement
            une déconnexion
        """
        pass


class IReachabilityProbe(ABC):
    """Source du signal de joignabilité de la plateforme."""

    @abstractmethod
    async def probe(self) -> ReachabilityState:
        """Retourne l'état de joignabilité courant."""
        pass


class IErrorClassifier(ABC):
    """Interface classification des erreurs."""

    @abstractmethod
    def classify(self, error: BaseException) -> ErrorClass:
        """
        Associe un échec brut à une classe d'erreur.

        Args:
            error: Exception levée par une tentative

        Returns:
            ErrorClass décidant la retryabilité
        """
        pass


class IRequestExecutor(ABC):
    """Interface exécuteur de requêtes avec retry."""

    @abstractmethod
    async def execute(
        self,
        descriptor: RequestDescriptor,
        decode: Optional[Decoder] = None,
    ) -> Any:
        """
        Exécute un appel et retourne le payload décodé.

        Raises:
            RemoteDataError: Erreur terminale ou retries épuisés
        """
        pass

    @abstractmethod
    async def execute_with_result(
        self,
        descriptor: RequestDescriptor,
        decode: Optional[Decoder] = None,
    ) -> ExecutionResult:
        """Exécute un appel et retourne un ExecutionResult sans lever."""
        pass


ProbeCallable = Callable[[], Union[Optional[bool], Awaitable[Optional[bool]]]]
