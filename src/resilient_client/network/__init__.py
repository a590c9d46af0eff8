"""
Resilient Client: Network

Cœur du client distant:
- Gate de connectivité interrogé avant chaque tentative
- Classification des échecs (retryable / terminal)
- Exécuteur avec retry et backoff base_delay * (attempt + 1)
- Timeout global par appel (30 secondes par défaut)
"""

from .interfaces import (
    # Enums
    HttpMethod,
    ErrorKind,
    ExecutionState,
    ReachabilityState,
    TimeoutType,
    # Data classes
    RequestDescriptor,
    ErrorClass,
    RetryPolicy,
    TimeoutConfig,
    ExecutionResult,
    # Helpers
    linear_backoff,
    # Interfaces
    IConnectivityGate,
    IReachabilityProbe,
    IErrorClassifier,
    IRequestExecutor,
)
from .errors import (
    RemoteDataError,
    NetworkUnavailableError,
    ClientError,
    AuthError,
    ServerError,
    ParseError,
    UnknownRemoteError,
    RetriesExhaustedError,
    HttpStatusError,
    ResponseParseError,
    RequestPreparationError,
    RequestTimeoutError,
    error_for,
)
from .error_classifier import ErrorClassifier, extract_server_message
from .timeout_manager import TimeoutManager, InvalidTimeoutError
from .connectivity_gate import (
    ConnectivityGate,
    InterfaceReachabilityProbe,
    SocketReachabilityProbe,
    CallableReachabilityProbe,
    StaticReachabilityProbe,
)
from .request_executor import RetryingRequestExecutor, LEGACY_EMPTY_BEARER

__all__ = [
    # Enums
    "HttpMethod",
    "ErrorKind",
    "ExecutionState",
    "ReachabilityState",
    "TimeoutType",
    # Data classes
    "RequestDescriptor",
    "ErrorClass",
    "RetryPolicy",
    "TimeoutConfig",
    "ExecutionResult",
    "linear_backoff",
    # Interfaces
    "IConnectivityGate",
    "IReachabilityProbe",
    "IErrorClassifier",
    "IRequestExecutor",
    # Implementations
    "ErrorClassifier",
    "extract_server_message",
    "TimeoutManager",
    "ConnectivityGate",
    "InterfaceReachabilityProbe",
    "SocketReachabilityProbe",
    "CallableReachabilityProbe",
    "StaticReachabilityProbe",
    "RetryingRequestExecutor",
    "LEGACY_EMPTY_BEARER",
    # Exceptions
    "RemoteDataError",
    "NetworkUnavailableError",
    "ClientError",
    "AuthError",
    "ServerError",
    "ParseError",
    "UnknownRemoteError",
    "RetriesExhaustedError",
    "HttpStatusError",
    "ResponseParseError",
    "RequestPreparationError",
    "RequestTimeoutError",
    "InvalidTimeoutError",
    "error_for",
]
