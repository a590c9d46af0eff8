"""
Resilient Client

Client de données distant résilient: gate de connectivité, bearer
token, retry avec backoff et décodage des listes paginées.
"""

from .core import ClientConfig, ConfigLoader, RemoteClient, build_client
from .network import (
    HttpMethod,
    RequestDescriptor,
    RetryPolicy,
    RetryingRequestExecutor,
    RemoteDataError,
    NetworkUnavailableError,
    ClientError,
    AuthError,
    ServerError,
    ParseError,
    UnknownRemoteError,
    RetriesExhaustedError,
)
from .pagination import PaginatedResult, build_query, build_url, decode_page, page_decoder

__version__ = "0.1.0"

__all__ = [
    "ClientConfig",
    "ConfigLoader",
    "RemoteClient",
    "build_client",
    "HttpMethod",
    "RequestDescriptor",
    "RetryPolicy",
    "RetryingRequestExecutor",
    "RemoteDataError",
    "NetworkUnavailableError",
    "ClientError",
    "AuthError",
    "ServerError",
    "ParseError",
    "UnknownRemoteError",
    "RetriesExhaustedError",
    "PaginatedResult",
    "build_query",
    "build_url",
    "decode_page",
    "page_decoder",
]
