"""
Resilient Client: Auth

Lecture du bearer token:
- Stockage clé-valeur durable (fichier JSON) ou mémoire
- Fournisseur de token sans retry ni refresh
- Inspection de l'expiration des JWT (diagnostic)
"""

from .interfaces import (
    DEFAULT_TOKEN_KEY,
    # Interfaces
    ITokenStore,
    IAuthTokenProvider,
)
from .auth_session import AuthSession
from .token_store import (
    InMemoryTokenStore,
    JsonFileTokenStore,
    # Exceptions
    TokenStoreError,
)
from .token_provider import AuthTokenProvider

__all__ = [
    "DEFAULT_TOKEN_KEY",
    # Interfaces
    "ITokenStore",
    "IAuthTokenProvider",
    # Data classes
    "AuthSession",
    # Implementations
    "InMemoryTokenStore",
    "JsonFileTokenStore",
    "AuthTokenProvider",
    # Exceptions
    "TokenStoreError",
]
