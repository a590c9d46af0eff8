"""
Resilient Client: Auth - Token Provider

Lecture du bearer token courant depuis le stockage durable.

Pas de retry, pas de refresh: un token expiré est transmis tel quel
et la réponse 401 du serveur remonte comme AuthError terminale.
"""

from typing import Optional

from ..logging import StructuredLogger
from .auth_session import AuthSession
from .interfaces import DEFAULT_TOKEN_KEY, IAuthTokenProvider, ITokenStore


class AuthTokenProvider(IAuthTokenProvider):
    """
    Fournisseur du bearer token.

    Example:
        provider = AuthTokenProvider(JsonFileTokenStore("storage.json"))
        token = await provider.get_token()  # None si absent
    """

    def __init__(
        self,
        store: ITokenStore,
        token_key: str = DEFAULT_TOKEN_KEY,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        """
        Args:
            store: Stockage clé-valeur durable
            token_key: Clé sous laquelle le token est stocké
            logger: Logger structuré

        Raises:
            ValueError: Si token_key vide
        """
        if not token_key or not token_key.strip():
            raise ValueError("token_key cannot be empty")

        self._store = store
        self._token_key = token_key
        self._logger = logger or StructuredLogger("auth-token-provider")

    @property
    def token_key(self) -> str:
        return self._token_key

    async def get_token(self) -> Optional[str]:
        """
        Retourne le token courant, ou None si absent ou vide.

        Raises:
            TokenStoreError: Si le stockage est illisible
        """
        session = await self.get_session()
        return session.token

    async def get_session(self) -> AuthSession:
        """Retourne la session courante (token + expiration si JWT)."""
        raw = await self._store.get(self._token_key)
        token = raw.strip() if raw else None
        session = AuthSession.from_token(token or None)

        if not session.has_token:
            self._logger.debug("No auth token stored", storage_key=self._token_key)
        elif session.is_expired():
            self._logger.warn(
                "Stored auth token is expired, sending it unchanged",
                expires_at=session.expires_at.isoformat(),
            )

        return session
