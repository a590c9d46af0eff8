"""
Resilient Client: Auth - Interfaces

Lecture du bearer token depuis un stockage clé-valeur durable.
Le client ne rafraîchit ni ne modifie jamais le token.
"""

from abc import ABC, abstractmethod
from typing import Optional

DEFAULT_TOKEN_KEY = "auth_token"


class ITokenStore(ABC):
    """Stockage clé-valeur durable (équivalent du stockage local de l'appareil)."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Lit une valeur.

        Returns:
            Valeur, ou None si la clé est absente
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Écrit une valeur."""
        pass

    @abstractmethod
    async def remove(self, key: str) -> bool:
        """
        Supprime une clé.

        Returns:
            True si supprimée, False si absente
        """
        pass


class IAuthTokenProvider(ABC):
    """Fournit le bearer token courant."""

    @abstractmethod
    async def get_token(self) -> Optional[str]:
        """
        Retourne le token courant.

        Un token absent est un état valide: None, jamais d'exception.
        """
        pass
