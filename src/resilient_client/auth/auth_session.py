"""
Resilient Client: Auth - Session

Vue en lecture seule sur le bearer token courant.

Si le token est un JWT, son expiration est lue SANS vérification de
signature (diagnostic uniquement: le serveur reste seul juge).
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import jwt


@dataclass(frozen=True)
class AuthSession:
    """Token courant et expiration éventuelle."""

    token: Optional[str] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def from_token(cls, token: Optional[str]) -> "AuthSession":
        """
        Construit une session depuis un token opaque ou JWT.

        Un token non JWT n'a pas d'expiration connue.
        """
        if not token:
            return cls(token=None)

        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError:
            return cls(token=token)

        exp = payload.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            return cls(token=token)

        return cls(token=token, expires_at=datetime.fromtimestamp(exp, tz=timezone.utc))

    @property
    def has_token(self) -> bool:
        return self.token is not None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        Returns:
            True si l'expiration est connue et dépassée
        """
        if self.expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) >= self.expires_at
