"""
Resilient Client: Network - Errors

Hiérarchie des erreurs remontées aux services appelants, et erreurs
brutes levées pendant une tentative (avant classification).
"""

from typing import Any, Dict, Optional, Type

from .interfaces import ErrorClass, ErrorKind

OFFLINE_MESSAGE = "No internet connection. Please check your network and try again."


class RemoteDataError(Exception):
    """
    Erreur de base d'un appel distant.

    Le message est destiné à l'utilisateur final tel quel.
    """

    def __init__(
        self,
        message: str,
        error_class: Optional[ErrorClass] = None,
        operation_name: Optional[str] = None,
        attempts: int = 0,
    ) -> None:
        self.message = message
        self.error_class = error_class
        self.operation_name = operation_name
        self.attempts = attempts
        super().__init__(message)

    @property
    def status_code(self) -> Optional[int]:
        return self.error_class.status_code if self.error_class else None


class NetworkUnavailableError(RemoteDataError):
    """Aucun chemin réseau disponible."""

    def __init__(
        self,
        message: str = OFFLINE_MESSAGE,
        error_class: Optional[ErrorClass] = None,
        operation_name: Optional[str] = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(
            message,
            error_class or ErrorClass(ErrorKind.NETWORK_UNAVAILABLE, message),
            operation_name,
            attempts,
        )


class ClientError(RemoteDataError):
    """Réponse HTTP 4xx, terminale."""


class AuthError(ClientError):
    """Réponse HTTP 401/403, terminale (pas de refresh du token)."""


class ServerError(RemoteDataError):
    """Réponse HTTP 5xx ou échec de transport après envoi."""


class ParseError(RemoteDataError):
    """Corps de réponse non décodable dans la structure attendue."""


class UnknownRemoteError(RemoteDataError):
    """Échec non catégorisé."""


class RetriesExhaustedError(RemoteDataError):
    """Échecs retryables répétés jusqu'à épuisement du budget de retries."""

    def __init__(
        self,
        operation_name: str,
        attempts: int,
        last_error: BaseException,
        last_error_class: Optional[ErrorClass] = None,
    ) -> None:
        self.last_error = last_error
        self.last_error_class = last_error_class
        super().__init__(
            f"Failed to {operation_name.lower()} after {attempts} attempts. "
            "Please try again later.",
            error_class=last_error_class,
            operation_name=operation_name,
            attempts=attempts,
        )


class HttpStatusError(Exception):
    """Réponse HTTP non-2xx reçue pendant une tentative."""

    def __init__(
        self,
        status_code: int,
        reason_phrase: str = "",
        server_message: Optional[str] = None,
        body: Optional[Any] = None,
    ) -> None:
        self.status_code = status_code
        self.reason_phrase = reason_phrase
        self.server_message = server_message
        self.body = body
        super().__init__(server_message or f"HTTP {status_code}: {reason_phrase}")


class ResponseParseError(Exception):
    """Corps d'une réponse 2xx non décodable en JSON."""

    def __init__(self, reason: str, status_code: Optional[int] = None) -> None:
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Invalid response body: {reason}")


class RequestPreparationError(Exception):
    """Requête impossible à construire (token illisible, corps non sérialisable)."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Request could not be prepared: {reason}")


class RequestTimeoutError(Exception):
    """Timeout global d'un appel dépassé pendant le dispatch."""

    def __init__(self, timeout_value: float) -> None:
        self.timeout_value = timeout_value
        super().__init__(f"Request timed out after {timeout_value}s")


ERRORS_BY_KIND: Dict[ErrorKind, Type[RemoteDataError]] = {
    ErrorKind.NETWORK_UNAVAILABLE: NetworkUnavailableError,
    ErrorKind.CLIENT_ERROR: ClientError,
    ErrorKind.AUTH_ERROR: AuthError,
    ErrorKind.SERVER_ERROR: ServerError,
    ErrorKind.PARSE_ERROR: ParseError,
    ErrorKind.UNKNOWN: UnknownRemoteError,
}


def error_for(
    error_class: ErrorClass,
    operation_name: Optional[str] = None,
    attempts: int = 0,
) -> RemoteDataError:
    """
    Construit l'exception publique correspondant à une classe d'erreur.

    Args:
        error_class: Classification de l'échec
        operation_name: Opération en cours (diagnostic)
        attempts: Nombre de tentatives effectuées

    Returns:
        Instance de la sous-classe de RemoteDataError adaptée
    """
    error_type = ERRORS_BY_KIND[error_class.kind]
    return error_type(
        error_class.message,
        error_class=error_class,
        operation_name=operation_name,
        attempts=attempts,
    )
