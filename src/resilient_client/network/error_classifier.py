"""
Resilient Client: Network - Error Classifier

Seule surface de politique décidant quels échecs méritent une nouvelle
tentative.

Règles:
    - Pas de chemin réseau (rien n'a quitté la machine) → NETWORK_UNAVAILABLE, retryable
    - HTTP 401/403 → AUTH_ERROR, terminal
    - HTTP 4xx → CLIENT_ERROR, terminal
    - Requête non constructible (token illisible, corps non JSON) → CLIENT_ERROR, terminal
    - HTTP 5xx, timeout, reset après envoi → SERVER_ERROR, retryable
    - Corps non décodable → PARSE_ERROR, terminal
    - Autre → UNKNOWN, retryable
"""

import asyncio
import json
import socket
from typing import Optional

import httpx

from .errors import (
    HttpStatusError,
    NetworkUnavailableError,
    RemoteDataError,
    RequestPreparationError,
    RequestTimeoutError,
    ResponseParseError,
)
from .interfaces import ErrorClass, ErrorKind, IErrorClassifier

NETWORK_ERROR_MESSAGE = "Network error. Please check your internet connection."
SERVER_UNREACHABLE_MESSAGE = "The server did not respond. Please try again later."
INVALID_RESPONSE_MESSAGE = "Received an invalid response from the server."

AUTH_STATUS_CODES = frozenset({401, 403})


class ErrorClassifier(IErrorClassifier):
    """
    Classification des échecs d'une tentative.

    Example:
        classifier = ErrorClassifier()
        error_class = classifier.classify(HttpStatusError(404, "Not Found"))
        assert error_class.kind == ErrorKind.CLIENT_ERROR
        assert not error_class.retryable
    """

    def classify(self, error: BaseException) -> ErrorClass:
        """
        Associe un échec brut à une classe d'erreur.

        Args:
            error: Exception levée pendant la tentative

        Returns:
            ErrorClass avec kind, message et status_code éventuel
        """
        # Erreur déjà classifiée (ex: gate hors ligne)
        if isinstance(error, RemoteDataError) and error.error_class is not None:
            return error.error_class

        if isinstance(error, NetworkUnavailableError):
            return ErrorClass(ErrorKind.NETWORK_UNAVAILABLE, error.message)

        if isinstance(error, HttpStatusError):
            return self.classify_status(
                error.status_code, error.reason_phrase, error.server_message
            )

        if isinstance(error, httpx.HTTPStatusError):
            response = error.response
            return self.classify_status(
                response.status_code,
                response.reason_phrase,
                extract_server_message(response),
            )

        if isinstance(error, (ResponseParseError, json.JSONDecodeError)):
            return ErrorClass(
                ErrorKind.PARSE_ERROR,
                INVALID_RESPONSE_MESSAGE,
                getattr(error, "status_code", None),
            )

        # Faute locale, aucun appel envoyé: identique à chaque tentative
        if isinstance(error, RequestPreparationError):
            return ErrorClass(ErrorKind.CLIENT_ERROR, str(error))

        # Rien n'a quitté la machine
        if isinstance(error, (httpx.ConnectError, httpx.ConnectTimeout)):
            return ErrorClass(ErrorKind.NETWORK_UNAVAILABLE, NETWORK_ERROR_MESSAGE)

        if isinstance(error, (ConnectionRefusedError, socket.gaierror)):
            return ErrorClass(ErrorKind.NETWORK_UNAVAILABLE, NETWORK_ERROR_MESSAGE)

        # Échec de transport après envoi
        if isinstance(error, RequestTimeoutError):
            return ErrorClass(ErrorKind.SERVER_ERROR, str(error))

        if isinstance(
            error,
            (
                httpx.TimeoutException,
                httpx.ReadError,
                httpx.WriteError,
                httpx.RemoteProtocolError,
                asyncio.TimeoutError,
                TimeoutError,
                ConnectionResetError,
                ConnectionAbortedError,
                BrokenPipeError,
            ),
        ):
            return ErrorClass(ErrorKind.SERVER_ERROR, SERVER_UNREACHABLE_MESSAGE)

        return ErrorClass(ErrorKind.UNKNOWN, str(error) or type(error).__name__)

    def classify_status(
        self,
        status_code: int,
        reason_phrase: str = "",
        server_message: Optional[str] = None,
    ) -> ErrorClass:
        """
        Classe un statut HTTP non-2xx.

        Le message est celui du serveur s'il est présent, sinon
        "HTTP {status}: {reason}".
        """
        message = server_message or f"HTTP {status_code}: {reason_phrase}".rstrip()

        if status_code in AUTH_STATUS_CODES:
            return ErrorClass(ErrorKind.AUTH_ERROR, message, status_code)
        if 400 <= status_code <= 499:
            return ErrorClass(ErrorKind.CLIENT_ERROR, message, status_code)
        if 500 <= status_code <= 599:
            return ErrorClass(ErrorKind.SERVER_ERROR, message, status_code)

        # 1xx/3xx non suivis: rien ne garantit qu'un retry échoue
        return ErrorClass(ErrorKind.UNKNOWN, message, status_code)


def extract_server_message(response: httpx.Response) -> Optional[str]:
    """
    Extrait le champ `message` (ou `error`) d'un corps JSON d'erreur.

    Returns:
        Message serveur, ou None si corps absent/non JSON/sans message
    """
    try:
        payload = response.json()
    except (ValueError, UnicodeDecodeError):
        return None

    if not isinstance(payload, dict):
        return None

    for key in ("message", "error"):
        value = payload.get(key)
        # Certains serveurs renvoient une liste de messages de validation
        if isinstance(value, list) and value and all(isinstance(v, str) for v in value):
            return "; ".join(value)
        if isinstance(value, str) and value.strip():
            return value
    return None
