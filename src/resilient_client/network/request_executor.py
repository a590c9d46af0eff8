"""
Resilient Client: Network - Retrying Request Executor

Orchestrateur d'un appel logique: gate de connectivité, dispatch HTTP
authentifié, classification des échecs et backoff entre tentatives.

Machine d'états (boucle bornée, compteur de tentatives explicite):
    IDLE → GATING → DISPATCHING → SUCCESS
                              ↘ CLASSIFYING → RETRYING → GATING
                                            ↘ FAILED

Backoff: delay = base_delay * (attempt + 1)
    - Après tentative 0: 1s
    - Après tentative 1: 2s
    - Après tentative 2: 3s
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from ..auth import IAuthTokenProvider, TokenStoreError
from ..logging import ContextualLogger, StructuredLogger
from .error_classifier import ErrorClassifier, extract_server_message
from .errors import (
    HttpStatusError,
    NetworkUnavailableError,
    RemoteDataError,
    RequestPreparationError,
    RequestTimeoutError,
    ResponseParseError,
    RetriesExhaustedError,
    error_for,
)
from .interfaces import (
    Decoder,
    ErrorClass,
    ExecutionResult,
    ExecutionState,
    IConnectivityGate,
    IErrorClassifier,
    IRequestExecutor,
    RequestDescriptor,
    RetryPolicy,
    StateObserver,
    TimeoutType,
)
from .timeout_manager import TimeoutManager

# Valeur envoyée par les services d'origine quand le stockage ne
# contenait aucun token.
LEGACY_EMPTY_BEARER = "Bearer null"


def identity(payload: Any) -> Any:
    return payload


class RetryingRequestExecutor(IRequestExecutor):
    """
    Exécuteur de requêtes avec retry, construit une fois par processus
    et injecté dans chaque service de ressources.

    Chaque appel possède son propre compteur de tentatives; aucun état
    mutable n'est partagé entre appels concurrents.

    Example:
        async with RetryingRequestExecutor(gate, provider) as executor:
            listing = await executor.execute(
                RequestDescriptor(HttpMethod.GET, url, operation_name="Fetch listing")
            )
    """

    def __init__(
        self,
        gate: IConnectivityGate,
        token_provider: IAuthTokenProvider,
        classifier: Optional[IErrorClassifier] = None,
        policy: Optional[RetryPolicy] = None,
        timeout_manager: Optional[TimeoutManager] = None,
        client: Optional[httpx.AsyncClient] = None,
        send_empty_bearer: bool = False,
        logger: Optional[StructuredLogger] = None,
        state_observer: Optional[StateObserver] = None,
    ) -> None:
        """
        Args:
            gate: Gate de connectivité interrogé à chaque tentative
            token_provider: Fournisseur du bearer token
            classifier: Classification des échecs (défaut: ErrorClassifier)
            policy: Politique de retry (défaut: 3 retries, base 1s)
            timeout_manager: Timeouts par appel (défaut: 30s)
            client: Client httpx injecté (sinon créé et possédé par l'exécuteur)
            send_empty_bearer: Envoie "Authorization: Bearer null" sans token
            logger: Logger structuré
            state_observer: Callback (état, tentative) pour diagnostic
        """
        self._gate = gate
        self._token_provider = token_provider
        self._classifier = classifier or ErrorClassifier()
        self._policy = policy or RetryPolicy()
        self._timeouts = timeout_manager or TimeoutManager()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True)
        self._send_empty_bearer = send_empty_bearer
        self._logger = logger or StructuredLogger("request-executor")
        self._state_observer = state_observer

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def timeout_manager(self) -> TimeoutManager:
        return self._timeouts

    async def __aenter__(self) -> "RetryingRequestExecutor":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Ferme le client httpx s'il appartient à l'exécuteur."""
        if self._owns_client:
            await self._client.aclose()

    async def execute(
        self,
        descriptor: RequestDescriptor,
        decode: Optional[Decoder] = None,
    ) -> Any:
        """
        Exécute un appel et retourne le payload décodé.

        Args:
            descriptor: Requête à exécuter
            decode: Fonction corps JSON → T (défaut: identité)

        Returns:
            Payload décodé

        Raises:
            NetworkUnavailableError: Appareil hors ligne
            ClientError / AuthError: Réponse 4xx, sans retry
            ParseError: Corps non décodable, sans retry
            RetriesExhaustedError: Échecs retryables jusqu'à épuisement
        """
        result = await self.execute_with_result(descriptor, decode)
        if not result.success:
            raise result.last_error
        return result.result

    async def execute_with_result(
        self,
        descriptor: RequestDescriptor,
        decode: Optional[Decoder] = None,
    ) -> ExecutionResult:
        """
        Exécute un appel et retourne un ExecutionResult.

        En cas d'échec, last_error contient l'exception publique
        (sous-classe de RemoteDataError) que execute() aurait levée.
        """
        decoder = decode or identity
        operation = descriptor.operation_name
        log = self._logger.with_context(operation=operation)
        attempt = 0
        total_delay = 0.0

        self._notify(ExecutionState.IDLE, attempt)

        while True:
            # 1. Gate: vérifié à chaque tentative
            self._notify(ExecutionState.GATING, attempt)
            if not await self._gate.is_online():
                error = NetworkUnavailableError(operation_name=operation, attempts=attempt)
                log.warn("Request blocked, device offline", attempts=attempt)
                self._notify(ExecutionState.FAILED, attempt)
                return ExecutionResult(
                    success=False,
                    result=None,
                    attempts=attempt,
                    total_delay=total_delay,
                    last_error=error,
                    error_class=error.error_class,
                )

            # 2. Dispatch
            self._notify(ExecutionState.DISPATCHING, attempt)
            try:
                payload = await self._dispatch(descriptor, log, attempt)
                value = self._decode(payload, decoder)
            except Exception as e:
                attempts_made = attempt + 1

                # 3. Classification
                self._notify(ExecutionState.CLASSIFYING, attempt)
                error_class = self._classifier.classify(e)

                if error_class.terminal:
                    log.error(
                        "Request failed with terminal error",
                        attempts=attempts_made,
                        error_kind=error_class.kind.value,
                        status_code=error_class.status_code,
                        error=error_class.message,
                    )
                    self._notify(ExecutionState.FAILED, attempt)
                    return self._failure(
                        error_for(error_class, operation, attempts_made),
                        e,
                        error_class,
                        attempts_made,
                        total_delay,
                    )

                if attempt >= self._policy.max_retries:
                    log.error(
                        "Request failed, retries exhausted",
                        attempts=attempts_made,
                        error_kind=error_class.kind.value,
                        status_code=error_class.status_code,
                        error=error_class.message,
                    )
                    self._notify(ExecutionState.FAILED, attempt)
                    return self._failure(
                        RetriesExhaustedError(operation, attempts_made, e, error_class),
                        e,
                        error_class,
                        attempts_made,
                        total_delay,
                    )

                # 4. Backoff puis nouvelle tentative
                delay = self._policy.delay_for(attempt)
                self._notify(ExecutionState.RETRYING, attempt)
                log.warn(
                    "Retryable failure, retrying",
                    attempt=attempts_made,
                    max_attempts=self._policy.max_attempts,
                    error_kind=error_class.kind.value,
                    status_code=error_class.status_code,
                    delay_seconds=delay,
                )
                await asyncio.sleep(delay)
                total_delay += delay
                attempt += 1
                continue

            self._notify(ExecutionState.SUCCESS, attempt)
            log.info("Request succeeded", attempts=attempt + 1)
            return ExecutionResult(
                success=True,
                result=value,
                attempts=attempt + 1,
                total_delay=total_delay,
            )

    async def _dispatch(
        self, descriptor: RequestDescriptor, log: ContextualLogger, attempt: int
    ) -> Any:
        """
        Effectue une tentative HTTP et retourne le corps JSON.

        Raises:
            RequestPreparationError: Token illisible ou corps non sérialisable
            RequestTimeoutError: Timeout global dépassé
            HttpStatusError: Statut non-2xx
            ResponseParseError: Corps 2xx non JSON
            httpx.TransportError: Échec de transport
        """
        operation = descriptor.operation_name
        headers = await self._build_headers()
        request = self._build_request(descriptor, headers)
        overall_timeout = self._timeouts.get_timeout(TimeoutType.REQUEST, operation)

        log.debug(
            "Dispatching request",
            method=descriptor.method.value,
            url=descriptor.url,
            attempt=attempt + 1,
            headers=headers,
        )

        try:
            response = await asyncio.wait_for(
                self._client.send(request),
                timeout=overall_timeout,
            )
        except asyncio.TimeoutError:
            raise RequestTimeoutError(overall_timeout) from None

        log.debug(
            "Response received",
            status_code=response.status_code,
            reason=response.reason_phrase,
        )

        if not response.is_success:
            raise HttpStatusError(
                response.status_code,
                response.reason_phrase,
                extract_server_message(response),
            )

        if not response.content:
            return None

        try:
            return response.json()
        except (ValueError, UnicodeDecodeError) as e:
            raise ResponseParseError(str(e), response.status_code) from e

    async def _build_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        try:
            token = await self._token_provider.get_token()
        except TokenStoreError as e:
            raise RequestPreparationError(str(e)) from e

        if token:
            headers["Authorization"] = f"Bearer {token}"
        elif self._send_empty_bearer:
            headers["Authorization"] = LEGACY_EMPTY_BEARER
        return headers

    def _build_request(
        self, descriptor: RequestDescriptor, headers: Dict[str, str]
    ) -> httpx.Request:
        request_kwargs: Dict[str, Any] = {
            "headers": headers,
            "timeout": self._timeouts.build_httpx_timeout(descriptor.operation_name),
        }
        if descriptor.body is not None:
            request_kwargs["json"] = descriptor.body

        try:
            return self._client.build_request(
                descriptor.method.value, descriptor.url, **request_kwargs
            )
        except (TypeError, ValueError) as e:
            raise RequestPreparationError(f"body is not JSON serializable: {e}") from e

    @staticmethod
    def _decode(payload: Any, decoder: Decoder) -> Any:
        try:
            return decoder(payload)
        except Exception as e:
            raise ResponseParseError(f"decode failed: {e}") from e

    @staticmethod
    def _failure(
        error: RemoteDataError,
        cause: BaseException,
        error_class: ErrorClass,
        attempts: int,
        total_delay: float,
    ) -> ExecutionResult:
        error.__cause__ = cause
        return ExecutionResult(
            success=False,
            result=None,
            attempts=attempts,
            total_delay=total_delay,
            last_error=error,
            error_class=error_class,
        )

    def _notify(self, state: ExecutionState, attempt: int) -> None:
        if self._state_observer:
            self._state_observer(state, attempt)
