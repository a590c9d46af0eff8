"""
Resilient Client - Pytest Configuration
Fixtures partagées pour tous les tests.
"""

import json
from typing import Any, Callable, List, Optional, Sequence, Union

import httpx
import pytest

from resilient_client.auth import AuthTokenProvider, InMemoryTokenStore, ITokenStore
from resilient_client.logging import LogConfig, LogLevel, StructuredLogger
from resilient_client.network import (
    IConnectivityGate,
    RetryingRequestExecutor,
    RetryPolicy,
    TimeoutManager,
)

BASE_URL = "https://api.example.com/api/v1"


class FakeGate(IConnectivityGate):
    """Gate scripté: rejoue une séquence d'états, puis le dernier indéfiniment."""

    def __init__(self, states: Union[bool, Sequence[bool]] = True) -> None:
        self._states = [states] if isinstance(states, bool) else list(states)
        self.calls = 0

    async def is_online(self) -> bool:
        index = min(self.calls, len(self._states) - 1)
        self.calls += 1
        return self._states[index]


class ScriptedServer:
    """
    Faux serveur pour httpx.MockTransport.

    Chaque élément du script est une httpx.Response, une exception à
    lever, ou un callable(request) retournant l'un ou l'autre. Le
    dernier élément est rejoué une fois le script épuisé.
    """

    def __init__(self, script: List[Any]) -> None:
        self._script = list(script)
        self.requests: List[httpx.Request] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        index = min(len(self.requests), len(self._script) - 1)
        self.requests.append(request)
        step = self._script[index]
        if callable(step) and not isinstance(step, httpx.Response):
            step = step(request)
        if isinstance(step, BaseException):
            raise step
        return step

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport())


def json_response(status_code: int, payload: Any = None) -> httpx.Response:
    if payload is None:
        return httpx.Response(status_code)
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json"},
    )


@pytest.fixture
def silent_logger() -> Callable[[str], StructuredLogger]:
    """Fabrique de loggers qui bufferisent sans écrire sur stderr."""

    def make(name: str = "test", min_level: LogLevel = LogLevel.DEBUG) -> StructuredLogger:
        return StructuredLogger(name, config=LogConfig(min_level=min_level), output_handler=None)

    return make


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    return InMemoryTokenStore({"auth_token": "test-token"})


@pytest.fixture
def make_executor(silent_logger, token_store):
    """Fabrique d'exécuteurs reliés à un faux serveur et un faux gate."""

    def make(
        server: ScriptedServer,
        gate: Optional[IConnectivityGate] = None,
        store: Optional[ITokenStore] = None,
        policy: Optional[RetryPolicy] = None,
        **kwargs: Any,
    ) -> RetryingRequestExecutor:
        logger = kwargs.pop("logger", None) or silent_logger("request-executor")
        return RetryingRequestExecutor(
            gate=gate or FakeGate(True),
            token_provider=AuthTokenProvider(
                store if store is not None else token_store,
                logger=silent_logger("auth-token-provider"),
            ),
            policy=policy or RetryPolicy(),
            timeout_manager=kwargs.pop("timeout_manager", None) or TimeoutManager(),
            client=server.client(),
            logger=logger,
            **kwargs,
        )

    return make
