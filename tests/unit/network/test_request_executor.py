"""
Tests unitaires: Network - RetryingRequestExecutor

Comportements couverts:
- Gate hors ligne: aucun appel HTTP
- Erreurs terminales: une seule tentative, aucun backoff
- Erreurs retryables: backoff 1s, 2s, 3s puis RetriesExhaustedError
- Gate ré-évalué avant chaque retry
- Headers JSON et bearer token
"""

import asyncio
import json
from unittest.mock import AsyncMock, call, patch

import httpx
import pytest

from conftest import BASE_URL, FakeGate, ScriptedServer, json_response
from resilient_client.auth import InMemoryTokenStore, JsonFileTokenStore, TokenStoreError
from resilient_client.logging import LogLevel
from resilient_client.network import (
    LEGACY_EMPTY_BEARER,
    AuthError,
    ClientError,
    ErrorKind,
    ExecutionState,
    HttpMethod,
    NetworkUnavailableError,
    ParseError,
    RequestDescriptor,
    RequestPreparationError,
    RequestTimeoutError,
    RetriesExhaustedError,
    RetryPolicy,
    TimeoutConfig,
    TimeoutManager,
)

LISTINGS_URL = f"{BASE_URL}/listings"


def fetch_listings() -> RequestDescriptor:
    return RequestDescriptor(HttpMethod.GET, LISTINGS_URL, operation_name="Fetch listings")


class TestSuccessfulCalls:
    """Appels réussis."""

    @pytest.mark.asyncio
    async def test_single_attempt_success(self, make_executor) -> None:
        server = ScriptedServer([json_response(200, {"id": "l-1"})])
        executor = make_executor(server)

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await executor.execute(fetch_listings())

        assert result == {"id": "l-1"}
        assert server.call_count == 1
        mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_decoder_applied(self, make_executor) -> None:
        server = ScriptedServer([json_response(200, {"id": "l-1", "title": "Bike"})])
        executor = make_executor(server)

        title = await executor.execute(fetch_listings(), decode=lambda body: body["title"])

        assert title == "Bike"

    @pytest.mark.asyncio
    async def test_empty_body_returns_none(self, make_executor) -> None:
        server = ScriptedServer([httpx.Response(204)])
        executor = make_executor(server)

        descriptor = RequestDescriptor(
            HttpMethod.DELETE, f"{LISTINGS_URL}/l-1", operation_name="Delete listing"
        )
        assert await executor.execute(descriptor) is None

    @pytest.mark.asyncio
    async def test_execute_with_result_success(self, make_executor) -> None:
        server = ScriptedServer([json_response(200, [1, 2])])
        executor = make_executor(server)

        result = await executor.execute_with_result(fetch_listings())

        assert result.success is True
        assert result.result == [1, 2]
        assert result.attempts == 1
        assert result.total_delay == 0.0
        assert result.last_error is None


class TestRequestShape:
    """Headers et corps envoyés."""

    @pytest.mark.asyncio
    async def test_json_headers_and_bearer(self, make_executor) -> None:
        server = ScriptedServer([json_response(200, {})])
        executor = make_executor(server)

        await executor.execute(fetch_listings())

        request = server.requests[0]
        assert request.method == "GET"
        assert str(request.url) == LISTINGS_URL
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["Accept"] == "application/json"
        assert request.headers["Authorization"] == "Bearer test-token"

    @pytest.mark.asyncio
    async def test_body_serialized_as_json(self, make_executor) -> None:
        server = ScriptedServer([json_response(201, {"id": "l-2"})])
        executor = make_executor(server)

        descriptor = RequestDescriptor(
            HttpMethod.POST,
            LISTINGS_URL,
            body={"title": "Bike", "price": 120},
            operation_name="Create listing",
        )
        await executor.execute(descriptor)

        request = server.requests[0]
        assert request.method == "POST"
        assert json.loads(request.content) == {"title": "Bike", "price": 120}

    @pytest.mark.asyncio
    async def test_no_body_for_get(self, make_executor) -> None:
        server = ScriptedServer([json_response(200, {})])
        executor = make_executor(server)

        await executor.execute(fetch_listings())

        assert server.requests[0].content == b""

    @pytest.mark.asyncio
    async def test_no_token_omits_authorization(self, make_executor) -> None:
        server = ScriptedServer([json_response(200, {})])
        executor = make_executor(server, store=InMemoryTokenStore())

        await executor.execute(fetch_listings())

        assert "Authorization" not in server.requests[0].headers

    @pytest.mark.asyncio
    async def test_no_token_legacy_bearer(self, make_executor) -> None:
        """send_empty_bearer reproduit le header historique "Bearer null"."""
        server = ScriptedServer([json_response(200, {})])
        executor = make_executor(server, store=InMemoryTokenStore(), send_empty_bearer=True)

        await executor.execute(fetch_listings())

        assert server.requests[0].headers["Authorization"] == LEGACY_EMPTY_BEARER

    @pytest.mark.asyncio
    async def test_token_read_on_every_attempt(self, make_executor) -> None:
        """Le token est relu avant chaque tentative."""
        store = InMemoryTokenStore({"auth_token": "first"})

        async def rotate_then_fail(request: httpx.Request) -> httpx.Response:
            await store.set("auth_token", "second")
            return json_response(503)

        server = ScriptedServer([rotate_then_fail, json_response(200, {})])
        executor = make_executor(server, store=store)

        with patch("asyncio.sleep", new_callable=AsyncMock):
            await executor.execute(fetch_listings())

        assert server.requests[0].headers["Authorization"] == "Bearer first"
        assert server.requests[1].headers["Authorization"] == "Bearer second"


class TestConnectivityGate:
    """Le gate est consulté avant chaque tentative."""

    @pytest.mark.asyncio
    async def test_offline_makes_no_http_call(self, make_executor) -> None:
        server = ScriptedServer([json_response(200, {})])
        gate = FakeGate(False)
        executor = make_executor(server, gate=gate)

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(NetworkUnavailableError) as exc:
                await executor.execute(fetch_listings())

        assert server.call_count == 0
        assert gate.calls == 1
        mock_sleep.assert_not_called()
        assert str(exc.value) == (
            "No internet connection. Please check your network and try again."
        )
        assert exc.value.attempts == 0

    @pytest.mark.asyncio
    async def test_offline_between_retries(self, make_executor) -> None:
        """Perte de connectivité pendant le backoff: échec immédiat sans nouvel envoi."""
        server = ScriptedServer([json_response(500)])
        gate = FakeGate([True, False])
        executor = make_executor(server, gate=gate)

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await executor.execute_with_result(fetch_listings())

        assert result.success is False
        assert isinstance(result.last_error, NetworkUnavailableError)
        assert result.attempts == 1
        assert server.call_count == 1
        assert gate.calls == 2
        mock_sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_gate_checked_each_attempt(self, make_executor) -> None:
        server = ScriptedServer([json_response(500), json_response(500), json_response(200, {})])
        gate = FakeGate(True)
        executor = make_executor(server, gate=gate)

        with patch("asyncio.sleep", new_callable=AsyncMock):
            await executor.execute(fetch_listings())

        assert gate.calls == 3


class TestTerminalErrors:
    """Erreurs terminales: une seule tentative."""

    @pytest.mark.asyncio
    async def test_404_with_server_message(self, make_executor) -> None:
        server = ScriptedServer([json_response(404, {"message": "Listing not found"})])
        executor = make_executor(server)

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(ClientError) as exc:
                await executor.execute(fetch_listings())

        assert str(exc.value) == "Listing not found"
        assert exc.value.status_code == 404
        assert exc.value.attempts == 1
        assert server.call_count == 1
        mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_4xx_without_message(self, make_executor) -> None:
        server = ScriptedServer([httpx.Response(409)])
        executor = make_executor(server)

        with pytest.raises(ClientError) as exc:
            await executor.execute(fetch_listings())

        assert str(exc.value) == "HTTP 409: Conflict"

    @pytest.mark.asyncio
    async def test_401_is_auth_error(self, make_executor) -> None:
        server = ScriptedServer([json_response(401, {"message": "Unauthorized"})])
        executor = make_executor(server)

        with pytest.raises(AuthError) as exc:
            await executor.execute(fetch_listings())

        assert exc.value.error_class.kind == ErrorKind.AUTH_ERROR
        assert server.call_count == 1

    @pytest.mark.asyncio
    async def test_invalid_json_is_parse_error(self, make_executor) -> None:
        server = ScriptedServer([httpx.Response(200, text="<html>maintenance</html>")])
        executor = make_executor(server)

        with pytest.raises(ParseError) as exc:
            await executor.execute(fetch_listings())

        assert server.call_count == 1
        assert exc.value.status_code == 200

    @pytest.mark.asyncio
    async def test_decoder_failure_is_parse_error(self, make_executor) -> None:
        server = ScriptedServer([json_response(200, {"unexpected": True})])
        executor = make_executor(server)

        with pytest.raises(ParseError) as exc:
            await executor.execute(fetch_listings(), decode=lambda body: body["data"])

        assert server.call_count == 1
        assert exc.value.__cause__ is not None

    @pytest.mark.asyncio
    async def test_terminal_error_keeps_cause(self, make_executor) -> None:
        server = ScriptedServer([json_response(400, {"message": "Bad filter"})])
        executor = make_executor(server)

        result = await executor.execute_with_result(fetch_listings())

        assert result.success is False
        assert result.error_class.kind == ErrorKind.CLIENT_ERROR
        assert result.last_error.__cause__.status_code == 400

    @pytest.mark.asyncio
    async def test_corrupt_token_store_not_retried(self, make_executor, tmp_path) -> None:
        """Stockage illisible: aucun appel HTTP, aucun backoff."""
        path = tmp_path / "storage.json"
        path.write_text("{not json", encoding="utf-8")
        server = ScriptedServer([json_response(200, {})])
        executor = make_executor(server, store=JsonFileTokenStore(path))

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(ClientError) as exc:
                await executor.execute(fetch_listings())

        assert server.call_count == 0
        assert exc.value.attempts == 1
        assert exc.value.status_code is None
        assert "Request could not be prepared" in str(exc.value)
        assert isinstance(exc.value.__cause__, RequestPreparationError)
        assert isinstance(exc.value.__cause__.__cause__, TokenStoreError)
        mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_unserializable_body_not_retried(self, make_executor) -> None:
        server = ScriptedServer([json_response(201, {})])
        executor = make_executor(server)
        descriptor = RequestDescriptor(
            HttpMethod.POST,
            LISTINGS_URL,
            body={"title": "Bike", "owner": object()},
            operation_name="Create listing",
        )

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await executor.execute_with_result(descriptor)

        assert result.success is False
        assert result.attempts == 1
        assert result.error_class.kind == ErrorKind.CLIENT_ERROR
        assert "not JSON serializable" in str(result.last_error)
        assert server.call_count == 0
        mock_sleep.assert_not_called()


class TestRetries:
    """Erreurs retryables et backoff."""

    @pytest.mark.asyncio
    async def test_recovers_after_server_errors(self, make_executor) -> None:
        server = ScriptedServer(
            [json_response(500), json_response(500), json_response(200, {"id": "l-1"})]
        )
        executor = make_executor(server)

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await executor.execute_with_result(fetch_listings())

        assert result.success is True
        assert result.result == {"id": "l-1"}
        assert result.attempts == 3
        assert result.total_delay == 3.0
        assert mock_sleep.await_args_list == [call(1.0), call(2.0)]

    @pytest.mark.asyncio
    async def test_exhausted_after_timeouts(self, make_executor) -> None:
        """4 tentatives, délais 1s/2s/3s, message utilisateur final."""
        server = ScriptedServer([httpx.ReadTimeout("read timed out")])
        executor = make_executor(server)

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(RetriesExhaustedError) as exc:
                await executor.execute(fetch_listings())

        assert server.call_count == 4
        assert mock_sleep.await_args_list == [call(1.0), call(2.0), call(3.0)]
        message = str(exc.value)
        assert "fetch listings" in message
        assert "4 attempts" in message
        assert message == "Failed to fetch listings after 4 attempts. Please try again later."
        assert exc.value.attempts == 4
        assert isinstance(exc.value.last_error, httpx.ReadTimeout)
        assert exc.value.last_error_class.kind == ErrorKind.SERVER_ERROR

    @pytest.mark.asyncio
    async def test_unknown_failure_retried_until_exhausted(self, make_executor) -> None:
        """Échec non reconnu: UNKNOWN, retryable comme un 5xx."""
        server = ScriptedServer([RuntimeError("transport exploded")])
        executor = make_executor(server)

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(RetriesExhaustedError) as exc:
                await executor.execute(fetch_listings())

        assert server.call_count == 4
        assert mock_sleep.await_args_list == [call(1.0), call(2.0), call(3.0)]
        assert exc.value.attempts == 4
        assert exc.value.last_error_class.kind == ErrorKind.UNKNOWN
        assert isinstance(exc.value.last_error, RuntimeError)

    @pytest.mark.asyncio
    async def test_unknown_failure_then_success(self, make_executor) -> None:
        server = ScriptedServer([RuntimeError("glitch"), json_response(200, {"id": "l-1"})])
        executor = make_executor(server)

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await executor.execute_with_result(fetch_listings())

        assert result.success is True
        assert result.attempts == 2
        mock_sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_connect_error_retried(self, make_executor) -> None:
        server = ScriptedServer([httpx.ConnectError("refused"), json_response(200, {})])
        executor = make_executor(server)

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await executor.execute_with_result(fetch_listings())

        assert result.success is True
        assert result.attempts == 2
        mock_sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_custom_policy(self, make_executor) -> None:
        server = ScriptedServer([json_response(502)])
        executor = make_executor(server, policy=RetryPolicy(max_retries=1, base_delay=0.5))

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await executor.execute_with_result(fetch_listings())

        assert result.success is False
        assert result.attempts == 2
        assert result.total_delay == 0.5
        assert isinstance(result.last_error, RetriesExhaustedError)
        mock_sleep.assert_awaited_once_with(0.5)

    @pytest.mark.asyncio
    async def test_zero_retries(self, make_executor) -> None:
        server = ScriptedServer([json_response(500)])
        executor = make_executor(server, policy=RetryPolicy(max_retries=0))

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(RetriesExhaustedError) as exc:
                await executor.execute(fetch_listings())

        assert "after 1 attempts" in str(exc.value)
        mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_overall_timeout(self, make_executor) -> None:
        """Le timeout global interrompt une tentative bloquée."""
        never = asyncio.Event()

        async def hang(request: httpx.Request) -> httpx.Response:
            await never.wait()
            return json_response(200, {})

        server = ScriptedServer([hang])
        manager = TimeoutManager()
        manager.set_operation_timeout(
            "Fetch listings", TimeoutConfig(connection_timeout=0.05, request_timeout=0.05)
        )
        executor = make_executor(
            server, policy=RetryPolicy(max_retries=0), timeout_manager=manager
        )

        result = await executor.execute_with_result(fetch_listings())

        assert result.success is False
        assert isinstance(result.last_error, RetriesExhaustedError)
        assert isinstance(result.last_error.last_error, RequestTimeoutError)
        assert result.error_class.kind == ErrorKind.SERVER_ERROR


class TestObservability:
    """États et logs."""

    @pytest.mark.asyncio
    async def test_state_sequence(self, make_executor) -> None:
        states = []
        server = ScriptedServer([json_response(500), json_response(200, {})])
        executor = make_executor(
            server, state_observer=lambda state, attempt: states.append((state, attempt))
        )

        with patch("asyncio.sleep", new_callable=AsyncMock):
            await executor.execute(fetch_listings())

        assert states == [
            (ExecutionState.IDLE, 0),
            (ExecutionState.GATING, 0),
            (ExecutionState.DISPATCHING, 0),
            (ExecutionState.CLASSIFYING, 0),
            (ExecutionState.RETRYING, 0),
            (ExecutionState.GATING, 1),
            (ExecutionState.DISPATCHING, 1),
            (ExecutionState.SUCCESS, 1),
        ]

    @pytest.mark.asyncio
    async def test_logs_share_correlation_and_mask_token(
        self, make_executor, silent_logger
    ) -> None:
        logger = silent_logger("request-executor", LogLevel.DEBUG)
        server = ScriptedServer([json_response(503), json_response(200, {})])
        executor = make_executor(server, logger=logger)

        with patch("asyncio.sleep", new_callable=AsyncMock):
            await executor.execute(fetch_listings())

        entries = logger.get_entries()
        assert len({entry.correlation_id for entry in entries}) == 1
        assert all("test-token" not in entry.to_json() for entry in entries)
        assert all(entry.extra["operation"] == "Fetch listings" for entry in entries)

        retry_entry = logger.get_entries_by_level(LogLevel.WARN)[0]
        assert retry_entry.extra["delay_seconds"] == 1.0
        assert retry_entry.extra["status_code"] == 503

    @pytest.mark.asyncio
    async def test_calls_do_not_share_counters(self, make_executor) -> None:
        """Deux appels concurrents ont chacun leur compteur de tentatives."""
        server = ScriptedServer([json_response(200, {})])
        executor = make_executor(server)

        first, second = await asyncio.gather(
            executor.execute_with_result(fetch_listings()),
            executor.execute_with_result(fetch_listings()),
        )

        assert first.attempts == 1
        assert second.attempts == 1


class TestDescriptorAndPolicy:
    """Descripteur et politique."""

    def test_descriptor_requires_absolute_url(self) -> None:
        with pytest.raises(ValueError):
            RequestDescriptor(HttpMethod.GET, "/listings")

    def test_descriptor_requires_operation_name(self) -> None:
        with pytest.raises(ValueError):
            RequestDescriptor(HttpMethod.GET, LISTINGS_URL, operation_name=" ")

    def test_descriptor_method_from_string(self) -> None:
        descriptor = RequestDescriptor("post", LISTINGS_URL)
        assert descriptor.method == HttpMethod.POST

    def test_default_policy(self) -> None:
        policy = RetryPolicy()
        assert policy.max_attempts == 4
        assert [policy.delay_for(n) for n in range(3)] == [1.0, 2.0, 3.0]

    def test_custom_backoff(self) -> None:
        policy = RetryPolicy(backoff_fn=lambda attempt: 2 ** attempt)
        assert [policy.delay_for(n) for n in range(3)] == [1, 2, 4]

    def test_negative_policy_rejected(self) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=-1)
        with pytest.raises(ValueError):
            RetryPolicy(base_delay=-0.1)
