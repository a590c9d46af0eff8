"""
Tests unitaires: Core - Client Factory
"""

import json

import httpx
import pytest

from conftest import ScriptedServer, json_response
from resilient_client.auth import InMemoryTokenStore, JsonFileTokenStore
from resilient_client.core import (
    ClientConfig,
    ConnectivitySettings,
    RemoteClient,
    build_client,
    build_probe,
    build_timeout_manager,
)
from resilient_client.network import (
    HttpMethod,
    InterfaceReachabilityProbe,
    ReachabilityState,
    RequestDescriptor,
    SocketReachabilityProbe,
    StaticReachabilityProbe,
    TimeoutType,
)


def make_config(**overrides) -> ClientConfig:
    raw = {"base_url": "https://api.example.com/api/v1"}
    raw.update(overrides)
    return ClientConfig.from_dict(raw)


class TestBuildProbe:
    def test_interfaces(self) -> None:
        assert isinstance(build_probe(ConnectivitySettings()), InterfaceReachabilityProbe)

    def test_socket(self) -> None:
        probe = build_probe(ConnectivitySettings(probe="socket", host="8.8.8.8", port=443))
        assert isinstance(probe, SocketReachabilityProbe)
        assert (probe.host, probe.port) == ("8.8.8.8", 443)

    @pytest.mark.asyncio
    async def test_always_online(self) -> None:
        probe = build_probe(ConnectivitySettings(probe="always_online"))
        assert isinstance(probe, StaticReachabilityProbe)
        assert await probe.probe() == ReachabilityState.CONNECTED

    def test_unknown(self) -> None:
        with pytest.raises(ValueError):
            build_probe(ConnectivitySettings(probe="ping"))


class TestBuildTimeoutManager:
    def test_operation_overrides(self) -> None:
        config = make_config(
            timeouts={
                "request_timeout": 20,
                "operations": {"Upload image": {"request_timeout": 30}},
            }
        )
        manager = build_timeout_manager(config)

        assert manager.get_timeout(TimeoutType.REQUEST) == 20
        assert manager.get_timeout(TimeoutType.REQUEST, "Upload image") == 30
        assert manager.get_timeout(TimeoutType.CONNECTION, "Upload image") == 10.0


class TestBuildClient:
    def test_components_wired(self) -> None:
        config = make_config(retry={"max_retries": 1, "base_delay": 0.5})
        client = build_client(config, output_handler=None)

        assert isinstance(client, RemoteClient)
        assert client.executor.policy.max_retries == 1
        assert client.executor.policy.base_delay == 0.5
        assert client.token_provider.token_key == "auth_token"
        assert isinstance(client.gate.probe, InterfaceReachabilityProbe)

    def test_file_token_store_from_config(self, tmp_path) -> None:
        path = tmp_path / "storage.json"
        client = build_client(
            make_config(auth={"token_store_path": str(path)}), output_handler=None
        )
        assert isinstance(client.token_provider._store, JsonFileTokenStore)

    def test_url_helper(self) -> None:
        client = build_client(make_config(), output_handler=None)
        assert (
            client.url("listings", {"page": 2, "q": None})
            == "https://api.example.com/api/v1/listings?page=2"
        )

    @pytest.mark.asyncio
    async def test_end_to_end_request(self, tmp_path) -> None:
        path = tmp_path / "storage.json"
        path.write_text(json.dumps({"auth_token": "file-token"}), encoding="utf-8")
        server = ScriptedServer([json_response(200, {"id": "l-1"})])
        lines = []

        async with build_client(
            make_config(auth={"token_store_path": str(path)}),
            http_client=server.client(),
            probe=StaticReachabilityProbe(ReachabilityState.CONNECTED),
            output_handler=lines.append,
        ) as client:
            listing = await client.executor.execute(
                RequestDescriptor(
                    HttpMethod.GET, client.url("listings/l-1"), operation_name="Fetch listing"
                )
            )

        assert listing == {"id": "l-1"}
        assert server.requests[0].headers["Authorization"] == "Bearer file-token"
        assert lines
        assert all("file-token" not in line for line in lines)

    @pytest.mark.asyncio
    async def test_caller_correlation_id_propagated(self) -> None:
        """Les logs de tous les composants portent l'ID de l'appelant."""
        server = ScriptedServer([json_response(200, {"id": "l-1"})])
        lines = []

        async with build_client(
            make_config(logging={"min_level": "DEBUG"}),
            http_client=server.client(),
            probe=StaticReachabilityProbe(ReachabilityState.CONNECTED),
            token_store=InMemoryTokenStore(),
            output_handler=lines.append,
            correlation_id="req-42",
        ) as client:
            await client.executor.execute(
                RequestDescriptor(
                    HttpMethod.GET, client.url("listings/l-1"), operation_name="Fetch listing"
                )
            )

        entries = [json.loads(line) for line in lines]
        components = {entry["component"] for entry in entries}
        assert {"request-executor", "auth-token-provider"} <= components
        assert {entry["correlation_id"] for entry in entries} == {"req-42"}

    @pytest.mark.asyncio
    async def test_injected_token_store(self) -> None:
        server = ScriptedServer([json_response(200, {})])
        client = build_client(
            make_config(auth={"token_key": "session"}),
            http_client=server.client(),
            probe=StaticReachabilityProbe(),
            token_store=InMemoryTokenStore({"session": "abc"}),
            output_handler=None,
        )

        assert await client.token_provider.get_token() == "abc"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_http_client_closed(self) -> None:
        client = build_client(make_config(), output_handler=None)
        await client.aclose()
        assert client.executor._client.is_closed
        assert isinstance(client.executor._client, httpx.AsyncClient)
