"""Tests for HealthServer."""

from unittest.mock import Mock

import aiohttp
import pytest

from parley.infrastructure.http.health_server import HealthServer


@pytest.fixture
def mock_discord_client() -> Mock:
    """Create a mock ParleyClient with an open gateway connection."""
    mock = Mock()
    mock.is_closed.return_value = False
    mock.is_connected = True
    mock.latency = 0.0423
    mock.guilds = [Mock(), Mock()]
    return mock


def make_task(name: str, running: bool = True) -> Mock:
    task = Mock()
    task.name = name
    task.is_running = running
    return task


@pytest.fixture
def periodic_tasks() -> list[Mock]:
    return [make_task("persistence-save"), make_task("voice-check")]


@pytest.fixture
def server(mock_discord_client: Mock, periodic_tasks: list[Mock]) -> HealthServer:
    return HealthServer(mock_discord_client, periodic_tasks, host="127.0.0.1", port=0)


class TestHealthServerLiveness:
    """Tests for liveness check."""

    async def test_alive_while_client_open(self, server: HealthServer) -> None:
        result = await server.check_liveness()

        assert result["status"] == "alive"
        assert result["uptime_seconds"] == 0.0

    async def test_closed_client(
        self, server: HealthServer, mock_discord_client: Mock
    ) -> None:
        mock_discord_client.is_closed.return_value = True

        result = await server.check_liveness()

        assert result["status"] == "closed"


class TestHealthServerReadiness:
    """Tests for readiness check."""

    async def test_ready_when_all_healthy(self, server: HealthServer) -> None:
        result = await server.check_readiness()

        assert result == {
            "ready": True,
            "gateway": {"connected": True, "latency_ms": 42.3, "guilds": 2},
            "tasks": {"persistence-save": True, "voice-check": True},
        }

    async def test_not_ready_when_gateway_disconnected(
        self, server: HealthServer, mock_discord_client: Mock
    ) -> None:
        mock_discord_client.is_connected = False

        result = await server.check_readiness()

        assert result["ready"] is False
        assert result["gateway"] == {"connected": False, "latency_ms": None, "guilds": 0}

    async def test_not_ready_when_a_task_stopped(
        self, server: HealthServer, periodic_tasks: list[Mock]
    ) -> None:
        periodic_tasks[1].is_running = False

        result = await server.check_readiness()

        assert result["ready"] is False
        assert result["tasks"] == {"persistence-save": True, "voice-check": False}

    async def test_unknown_latency(
        self, server: HealthServer, mock_discord_client: Mock
    ) -> None:
        """discord.py reports inf before the first heartbeat."""
        mock_discord_client.latency = float("inf")

        result = await server.check_readiness()

        assert result["gateway"]["latency_ms"] is None

    async def test_ready_without_tasks(self, mock_discord_client: Mock) -> None:
        server = HealthServer(mock_discord_client, [], port=0)

        result = await server.check_readiness()

        assert result["ready"] is True
        assert result["tasks"] == {}


class TestHealthServerHTTP:
    """Tests for HTTP server functionality."""

    async def test_server_starts_and_stops(self, server: HealthServer) -> None:
        await server.start()
        assert server.is_running is True
        assert server.port > 0

        await server.stop()
        assert server.is_running is False

    async def test_stop_without_start(self, server: HealthServer) -> None:
        await server.stop()

        assert server.is_running is False

    async def test_live_endpoint(self, server: HealthServer) -> None:
        await server.start()
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(f"http://127.0.0.1:{server.port}/live") as resp:
                    assert resp.status == 200
                    data = await resp.json()
                    assert data["status"] == "alive"
        finally:
            await server.stop()

    async def test_live_endpoint_returns_503_when_closed(
        self, server: HealthServer, mock_discord_client: Mock
    ) -> None:
        mock_discord_client.is_closed.return_value = True

        await server.start()
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(f"http://127.0.0.1:{server.port}/live") as resp:
                    assert resp.status == 503
        finally:
            await server.stop()

    async def test_ready_endpoint_returns_503_when_not_ready(
        self, server: HealthServer, mock_discord_client: Mock
    ) -> None:
        mock_discord_client.is_connected = False

        await server.start()
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(f"http://127.0.0.1:{server.port}/ready") as resp:
                    assert resp.status == 503
                    data = await resp.json()
                    assert data["ready"] is False
                    assert data["gateway"]["connected"] is False
        finally:
            await server.stop()
