"""Health check HTTP server.

``/live`` answers as long as the Discord client has not been closed.
``/ready`` additionally requires an open gateway connection and every
periodic task (state saving, voice presence checks) to be running.
"""

from __future__ import annotations

import logging
import math
import time
from typing import TYPE_CHECKING, Any

from aiohttp import web

if TYPE_CHECKING:
    from parley.application.services.periodic_task import PeriodicTask
    from parley.infrastructure.discord.client import ParleyClient

logger = logging.getLogger(__name__)


class HealthServer:
    """Serves the agent's liveness and readiness over HTTP."""

    def __init__(
        self,
        discord_client: ParleyClient,
        periodic_tasks: list[PeriodicTask],
        host: str = "0.0.0.0",
        port: int = 8080,
    ) -> None:
        """Initialize the health server.

        Args:
            discord_client: Client whose gateway state is reported.
            periodic_tasks: Background tasks reported by name.
            host: Interface to bind.
            port: Port to listen on. 0 picks a free port.
        """
        self._client = discord_client
        self._periodic_tasks = periodic_tasks
        self._host = host
        self._port = port
        self._runner: web.AppRunner | None = None
        self._started_at: float | None = None

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    @property
    def port(self) -> int:
        """Bound port once started (the configured one before that)."""
        if self._runner is not None and self._runner.addresses:
            return self._runner.addresses[0][1]
        return self._port

    def _gateway_latency_ms(self) -> float | None:
        latency = self._client.latency
        if not isinstance(latency, (int, float)) or not math.isfinite(latency):
            return None
        return round(latency * 1000, 1)

    async def check_liveness(self) -> dict[str, Any]:
        alive = not self._client.is_closed()
        uptime = 0.0 if self._started_at is None else time.monotonic() - self._started_at
        return {
            "status": "alive" if alive else "closed",
            "uptime_seconds": round(uptime, 1),
        }

    async def check_readiness(self) -> dict[str, Any]:
        connected = self._client.is_connected
        tasks = {task.name: task.is_running for task in self._periodic_tasks}
        return {
            "ready": connected and all(tasks.values()),
            "gateway": {
                "connected": connected,
                "latency_ms": self._gateway_latency_ms() if connected else None,
                "guilds": len(self._client.guilds) if connected else 0,
            },
            "tasks": tasks,
        }

    async def _live(self, request: web.Request) -> web.Response:
        result = await self.check_liveness()
        return web.json_response(result, status=200 if result["status"] == "alive" else 503)

    async def _ready(self, request: web.Request) -> web.Response:
        result = await self.check_readiness()
        return web.json_response(result, status=200 if result["ready"] else 503)

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/live", self._live)
        app.router.add_get("/ready", self._ready)
        return app

    async def start(self) -> None:
        runner = web.AppRunner(self.create_app())
        await runner.setup()
        await web.TCPSite(runner, self._host, self._port).start()
        self._runner = runner
        self._started_at = time.monotonic()
        logger.info("Health server listening on %s:%d", self._host, self.port)

    async def stop(self) -> None:
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        logger.info("Health server stopped")
