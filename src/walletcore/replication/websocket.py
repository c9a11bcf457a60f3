"""WebSocket replica endpoint (aiohttp).

Each WebSocket connection is one replica: it receives the full state on
connect and every applied action afterwards, and may send dispatch
messages back. This is also the remote devtools surface.
"""

from __future__ import annotations

import itertools
import logging

import aiohttp
from aiohttp import web

from walletcore.exceptions import ReplicaChannelError
from walletcore.replication.hub import ReplicationHub

_logger = logging.getLogger(__name__)


class WebSocketChannel:
    """Replica channel over one server-side WebSocket."""

    def __init__(self, name: str, ws: web.WebSocketResponse) -> None:
        self.name = name
        self._ws = ws

    async def send(self, text: str) -> None:
        if self._ws.closed:
            raise ReplicaChannelError("WebSocket is closed", channel=self.name)
        try:
            await self._ws.send_str(text)
        except (ConnectionResetError, aiohttp.ClientError) as exc:
            raise ReplicaChannelError(f"WebSocket send failed: {exc}", channel=self.name) from exc

    async def close(self) -> None:
        if not self._ws.closed:
            await self._ws.close()


class WebSocketReplicaServer:
    """Serves replicas on ``ws://<host>:<port><path>``."""

    def __init__(
        self,
        hub: ReplicationHub,
        *,
        host: str = "localhost",
        port: int = 8000,
        path: str = "/",
        heartbeat: float = 30.0,
    ) -> None:
        self._hub = hub
        self._host = host
        self._port = port
        self._path = path
        self._heartbeat = heartbeat
        self._runner: web.AppRunner | None = None
        self._ids = itertools.count(1)

    @property
    def port(self) -> int:
        """Bound port (useful when started with ``port=0``)."""
        if self._runner is not None:
            for address in self._runner.addresses:
                if isinstance(address, tuple) and len(address) >= 2:
                    return int(address[1])
        return self._port

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        app = web.Application()
        app.router.add_get(self._path, self._handle)
        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, self._host, self._port)
        try:
            await site.start()
        except OSError as exc:
            await runner.cleanup()
            raise ReplicaChannelError(f"Cannot listen on {self._host}:{self._port}: {exc}", channel="websocket") from exc
        self._runner = runner
        _logger.debug("Replica WebSocket server listening on %s:%s", self._host, self.port)

    async def stop(self) -> None:
        runner, self._runner = self._runner, None
        if runner is not None:
            await runner.cleanup()

    async def _handle(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse(heartbeat=self._heartbeat)
        await ws.prepare(request)
        channel = WebSocketChannel(f"ws-{next(self._ids)}", ws)
        self._hub.attach(channel)
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._hub.receive(msg.data, source=channel.name)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    _logger.debug("Replica %s connection error", channel.name, exc_info=ws.exception())
                    break
        finally:
            await self._hub.detach(channel.name)
        return ws
