from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path

from aiohttp import web

logger = logging.getLogger(__name__)

LIVERELOAD_PATH = "/__livereload"
ROOT_KEY = web.AppKey("root", Path)
_HTML_SUFFIXES = {".html", ".htm"}
_BODY_CLOSE = re.compile(r"</body\s*>", re.IGNORECASE)

CLIENT_SCRIPT = """<script>
(function () {
  var scheme = location.protocol === "https:" ? "wss://" : "ws://";
  var socket = new WebSocket(scheme + location.host + "%s");
  socket.onmessage = function (event) {
    var message = JSON.parse(event.data);
    if (message.type !== "css") {
      location.reload();
      return;
    }
    var links = document.querySelectorAll('link[rel="stylesheet"]');
    for (var i = 0; i < links.length; i++) {
      links[i].href = links[i].href.split("?")[0] + "?livereload=" + Date.now();
    }
  };
})();
</script>""" % LIVERELOAD_PATH


class LiveReloadHub:
    """Connected viewers, reachable over the live-reload websocket."""

    def __init__(self) -> None:
        self._sockets: set[web.WebSocketResponse] = set()

    @property
    def clients(self) -> int:
        return len(self._sockets)

    async def handle(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse(heartbeat=30)
        await ws.prepare(request)
        self._sockets.add(ws)
        logger.debug("live-reload client connected (%d total)", len(self._sockets))
        try:
            async for _ in ws:
                pass
        finally:
            self._sockets.discard(ws)
        return ws

    async def notify(self, kind: str, path: str | None = None) -> int:
        """Send a reload message to every viewer; returns how many received it."""
        sockets = [ws for ws in self._sockets if not ws.closed]
        payload = {"type": kind, "path": path}
        results = await asyncio.gather(
            *(ws.send_json(payload) for ws in sockets), return_exceptions=True
        )
        delivered = 0
        for ws, outcome in zip(sockets, results):
            if isinstance(outcome, Exception):
                logger.debug("dropping live-reload client: %s", outcome)
                self._sockets.discard(ws)
            else:
                delivered += 1
        return delivered

    async def close(self) -> None:
        for ws in list(self._sockets):
            await ws.close()
        self._sockets.clear()


HUB_KEY = web.AppKey("hub", LiveReloadHub)


def inject_client(html: str) -> str:
    matches = list(_BODY_CLOSE.finditer(html))
    if not matches:
        return html + CLIENT_SCRIPT
    pos = matches[-1].start()
    return html[:pos] + CLIENT_SCRIPT + html[pos:]


def _resolve_request_path(root: Path, rel: str) -> Path | None:
    candidate = (root / rel).resolve()
    try:
        candidate.relative_to(root)
    except ValueError:
        return None
    if candidate.is_dir():
        candidate = candidate / "index.html"
    return candidate if candidate.is_file() else None


async def _serve_file(request: web.Request) -> web.StreamResponse:
    root = request.app[ROOT_KEY]
    path = _resolve_request_path(root, request.match_info["path"])
    if path is None:
        raise web.HTTPNotFound()
    if path.suffix.lower() in _HTML_SUFFIXES:
        html = await asyncio.to_thread(path.read_text, encoding="utf-8")
        return web.Response(text=inject_client(html), content_type="text/html")
    return web.FileResponse(path)


def create_app(root: Path, hub: LiveReloadHub) -> web.Application:
    app = web.Application()
    app[ROOT_KEY] = root.resolve()
    app[HUB_KEY] = hub
    app.router.add_get(LIVERELOAD_PATH, hub.handle)
    app.router.add_get("/{path:.*}", _serve_file)
    return app


async def start_server(app: web.Application, host: str, port: int) -> web.AppRunner:
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("serving %s at http://%s:%d/", app[ROOT_KEY], host, port)
    return runner
