"""
Web server - aiohttp application hosting the relay.

Operators (browsers) and the actuator controller both connect over
WebSocket. Browsers send an Origin header, controllers do not; that
decides the role for the lifetime of the connection.
"""

import logging
from pathlib import Path
from typing import Optional

from aiohttp import WSMsgType, web

from angle_relay.config import WEB_HOST, WEB_PORT
from angle_relay.connection import Connection, Role
from angle_relay.params import LIVE_FIELDS, Parameters
from angle_relay.relay import MessageRouter

logger = logging.getLogger(__name__)

WEB_DIR = Path(__file__).parent
TEMPLATES_DIR = WEB_DIR / "templates"


class WebSocketConnection(Connection):
    """Router connection backed by an aiohttp WebSocket."""

    def __init__(self, ws: web.WebSocketResponse, role: Role, peer: Optional[str]):
        super().__init__(role, peer)
        self._ws = ws

    @property
    def closed(self) -> bool:
        return self._ws.closed

    async def send(self, text: str):
        await self._ws.send_str(text)

    async def close(self):
        await self._ws.close()


def classify(request: web.Request) -> Role:
    """Browsers send an Origin header; the controller firmware does not."""
    return Role.OPERATOR if request.headers.get("Origin") else Role.CONTROLLER


class WebServer:
    """
    Relay server.

    Provides:
    - WebSocket relay at / (upgrade requests) and /ws
    - Status and parameter API
    - Index page
    """

    def __init__(self, params: Optional[Parameters] = None, router: Optional[MessageRouter] = None):
        """
        Args:
            params: Runtime parameters, loaded from disk if omitted
            router: Prebuilt router, built from params if omitted
        """
        self.params = params or Parameters.load()
        self.router = router or MessageRouter.from_params(self.params)
        self.app = web.Application()
        self._setup_routes()
        self.app.on_startup.append(self._on_startup)
        self.app.on_cleanup.append(self._on_cleanup)

    def _setup_routes(self):
        """Configure routes."""
        self.app.router.add_get("/", self.index)
        self.app.router.add_get("/ws", self.ws_relay)

        self.app.router.add_get("/api/status", self.api_status)
        self.app.router.add_get("/api/params", self.api_params_get)
        self.app.router.add_post("/api/params", self.api_params_set)

    async def index(self, request):
        """Index page, or the relay socket for WebSocket upgrades."""
        if request.headers.get("Upgrade", "").lower() == "websocket":
            return await self.ws_relay(request)
        html = self._render_template("index.html")
        return web.Response(text=html, content_type="text/html")

    async def api_status(self, request):
        """Get current session, PID and observer status."""
        return web.json_response(self.router.snapshot())

    async def api_params_get(self, request):
        """Get current parameters."""
        return web.json_response(self.params.to_dict())

    async def api_params_set(self, request):
        """
        Update parameters. Include _save=true to persist.

        Only LIVE_FIELDS affect the running relay. Other changed fields are
        listed under "restart_required" and take effect on the next start.
        """
        try:
            data = await request.json()
        except (ValueError, RecursionError):
            return web.json_response({"error": "Body must be JSON"}, status=400)
        if not isinstance(data, dict):
            return web.json_response({"error": "Body must be a JSON object"}, status=400)

        save = data.pop("_save", False)
        before = self.params.to_dict()
        self.params.update(**data)
        after = self.params.to_dict()

        if save:
            self.params.save()

        pending = sorted(
            key for key, value in after.items()
            if value != before[key] and key not in LIVE_FIELDS
        )
        if pending:
            logger.info(f"Parameters changed, apply on restart: {', '.join(pending)}")

        return web.json_response({**after, "restart_required": pending})

    async def ws_relay(self, request):
        """WebSocket for operators and the controller."""
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        conn = WebSocketConnection(ws, classify(request), request.remote)
        self.router.connection_opened(conn)

        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    await self.router.handle_message(conn, msg.data)
                elif msg.type == WSMsgType.BINARY:
                    await self.router.handle_message(conn, msg.data.decode(errors="replace"))
                elif msg.type == WSMsgType.ERROR:
                    logger.error(f"WebSocket error from {conn.peer}: {ws.exception()}")

        except Exception as e:
            logger.error(f"Relay WebSocket error: {e}", exc_info=True)
        finally:
            self.router.connection_closed(conn)

        return ws

    async def _on_startup(self, app):
        """Open the command downlink."""
        await self.router.downlink.start()

    async def _on_cleanup(self, app):
        """Close the command downlink."""
        await self.router.downlink.stop()

    def _render_template(self, name: str) -> str:
        """Render a template file."""
        template_path = TEMPLATES_DIR / name
        if template_path.exists():
            return template_path.read_text()

        # Fallback if template doesn't exist
        return f"""
        <!DOCTYPE html>
        <html>
        <head><title>Angle Relay</title></head>
        <body>
            <h1>Angle Relay</h1>
            <p>Operator page '{name}' not installed. Create it at:</p>
            <pre>{template_path}</pre>
            <nav>
                <a href="/api/status">Status</a> |
                <a href="/api/params">Parameters</a>
            </nav>
        </body>
        </html>
        """


def create_app(params: Optional[Parameters] = None, router: Optional[MessageRouter] = None) -> web.Application:
    """Create the web application."""
    server = WebServer(params, router)
    return server.app


async def run_server(params: Optional[Parameters] = None, host=WEB_HOST, port=WEB_PORT):
    """Run the web server."""
    app = create_app(params)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info(f"Relay server running at http://{host}:{port}")
    return runner
