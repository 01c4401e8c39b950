"""HTTP and WebSocket front end of the relay.

Routes:
    GET  /           single-page chat UI
    GET  /health     relay status
    WS   /ws/{app}   chat connection; every client shares one hub
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse
from rich.console import Console
from starlette.websockets import WebSocketState

from . import __version__
from .backend import OllamaClient
from .config import RelayConfig, load_config
from .hub import BroadcastHub
from .models import HealthResponse
from .prober import BackendProber, Waker
from .session import ConnectionSession
from .wake import WakeSignaler

logger = logging.getLogger(__name__)
console = Console()

INDEX_HTML = r"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Ollama Relay</title></head>
<body style="display: flex; justify-content: center; align-items: center; min-height: 100vh;">
    <div style="text-align: center;">
        <div id="sendFormContainer">
            <form id="sendForm">
                <input id="msgInput" type="text" />
                <button type="submit">Ask</button>
            </form>
            <textarea id="msgsArea" cols="50" rows="30"></textarea>
        </div>
    </div>
</body>
<script>
    const configuredUrl = __WEBSOCKET_URL__;
    const sameOriginUrl = (location.protocol === "https:" ? "wss://" : "ws://")
        + location.host + "/ws/conversation";
    const sendForm = document.querySelector("#sendForm");
    const msgInput = document.querySelector("#msgInput");
    const msgsArea = document.querySelector("#msgsArea");

    const ws = new WebSocket(configuredUrl || sameOriginUrl);
    ws.onmessage = function(event) {
        msgsArea.value += event.data;
        msgsArea.scrollTop = msgsArea.scrollHeight;
        msgsArea.style.height = msgsArea.scrollHeight + "px";
    }
    sendForm.addEventListener("submit", function(event) {
        event.preventDefault();
        ws.send(msgInput.value);
        msgInput.value = "";
    });

    msgsArea.style.width = "80%";
</script>
</html>
"""


def render_index(websocket_url: str = "") -> str:
    """Render the chat page; an empty URL makes the page use its own origin."""
    return INDEX_HTML.replace("__WEBSOCKET_URL__", json.dumps(websocket_url))


class WebSocketTransport:
    """Text-frame view of a FastAPI WebSocket.

    Binary frames are skipped; a disconnect raises ``WebSocketDisconnect``.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def receive_text(self) -> str:
        while True:
            message = await self.websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
            text = message.get("text")
            if text is not None:
                return text
            logger.debug("Ignoring non-text frame")

    async def send_text(self, data: str) -> None:
        await self.websocket.send_text(data)


def create_app(
    config: Optional[RelayConfig] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    waker: Optional[Waker] = None,
) -> FastAPI:
    """Build the relay application.

    The hub, backend client and prober are created here, once per app, and
    handed to every session.

    Args:
        config: Relay settings (defaults to the environment)
        transport: httpx transport for the backend client (tests use a mock)
        waker: Wake target (defaults to a WakeSignaler for the configured MAC)
    """
    config = config or load_config()
    hub = BroadcastHub(config.hub_capacity)
    backend = OllamaClient(config.ollama_url, config.model, transport=transport)
    if waker is None:
        waker = WakeSignaler(
            config.mac_address,
            broadcast_address=config.wake_broadcast_address,
            port=config.wake_port,
        )
    prober = BackendProber(backend.client, config.ollama_url, config.probe_timeout, waker)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Relaying to {config.ollama_url} (model {config.model})")
        yield
        await backend.close()

    app = FastAPI(
        title="Ollama Relay",
        description="Broadcast chat relay in front of an Ollama server",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.hub = hub
    app.state.backend = backend
    app.state.prober = prober

    @app.get("/", response_class=HTMLResponse)
    async def index():
        return render_index(config.websocket_url)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        """Relay status. Does not probe the backend (a probe may wake it)."""
        return HealthResponse(
            subscribers=hub.subscriber_count,
            backend_url=config.ollama_url,
            model=config.model,
            capacity=hub.capacity,
        )

    @app.websocket("/ws/{app_name}")
    async def conversation(websocket: WebSocket, app_name: str):
        await websocket.accept()
        logger.debug(f"WebSocket upgrade for /ws/{app_name} from {websocket.client}")
        session = ConnectionSession(WebSocketTransport(websocket), hub, backend, prober)
        await session.run()
        if (
            websocket.client_state == WebSocketState.CONNECTED
            and websocket.application_state == WebSocketState.CONNECTED
        ):
            try:
                await websocket.close()
            except RuntimeError:
                pass  # client already gone

    return app


def run(config: Optional[RelayConfig] = None, log_level: str = "info") -> None:
    """Serve the relay with uvicorn until interrupted."""
    import uvicorn

    config = config or load_config()

    console.print("[bold green]Ollama Relay[/bold green]")
    console.print("=" * 40)
    console.print(f"[green]Ollama endpoint:[/green] {config.ollama_url}")
    console.print(f"[green]Model:[/green] {config.model}")
    console.print(f"[green]Wake target:[/green] {config.mac_address}")
    console.print(f"Starting server at [cyan]http://{config.host}:{config.port}[/cyan]")
    console.print("Press Ctrl+C to stop\n")

    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=log_level,
    )
