"""Per-client connection session.

Each connected client gets one ``ConnectionSession`` running two tasks:

- the reader takes text frames from the client and runs one
  probe → generate → stream turn per frame, strictly one at a time;
- the forwarder drains the session's hub subscription into the client's
  outbound frames.

Everything a session publishes goes through the hub, so every client
(including the sender) sees the whole conversation.
"""

import asyncio
import logging
import uuid
from enum import Enum
from typing import Protocol

import httpx
from fastapi import WebSocketDisconnect

from .backend import OllamaClient
from .decoder import relay_stream
from .errors import BackendRequestError, BackendStreamError, StreamDecodeError
from .hub import BroadcastHub
from .prober import BackendProber

logger = logging.getLogger(__name__)

CONNECTED_NOTICE = "Connected..."
REPLY_NOTICE = "\n\nOllama: "
OFFLINE_NOTICE = (
    "System: Ollama server is offline...wait for ping to wake server "
    "and try again in 10 seconds "
)

# Errors that mean the client side of the connection is gone
TRANSPORT_ERRORS = (WebSocketDisconnect, RuntimeError, OSError)


def user_notice(text: str) -> str:
    return f"\n\nYou: {text}"


class FrameTransport(Protocol):
    """Bidirectional text-frame connection to one client."""

    async def receive_text(self) -> str: ...

    async def send_text(self, data: str) -> None: ...


class SessionState(Enum):
    CONNECTED = "connected"
    ACTIVE = "active"
    CLOSED = "closed"


class ConnectionSession:
    """
    One client's lifecycle: Connected → Active(context) → Closed.

    The conversation context belongs to this session alone and is only
    replaced when a turn's stream completes and carries a new one.
    """

    def __init__(
        self,
        transport: FrameTransport,
        hub: BroadcastHub,
        backend: OllamaClient,
        prober: BackendProber,
    ):
        self.id = uuid.uuid4().hex[:8]
        self.transport = transport
        self.hub = hub
        self.backend = backend
        self.prober = prober
        self.context: list[int] = []
        self.state = SessionState.CONNECTED
        # Subscribe before announcing so this client sees its own greeting
        self.subscription = hub.subscribe()

    async def run(self) -> None:
        """Run until the client goes away. Returns once both tasks exited."""
        self.state = SessionState.ACTIVE
        logger.info(f"Session {self.id} connected")
        self.hub.publish(CONNECTED_NOTICE)

        reader = asyncio.create_task(self._read_loop(), name=f"session-{self.id}-reader")
        forwarder = asyncio.create_task(self._forward_loop(), name=f"session-{self.id}-forwarder")
        try:
            await reader
        finally:
            # Reader exit means the client is gone
            for task in (reader, forwarder):
                if not task.done():
                    task.cancel()
            await asyncio.gather(reader, forwarder, return_exceptions=True)
            self.subscription.close()
            self.state = SessionState.CLOSED
            logger.info(f"Session {self.id} closed")

    async def _read_loop(self) -> None:
        while True:
            try:
                text = await self.transport.receive_text()
            except TRANSPORT_ERRORS as e:
                logger.debug(f"Session {self.id} inbound closed: {str(e) or type(e).__name__}")
                return
            await self.handle_message(text)

    async def _forward_loop(self) -> None:
        try:
            async for message in self.subscription:
                await self.transport.send_text(message)
        except TRANSPORT_ERRORS as e:
            logger.debug(f"Session {self.id} outbound closed: {str(e) or type(e).__name__}")
        finally:
            self.subscription.close()

    async def handle_message(self, text: str) -> None:
        """Run one turn for ``text``."""
        logger.debug(f"Session {self.id} received text: {text}")
        self.hub.publish(user_notice(text))

        availability = await self.prober.check()
        if not availability.is_available:
            logger.warning(f"Session {self.id}: Ollama {availability.value}, turn dropped")
            self.hub.publish(OFFLINE_NOTICE)
            return

        self.hub.publish(REPLY_NOTICE)
        try:
            stream = await self.backend.generate(text, self.context)
        except BackendRequestError as e:
            logger.error(f"Session {self.id}: generation request failed: {e}")
            return

        try:
            async with stream:
                context = await relay_stream(stream, self.hub.publish)
        except (StreamDecodeError, BackendStreamError) as e:
            logger.error(f"Session {self.id}: generation stream aborted: {e}")
            return
        except (httpx.HTTPError, httpx.StreamError) as e:
            logger.error(f"Session {self.id}: generation stream interrupted: {e}")
            return

        if context is not None:
            self.context = context
