"""Terminal chat mode - talk to a running relay over its WebSocket.

Everything the relay broadcasts is printed as it arrives, so replies stream
in token by token and messages from other connected clients show up too.
"""

import asyncio
from typing import Optional

import websockets
from rich.console import Console

DEFAULT_RELAY_URL = "ws://127.0.0.1:3010/ws/conversation"

console = Console(highlight=False)

EXIT_COMMANDS = ("quit", "exit", "/quit", "/exit")


class RelayChat:
    """Interactive chat against a relay WebSocket."""

    def __init__(self, url: str = DEFAULT_RELAY_URL):
        self.url = url
        self.received = 0

    async def _print_incoming(self, ws) -> None:
        async for message in ws:
            if isinstance(message, bytes):
                continue
            self.received += 1
            console.print(message, end="", markup=False)

    async def _read_input(self) -> Optional[str]:
        try:
            return await asyncio.to_thread(input)
        except (EOFError, KeyboardInterrupt):
            return None

    async def run(self) -> None:
        """Connect and chat until the user quits or the relay goes away."""
        console.print(f"[cyan]→[/cyan] Connecting to {self.url}...")
        async with websockets.connect(self.url, ping_interval=30, ping_timeout=10) as ws:
            console.print("[dim]Type your message and press Enter. Type 'quit' to exit.[/dim]")
            printer = asyncio.create_task(self._print_incoming(ws))
            try:
                while not printer.done():
                    text = await self._read_input()
                    if text is None or text.strip().lower() in EXIT_COMMANDS:
                        break
                    if not text.strip():
                        continue
                    await ws.send(text)
            except websockets.exceptions.ConnectionClosed:
                pass
            finally:
                printer.cancel()
                try:
                    await printer
                except (asyncio.CancelledError, websockets.exceptions.ConnectionClosed):
                    pass

        console.print()
        console.print(f"[cyan]→[/cyan] Chat ended ({self.received} messages received).")


async def run_chat(url: str = DEFAULT_RELAY_URL) -> None:
    """Run the terminal chat mode.

    Args:
        url: Relay WebSocket URL (default: ws://127.0.0.1:3010/ws/conversation)
    """
    chat = RelayChat(url)
    try:
        await chat.run()
    except (OSError, websockets.exceptions.InvalidHandshake, websockets.exceptions.InvalidURI) as e:
        console.print(f"[red]✗[/red] Cannot connect to relay: {e}")
