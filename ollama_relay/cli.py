#!/usr/bin/env python3
"""Ollama relay CLI.

Usage:
    ollama-relay                                   # serve with env/default settings
    ollama-relay --port 3010 --ollama-url http://192.168.0.32:11434/api/generate
    ollama-relay --mac 0F:1E:2D:3C:4B:5A --probe-timeout 5
    ollama-relay chat ws://127.0.0.1:3010/ws/conversation

Environment variables (alternative to args, also read from .env):
    OLLAMA_URL              Generation endpoint
    OLLAMA_MODEL            Model name (default: llama2-uncensored)
    OLLAMA_MAC_ADDRESS      MAC address of the Ollama host, for Wake-on-LAN
    WAKE_BROADCAST_ADDRESS  Magic packet destination (default: 255.255.255.255)
    WAKE_PORT               Magic packet UDP port (default: 9)
    PROBE_TIMEOUT           Seconds before a silent backend is woken (default: 5)
    HUB_CAPACITY            Messages buffered per client (default: 32)
    RELAY_WEBSOCKET_URL     WebSocket URL used by the chat page
    HOST / PORT             Listen address (default: 0.0.0.0:3010)
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger("ollama_relay")


def build_parser(defaults) -> argparse.ArgumentParser:
    """Build the serve argument parser; ``defaults`` is a RelayConfig."""
    parser = argparse.ArgumentParser(
        prog="ollama-relay",
        description="Ollama relay - broadcast WebSocket chat with Wake-on-LAN",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ollama-relay --ollama-url http://192.168.0.32:11434/api/generate
  ollama-relay --mac 0F:1E:2D:3C:4B:5A --probe-timeout 5
  ollama-relay chat ws://127.0.0.1:3010/ws/conversation
        """,
    )
    parser.add_argument(
        "--host",
        default=defaults.host,
        help=f"Address to listen on (default: {defaults.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})",
    )
    parser.add_argument(
        "--ollama-url",
        default=defaults.ollama_url,
        help="Ollama generate endpoint (or set OLLAMA_URL)",
    )
    parser.add_argument(
        "--model",
        default=defaults.model,
        help=f"Model name (default: {defaults.model})",
    )
    parser.add_argument(
        "--mac",
        default=defaults.mac_address,
        help="MAC address of the Ollama host for Wake-on-LAN (or set OLLAMA_MAC_ADDRESS)",
    )
    parser.add_argument(
        "--probe-timeout",
        type=float,
        default=defaults.probe_timeout,
        help=f"Seconds to wait for Ollama before waking it (default: {defaults.probe_timeout})",
    )
    parser.add_argument(
        "--websocket-url",
        default=defaults.websocket_url,
        help="WebSocket URL embedded in the chat page (default: same origin)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point for serving the relay."""
    from dotenv import load_dotenv

    from .backend import validate_endpoint
    from .config import load_config
    from .server import run
    from .wake import parse_mac_address

    load_dotenv()
    defaults = load_config()

    parser = build_parser(defaults)
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        parse_mac_address(args.mac)
    except ValueError as e:
        log.error(str(e))
        sys.exit(2)

    try:
        validate_endpoint(args.ollama_url)
    except ValueError as e:
        log.error(str(e))
        sys.exit(2)

    if args.probe_timeout <= 0:
        log.error("--probe-timeout must be positive")
        sys.exit(2)

    config = defaults.with_overrides(
        host=args.host,
        port=args.port,
        ollama_url=args.ollama_url,
        model=args.model,
        mac_address=args.mac,
        probe_timeout=args.probe_timeout,
        websocket_url=args.websocket_url,
    )

    try:
        run(config, log_level="debug" if args.verbose else "info")
    except KeyboardInterrupt:
        pass


def chat_main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the terminal chat mode."""
    from .chat import DEFAULT_RELAY_URL, run_chat

    parser = argparse.ArgumentParser(
        prog="ollama-relay chat",
        description="Chat with a running relay from the terminal",
    )
    parser.add_argument(
        "url",
        nargs="?",
        default=DEFAULT_RELAY_URL,
        help=f"Relay WebSocket URL (default: {DEFAULT_RELAY_URL})",
    )
    args = parser.parse_args(argv)

    try:
        asyncio.run(run_chat(args.url))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
