"""Configuration for the Ollama relay.

Simple configuration loader from environment variables. A ``.env`` file in
the working directory is honoured by the CLI (python-dotenv) before this
module reads the environment.
"""

import os
from dataclasses import dataclass, replace
from functools import lru_cache


DEFAULT_OLLAMA_URL = "http://127.0.0.1:11434/api/generate"
DEFAULT_MODEL = "llama2-uncensored"
DEFAULT_MAC_ADDRESS = "0F:1E:2D:3C:4B:5A"


@dataclass(frozen=True)
class RelayConfig:
    """Relay settings.

    Attributes:
        ollama_url: Generation endpoint, used for both the probe and requests
        model: Model name sent with every generation request
        mac_address: Hardware address of the backend host (wake target)
        wake_broadcast_address: Destination address of the magic packet
        wake_port: UDP port of the magic packet
        probe_timeout: Seconds the availability probe may take
        hub_capacity: Messages buffered per subscriber before dropping
        websocket_url: URL the chat page connects to ("" = same origin)
        host: Address the HTTP server binds to
        port: Port the HTTP server binds to
    """

    ollama_url: str = DEFAULT_OLLAMA_URL
    model: str = DEFAULT_MODEL
    mac_address: str = DEFAULT_MAC_ADDRESS
    wake_broadcast_address: str = "255.255.255.255"
    wake_port: int = 9
    probe_timeout: float = 5.0
    hub_capacity: int = 32
    websocket_url: str = ""
    host: str = "0.0.0.0"
    port: int = 3010

    def with_overrides(self, **overrides) -> "RelayConfig":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


@lru_cache(maxsize=1)
def load_config() -> RelayConfig:
    """
    Load relay configuration from environment variables.

    Returns:
        RelayConfig with environment values applied over the defaults
    """
    return RelayConfig(
        # Backend (Ollama) settings
        ollama_url=os.getenv("OLLAMA_URL", DEFAULT_OLLAMA_URL),
        model=os.getenv("OLLAMA_MODEL", DEFAULT_MODEL),

        # Wake-on-LAN target; the MAC is configured, never discovered
        mac_address=os.getenv("OLLAMA_MAC_ADDRESS", DEFAULT_MAC_ADDRESS),
        wake_broadcast_address=os.getenv("WAKE_BROADCAST_ADDRESS", "255.255.255.255"),
        wake_port=int(os.getenv("WAKE_PORT", "9")),

        probe_timeout=float(os.getenv("PROBE_TIMEOUT", "5.0")),
        hub_capacity=int(os.getenv("HUB_CAPACITY", "32")),

        # Server settings
        websocket_url=os.getenv("RELAY_WEBSOCKET_URL", ""),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3010")),
    )
