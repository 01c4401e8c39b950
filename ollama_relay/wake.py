"""Wake-on-LAN signaling for the backend host.

The backend machine is expected to sleep when idle. A magic packet broadcast
on the local network powers it back on.
"""

import logging
import re

import wakeonlan

logger = logging.getLogger(__name__)

_MAC_SEPARATORS = re.compile(r"[:\-.]")
_HEX_DIGITS = re.compile(r"[0-9a-fA-F]{12}")


def parse_mac_address(mac: str) -> str:
    """Normalize a MAC address to ``0F:1E:2D:3C:4B:5A`` form.

    Accepts ``0F:1E:2D:3C:4B:5A``, ``0f-1e-2d-3c-4b-5a``, ``0f1e.2d3c.4b5a``
    and ``0F1E2D3C4B5A``.

    Raises:
        ValueError: if the string is not a 48-bit hex address
    """
    digits = _MAC_SEPARATORS.sub("", mac.strip())
    if not _HEX_DIGITS.fullmatch(digits):
        raise ValueError(f"Invalid MAC address: {mac!r}")
    digits = digits.upper()
    return ":".join(digits[i:i + 2] for i in range(0, 12, 2))


class WakeSignaler:
    """Sends the wake broadcast for one configured host.

    Waking is best-effort: ``wake()`` logs failures and returns False
    instead of raising, since the caller already knows the backend is down.
    """

    def __init__(
        self,
        mac_address: str,
        broadcast_address: str = "255.255.255.255",
        port: int = 9,
    ):
        # Validate eagerly so a bad MAC fails at startup, not on first timeout
        self.mac_address = parse_mac_address(mac_address)
        self.broadcast_address = broadcast_address
        self.port = port

    def wake(self) -> bool:
        """Broadcast one magic packet. Returns True if it was sent."""
        try:
            wakeonlan.send_magic_packet(
                self.mac_address,
                ip_address=self.broadcast_address,
                port=self.port,
            )
        except OSError as e:
            logger.error(f"Failed to send wake packet to {self.mac_address}: {e}")
            return False

        logger.info(f"Wake packet sent to {self.mac_address} via {self.broadcast_address}:{self.port}")
        return True
