"""
Tests for Wake-on-LAN signaling.
"""

from unittest.mock import patch

import pytest

from ollama_relay.wake import WakeSignaler, parse_mac_address

MAC = "0F:1E:2D:3C:4B:5A"


class TestParseMacAddress:
    """Accepted and rejected MAC spellings."""

    @pytest.mark.parametrize("text", [
        "0F:1E:2D:3C:4B:5A",
        "0f-1e-2d-3c-4b-5a",
        "0f1e.2d3c.4b5a",
        "0F1E2D3C4B5A",
        "  0F:1E:2D:3C:4B:5A\n",
    ])
    def test_accepted_formats_normalize(self, text):
        assert parse_mac_address(text) == MAC

    @pytest.mark.parametrize("text", ["", "0F:1E:2D", "ZZ:1E:2D:3C:4B:5A", "0F:1E:2D:3C:4B:5A:6B"])
    def test_rejects_invalid(self, text):
        with pytest.raises(ValueError):
            parse_mac_address(text)


class TestWakeSignaler:
    """Sending is best-effort."""

    def test_invalid_mac_fails_at_construction(self):
        with pytest.raises(ValueError):
            WakeSignaler("not-a-mac")

    def test_wake_sends_magic_packet(self):
        signaler = WakeSignaler("0f-1e-2d-3c-4b-5a", broadcast_address="192.168.0.255", port=7)

        with patch("wakeonlan.send_magic_packet") as send:
            assert signaler.wake() is True

        send.assert_called_once_with(MAC, ip_address="192.168.0.255", port=7)

    def test_defaults_to_global_broadcast_on_port_9(self):
        signaler = WakeSignaler(MAC)

        with patch("wakeonlan.send_magic_packet") as send:
            signaler.wake()

        send.assert_called_once_with(MAC, ip_address="255.255.255.255", port=9)

    def test_send_failure_is_logged_not_raised(self, caplog):
        signaler = WakeSignaler(MAC)

        with patch("wakeonlan.send_magic_packet", side_effect=OSError("Network is unreachable")):
            assert signaler.wake() is False

        assert "Failed to send wake packet" in caplog.text
