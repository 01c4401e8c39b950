"""Ollama relay - broadcast WebSocket chat in front of a sleeping Ollama server."""

__version__ = "0.1.0"
