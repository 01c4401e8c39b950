"""Exceptions raised by the relay."""


class RelayError(Exception):
    """Base class for relay errors."""


class BackendRequestError(RelayError):
    """The generation request could not be sent or was rejected."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StreamDecodeError(RelayError):
    """A line of the generation stream could not be decoded."""

    def __init__(self, message: str, line: str = ""):
        super().__init__(message)
        self.line = line


class BackendStreamError(RelayError):
    """The backend reported an error inside the generation stream."""
