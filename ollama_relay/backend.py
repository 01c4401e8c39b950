"""Client for the Ollama generate endpoint.

Requests are streamed: ``generate()`` returns as soon as the response
headers arrive and the body is read chunk by chunk through the returned
``GenerationStream``. Nothing is buffered beyond the chunk in flight.
"""

import logging
from typing import AsyncIterator, Optional, Sequence

import httpx

from .errors import BackendRequestError
from .models import GenerateRequest

logger = logging.getLogger(__name__)

# No read timeout once generation starts: a long answer may pause for a
# long time between tokens and is allowed to.
GENERATE_TIMEOUT = httpx.Timeout(connect=10.0, read=None, write=30.0, pool=10.0)


def validate_endpoint(endpoint: str) -> httpx.URL:
    """Parse the Ollama URL, raising ValueError unless it is an http(s) URL with a host."""
    if not endpoint:
        raise ValueError("Ollama endpoint is required")
    try:
        url = httpx.URL(endpoint)
    except httpx.InvalidURL as e:
        raise ValueError(f"Invalid Ollama URL {endpoint!r}: {e}") from None
    if url.scheme not in ("http", "https") or not url.host:
        raise ValueError(f"Ollama URL must be http(s) with a host: {endpoint!r}")
    return url


class GenerationStream:
    """Handle on an in-flight generate response."""

    def __init__(self, response: httpx.Response):
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code

    async def chunks(self) -> AsyncIterator[bytes]:
        """Yield body chunks as they arrive."""
        async for chunk in self.response.aiter_bytes():
            if chunk:
                yield chunk

    async def aclose(self) -> None:
        await self.response.aclose()

    async def __aenter__(self) -> "GenerationStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class OllamaClient:
    """
    Proxy to an Ollama server.

    Owns the shared ``httpx.AsyncClient`` used both for generation and for
    availability probes.
    """

    def __init__(
        self,
        endpoint: str,
        model: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        validate_endpoint(endpoint)
        self.endpoint = endpoint
        self.model = model
        self.client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            limits=httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
                keepalive_expiry=30.0,
            ),
        )

    async def close(self):
        """Close the HTTP client. Call on shutdown."""
        await self.client.aclose()

    def build_payload(self, text: str, context: Sequence[int]) -> dict:
        """Build the JSON body; an empty context is omitted entirely."""
        request = GenerateRequest(
            model=self.model,
            prompt=text,
            context=list(context) if context else None,
        )
        return request.to_payload()

    async def generate(self, text: str, context: Sequence[int] = ()) -> GenerationStream:
        """
        Start a generation for ``text`` continuing ``context``.

        Raises:
            BackendRequestError: on network failure or a non-success status
        """
        payload = self.build_payload(text, context)
        logger.debug(f"Generate request: {len(text)} chars, context of {len(payload.get('context', []))} tokens")

        request = self.client.build_request(
            "POST", self.endpoint, json=payload, timeout=GENERATE_TIMEOUT,
        )
        try:
            response = await self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.warning(f"Could not send request to Ollama at {self.endpoint}: {e}")
            raise BackendRequestError(f"Could not reach Ollama: {e}") from e

        if response.is_error:
            try:
                body = (await response.aread()).decode(errors="replace")[:500]
            except httpx.HTTPError:
                body = ""
            finally:
                await response.aclose()
            logger.warning(f"Ollama returned {response.status_code}: {body}")
            raise BackendRequestError(
                f"Ollama server error ({response.status_code})",
                status_code=response.status_code,
            )

        return GenerationStream(response)
