"""Backend availability probe.

A refused connection means the host is up but Ollama is not, so waking it
would not help. No answer at all within the budget is what a sleeping host
looks like, and only that case sends the wake packet.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional, Protocol

import httpx

logger = logging.getLogger(__name__)


class Waker(Protocol):
    def wake(self) -> bool: ...


class Availability(Enum):
    """Outcome of a probe."""
    AVAILABLE = "available"
    UNREACHABLE = "unreachable"  # request failed, host refused or URL unusable
    TIMED_OUT = "timed_out"      # no answer within the budget

    @property
    def is_available(self) -> bool:
        return self is Availability.AVAILABLE


async def probe(
    client: httpx.AsyncClient,
    endpoint: str,
    budget: float = 5.0,
    waker: Optional[Waker] = None,
) -> Availability:
    """Check whether the backend answers within ``budget`` seconds.

    Any HTTP response counts as available, whatever its status. On timeout
    ``waker.wake()`` is called once; its result is only logged.
    """
    try:
        response = await asyncio.wait_for(client.get(endpoint), timeout=budget)
    except (asyncio.TimeoutError, httpx.TimeoutException):
        logger.error(f"Timed out trying to ping Ollama at {endpoint}")
        if waker is not None:
            if not waker.wake():
                logger.warning("Wake signal could not be sent")
        return Availability.TIMED_OUT
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.error(f"Error trying to ping Ollama: {e}")
        return Availability.UNREACHABLE

    logger.debug(f"Ollama answered probe with HTTP {response.status_code}")
    return Availability.AVAILABLE


class BackendProber:
    """Probe bound to one endpoint, budget and wake target."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        budget: float = 5.0,
        waker: Optional[Waker] = None,
    ):
        self.client = client
        self.endpoint = endpoint
        self.budget = budget
        self.waker = waker

    async def check(self) -> Availability:
        return await probe(self.client, self.endpoint, self.budget, self.waker)
