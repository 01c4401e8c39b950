"""Wire models for the Ollama generate API and the relay's HTTP surface."""

from typing import Optional

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    """Body of POST /api/generate."""
    model: str
    prompt: str
    # None means "start a new conversation"; the field is then left out
    context: Optional[list[int]] = None

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)


class GenerateChunk(BaseModel):
    """One NDJSON object of the generate stream."""
    response: str = ""
    context: Optional[list[int]] = None
    done: bool = False
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """Response body for /health."""
    status: str = "ok"
    subscribers: int = 0
    backend_url: str = ""
    model: str = ""
    capacity: int = Field(default=0, description="Messages buffered per client")
