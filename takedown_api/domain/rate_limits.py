"""Admission results produced by the submission rate limiter."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RateLimitStatus(BaseModel):
    """Answer to one ``admit`` call for a single actor."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    limit: int = Field(ge=0)
    remaining: int = Field(ge=0, description="Admissions left in the current window")
    retry_after_seconds: int = Field(
        default=0,
        ge=0,
        description="Seconds until the actor's window restarts; zero when admitted",
    )

    def __bool__(self) -> bool:
        return self.allowed


class RateLimitExceededPayload(BaseModel):
    """Body of a 429 response."""

    error: str = "Too many requests"
    message: str
    retry_after: int = Field(ge=0)
