"""When and how patiently failed metadata requests are repeated."""

from collections.abc import Iterator

import httpx
from pydantic import BaseModel, ConfigDict, Field

RETRYABLE_STATUS = 429


class BackoffPolicy(BaseModel):
    """
    Exponential backoff schedule of the metadata client.

    Attributes
    ----------
    retries : int
        Repeats after the first attempt
    base_delay : float
        Seconds before the first repeat; doubled for every later one
    max_delay : float
        Ceiling of a single wait

    """

    model_config = ConfigDict(frozen=True)

    retries: int = Field(default=3, ge=0)
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=30.0, ge=0)

    def delays(self) -> Iterator[float]:
        """Waits between consecutive attempts."""
        for attempt in range(self.retries):
            yield min(self.base_delay * 2**attempt, self.max_delay)


def is_transient(error: httpx.HTTPError) -> bool:
    """Connection trouble, rate limiting and server errors; anything else is permanent."""
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status == RETRYABLE_STATUS or status >= 500
    return isinstance(error, httpx.TransportError)


def describe(error: httpx.HTTPError) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        return f"HTTP {error.response.status_code}"
    return str(error) or type(error).__name__
