"""Shared request data types."""

from dataclasses import dataclass

import httpx


@dataclass(frozen=True)
class ForwardResult:
    """Outcome of one outbound call: an open upstream response or a failure message."""

    response: httpx.Response | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.response is not None and self.error is None

    @classmethod
    def success(cls, response: httpx.Response) -> "ForwardResult":
        return cls(response=response)

    @classmethod
    def failure(cls, error: str) -> "ForwardResult":
        return cls(error=error)
