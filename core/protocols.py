"""Shared protocol definitions."""

from typing import Protocol

from core.router import RouteDecision


class RequestLogger(Protocol):
    """Protocol for request logging (Dashboard)."""

    def log_route(self, method: str, path: str, decision: RouteDecision) -> None: ...
    def log_forward(self, decision: RouteDecision, status: int) -> None: ...
    def log_error(self, route: str, status: int, message: str) -> None: ...
