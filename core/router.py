"""Request classification - decides what each inbound request receives."""

import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal
from urllib.parse import unquote

import httpx

from core.config import Config

RouteKind = Literal["preflight", "named", "passthrough", "forbidden", "redirect"]

PREFLIGHT_METHOD = "OPTIONS"
URL_SCHEMES = ("http://", "https://")
# "." and ".." path segments, literal or percent-encoded
DOT_SEGMENT = re.compile(r"(?<=/)(?:\.|%2e){1,2}(?=/|$)", re.IGNORECASE)


@dataclass(frozen=True)
class RouteDecision:
    """Routing decision for a request."""

    kind: RouteKind
    target_url: str | None = None

    @property
    def forwards(self) -> bool:
        """Whether the decision requires an upstream call."""
        return self.kind in ("named", "passthrough")


class RouteDecider:
    """Classify requests into named routes, passthroughs, or policy replies."""

    def __init__(self, config: Config, clock: Callable[[], float] = time.time):
        self._config = config
        self._clock = clock

    def decide(self, method: str, path: str, query: str = "") -> RouteDecision:
        """Return the decision for a path and query string as received.

        Embedded URLs are checked twice: as received, and after dot segments
        are resolved the way the outbound client will send them. The resolved
        form becomes the target.
        """
        if method.upper() == PREFLIGHT_METHOD:
            return RouteDecision(kind="preflight")

        script = self._config.routing.routes.get(path)
        if script is not None:
            return RouteDecision(kind="named", target_url=self._named_target(script))

        embedded = self._embedded_url(path, query)
        if embedded.startswith(URL_SCHEMES):
            target = self._resolve(embedded)
            if target is not None and self.is_allowed(embedded) and self.is_allowed(target):
                return RouteDecision(kind="passthrough", target_url=target)
            return RouteDecision(kind="forbidden", target_url=embedded)

        return RouteDecision(kind="redirect", target_url=self._config.repo_home_url)

    def is_allowed(self, url: str) -> bool:
        """Check if the URL starts with any allow-listed prefix."""
        return any(url.startswith(prefix) for prefix in self._config.allow_list)

    def _named_target(self, script: str) -> str:
        # Millisecond timestamp so the upstream never serves a stale copy
        stamp = int(self._clock() * 1000)
        param = self._config.upstream.cache_bust_param
        return f"{self._config.route_target(script)}?{param}={stamp}"

    @staticmethod
    def _resolve(url: str) -> str | None:
        """Resolve dot segments in the path; None if httpx cannot parse the URL."""
        head, sep, query = url.partition("?")
        head = DOT_SEGMENT.sub(lambda m: unquote(m.group(0)), head)
        try:
            return str(httpx.URL(head + sep + query))
        except httpx.InvalidURL:
            return None

    @staticmethod
    def _embedded_url(path: str, query: str) -> str:
        """Strip the leading slash and re-attach the query string verbatim."""
        embedded = path[1:] if path.startswith("/") else path
        if query:
            embedded += f"?{query}"
        return embedded
