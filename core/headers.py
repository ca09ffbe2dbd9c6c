"""Header construction for upstream requests and proxied responses."""

from collections.abc import Mapping

import httpx

from core.config import UpstreamSettings
from core.exceptions import InvalidTargetError

ALLOWED_METHODS = "GET, POST, HEAD, OPTIONS"
NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

# The outbound client re-frames the body it actually sends
REQUEST_FRAMING_HEADERS = ("content-length", "transfer-encoding")
# Hop-by-hop headers the serving runtime sets itself
RESPONSE_HOP_HEADERS = ("connection", "keep-alive", "transfer-encoding")


class HeaderBuilder:
    """Build outbound request headers and caller-facing response headers."""

    def __init__(self, settings: UpstreamSettings) -> None:
        self._settings = settings

    def build_upstream_headers(
        self,
        inbound: Mapping[str, str],
        target_url: str,
    ) -> httpx.Headers:
        """Copy inbound headers and rewrite them for the target host."""
        url = httpx.URL(target_url)
        if not url.host:
            raise InvalidTargetError(f"Invalid target URL: {target_url}")

        headers = httpx.Headers(list(inbound.items()))
        for name in REQUEST_FRAMING_HEADERS:
            headers.pop(name, None)

        headers["Host"] = url.netloc.decode("ascii")
        if self.is_provider_host(url.host):
            headers["Referer"] = self._settings.referer
            headers["User-Agent"] = self._settings.user_agent
        return headers

    def build_response_headers(self, upstream: httpx.Headers) -> httpx.Headers:
        """Copy upstream headers, then force CORS and disable client caching."""
        headers = httpx.Headers(upstream.multi_items())
        for name in RESPONSE_HOP_HEADERS:
            headers.pop(name, None)

        headers["Access-Control-Allow-Origin"] = "*"
        headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
        for name, value in NO_CACHE_HEADERS.items():
            headers[name] = value
        return headers

    def preflight_headers(self) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": ALLOWED_METHODS,
            "Access-Control-Allow-Headers": "*",
        }

    def is_provider_host(self, host: str) -> bool:
        return self._settings.provider_marker in host.lower()
