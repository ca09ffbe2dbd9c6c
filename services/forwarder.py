"""HTTP relaying of gateway requests to the upstream host."""

from collections.abc import Mapping

import httpx
from fastapi import Request, Response
from fastapi.responses import PlainTextResponse, StreamingResponse
from starlette.background import BackgroundTask

from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from core.request_types import ForwardResult

BODYLESS_METHODS = ("GET", "HEAD")


class Forwarder:
    """Relay one request to a resolved target and stream back its response."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        header_builder: HeaderBuilder,
        logger: RequestLogger,
    ) -> None:
        self._client = client
        self._headers = header_builder
        self._logger = logger

    async def forward(self, target_url: str, request: Request) -> Response:
        """Proxy the inbound request to target_url. Never raises."""
        try:
            body = await request.body()
        except Exception as e:
            result = ForwardResult.failure(str(e) or type(e).__name__)
        else:
            result = await self.send(target_url, request.method, request.headers, body)

        if not result.ok:
            self._logger.log_error(target_url, 500, result.error or "")
            return PlainTextResponse(f"Proxy Error: {result.error}", status_code=500)

        upstream = result.response
        response = StreamingResponse(
            upstream.aiter_raw(),
            status_code=upstream.status_code,
            background=BackgroundTask(self._cleanup_streaming, upstream),
        )
        for key, value in self._headers.build_response_headers(upstream.headers).multi_items():
            response.headers.append(key, value)
        return response

    async def send(
        self,
        target_url: str,
        method: str,
        headers: Mapping[str, str],
        body: bytes | None,
    ) -> ForwardResult:
        """Issue the outbound request, returning the open streamed response."""
        try:
            upstream_headers = self._headers.build_upstream_headers(headers, target_url)
            content = None if method.upper() in BODYLESS_METHODS else body
            req = self._client.build_request(
                method,
                target_url,
                headers=upstream_headers,
                content=content,
            )
            response = await self._client.send(req, stream=True, follow_redirects=True)
        except Exception as e:
            # Transport, DNS, timeout and malformed-URL failures all end the relay
            return ForwardResult.failure(str(e) or type(e).__name__)
        return ForwardResult.success(response)

    async def _cleanup_streaming(self, response: httpx.Response) -> None:
        """Clean up streaming resources."""
        await response.aclose()
