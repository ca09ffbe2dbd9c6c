"""FastAPI route handlers."""

from fastapi import Request, Response

from core.config import Config
from ui.log_utils import write_incoming_log


async def handle_request(request: Request, config: Config) -> Response:
    """Handle every inbound request through the gateway."""
    if config.proxy.debug:
        write_incoming_log(
            request.method,
            request.url.path,
            dict(request.headers),
            query=request.url.query,
        )

    gateway = request.app.state.gateway
    return await gateway.handle(request)
