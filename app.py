"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request

from api.handlers import handle_request
from core.config import Config
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from core.router import RouteDecider
from services.forwarder import Forwarder
from services.gateway import Gateway

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(
    config: Config,
    logger: RequestLogger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        upstream_client = httpx.AsyncClient(
            timeout=config.upstream.timeout,
            follow_redirects=True,
            transport=transport,
        )
        header_builder = HeaderBuilder(config.upstream)
        forwarder = Forwarder(upstream_client, header_builder, logger)
        app.state.gateway = Gateway(
            config=config,
            decider=RouteDecider(config),
            forwarder=forwarder,
            header_builder=header_builder,
            logger=logger,
        )
        try:
            yield
        finally:
            await upstream_client.aclose()

    app = FastAPI(
        title="Repo Gateway",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.api_route("/{path:path}", methods=PROXY_METHODS)
    async def gateway_entry(request: Request, path: str):
        return await handle_request(request, config)

    return app
