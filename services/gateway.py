"""Gateway orchestration: classify each request and produce its response."""

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse, RedirectResponse

from core.config import Config
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from core.router import RouteDecider, RouteDecision
from services.forwarder import Forwarder

FORBIDDEN_MESSAGE = "Forbidden: Access to this repository is not allowed via this proxy."


class Gateway:
    """Answer preflight, forbidden and redirect requests; relay the rest."""

    def __init__(
        self,
        config: Config,
        decider: RouteDecider,
        forwarder: Forwarder,
        header_builder: HeaderBuilder,
        logger: RequestLogger,
    ) -> None:
        self._config = config
        self._decider = decider
        self._forwarder = forwarder
        self._headers = header_builder
        self._logger = logger

    def classify(self, request: Request) -> RouteDecision:
        """Decide on the path and query string exactly as received.

        The percent-encoded path is used so an encoded "#" or "?" stays
        part of the embedded URL's path.
        """
        raw_path = request.scope.get("raw_path") or request.url.path.encode()
        path = raw_path.decode("latin-1")
        query = request.scope.get("query_string", b"").decode("latin-1")
        return self._decider.decide(request.method, path, query)

    async def handle(self, request: Request) -> Response:
        decision = self.classify(request)
        self._logger.log_route(request.method, request.url.path, decision)

        if decision.kind == "preflight":
            return Response(status_code=204, headers=self._headers.preflight_headers())

        if decision.forwards:
            response = await self._forwarder.forward(decision.target_url, request)
            self._logger.log_forward(decision, response.status_code)
            return response

        if decision.kind == "forbidden":
            return PlainTextResponse(FORBIDDEN_MESSAGE, status_code=403)

        return RedirectResponse(self._config.repo_home_url, status_code=302)
