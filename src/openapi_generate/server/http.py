"""HTTP transport: a stateless Starlette app around the JSON-RPC dispatcher."""

import json
import logging
from typing import Any

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from openapi_generate.config import ServerConfig, load_config
from openapi_generate.envelope import utc_timestamp

from .jsonrpc import PARSE_ERROR, Dispatcher, rpc_error

logger = logging.getLogger(__name__)


def create_app(config: ServerConfig | None = None) -> Starlette:
    """Build the application serving ``/mcp``, ``/health`` and ``/info``."""
    config = config or load_config()
    dispatcher = Dispatcher(config)

    async def mcp_endpoint(request: Request) -> Response:
        if request.method != "POST":
            return JSONResponse({"error": "Method not allowed"}, status_code=405, headers={"Allow": "POST"})

        try:
            payload = json.loads(await request.body())
        except ValueError:
            logger.info("Rejected malformed JSON-RPC body")
            return JSONResponse(rpc_error(None, PARSE_ERROR, "Parse error"))

        response = await dispatcher.handle_payload(payload)
        if response is None:
            return Response(status_code=202)
        return JSONResponse(response)

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({
            "status": "ok",
            "server": config.name,
            "version": config.version,
            "timestamp": utc_timestamp(),
        })

    async def info(request: Request) -> JSONResponse:
        return JSONResponse({
            "name": config.name,
            "version": config.version,
            "transport": "http",
            "capabilities": {"tools": True},
        })

    async def not_found(request: Request, exc: Any) -> JSONResponse:
        return JSONResponse({"error": "Not found"}, status_code=404)

    routes = [
        Route("/mcp", mcp_endpoint, methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]),
        Route("/health", health, methods=["GET"]),
        Route("/info", info, methods=["GET"]),
    ]
    return Starlette(routes=routes, exception_handlers={404: not_found})


def serve(config: ServerConfig | None = None) -> None:
    """Run the HTTP endpoint until interrupted."""
    config = config or load_config()
    logger.info("%s %s listening on http://%s:%d", config.name, config.version, config.host, config.port)
    uvicorn.run(create_app(config), host=config.host, port=config.port)
