from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from . import SERVER_NAME, __version__
from .config import Settings, get_settings
from .dispatcher import ToolDispatcher
from .envelope import error_response, tool_descriptor
from .errors import MalformedEnvelope, ToolError, ToolNotFound
from .logging_config import get_logger
from .main import create_registry
from .protocol import PROTOCOL_VERSION, envelope_id, handle_message, parse_message
from .tools import ToolRegistry

logger = get_logger(__name__)


def create_http_app(
    registry: Optional[ToolRegistry] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Create the FastAPI app exposing the tool catalog over HTTP.

    POST /mcp takes one JSON-RPC message per request and answers with the
    same envelopes the stdio transport writes. The GET routes are plain
    JSON views for health checks and catalog browsing.
    """
    settings = settings or get_settings()
    if registry is None:
        registry = create_registry(settings)
    dispatcher = ToolDispatcher(registry)

    app = FastAPI(
        title="Stock Valuation MCP Server",
        version=__version__,
        description="MCP tool server for stock valuation and financial analysis",
    )

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {
            "status": "ok",
            "service": SERVER_NAME,
            "version": __version__,
            "tools": len(registry),
        }

    @app.get("/")
    async def root():
        """Root endpoint with service info."""
        return {
            "service": SERVER_NAME,
            "version": __version__,
            "protocol": "mcp",
            "protocolVersion": PROTOCOL_VERSION,
            "transport": "http",
            "endpoints": {
                "health": "/health",
                "mcp": "/mcp",
                "tools": "/tools",
                "tool": "/tools/{name}",
            },
        }

    @app.get("/tools")
    async def list_tools():
        return {"tools": [tool_descriptor(t) for t in registry.list_tools()]}

    @app.get("/tools/{name}")
    async def get_tool(name: str):
        try:
            tool = registry.find(name)
        except ToolNotFound as e:
            return JSONResponse(status_code=404, content={"error": e.to_error()})
        return tool_descriptor(tool.spec)

    @app.post("/mcp")
    async def mcp_endpoint(request: Request):
        """
        JSON-RPC endpoint.

        Malformed envelopes are answered with HTTP 400, notifications with
        202 and no body. Everything else, including tool failures, is a 200
        carrying a JSON-RPC result or error object.
        """
        body = await request.body()
        try:
            message = parse_message(body)
        except MalformedEnvelope as e:
            logger.info("Malformed request: %s", e.message)
            return JSONResponse(status_code=400, content=error_response(envelope_id(body), e))

        try:
            response = await handle_message(dispatcher, message)
        except Exception as e:
            logger.exception("Error handling MCP request")
            response = error_response(message.get("id"), ToolError(f"Internal error: {e}"))

        if response is None:
            return Response(status_code=202)
        return JSONResponse(content=response)

    return app


async def run_http_server(
    host: str = "0.0.0.0",
    port: int = 2901,
    registry: Optional[ToolRegistry] = None,
) -> None:
    """Run the HTTP server using uvicorn."""
    import uvicorn

    app = create_http_app(registry)
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="info",
        access_log=True,
        log_config=None,
    )
    server = uvicorn.Server(config)
    logger.info("HTTP transport listening on %s:%d", host, port)
    await server.serve()
