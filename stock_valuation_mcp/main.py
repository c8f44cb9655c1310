from __future__ import annotations

from typing import Optional

import anyio

from .config import Settings, get_settings
from .dispatcher import ToolDispatcher
from .logging_config import get_logger, setup_logging, shutdown_logging
from .providers.set_watch import SetWatchClient
from .providers.web import WebClient
from .tools import ToolRegistry
from .tools import (
    advanced_valuation_tools,
    filesystem_tools,
    financial_analysis_tools,
    math_tools,
    portfolio_tools,
    ratio_tools,
    statement_tools,
    stock_data_tools,
    time_tools,
    valuation_tools,
    web_tools,
)
from .tools.time_tools import Clock

logger = get_logger(__name__)


def create_registry(
    settings: Optional[Settings] = None,
    set_watch: Optional[SetWatchClient] = None,
    web: Optional[WebClient] = None,
    clock: Optional[Clock] = None,
) -> ToolRegistry:
    """
    Build the registry with every tool group.

    Outbound clients and the clock can be injected; by default they are
    created from settings. The result is shared by both transports.
    """
    settings = settings or get_settings()
    set_watch = set_watch or SetWatchClient(settings)
    web = web or WebClient(settings)

    return ToolRegistry(
        [
            valuation_tools.build_tools(),
            advanced_valuation_tools.build_tools(),
            financial_analysis_tools.build_tools(),
            portfolio_tools.build_tools(),
            stock_data_tools.build_tools(set_watch),
            statement_tools.build_tools(set_watch),
            ratio_tools.build_tools(set_watch),
            math_tools.build_tools(),
            time_tools.build_tools(clock),
            web_tools.build_tools(web),
            filesystem_tools.build_tools(settings.resolved_fs_root()),
        ]
    )


def main() -> None:
    """
    Entrypoint for running the MCP server.

    Supports two transport modes:
    - stdio: newline-delimited JSON-RPC on stdin/stdout (default)
    - http: FastAPI app served by uvicorn
    """
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)

    try:
        if settings.transport == "http":
            from .http_server import run_http_server

            anyio.run(run_http_server, settings.server_host, settings.server_port)
        else:
            from .stdio_server import serve_stdio

            registry = create_registry(settings)
            logger.info("Starting stdio transport (env=%s)", settings.env)
            anyio.run(serve_stdio, ToolDispatcher(registry))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        shutdown_logging()


def main_http() -> None:
    """Entrypoint that always serves HTTP, whatever the configured transport."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)

    try:
        from .http_server import run_http_server

        anyio.run(run_http_server, settings.server_host, settings.server_port)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        shutdown_logging()


if __name__ == "__main__":
    main()
