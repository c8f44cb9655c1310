"""
Newline-delimited JSON-RPC over stdin/stdout.

One request per line, one response line per request that carries an id.
Nothing but protocol frames is ever written to stdout; logs go to stderr.
"""

from __future__ import annotations

import sys
from io import TextIOWrapper
from typing import Any, Optional

import anyio

from .dispatcher import ToolDispatcher
from .envelope import error_response
from .errors import MalformedEnvelope, ToolError
from .logging_config import get_logger
from .protocol import envelope_id, handle_message, parse_message, render_frame

logger = get_logger(__name__)


async def process_line(dispatcher: ToolDispatcher, line: str) -> Optional[str]:
    """Answer one input line; returns the response frame or None."""
    if not line.strip():
        return None
    try:
        message = parse_message(line)
    except MalformedEnvelope as e:
        logger.info("Malformed request: %s", e.message)
        return render_frame(error_response(envelope_id(line), e))

    response = await handle_message(dispatcher, message)
    if response is None:
        return None
    return render_frame(response)


async def serve_stdio(
    dispatcher: ToolDispatcher,
    stdin: Optional[Any] = None,
    stdout: Optional[Any] = None,
) -> None:
    """
    Read requests until EOF, answering them in arrival order.

    `stdin`/`stdout` default to the process streams wrapped for anyio; tests
    pass any async iterable of lines and any object with async write/flush.
    """
    if stdin is None:
        stdin = anyio.wrap_file(TextIOWrapper(sys.stdin.buffer, encoding="utf-8"))
    if stdout is None:
        stdout = anyio.wrap_file(TextIOWrapper(sys.stdout.buffer, encoding="utf-8"))

    logger.info("stdio transport ready (%d tools)", len(dispatcher.registry))
    async for line in stdin:
        try:
            frame = await process_line(dispatcher, line)
        except Exception as e:
            logger.exception("Unhandled error processing request line")
            frame = render_frame(error_response(envelope_id(line), ToolError(f"Internal error: {e}")))
        if frame is None:
            continue
        await stdout.write(frame + "\n")
        await stdout.flush()
    logger.info("stdin closed, stdio transport stopping")
