"""
Transport-independent JSON-RPC routing.

`parse_message` turns raw bytes into a request dict (or raises
MalformedEnvelope), `handle_message` answers it. The stdio and HTTP
adapters are thin wrappers around these two functions.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Union

from . import SERVER_NAME, __version__
from .dispatcher import ToolDispatcher
from .envelope import (
    JSONRPC_VERSION,
    catalog_response,
    dispatch_response,
    error_response,
    result_response,
)
from .errors import InvalidArguments, MalformedEnvelope, MethodNotFound, ToolError
from .logging_config import get_logger

logger = get_logger(__name__)

PROTOCOL_VERSION = "2024-11-05"


def parse_message(raw: Union[str, bytes]) -> Dict[str, Any]:
    """Decode and structurally check one JSON-RPC request."""
    try:
        message = json.loads(raw)
    except ValueError as e:
        # JSONDecodeError, UnicodeDecodeError and the int digit limit are all ValueErrors
        raise MalformedEnvelope.parse_error(str(e)) from None

    if not isinstance(message, dict):
        raise MalformedEnvelope("Invalid Request: expected a JSON object")
    if message.get("jsonrpc") != JSONRPC_VERSION:
        raise MalformedEnvelope("Invalid Request: jsonrpc must be '2.0'")
    method = message.get("method")
    if not isinstance(method, str) or not method:
        raise MalformedEnvelope("Invalid Request: method is required")
    params = message.get("params")
    if params is not None and not isinstance(params, dict):
        raise MalformedEnvelope("Invalid Request: params must be an object")
    return message


def envelope_id(raw: Union[str, bytes]) -> Optional[Any]:
    """Best-effort id recovery for error responses to malformed envelopes."""
    try:
        message = json.loads(raw)
    except ValueError:
        return None
    if isinstance(message, dict):
        request_id = message.get("id")
        if isinstance(request_id, (str, int, float)) and not isinstance(request_id, bool):
            return request_id
    return None


def render_frame(response: Dict[str, Any]) -> str:
    """Single-line serialization of a response envelope."""
    return json.dumps(response, ensure_ascii=False, separators=(",", ":"))


def is_notification(message: Dict[str, Any]) -> bool:
    return "id" not in message


def initialize_result() -> Dict[str, Any]:
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "capabilities": {"tools": {"listChanged": False}},
        "serverInfo": {"name": SERVER_NAME, "version": __version__},
    }


async def handle_message(
    dispatcher: ToolDispatcher,
    message: Dict[str, Any],
) -> Optional[Dict[str, Any]]:
    """
    Answer one parsed request.

    Returns None for notifications, which never get a response.
    """
    method: str = message["method"]
    params: Dict[str, Any] = message.get("params") or {}
    request_id = message.get("id")

    if is_notification(message):
        logger.debug("Notification received: %s", method)
        return None

    try:
        if method == "initialize":
            client = params.get("clientInfo") or {}
            logger.info("Initialize from %s", client.get("name", "unknown client"))
            return result_response(request_id, initialize_result())

        if method == "ping":
            return result_response(request_id, {})

        if method == "tools/list":
            return catalog_response(request_id, dispatcher.registry.list_tools())

        if method == "tools/call":
            tool_name = params.get("name")
            if not isinstance(tool_name, str) or not tool_name:
                raise InvalidArguments(None, "name", "is required")
            outcome = await dispatcher.dispatch(tool_name, params.get("arguments"))
            return dispatch_response(request_id, outcome)

        raise MethodNotFound(method)

    except ToolError as e:
        return error_response(request_id, e)
    except Exception as e:
        logger.exception("Error handling MCP method %s", method)
        return error_response(request_id, ToolError(f"Internal error: {e}"))
