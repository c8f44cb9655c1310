"""
JSON-RPC 2.0 response envelopes.

Both transports build every response through these functions, so the wire
shape of a given outcome does not depend on how the request arrived.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Optional

from mcp import types

from .dispatcher import DispatchResult
from .errors import ToolError
from .logging_config import get_logger

logger = get_logger(__name__)

JSONRPC_VERSION = "2.0"
RequestId = Optional[Any]


def render_payload(payload: Any) -> str:
    """Serialize a handler payload the way it appears in a text content block."""
    return json.dumps(payload, indent=2, ensure_ascii=False, allow_nan=False)


def result_response(request_id: RequestId, result: Dict[str, Any]) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(request_id: RequestId, error: ToolError) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error.to_error()}


def success_response(request_id: RequestId, payload: Any) -> Dict[str, Any]:
    """
    Wrap a handler's return value as a single text content block.

    A payload that is not representable as strict JSON (NaN, infinities,
    arbitrary objects) is reported as an internal error instead.
    """
    try:
        text = render_payload(payload)
    except (TypeError, ValueError) as e:
        logger.error("Could not serialize tool payload: %s", e)
        return error_response(request_id, ToolError(f"Result is not serializable: {e}"))

    content = types.TextContent(type="text", text=text)
    call_result = types.CallToolResult(content=[content])
    return result_response(request_id, call_result.model_dump(mode="json", exclude_none=True))


def dispatch_response(request_id: RequestId, outcome: DispatchResult) -> Dict[str, Any]:
    if outcome.ok:
        return success_response(request_id, outcome.value)
    return error_response(request_id, outcome.error)


def tool_descriptor(tool: types.Tool) -> Dict[str, Any]:
    return tool.model_dump(by_alias=True, exclude_none=True)


def catalog_response(request_id: RequestId, tools: Iterable[types.Tool]) -> Dict[str, Any]:
    return result_response(request_id, {"tools": [tool_descriptor(t) for t in tools]})
