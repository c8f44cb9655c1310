"""
Error taxonomy for the dispatch boundary.

Every failure a caller can see is one of these classes. Each carries the
JSON-RPC error code it is reported with, so transports never need to know
which tool or handler produced it.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from mcp.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
)


class ToolError(Exception):
    """Base class for errors reported in the JSON-RPC `error` object."""

    code: int = INTERNAL_ERROR

    def __init__(self, message: str, data: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data

    def to_error(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


class MalformedEnvelope(ToolError):
    """The request envelope itself is unusable (bad JSON, wrong jsonrpc tag, no method)."""

    code = INVALID_REQUEST

    @classmethod
    def parse_error(cls, detail: str) -> "MalformedEnvelope":
        error = cls(f"Parse error: {detail}")
        error.code = PARSE_ERROR
        return error


class MethodNotFound(ToolError):
    code = METHOD_NOT_FOUND

    def __init__(self, method: str) -> None:
        super().__init__(f"Method not found: {method}")
        self.method = method


class ToolNotFound(ToolError):
    code = METHOD_NOT_FOUND

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class InvalidArguments(ToolError):
    code = INVALID_PARAMS

    def __init__(self, tool_name: Optional[str], field: str, reason: str) -> None:
        if tool_name:
            message = f"Invalid arguments for tool '{tool_name}': '{field}' {reason}"
        else:
            message = f"Invalid params: '{field}' {reason}"
        super().__init__(message)
        self.tool_name = tool_name
        self.field = field
        self.reason = reason


class HandlerExecutionError(ToolError):
    """A tool handler raised. `reason` is the handler's own message."""

    code = INTERNAL_ERROR

    def __init__(self, tool_name: str, reason: str) -> None:
        super().__init__(f"Tool execution failed: {reason}", data=reason)
        self.tool_name = tool_name
        self.reason = reason
