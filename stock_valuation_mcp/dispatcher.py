from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Optional

from .errors import HandlerExecutionError, InvalidArguments, ToolError
from .logging_config import get_logger
from .tools import ToolRegistry
from .validation import validate_arguments

logger = get_logger(__name__)


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one tool call: exactly one of `value` / `error` is meaningful."""

    tool_name: str
    value: Any = None
    error: Optional[ToolError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ToolDispatcher:
    """
    Route a tool call to its handler.

    Lookup, argument validation and handler invocation all happen here, and
    every failure is folded into a DispatchResult so callers never see an
    exception from `dispatch`.
    """

    def __init__(self, registry: ToolRegistry) -> None:
        self.registry = registry

    async def dispatch(self, name: str, arguments: Any = None) -> DispatchResult:
        started = time.perf_counter()
        try:
            tool = self.registry.find(name)
            validated = validate_arguments(name, tool.input_schema, arguments)
        except ToolError as e:
            logger.info("Rejected call to %s: %s", name, e.message)
            return DispatchResult(tool_name=name, error=e)
        except Exception as e:
            logger.exception("Unexpected failure validating call to %s", name)
            return DispatchResult(tool_name=name, error=InvalidArguments(name, "arguments", str(e) or type(e).__name__))

        try:
            value = await tool.handler(validated)
        except Exception as e:
            reason = str(e) or type(e).__name__
            logger.warning("Tool %s failed: %s", name, reason, exc_info=not isinstance(e, ValueError))
            return DispatchResult(tool_name=name, error=HandlerExecutionError(name, reason))

        logger.debug("Tool %s completed in %.1f ms", name, (time.perf_counter() - started) * 1000)
        return DispatchResult(tool_name=name, value=value)
