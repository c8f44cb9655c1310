"""
Tool definitions and the process-wide tool registry.

Each module in this package exposes a `build_tools(...)` function returning
its group of `RegisteredTool` entries. The registry concatenates all groups
once at startup and is read-only afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Iterable, Iterator, List, Mapping, Sequence

from mcp import types

from ..errors import ToolNotFound


ToolHandler = Callable[[Dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class RegisteredTool:
    spec: types.Tool
    handler: ToolHandler

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def input_schema(self) -> Dict[str, Any]:
        return self.spec.inputSchema


def define_tool(
    name: str,
    description: str,
    input_schema: Dict[str, Any],
    handler: ToolHandler,
) -> RegisteredTool:
    return RegisteredTool(
        spec=types.Tool(name=name, description=description, inputSchema=input_schema),
        handler=handler,
    )


class ToolRegistry:
    """
    Immutable mapping from MCP tool names to their specifications and handlers.

    Built once from a sequence of tool groups. A duplicate name is a
    programming error and aborts construction.
    """

    def __init__(self, groups: Iterable[Sequence[RegisteredTool]]) -> None:
        tools: Dict[str, RegisteredTool] = {}
        for group in groups:
            for tool in group:
                if tool.name in tools:
                    raise ValueError(f"Tool '{tool.name}' already registered")
                tools[tool.name] = tool
        self._tools: Mapping[str, RegisteredTool] = MappingProxyType(tools)

    def list_tools(self) -> List[types.Tool]:
        return [rt.spec for rt in self._tools.values()]

    def find(self, name: str) -> RegisteredTool:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFound(name) from None

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[RegisteredTool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
