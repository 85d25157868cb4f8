"""
registry.py — Tool registry for the MCP server.

A registry is built once at startup and handed to the dispatcher, so tests can
assemble one around a fake Mode client without touching module state.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import mcp.types as types

logger = logging.getLogger("mode_mcp.mcp_server.registry")

ToolFn = Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    fn: ToolFn
    description: str
    input_schema: dict[str, Any] = field(default_factory=lambda: {"type": "object"})

    def descriptor(self) -> dict[str, Any]:
        """The tools/list entry for this tool."""
        tool = types.Tool(
            name=self.name, description=self.description, inputSchema=self.input_schema
        )
        return tool.model_dump(mode="json", by_alias=True, exclude_none=True)

    def accepted_arguments(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Drop arguments the schema does not declare, unless it allows extras."""
        if self.input_schema.get("additionalProperties") is True:
            return dict(arguments)
        props = self.input_schema.get("properties") or {}
        accepted = {k: v for k, v in arguments.items() if k in props}
        ignored = sorted(set(arguments) - set(accepted))
        if ignored:
            logger.debug("Tool '%s' ignoring undeclared arguments: %s", self.name, ignored)
        return accepted

    async def __call__(self, arguments: dict[str, Any] | None = None) -> Any:
        result = self.fn(**self.accepted_arguments(arguments or {}))
        if inspect.isawaitable(result):
            result = await result
        return result


class ToolRegistry:
    """Ordered mapping of tool name → :class:`ToolSpec`."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}

    def register(
        self,
        name: str,
        fn: ToolFn,
        description: str,
        input_schema: dict[str, Any] | None = None,
    ) -> ToolSpec:
        """
        Register an async callable as an MCP tool.
        """
        if name in self._tools:
            raise ValueError(f"Tool already registered: {name}")
        spec = ToolSpec(
            name=name,
            fn=fn,
            description=description,
            input_schema=input_schema or {"type": "object"},
        )
        self._tools[name] = spec
        logger.info(f"Registered tool: {name}")
        return spec

    def get(self, name: str | None) -> ToolSpec | None:
        if not name:
            return None
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def descriptors(self) -> list[dict[str, Any]]:
        return [spec.descriptor() for spec in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
