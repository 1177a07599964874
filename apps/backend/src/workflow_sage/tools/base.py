"""Tool declarations and the name -> executor registry used by generation loops."""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from ..errors import BadToolArgumentsError, UnsupportedToolError

ToolExecutor = Callable[[str, dict[str, Any]], Awaitable[str]]


@dataclass(frozen=True)
class ToolSpec:
    """A named, JSON-schema typed function the model may ask us to run."""

    name: str
    description: str
    parameters: dict[str, Any]
    execute: ToolExecutor = field(compare=False, repr=False)

    @property
    def required(self) -> list[str]:
        return list(self.parameters.get("required", []))

    def parse_arguments(self, raw: str) -> dict[str, Any]:
        """Decode the model's raw argument text and check required parameters.

        Required string parameters must be non-empty after stripping.
        """
        try:
            params = json.loads(raw) if raw and raw.strip() else {}
        except json.JSONDecodeError as exc:
            raise BadToolArgumentsError(self.name, f"invalid JSON ({exc.msg})") from exc

        if not isinstance(params, dict):
            raise BadToolArgumentsError(self.name, "arguments must be a JSON object")

        properties = self.parameters.get("properties", {})
        for name in self.required:
            value = params.get(name)
            if value is None:
                raise BadToolArgumentsError(self.name, f"missing required parameter '{name}'")
            if properties.get(name, {}).get("type") == "string":
                if not isinstance(value, str) or not value.strip():
                    raise BadToolArgumentsError(
                        self.name, f"parameter '{name}' must be a non-empty string"
                    )
        return params


class ToolRegistry:
    """Maps tool names to their declarations for one generation run."""

    def __init__(self, tools: Iterable[ToolSpec] = ()) -> None:
        self._tools: dict[str, ToolSpec] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: ToolSpec) -> ToolSpec:
        self._tools[tool.name] = tool
        return tool

    def get(self, name: str) -> ToolSpec:
        tool = self._tools.get(name)
        if tool is None:
            raise UnsupportedToolError(name)
        return tool

    def specs(self) -> list[ToolSpec]:
        return list(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools
