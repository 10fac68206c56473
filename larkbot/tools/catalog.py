"""Catalog of remote operations exposed to the model as functions."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Iterable


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    """Remote operation as supplied by the platform side.

    ``schema`` is loosely typed: any of ``type``, ``properties`` and
    ``required`` may be missing.
    """

    name: str
    description: str
    schema: dict[str, Any] = field(default_factory=dict)
    http_method: str = "GET"
    path: str = ""


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """Normalized tool shared read-only by the bot and the executor."""

    name: str
    description: str
    parameters: dict[str, Any]
    descriptor: ToolDescriptor

    def to_function_definition(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


def normalize_schema(schema: dict[str, Any] | None) -> dict[str, Any]:
    schema = dict(schema or {})
    schema["type"] = schema.get("type") or "object"
    schema["properties"] = dict(schema.get("properties") or {})
    schema["required"] = list(schema.get("required") or [])
    return schema


def to_tool_definition(descriptor: ToolDescriptor) -> ToolDefinition:
    return ToolDefinition(
        name=descriptor.name,
        description=descriptor.description,
        parameters=normalize_schema(descriptor.schema),
        descriptor=descriptor,
    )


def to_function_definition(descriptor: ToolDescriptor) -> dict[str, Any]:
    """Convert one descriptor into the LLM function-calling schema."""

    return to_tool_definition(descriptor).to_function_definition()


class ToolCatalog:
    """Filtered, immutable view over a list of remote-operation descriptors."""

    def __init__(
        self,
        descriptors: Iterable[ToolDescriptor],
        enabled_prefixes: Iterable[str] = (),
        disabled_names: Iterable[str] = (),
    ) -> None:
        prefixes = tuple(p for p in enabled_prefixes if p)
        disabled = frozenset(disabled_names)
        selected = [
            d
            for d in descriptors
            if (not prefixes or d.name.startswith(prefixes)) and d.name not in disabled
        ]
        self._tools: dict[str, ToolDefinition] = {d.name: to_tool_definition(d) for d in selected}

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    @cached_property
    def function_definitions(self) -> list[dict[str, Any]]:
        return [tool.to_function_definition() for tool in self._tools.values()]

    def describe(self) -> str:
        """Return one ``- name: description`` line per tool."""

        return "\n".join(f"- {tool.name}: {tool.description}" for tool in self._tools.values())
