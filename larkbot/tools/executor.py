"""Dispatch of model-requested tool calls to the platform client."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError, create_model

from larkbot.errors import BotError
from larkbot.lark_client import PlatformClient
from larkbot.models import normalize_arguments
from larkbot.tools.catalog import ToolCatalog

LOGGER = logging.getLogger(__name__)

ERROR_PREFIX = "Error:"


class ToolExecutor:
    """Runs one tool call and always answers with text the model can read."""

    def __init__(self, catalog: ToolCatalog, platform: PlatformClient) -> None:
        self._catalog = catalog
        self._platform = platform

    async def execute(self, tool_name: str, arguments: str | dict[str, Any] | None) -> str:
        if not tool_name or not tool_name.strip():
            return f"{ERROR_PREFIX} Tool name is required"

        tool = self._catalog.get(tool_name)
        if tool is None:
            LOGGER.warning("Tool %s not found in catalog", tool_name)
            return f"{ERROR_PREFIX} Tool '{tool_name}' not found"

        try:
            validated = _validate_json_schema(tool.parameters, normalize_arguments(arguments))
        except (BotError, ValueError) as exc:
            LOGGER.warning("Invalid arguments for tool %s: %s", tool_name, exc)
            return f"{ERROR_PREFIX} Invalid arguments for tool '{tool_name}': {exc}"

        try:
            result = await self._platform.invoke(tool.descriptor, validated)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Tool %s raised during execution", tool_name)
            return f"{ERROR_PREFIX} Tool '{tool_name}' failed to execute"

        if result.is_error:
            LOGGER.warning("Tool %s reported an error: %s", tool_name, result.content[:200])
            return f"{ERROR_PREFIX} {result.content}"
        LOGGER.info("Tool %s executed (%d chars)", tool_name, len(result.content))
        return result.content


def _validate_json_schema(schema: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    props = schema.get("properties", {})
    if not props:
        return payload
    required = set(schema.get("required", []))
    fields: dict[str, tuple[Any, Any]] = {}
    for name, config in props.items():
        typ = _python_type(config.get("type") if isinstance(config, dict) else None)
        default = ... if name in required else None
        fields[name] = (typ if name in required else typ | None, default)

    model = create_model("ToolInputModel", **fields)
    try:
        value = model(**payload)
    except ValidationError as exc:
        raise ValueError(f"{exc.error_count()} validation error(s): {_summarize(exc)}") from exc
    return value.model_dump(exclude_none=True)


def _python_type(schema_type: str | None) -> Any:
    mapping: dict[str, Any] = {
        "string": str,
        "integer": int,
        "number": float,
        "boolean": bool,
        "object": dict,
        "array": list,
    }
    return mapping.get(schema_type or "", Any)


def _summarize(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
