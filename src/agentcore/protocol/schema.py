"""Coerce a raw parameter bag onto a tool's parameter schema."""

from __future__ import annotations

import json
import logging
from typing import Any

from agentcore.types.tools import ToolDef, ToolParam

logger = logging.getLogger(__name__)

_TRUE = frozenset({"true", "yes", "1"})
_FALSE = frozenset({"false", "no", "0"})


class SchemaError(ValueError):
    """A parameter value does not fit its declared type."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"Invalid value for '{path}': {message}")
        self.path = path


def _coerce(param: ToolParam, value: Any, path: str) -> Any:
    match param.type:
        case "string":
            if isinstance(value, str):
                return value
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return str(value)
            raise SchemaError(path, f"expected a string, got {type(value).__name__}")

        case "integer":
            if isinstance(value, bool):
                raise SchemaError(path, "expected an integer, got a boolean")
            if isinstance(value, int):
                return value
            if isinstance(value, float) and value.is_integer():
                return int(value)
            if isinstance(value, str):
                try:
                    return int(value.strip())
                except ValueError:
                    pass
            raise SchemaError(path, f"expected an integer, got {value!r}")

        case "boolean":
            if isinstance(value, bool):
                return value
            if isinstance(value, str) and value.strip().lower() in _TRUE | _FALSE:
                return value.strip().lower() in _TRUE
            raise SchemaError(path, f"expected a boolean, got {value!r}")

        case "enum":
            text = value.strip() if isinstance(value, str) else value
            if param.enum is not None and text not in param.enum:
                raise SchemaError(path, f"must be one of {', '.join(param.enum)}")
            return text

        case "object":
            if isinstance(value, str):
                try:
                    value = json.loads(value) if value.strip() else {}
                except json.JSONDecodeError as e:
                    raise SchemaError(path, f"not valid JSON ({e.msg})") from e
            if not isinstance(value, dict):
                raise SchemaError(path, "expected an object")
            if not param.properties:
                return value
            return _coerce_fields(param.properties, value, path)

        case "array":
            if isinstance(value, str) and value.strip().startswith("["):
                try:
                    value = json.loads(value)
                except json.JSONDecodeError as e:
                    raise SchemaError(path, f"not valid JSON ({e.msg})") from e
            if isinstance(value, (str, dict)):
                value = [value]
            if not isinstance(value, list):
                raise SchemaError(path, "expected an array")
            if param.items is None:
                return value
            return [_coerce(param.items, item, f"{path}[{i}]") for i, item in enumerate(value)]

        case _:
            return value


def _coerce_fields(fields: tuple[ToolParam, ...], values: dict[str, Any], path: str) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for field in fields:
        raw = values.get(field.name)
        if raw is None:
            if field.required and path:
                raise SchemaError(f"{path}.{field.name}", "is required")
            continue
        out[field.name] = _coerce(field, raw, f"{path}.{field.name}" if path else field.name)
    return out


def coerce_params(
    definition: ToolDef, params: dict[str, Any], *, partial: bool = False,
) -> dict[str, Any]:
    """Return *params* converted to the declared types.

    Unknown keys are dropped. Missing top-level required parameters are left
    for the executor to report. With ``partial=True`` values that do not
    convert yet are kept as they are instead of raising.
    """
    unknown = set(params) - {p.name for p in definition.parameters}
    if unknown:
        logger.debug("Dropping unknown %s params: %s", definition.name.value, sorted(unknown))

    out: dict[str, Any] = {}
    for param in definition.parameters:
        raw = params.get(param.name)
        if raw is None:
            continue
        try:
            out[param.name] = _coerce(param, raw, param.name)
        except SchemaError:
            if not partial:
                raise
            out[param.name] = raw
    return out
