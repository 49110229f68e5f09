"""JSON helpers shared by the OpenRouter request encoder and response decoder."""

from __future__ import annotations

import json
import math
import string
from typing import Any

from provider_runtime.errors import ProtocolError
from provider_runtime.types import ProviderId

_U64_MAX = (1 << 64) - 1
_U32_MAX = (1 << 32) - 1
_TOOL_NAME_CHARS = frozenset(string.ascii_letters + string.digits + "_-")
_TOOL_NAME_MAX_LEN = 64


def canonicalize_json(value: Any) -> Any:
    """Return a copy of a JSON value with every object's keys in sorted order."""
    if isinstance(value, dict):
        return {key: canonicalize_json(value[key]) for key in sorted(value)}
    if isinstance(value, list):
        return [canonicalize_json(item) for item in value]
    return value


def stable_json_string(value: Any) -> str:
    """Serialize a JSON value compactly with sorted keys; "null" if it cannot be."""
    try:
        return json.dumps(
            value,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError):
        return "null"


def number_to_u64(value: Any) -> int | None:
    """Read a JSON number as an unsigned 64-bit integer.

    Negative or non-finite numbers and non-numbers give None; fractional
    values are truncated and values beyond the range saturate.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        if value < 0:
            return None
        return min(value, _U64_MAX)
    if isinstance(value, float):
        if math.isfinite(value) and value >= 0.0:
            return min(int(value), _U64_MAX)
        return None
    return None


def number_to_u32(value: Any) -> int | None:
    """Read a JSON number as an unsigned 32-bit integer, None when out of range."""
    number = number_to_u64(value)
    if number is None or number > _U32_MAX:
        return None
    return number


def openrouter_error(model: str | None, message: str) -> ProtocolError:
    """Build a protocol error attributed to OpenRouter."""
    return ProtocolError(ProviderId.OPENROUTER, message, model=model)


def is_valid_tool_name(name: str) -> bool:
    """Whether a tool name matches ^[A-Za-z0-9_-]{1,64}$."""
    if not name or len(name) > _TOOL_NAME_MAX_LEN:
        return False
    return all(ch in _TOOL_NAME_CHARS for ch in name)