"""
Key-case conversion between stored/wire JSON (camelCase) and dataclasses (snake_case).
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic.alias_generators import to_camel, to_snake


def convert_keys(
    value: Any, direction: Literal["camel_to_snake", "snake_to_camel"]
) -> Any:
    """Recursively rename dict keys; lists are walked, scalars returned as-is."""
    convert = to_snake if direction == "camel_to_snake" else to_camel
    if isinstance(value, dict):
        return {
            convert(k) if isinstance(k, str) else k: convert_keys(v, direction)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [convert_keys(item, direction) for item in value]
    return value
