"""
Property bags

A property bag is the plain-dict form of a resource's state: string keys,
JSON-compatible values. Conversion validates the shape and copies, so a
handler can never mutate the caller's document.
"""

import math
from typing import Any, Dict, Optional

from dynamic_provider.core.errors import InvalidPropertiesError

# Reserved key holding the handler source
PROVIDER_KEY = '__provider'

PropertyBag = Dict[str, Any]


def to_property_bag(value: Optional[Any]) -> PropertyBag:
    """
    Convert a decoded document into a property bag.

    Args:
        value: Mapping decoded from the wire (None means empty)

    Returns:
        A validated deep copy

    Raises:
        InvalidPropertiesError: If the value isn't a structured document
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidPropertiesError(
            f"Property bag must be a mapping, got {type(value).__name__}"
        )
    return _convert(value, path='')


def _convert(value: Any, path: str) -> Any:
    if value is None or isinstance(value, (bool, str, int)):
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidPropertiesError(f"Non-finite number at '{path or '.'}'")
        return value

    if isinstance(value, dict):
        converted = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise InvalidPropertiesError(
                    f"Property keys must be strings, got {key!r} at '{path or '.'}'"
                )
            converted[key] = _convert(item, f'{path}.{key}' if path else key)
        return converted

    if isinstance(value, (list, tuple)):
        return [_convert(item, f'{path}[{i}]') for i, item in enumerate(value)]

    raise InvalidPropertiesError(
        f"Unsupported value of type {type(value).__name__} at '{path or '.'}'"
    )
