"""Reading and writing values at key paths inside nested dictionaries."""

from __future__ import annotations

from typing import Any


def get_value(obj: Any, *keys: str) -> Any:
    """Return the value at the key path; raise KeyError if any step is missing."""
    current = obj
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            raise KeyError(".".join(keys))
        current = current[key]
    return current


def put_value(obj: Any, value: Any, *keys: str) -> None:
    """Set the value at the key path, creating missing dictionaries on the way.

    Nothing is written when a step along the path holds something other than a dict.
    """
    if not isinstance(obj, dict) or not keys:
        return
    *parents, last = keys
    current = obj
    for key in parents:
        if key not in current:
            current[key] = {}
        nxt = current[key]
        if not isinstance(nxt, dict):
            return
        current = nxt
    current[last] = value


def remove_value(obj: Any, *keys: str) -> Any:
    """Remove the value at the key path and return it, or None if it was absent."""
    if not keys:
        return None
    *parents, last = keys
    try:
        container = get_value(obj, *parents)
    except KeyError:
        return None
    if not isinstance(container, dict):
        return None
    return container.pop(last, None)