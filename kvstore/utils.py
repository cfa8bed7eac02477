from __future__ import annotations

from typing import Any

PATH_SEPARATOR = "."


def split_path(key: str, prefix: str) -> list[str] | None:
    """Return the dotted segments of ``key`` below ``prefix``, or None if it is not nested under it."""
    head = prefix + PATH_SEPARATOR
    if not key.startswith(head):
        return None
    rest = key[len(head):]
    if not rest:
        return None
    return rest.split(PATH_SEPARATOR)


def assign_path(target: dict[str, Any], segments: list[str], value: Any) -> None:
    node = target
    for segment in segments[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            child = {}
            node[segment] = child
        node = child
    node[segments[-1]] = value
