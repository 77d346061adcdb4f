"""
jsonui Kernel — Path Addressing

Slash-delimited pointers into nested dicts: "/form/email", "user/name", "/items/0".
A leading "/" is optional; "" and "/" address the whole object.

get_by_path never raises. set_by_path mutates in place. assoc_path and
dissoc_path are the copy-on-write variants used by the reducer and the data
store so that untouched branches keep their identity.
"""

from __future__ import annotations

from typing import Any


def split_path(path: str | None) -> list[str]:
    """Split a pointer into segments. "" and "/" give no segments."""
    if not path or path == "/":
        return []
    if path.startswith("/"):
        path = path[1:]
    return path.split("/")


def _list_index(container: list, segment: str) -> int | None:
    if not segment.isdigit():
        return None
    index = int(segment)
    if index >= len(container):
        return None
    return index


def _child(current: Any, segment: str) -> tuple[bool, Any]:
    """Look up one segment. Returns (found, value)."""
    if isinstance(current, dict):
        if segment in current:
            return True, current[segment]
        return False, None
    if isinstance(current, list):
        index = _list_index(current, segment)
        if index is None:
            return False, None
        return True, current[index]
    return False, None


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


def get_by_path(obj: Any, path: str | None) -> Any:
    """
    Return the value at path, or None as soon as any segment is missing
    or lands on a scalar.
    """
    current = obj
    for segment in split_path(path):
        if current is None:
            return None
        found, current = _child(current, segment)
        if not found:
            return None
    return current


def has_path(obj: Any, path: str | None) -> bool:
    current = obj
    for segment in split_path(path):
        found, current = _child(current, segment)
        if not found:
            return False
    return True


# ---------------------------------------------------------------------------
# In-place write
# ---------------------------------------------------------------------------


def set_by_path(obj: dict[str, Any], path: str | None, value: Any) -> None:
    """
    Assign value at path inside obj.

    Missing or scalar intermediates are replaced with {}. Lists are walked
    when the segment is an in-range index.
    """
    segments = split_path(path)
    if not segments:
        return

    current: Any = obj
    for segment in segments[:-1]:
        if isinstance(current, list):
            index = _list_index(current, segment)
            if index is None:
                return
            if not isinstance(current[index], (dict, list)):
                current[index] = {}
            current = current[index]
            continue
        if not isinstance(current.get(segment), (dict, list)):
            current[segment] = {}
        current = current[segment]

    last = segments[-1]
    if isinstance(current, list):
        index = _list_index(current, last)
        if index is not None:
            current[index] = value
        elif last == str(len(current)):
            current.append(value)
        return
    current[last] = value


# ---------------------------------------------------------------------------
# Copy-on-write
# ---------------------------------------------------------------------------


def _assoc(current: Any, segments: list[str], value: Any) -> Any:
    segment = segments[0]
    rest = segments[1:]

    if isinstance(current, list):
        index = _list_index(current, segment)
        if index is not None:
            copy = list(current)
            copy[index] = value if not rest else _assoc(current[index], rest, value)
            return copy
        if segment == str(len(current)) and not rest:
            return [*current, value]
        current = None

    base = dict(current) if isinstance(current, dict) else {}
    if not rest:
        base[segment] = value
        return base
    child = base.get(segment)
    base[segment] = _assoc(child if isinstance(child, (dict, list)) else None, rest, value)
    return base


def assoc_path(obj: dict[str, Any], path: str | None, value: Any) -> Any:
    """
    Return a copy of obj with value at path. Only the containers along the
    path are copied; every other branch is shared with obj.
    An empty path returns value itself.
    """
    segments = split_path(path)
    if not segments:
        return value
    return _assoc(obj, segments, value)


def _dissoc(current: Any, segments: list[str]) -> Any:
    segment = segments[0]
    rest = segments[1:]
    found, child = _child(current, segment)
    if not found:
        return current

    if rest:
        new_child = _dissoc(child, rest)
        if new_child is child:
            return current
        if isinstance(current, list):
            copy = list(current)
            copy[int(segment)] = new_child
            return copy
        return {**current, segment: new_child}

    if isinstance(current, list):
        copy = list(current)
        del copy[int(segment)]
        return copy
    return {k: v for k, v in current.items() if k != segment}


def dissoc_path(obj: dict[str, Any], path: str | None) -> Any:
    """
    Return a copy of obj without the value at path. If nothing is there,
    obj itself is returned (same object).
    """
    segments = split_path(path)
    if not segments:
        return obj
    return _dissoc(obj, segments)
