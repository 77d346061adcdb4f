"""
jsonui Kernel — UI Tree helpers

The tree is a flat arena: {"root": key, "elements": {key: element}}.
Children reference elements by key, and any key may be missing while a
stream is still arriving. Helpers here treat a missing key as "not yet
renderable" and skip it.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any


def empty_tree() -> dict[str, Any]:
    """The tree at the start of every streaming invocation."""
    return {"root": "", "elements": {}}


def get_element(tree: dict[str, Any] | None, key: str | None) -> dict[str, Any] | None:
    if not tree or not key:
        return None
    return tree.get("elements", {}).get(key)


def walk_tree(
    tree: dict[str, Any] | None,
    include: Callable[[dict[str, Any]], bool] | None = None,
) -> Iterator[tuple[dict[str, Any], int]]:
    """
    Depth-first walk from the root, yielding (element, depth).

    Dangling keys are skipped. `include` prunes an element and its subtree
    when it returns False (e.g. a visibility check). A key already on the
    current branch is not entered again, so a cyclic tree still terminates.
    """
    if not tree:
        return
    elements = tree.get("elements", {})

    def _walk(key: str, depth: int, branch: frozenset[str]) -> Iterator[tuple[dict[str, Any], int]]:
        element = elements.get(key)
        if element is None or key in branch:
            return
        if include is not None and not include(element):
            return
        yield element, depth
        for child in element.get("children") or []:
            yield from _walk(child, depth + 1, branch | {key})

    yield from _walk(tree.get("root", ""), 0, frozenset())


def missing_keys(tree: dict[str, Any]) -> set[str]:
    """Keys referenced by root or children that are not (yet) present."""
    elements = tree.get("elements", {})
    referenced = {tree.get("root", "")} if tree.get("root") else set()
    for element in elements.values():
        referenced.update(element.get("children") or [])
    return {key for key in referenced if key not in elements}


def flat_to_tree(elements: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Build a tree from a flat list of elements carrying parentKey.
    The element without a parentKey becomes the root (the last one wins).
    """
    element_map: dict[str, dict[str, Any]] = {}
    root = ""

    for element in elements:
        element_map[element["key"]] = {
            "key": element["key"],
            "type": element["type"],
            "props": element.get("props", {}),
            "children": [],
            "visible": element.get("visible"),
        }

    for element in elements:
        parent_key = element.get("parentKey")
        if parent_key:
            parent = element_map.get(parent_key)
            if parent is not None:
                parent["children"].append(element["key"])
        else:
            root = element["key"]

    return {"root": root, "elements": element_map}
