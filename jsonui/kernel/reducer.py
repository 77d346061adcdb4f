"""
jsonui Kernel — Tree Reducer

Pure function: (tree, patch) → ReduceResult

Patches arrive one JSONL line at a time while the model is still writing:

  {"op": "set",     "path": "/root",             "value": "page"}
  {"op": "add",     "path": "/elements/page",    "value": {"key": "page", "type": "Stack", ...}}
  {"op": "replace", "path": "/elements/page/props/gap", "value": "lg"}
  {"op": "remove",  "path": "/elements/page"}

The input tree is never modified. Only the containers a patch touches are
copied; every other element keeps its identity, so callers can detect change
with `is`. A rejected patch returns the input tree object itself.

Field patches for an element that has not arrived yet are dropped, not
retried later.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from jsonui.kernel.paths import assoc_path, dissoc_path
from jsonui.kernel.tree import empty_tree
from jsonui.kernel.types import ELEMENTS_PREFIX, PATCH_OPS, ROOT_PATH, WRITE_OPS

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ReduceResult
# ---------------------------------------------------------------------------


class ReduceResult:
    """
    Result of applying one patch to a tree.
    Never throws — always returns one of these.
    """

    __slots__ = ("tree", "accepted", "reason")

    def __init__(
        self,
        tree: dict[str, Any],
        accepted: bool,
        reason: str | None = None,
    ) -> None:
        self.tree = tree
        self.accepted = accepted
        self.reason = reason

    def __repr__(self) -> str:  # pragma: no cover
        if self.accepted:
            return "ReduceResult(accepted=True)"
        return f"ReduceResult(accepted=False, reason={self.reason!r})"


def _reject(tree: dict, reason: str) -> ReduceResult:
    return ReduceResult(tree=tree, accepted=False, reason=reason)


def _ok(tree: dict) -> ReduceResult:
    return ReduceResult(tree=tree, accepted=True)


def _split_element_path(path: str) -> tuple[str, str]:
    """"/elements/card/props/title" → ("card", "/props/title")."""
    rest = path[len(ELEMENTS_PREFIX) :]
    key, _, sub = rest.partition("/")
    return key, f"/{sub}" if sub else ""


def _with_elements(tree: dict, elements: dict) -> dict:
    return {**tree, "elements": elements}


# ---------------------------------------------------------------------------
# Patch handlers
# ---------------------------------------------------------------------------


def _handle_root(tree: dict, patch: dict, op: str) -> ReduceResult:
    if op not in WRITE_OPS:
        return _reject(tree, f"UNSUPPORTED_OP: '{op}' on {ROOT_PATH}")
    return _ok({**tree, "root": patch.get("value")})


def _handle_element(
    tree: dict,
    patch: dict,
    op: str,
    key: str,
    is_known_type: Callable[[str], bool] | None,
) -> ReduceResult:
    elements = tree["elements"]

    if op == "remove":
        if key not in elements:
            return _reject(tree, f"ELEMENT_NOT_FOUND: '{key}'")
        # Children that still point at key become dangling; consumers skip them.
        return _ok(_with_elements(tree, {k: v for k, v in elements.items() if k != key}))

    value = patch.get("value")
    if is_known_type is not None:
        element_type = value.get("type") if isinstance(value, dict) else None
        if not is_known_type(element_type):
            return _reject(tree, f"UNKNOWN_TYPE: '{element_type}' for element '{key}'")

    return _ok(_with_elements(tree, {**elements, key: value}))


def _handle_element_field(tree: dict, patch: dict, op: str, key: str, sub: str) -> ReduceResult:
    element = tree["elements"].get(key)
    if element is None:
        return _reject(tree, f"ELEMENT_NOT_FOUND: '{key}' (field patch {sub} arrived first)")

    if op == "remove":
        updated = dissoc_path(element, sub)
        if updated is element:
            return _reject(tree, f"FIELD_NOT_FOUND: '{key}{sub}'")
    else:
        updated = assoc_path(element, sub, patch.get("value"))

    return _ok(_with_elements(tree, {**tree["elements"], key: updated}))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def reduce(
    tree: dict[str, Any],
    patch: dict[str, Any],
    is_known_type: Callable[[str], bool] | None = None,
) -> ReduceResult:
    """
    Apply one patch to the current tree.
    Returns ReduceResult with new tree + accepted flag.

    Pure function. Patches that carry dataPath target the data model and are
    never applied here.
    """
    if patch.get("dataPath") is not None:
        return _reject(tree, "DATA_PATCH: routed to the data model")

    path = patch.get("path")
    if not isinstance(path, str) or not path:
        return _reject(tree, "MISSING_PATH: patch has no 'path' field")

    op = patch.get("op")
    if op not in PATCH_OPS:
        return _reject(tree, f"UNKNOWN_OP: {op!r}")

    if path == ROOT_PATH:
        return _handle_root(tree, patch, op)

    if path.startswith(ELEMENTS_PREFIX):
        key, sub = _split_element_path(path)
        if not key:
            return _reject(tree, f"MISSING_KEY: '{path}'")
        if not sub:
            return _handle_element(tree, patch, op, key, is_known_type)
        return _handle_element_field(tree, patch, op, key, sub)

    return _reject(tree, f"UNKNOWN_PATH: '{path}'")


def apply_patch(tree: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Apply one patch and return the resulting tree (the same object if nothing changed)."""
    return reduce(tree, patch).tree


def reduce_all(
    tree: dict[str, Any],
    patches: list[dict[str, Any]],
    is_known_type: Callable[[str], bool] | None = None,
) -> dict[str, Any]:
    """
    Apply a sequence of patches in order.
    Rejections are skipped. Returns the final tree.
    """
    for patch in patches:
        result = reduce(tree, patch, is_known_type)
        if result.accepted:
            tree = result.tree
        else:
            logger.debug("reducer: skipped patch %r: %s", patch, result.reason)
    return tree


def replay(patches: list[dict[str, Any]]) -> dict[str, Any]:
    """Rebuild a tree from scratch by reducing over all patches."""
    return reduce_all(empty_tree(), patches)
