"""
jsonui Kernel — Dynamic Values and Logic Expressions

Pure functions: (value | condition, data snapshot) → resolved value | bool.

A dynamic value is either a literal or a {"path": "/x/y"} reference into the
data model. A visibility condition is a bool, a {"path"} reference, an
{"auth": "signedIn" | "signedOut"} check, or a logic expression node:

  {"and": [...]}  {"or": [...]}  {"not": cond}
  {"eq": [a, b]}  {"neq": [a, b]}
  {"gt": [a, b]}  {"gte": [a, b]}  {"lt": [a, b]}  {"lte": [a, b]}

Comparison operands are dynamic values. Nothing here raises on bad input:
unknown or malformed nodes evaluate to False and are logged.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any

from jsonui.kernel.paths import get_by_path
from jsonui.kernel.types import VisibilityContext

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\$\{([^}]*)\}")


# ---------------------------------------------------------------------------
# Dynamic values
# ---------------------------------------------------------------------------


def is_path_ref(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("path"), str)


def resolve_dynamic_value(value: Any, data_model: dict[str, Any]) -> Any:
    """Literal → itself, {"path"} → value at that path (None when absent)."""
    if value is None:
        return None
    if is_path_ref(value):
        return get_by_path(data_model, value["path"])
    return value


def interpolate_string(template: str, data_model: dict[str, Any]) -> str:
    """Replace ${/path} placeholders with the values they point at."""

    def _sub(match: re.Match) -> str:
        value = get_by_path(data_model, match.group(1).strip())
        return "" if value is None else str(value)

    return _PLACEHOLDER_RE.sub(_sub, template)


# ---------------------------------------------------------------------------
# Value semantics
# ---------------------------------------------------------------------------


def is_truthy(value: Any) -> bool:
    """
    Truthiness as the generated UI expects it: None, False, 0, NaN and ""
    are false; everything else, including empty lists and dicts, is true.
    """
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and math.isnan(value))


def strict_equal(a: Any, b: Any) -> bool:
    """
    Structural equality without coercion. Booleans never equal numbers;
    1 and 1.0 are equal; dicts and lists compare element by element.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a is b
    if _is_number(a) and _is_number(b):
        return a == b
    if isinstance(a, dict) and isinstance(b, dict):
        if a.keys() != b.keys():
            return False
        return all(strict_equal(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        if len(a) != len(b):
            return False
        return all(strict_equal(x, y) for x, y in zip(a, b))
    if type(a) is not type(b):
        return False
    return a == b


# ---------------------------------------------------------------------------
# Logic expression handlers
# ---------------------------------------------------------------------------


def _operands(node: dict, op: str) -> tuple[Any, Any] | None:
    pair = node.get(op)
    if not isinstance(pair, list) or len(pair) != 2:
        logger.warning("dynamic: '%s' expects two operands, got %r", op, pair)
        return None
    return pair[0], pair[1]


def _eval_and(node: dict, ctx: VisibilityContext) -> bool:
    items = node["and"]
    if not isinstance(items, list):
        return False
    # all() short-circuits; all([]) is True
    return all(evaluate_logic_expression(item, ctx) for item in items)


def _eval_or(node: dict, ctx: VisibilityContext) -> bool:
    items = node["or"]
    if not isinstance(items, list):
        return False
    return any(evaluate_logic_expression(item, ctx) for item in items)


def _eval_not(node: dict, ctx: VisibilityContext) -> bool:
    return not evaluate_logic_expression(node["not"], ctx)


def _eval_eq(node: dict, ctx: VisibilityContext) -> bool:
    pair = _operands(node, "eq")
    if pair is None:
        return False
    left, right = (resolve_dynamic_value(v, ctx.data_model) for v in pair)
    return strict_equal(left, right)


def _eval_neq(node: dict, ctx: VisibilityContext) -> bool:
    pair = _operands(node, "neq")
    if pair is None:
        return False
    left, right = (resolve_dynamic_value(v, ctx.data_model) for v in pair)
    return not strict_equal(left, right)


def _numeric_compare(op: str):
    def _eval(node: dict, ctx: VisibilityContext) -> bool:
        pair = _operands(node, op)
        if pair is None:
            return False
        left, right = (resolve_dynamic_value(v, ctx.data_model) for v in pair)
        if not (_is_number(left) and _is_number(right)):
            return False
        if op == "gt":
            return left > right
        if op == "gte":
            return left >= right
        if op == "lt":
            return left < right
        return left <= right

    return _eval


def _eval_path(node: dict, ctx: VisibilityContext) -> bool:
    if not is_path_ref(node):
        logger.warning("dynamic: path condition needs a string, got %r", node["path"])
        return False
    return is_truthy(resolve_dynamic_value(node, ctx.data_model))


def _eval_auth(node: dict, ctx: VisibilityContext) -> bool:
    signed_in = ctx.auth_state is not None and ctx.auth_state.is_signed_in is True
    wanted = node["auth"]
    if wanted == "signedIn":
        return signed_in
    if wanted == "signedOut":
        return not signed_in
    logger.warning("dynamic: unknown auth condition %r", wanted)
    return False


# ---------------------------------------------------------------------------
# Handler dispatch table
# ---------------------------------------------------------------------------

_HANDLERS: dict[str, Any] = {
    "and": _eval_and,
    "or": _eval_or,
    "not": _eval_not,
    "eq": _eval_eq,
    "neq": _eval_neq,
    "gt": _numeric_compare("gt"),
    "gte": _numeric_compare("gte"),
    "lt": _numeric_compare("lt"),
    "lte": _numeric_compare("lte"),
    "path": _eval_path,
    "auth": _eval_auth,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def evaluate_logic_expression(expr: Any, ctx: VisibilityContext) -> bool:
    """Evaluate one node. Booleans evaluate to themselves."""
    if isinstance(expr, bool):
        return expr
    if not isinstance(expr, dict) or len(expr) != 1:
        logger.warning("dynamic: malformed logic expression %r", expr)
        return False

    (tag,) = expr.keys()
    handler = _HANDLERS.get(tag)
    if handler is None:
        logger.warning("dynamic: unknown logic operator %r", tag)
        return False
    return handler(expr, ctx)


def evaluate_visibility(condition: Any, ctx: VisibilityContext) -> bool:
    """
    Decide whether an element with this `visible` condition is shown.
    No condition means visible.
    """
    if condition is None:
        return True
    return evaluate_logic_expression(condition, ctx)
