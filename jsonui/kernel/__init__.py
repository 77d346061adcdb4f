"""
jsonui Kernel — the pure engine.

Components:
  paths       — slash-pointer get/set over nested dicts
  dynamic     — dynamic values and visibility / logic expressions
  reducer     — (tree, patch) → tree  (pure, structural sharing)
  data_store  — the shared data model, publish-on-write
  validation  — field checks against the data model
  actions     — action resolution, confirmation, and execution
"""

from jsonui.kernel.actions import ActionCancelled, ActionEngine, resolve_action
from jsonui.kernel.data_store import DataStore
from jsonui.kernel.dynamic import evaluate_logic_expression, evaluate_visibility, resolve_dynamic_value
from jsonui.kernel.paths import get_by_path, set_by_path
from jsonui.kernel.reducer import apply_patch, reduce, replay
from jsonui.kernel.tree import empty_tree, flat_to_tree, walk_tree
from jsonui.kernel.validation import ValidationEngine, run_validation

__all__ = [
    "get_by_path",
    "set_by_path",
    "resolve_dynamic_value",
    "evaluate_visibility",
    "evaluate_logic_expression",
    "reduce",
    "apply_patch",
    "replay",
    "empty_tree",
    "flat_to_tree",
    "walk_tree",
    "DataStore",
    "ValidationEngine",
    "run_validation",
    "ActionEngine",
    "ActionCancelled",
    "resolve_action",
]
