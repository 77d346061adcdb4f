"""
jsonui Kernel — Data Store

Owns the session's data model. Every write goes through set/update/remove
(one path at a time) and replaces `data` with a copy-on-write successor, so a
reader holding an earlier `data` keeps a consistent snapshot. Listeners are
told which path was written after each write.

Usage:
    store = DataStore({"form": {"email": ""}}, auth_state=AuthState(is_signed_in=True))
    unsubscribe = store.subscribe(lambda path, value: ...)
    store.set("/form/email", "a@b.co")
    store.is_visible({"path": "/form/email"})   # True
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from jsonui.kernel.dynamic import evaluate_visibility
from jsonui.kernel.paths import assoc_path, dissoc_path, get_by_path, has_path, split_path
from jsonui.kernel.types import WRITE_OPS, AuthState, VisibilityContext

logger = logging.getLogger(__name__)

DataListener = Callable[[str, Any], None]


class DataStore:
    """The single writer path for the shared data model."""

    def __init__(
        self,
        initial: dict[str, Any] | None = None,
        auth_state: AuthState | None = None,
    ) -> None:
        self._data: dict[str, Any] = dict(initial) if initial else {}
        self.auth_state = auth_state
        self._listeners: list[DataListener] = []

    @property
    def data(self) -> dict[str, Any]:
        """Current snapshot. Never mutated after it is replaced."""
        return self._data

    def get(self, path: str) -> Any:
        return get_by_path(self._data, path)

    def set(self, path: str, value: Any) -> None:
        if not split_path(path) and not isinstance(value, dict):
            logger.warning("data_store: refusing to replace the whole model with %r", value)
            return
        self._data = assoc_path(self._data, path, value)
        self._publish(path, value)

    def update(self, updates: dict[str, Any]) -> None:
        """Apply several writes in order; listeners hear about each one."""
        for path, value in updates.items():
            self.set(path, value)

    def remove(self, path: str) -> None:
        """Delete the value at path. A path that holds nothing is a no-op."""
        if not split_path(path) or not has_path(self._data, path):
            return
        self._data = dissoc_path(self._data, path)
        self._publish(path, None)

    def apply_data_patch(self, patch: dict[str, Any]) -> None:
        """Sink for stream patches that carry a dataPath instead of a tree path."""
        path = patch.get("dataPath")
        op = patch.get("op")
        if not isinstance(path, str):
            logger.warning("data_store: data patch without a string dataPath: %r", patch)
            return
        if op == "remove":
            self.remove(path)
        elif op in WRITE_OPS:
            self.set(path, patch.get("value"))
        else:
            logger.warning("data_store: unknown op %r for dataPath %s", op, path)

    # -----------------------------------------------------------------------
    # Publish-on-write
    # -----------------------------------------------------------------------

    def subscribe(self, listener: DataListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _publish(self, path: str, value: Any) -> None:
        for listener in list(self._listeners):
            listener(path, value)

    # -----------------------------------------------------------------------
    # Visibility
    # -----------------------------------------------------------------------

    def visibility_context(self) -> VisibilityContext:
        return VisibilityContext(data_model=self._data, auth_state=self.auth_state)

    def is_visible(self, condition: Any) -> bool:
        return evaluate_visibility(condition, self.visibility_context())
