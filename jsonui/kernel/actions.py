"""
jsonui Kernel — Action Engine

Runs user-triggered actions declared in element props:

  {"name": "refund",
   "params": {"amount": {"path": "/refund/amount"}},
   "confirm": {"title": "Refund ${/refund/amount}?", "variant": "danger"},
   "onSuccess": {"set": {"/refund/status": "$result.status"}},
   "onError": {"set": {"/refund/error": "$error.message"}}}

Lifecycle per execution:

  IDLE → RESOLVING → [AWAITING_CONFIRMATION] → EXECUTING → COMPLETED | FAILED
                      AWAITING_CONFIRMATION → CANCELLED

Params (and the confirm text) are resolved once, when the action is
triggered, so the dialog shows the values the handler will receive.
Confirmation suspends on a future; nothing is locked while waiting, so a
handler may execute other actions re-entrantly.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import Counter, deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from jsonui.config import settings
from jsonui.kernel.data_store import DataStore
from jsonui.kernel.dynamic import interpolate_string, is_path_ref, resolve_dynamic_value
from jsonui.kernel.paths import get_by_path
from jsonui.kernel.types import Action, ActionState, ResolvedAction

logger = logging.getLogger(__name__)

ActionHandler = Callable[[dict[str, Any]], Any | Awaitable[Any]]

CONFIRMATION_POLICIES: set[str] = {"queue", "replace"}

_RESULT_REF = "$result"
_ERROR_MESSAGE_REF = "$error.message"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ActionCancelled(Exception):
    """The user declined (or a newer dialog superseded) a pending confirmation."""

    def __init__(self, name: str, reason: str = "Action cancelled") -> None:
        super().__init__(f"{reason}: {name}")
        self.name = name
        self.reason = reason


# ---------------------------------------------------------------------------
# Pending confirmation
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class PendingConfirmation:
    """A resolved action waiting on confirm() or cancel()."""

    action: ResolvedAction
    handler: ActionHandler
    future: asyncio.Future = field(repr=False)

    def resolve(self) -> None:
        if not self.future.done():
            self.future.set_result(None)

    def reject(self, reason: str = "Action cancelled") -> None:
        if not self.future.done():
            self.future.set_exception(ActionCancelled(self.action.name, reason))


@dataclass
class ActionOutcome:
    succeeded: bool
    result: Any = None
    error: Exception | None = None


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def as_action(action: Action | dict[str, Any]) -> Action:
    if isinstance(action, Action):
        return action
    return Action.model_validate(action)


def resolve_action(action: Action | dict[str, Any], data_model: dict[str, Any]) -> ResolvedAction:
    """Resolve params and interpolate the confirm text against one data snapshot."""
    action = as_action(action)
    params = {name: resolve_dynamic_value(value, data_model) for name, value in action.params.items()}

    confirm = None
    if action.confirm is not None:
        confirm = action.confirm.model_copy(
            update={
                "title": interpolate_string(action.confirm.title, data_model),
                "message": interpolate_string(action.confirm.message, data_model),
            }
        )

    return ResolvedAction(
        name=action.name,
        params=params,
        confirm=confirm,
        on_success=action.on_success,
        on_error=action.on_error,
    )


def _effect_value(value: Any, data_model: dict[str, Any], result: Any = None, error: Exception | None = None) -> Any:
    """Resolve one value inside an onSuccess/onError `set` map."""
    if isinstance(value, str):
        if value == _ERROR_MESSAGE_REF:
            return str(error) if error is not None else None
        if value == _RESULT_REF:
            return result
        if value.startswith(_RESULT_REF + "."):
            return get_by_path(result, value[len(_RESULT_REF) + 1 :].replace(".", "/"))
        return value
    if is_path_ref(value):
        return resolve_dynamic_value(value, data_model)
    return value


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


async def execute_action(
    action: ResolvedAction,
    handler: ActionHandler,
    store: DataStore,
    navigate: Callable[[str], Any] | None = None,
    execute_by_name: Callable[[str], Awaitable[Any]] | None = None,
) -> ActionOutcome:
    """
    Call the handler with the resolved params, then apply onSuccess or
    onError. A failure with no onError declared propagates to the caller.
    """
    try:
        result = handler(dict(action.params))
        if inspect.isawaitable(result):
            result = await result
    except Exception as exc:
        if action.on_error is None:
            raise
        logger.info("actions: handler for %s failed, applying onError: %s", action.name, exc)
        if action.on_error.set:
            for path, value in action.on_error.set.items():
                store.set(path, _effect_value(value, store.data, error=exc))
        elif action.on_error.action and execute_by_name is not None:
            await execute_by_name(action.on_error.action)
        return ActionOutcome(succeeded=False, error=exc)

    on_success = action.on_success
    if on_success is not None:
        if on_success.navigate is not None:
            if navigate is not None:
                navigate(on_success.navigate)
            else:
                logger.warning("actions: %s wants to navigate to %s but no navigate callable is set",
                               action.name, on_success.navigate)
        elif on_success.set:
            for path, value in on_success.set.items():
                store.set(path, _effect_value(value, store.data, result=result))
        elif on_success.action and execute_by_name is not None:
            await execute_by_name(on_success.action)

    return ActionOutcome(succeeded=True, result=result)


class ActionEngine:
    """
    Dispatches actions by name against a shared DataStore.

    At most one confirmation is shown at a time. With policy "queue" further
    confirm-requiring actions wait their turn (FIFO); with "replace" a new one
    cancels the one on screen.
    """

    def __init__(
        self,
        store: DataStore,
        handlers: dict[str, ActionHandler] | None = None,
        navigate: Callable[[str], Any] | None = None,
        policy: str | None = None,
    ) -> None:
        policy = policy or settings.CONFIRMATION_POLICY
        if policy not in CONFIRMATION_POLICIES:
            raise ValueError(f"Unknown confirmation policy: {policy!r}. Valid policies: {sorted(CONFIRMATION_POLICIES)}")

        self.store = store
        self.handlers: dict[str, ActionHandler] = dict(handlers or {})
        self.navigate = navigate
        self.policy = policy
        self.states: dict[str, ActionState] = {}
        self._pending: deque[PendingConfirmation] = deque()
        self._loading: Counter[str] = Counter()

    # -----------------------------------------------------------------------
    # State
    # -----------------------------------------------------------------------

    def register_handler(self, name: str, handler: ActionHandler) -> None:
        self.handlers[name] = handler

    @property
    def loading_actions(self) -> set[str]:
        return {name for name, count in self._loading.items() if count > 0}

    def is_loading(self, name: str) -> bool:
        return self._loading[name] > 0

    @property
    def pending_confirmation(self) -> PendingConfirmation | None:
        """The confirmation currently on screen, if any."""
        return self._pending[0] if self._pending else None

    @property
    def queued_confirmations(self) -> list[PendingConfirmation]:
        return list(self._pending)

    # -----------------------------------------------------------------------
    # Confirmation
    # -----------------------------------------------------------------------

    def confirm(self) -> None:
        if not self._pending:
            return
        self._pending.popleft().resolve()

    def cancel(self) -> None:
        if not self._pending:
            return
        self._pending.popleft().reject()

    async def _await_confirmation(self, action: ResolvedAction, handler: ActionHandler) -> None:
        future = asyncio.get_running_loop().create_future()
        pending = PendingConfirmation(action=action, handler=handler, future=future)

        if self.policy == "replace":
            while self._pending:
                self._pending.popleft().reject("Action superseded")
        self._pending.append(pending)
        self.states[action.name] = ActionState.AWAITING_CONFIRMATION

        try:
            await future
        except ActionCancelled:
            self.states[action.name] = ActionState.CANCELLED
            logger.info("actions: %s cancelled at confirmation", action.name)
            raise
        except asyncio.CancelledError:
            self.states[action.name] = ActionState.CANCELLED
            logger.info("actions: %s abandoned while awaiting confirmation", action.name)
            raise
        finally:
            if pending in self._pending:
                self._pending.remove(pending)

    # -----------------------------------------------------------------------
    # Execute
    # -----------------------------------------------------------------------

    async def execute(self, action: Action | dict[str, Any]) -> Any:
        """
        Resolve, optionally confirm, and run an action.

        Returns the handler's result (None when there is no handler or the
        failure was absorbed by onError). Raises ActionCancelled when the
        confirmation is cancelled.
        """
        action = as_action(action)
        self.states[action.name] = ActionState.RESOLVING
        resolved = resolve_action(action, self.store.data)

        handler = self.handlers.get(resolved.name)
        if handler is None:
            logger.warning("actions: no handler registered for action %s", resolved.name)
            self.states[resolved.name] = ActionState.IDLE
            return None

        if resolved.confirm is not None:
            await self._await_confirmation(resolved, handler)

        self._loading[resolved.name] += 1
        self.states[resolved.name] = ActionState.EXECUTING
        try:
            outcome = await execute_action(
                resolved,
                handler,
                self.store,
                navigate=self.navigate,
                execute_by_name=self._execute_by_name,
            )
        except Exception:
            self.states[resolved.name] = ActionState.FAILED
            raise
        finally:
            self._loading[resolved.name] -= 1
            if self._loading[resolved.name] <= 0:
                del self._loading[resolved.name]

        self.states[resolved.name] = ActionState.COMPLETED if outcome.succeeded else ActionState.FAILED
        return outcome.result

    async def _execute_by_name(self, name: str) -> Any:
        return await self.execute(Action(name=name))

    def dispatch(self, action: Action | dict[str, Any]) -> asyncio.Task:
        """
        Fire-and-forget variant for UI callbacks. Cancellation is logged at
        debug level; any other failure is logged at error level.
        """
        task = asyncio.ensure_future(self.execute(action))
        task.add_done_callback(self._log_dispatch_result)
        return task

    @staticmethod
    def _log_dispatch_result(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if isinstance(exc, ActionCancelled):
            logger.debug("actions: %s", exc)
        elif exc is not None:
            logger.error("actions: dispatched action failed: %s", exc, exc_info=exc)
