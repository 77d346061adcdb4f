"""
jsonui Kernel — Shared Types

Constants, data classes, and pydantic models used across the reducer,
evaluator, validation, and action layers. Trees and data models stay plain
dicts; these are the contracts around them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Patch vocabulary
# ---------------------------------------------------------------------------

PATCH_OPS: set[str] = {"set", "add", "replace", "remove"}

# Ops that write a value (everything except remove)
WRITE_OPS: set[str] = {"set", "add", "replace"}

ROOT_PATH = "/root"
ELEMENTS_PREFIX = "/elements/"


# ---------------------------------------------------------------------------
# Evaluation context
# ---------------------------------------------------------------------------


@dataclass
class AuthState:
    """Signed-in state consulted by {"auth": ...} visibility conditions."""

    is_signed_in: bool = False
    user: dict[str, Any] | None = None


@dataclass(frozen=True)
class VisibilityContext:
    """One consistent snapshot of the data model plus the auth state."""

    data_model: dict[str, Any] = field(default_factory=dict)
    auth_state: AuthState | None = None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationCheck(BaseModel):
    """A single named check: {"fn": "minLength", "args": {"length": 8}, "message": "..."}."""

    fn: str
    args: dict[str, Any] | None = None
    message: str = ""


class ValidationConfig(BaseModel):
    """All checks for one field, plus when to run them."""

    model_config = ConfigDict(populate_by_name=True)

    checks: list[ValidationCheck] = Field(default_factory=list)
    validate_on: Literal["change", "blur", "submit"] | None = Field(default=None, alias="validateOn")
    enabled: Any = None


class ValidationCheckResult(BaseModel):
    fn: str
    valid: bool
    message: str


class ValidationResult(BaseModel):
    """Result of running a field's checks. Failure is a value, not an error."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    checks: list[ValidationCheckResult] = Field(default_factory=list)


@dataclass
class FieldValidationState:
    touched: bool = False
    validated: bool = False
    result: ValidationResult | None = None


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


class ActionConfirm(BaseModel):
    """Confirmation dialog shown before an action runs."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    message: str = ""
    confirm_label: str | None = Field(default=None, alias="confirmLabel")
    cancel_label: str | None = Field(default=None, alias="cancelLabel")
    variant: Literal["default", "danger"] = "default"


class ActionOnSuccess(BaseModel):
    """
    Side effect applied after a handler succeeds. Exactly one of:
      set      — {data_path: value-or-reference}
      navigate — path handed to the host's navigate callable
      action   — name of another action to execute
    """

    set: dict[str, Any] | None = None
    navigate: str | None = None
    action: str | None = None


class ActionOnError(BaseModel):
    """Side effect applied after a handler fails: set or action."""

    set: dict[str, Any] | None = None
    action: str | None = None


class Action(BaseModel):
    """An action as declared in element props. Params may be {"path": ...} references."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    params: dict[str, Any] = Field(default_factory=dict)
    confirm: ActionConfirm | None = None
    on_success: ActionOnSuccess | None = Field(default=None, alias="onSuccess")
    on_error: ActionOnError | None = Field(default=None, alias="onError")


class ResolvedAction(Action):
    """Same shape as Action, with every param resolved against one data snapshot."""


class ActionState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
