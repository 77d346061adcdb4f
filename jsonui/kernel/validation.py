"""
jsonui Kernel — Field Validation

Runs named checks against the value at a data path. Every check runs, in
declared order, and every failing message is collected so a form can show
all violations at once.

Check functions take (value, args) and return a bool. Built-ins are sync;
custom functions supplied by the host may be async and are awaited.

A failing field is a result value ({"valid": False, "errors": [...]}),
never an exception.
"""

from __future__ import annotations

import inspect
import logging
import math
import re
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import urlparse

from jsonui.kernel.data_store import DataStore
from jsonui.kernel.dynamic import evaluate_logic_expression, resolve_dynamic_value, strict_equal
from jsonui.kernel.types import (
    AuthState,
    FieldValidationState,
    ValidationCheck,
    ValidationCheckResult,
    ValidationConfig,
    ValidationResult,
    VisibilityContext,
)

logger = logging.getLogger(__name__)

ValidationFunction = Callable[[Any, dict[str, Any]], bool | Awaitable[bool]]

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_URL_SCHEMES = {"http", "https", "ftp"}


# ---------------------------------------------------------------------------
# Built-in check functions
# ---------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


def _required(value: Any, args: dict) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, dict)):
        return len(value) > 0
    return True


def _email(value: Any, args: dict) -> bool:
    return isinstance(value, str) and bool(_EMAIL_RE.match(value))


def _min_length(value: Any, args: dict) -> bool:
    limit = args.get("length", args.get("min"))
    if not isinstance(value, (str, list)) or not _is_number(limit):
        return False
    return len(value) >= limit


def _max_length(value: Any, args: dict) -> bool:
    limit = args.get("length", args.get("max"))
    if not isinstance(value, (str, list)) or not _is_number(limit):
        return False
    return len(value) <= limit


def _pattern(value: Any, args: dict) -> bool:
    pattern = args.get("pattern")
    if not isinstance(value, str) or not isinstance(pattern, str):
        return False
    try:
        return re.search(pattern, value) is not None
    except re.error:
        logger.warning("validation: invalid pattern %r", pattern)
        return False


def _min(value: Any, args: dict) -> bool:
    limit = args.get("min")
    return _is_number(value) and _is_number(limit) and value >= limit


def _max(value: Any, args: dict) -> bool:
    limit = args.get("max")
    return _is_number(value) and _is_number(limit) and value <= limit


def _numeric(value: Any, args: dict) -> bool:
    if _is_number(value):
        return True
    if isinstance(value, str) and value.strip():
        try:
            return not math.isnan(float(value))
        except ValueError:
            return False
    return False


def _url(value: Any, args: dict) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return parsed.scheme in _URL_SCHEMES and bool(parsed.netloc)


def _matches(value: Any, args: dict) -> bool:
    return strict_equal(value, args.get("other"))


BUILTIN_VALIDATORS: dict[str, ValidationFunction] = {
    "required": _required,
    "email": _email,
    "minLength": _min_length,
    "maxLength": _max_length,
    "pattern": _pattern,
    "min": _min,
    "max": _max,
    "numeric": _numeric,
    "url": _url,
    "matches": _matches,
}


# ---------------------------------------------------------------------------
# Running checks
# ---------------------------------------------------------------------------


def as_config(checks: ValidationConfig | dict | list | None) -> ValidationConfig:
    """Accept a config, its dict form, or a bare list of checks."""
    if checks is None:
        return ValidationConfig()
    if isinstance(checks, ValidationConfig):
        return checks
    if isinstance(checks, list):
        return ValidationConfig(checks=[ValidationCheck.model_validate(c) for c in checks])
    return ValidationConfig.model_validate(checks)


async def run_check(
    check: ValidationCheck,
    value: Any,
    data_model: dict[str, Any],
    custom_functions: dict[str, ValidationFunction] | None = None,
) -> ValidationCheckResult:
    args = {name: resolve_dynamic_value(arg, data_model) for name, arg in (check.args or {}).items()}

    fn = (custom_functions or {}).get(check.fn) or BUILTIN_VALIDATORS.get(check.fn)
    if fn is None:
        logger.warning("validation: unknown function %r, treating as passing", check.fn)
        return ValidationCheckResult(fn=check.fn, valid=True, message=check.message)

    outcome = fn(value, args)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    return ValidationCheckResult(fn=check.fn, valid=bool(outcome), message=check.message)


async def run_validation(
    config: ValidationConfig | dict | list,
    value: Any,
    data_model: dict[str, Any],
    custom_functions: dict[str, ValidationFunction] | None = None,
    auth_state: AuthState | None = None,
) -> ValidationResult:
    """Run every check in order without stopping at the first failure."""
    config = as_config(config)

    if config.enabled is not None:
        ctx = VisibilityContext(data_model=data_model, auth_state=auth_state)
        if not evaluate_logic_expression(config.enabled, ctx):
            return ValidationResult(valid=True)

    results = [await run_check(check, value, data_model, custom_functions) for check in config.checks]
    errors = [r.message for r in results if not r.valid]
    return ValidationResult(valid=not errors, errors=errors, checks=results)


# ---------------------------------------------------------------------------
# Form-scoped engine
# ---------------------------------------------------------------------------


class ValidationEngine:
    """
    Tracks registered fields and their validation state for one form.

    touch() and clear() only change flags; they never run checks.
    """

    def __init__(
        self,
        store: DataStore,
        custom_functions: dict[str, ValidationFunction] | None = None,
    ) -> None:
        self.store = store
        self.custom_functions = custom_functions or {}
        self.field_configs: dict[str, ValidationConfig] = {}
        self.field_states: dict[str, FieldValidationState] = {}

    def register_field(self, path: str, config: ValidationConfig | dict | list) -> None:
        self.field_configs[path] = as_config(config)

    def unregister_field(self, path: str) -> None:
        self.field_configs.pop(path, None)
        self.field_states.pop(path, None)

    async def validate(
        self,
        path: str,
        checks: ValidationConfig | dict | list | None = None,
    ) -> ValidationResult:
        """
        Validate the current value at path. Uses the registered config when
        no checks are given.
        """
        config = as_config(checks) if checks is not None else self.field_configs.get(path, ValidationConfig())
        data_model = self.store.data
        value = self.store.get(path)

        result = await run_validation(
            config,
            value,
            data_model,
            custom_functions=self.custom_functions,
            auth_state=self.store.auth_state,
        )

        previous = self.field_states.get(path)
        self.field_states[path] = FieldValidationState(
            touched=previous.touched if previous else True,
            validated=True,
            result=result,
        )
        return result

    def touch(self, path: str) -> None:
        previous = self.field_states.get(path) or FieldValidationState()
        self.field_states[path] = FieldValidationState(
            touched=True,
            validated=previous.validated,
            result=previous.result,
        )

    def clear(self, path: str) -> None:
        self.field_states.pop(path, None)

    def reset(self) -> None:
        """Drop every field state, e.g. when the owning form goes away."""
        self.field_states.clear()

    async def validate_all(self) -> bool:
        """Validate every registered field; does not stop at the first failure."""
        all_valid = True
        for path in list(self.field_configs):
            result = await self.validate(path)
            if not result.valid:
                all_valid = False
        return all_valid

    def field_state(self, path: str) -> FieldValidationState:
        return self.field_states.get(path) or FieldValidationState()

    def errors(self, path: str) -> list[str]:
        result = self.field_state(path).result
        return list(result.errors) if result else []

    def is_valid(self, path: str) -> bool:
        result = self.field_state(path).result
        return result.valid if result else True
