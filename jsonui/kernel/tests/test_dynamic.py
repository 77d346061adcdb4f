"""
Tests for the dynamic value resolver and logic expression evaluator.
"""

import copy
import math

import pytest

from jsonui.kernel.dynamic import (
    evaluate_logic_expression,
    evaluate_visibility,
    interpolate_string,
    is_truthy,
    resolve_dynamic_value,
    strict_equal,
)
from jsonui.kernel.types import AuthState, VisibilityContext

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def data():
    return {
        "user": {"name": "Ada", "age": 36, "role": "admin"},
        "cart": {"items": [], "total": 0},
        "flags": {"beta": True, "legacy": False},
        "limit": 40,
    }


@pytest.fixture
def ctx(data):
    return VisibilityContext(data_model=data)


# ============================================================================
# resolve_dynamic_value / interpolate_string
# ============================================================================


class TestResolveDynamicValue:
    def test_literal_passthrough(self, data):
        assert resolve_dynamic_value("hello", data) == "hello"
        assert resolve_dynamic_value(42, data) == 42
        assert resolve_dynamic_value(False, data) is False

    def test_path_reference(self, data):
        assert resolve_dynamic_value({"path": "/user/name"}, data) == "Ada"

    def test_missing_path_is_none(self, data):
        assert resolve_dynamic_value({"path": "/user/email"}, data) is None

    def test_none_stays_none(self, data):
        assert resolve_dynamic_value(None, data) is None

    def test_dict_without_string_path_is_literal(self, data):
        value = {"path": 3}
        assert resolve_dynamic_value(value, data) is value


class TestInterpolateString:
    def test_placeholders_replaced(self, data):
        assert interpolate_string("Hi ${/user/name}, age ${/user/age}", data) == "Hi Ada, age 36"

    def test_missing_value_becomes_empty(self, data):
        assert interpolate_string("[${/user/email}]", data) == "[]"

    def test_plain_text_untouched(self, data):
        assert interpolate_string("no placeholders", data) == "no placeholders"


# ============================================================================
# Value semantics
# ============================================================================


class TestTruthiness:
    @pytest.mark.parametrize("value", [None, False, 0, 0.0, "", math.nan])
    def test_falsy(self, value):
        assert not is_truthy(value)

    @pytest.mark.parametrize("value", [True, 1, -1, "0", "false", [], {}, [0]])
    def test_truthy(self, value):
        assert is_truthy(value)


class TestStrictEqual:
    def test_bool_never_equals_number(self):
        assert not strict_equal(True, 1)
        assert not strict_equal(0, False)

    def test_int_equals_float(self):
        assert strict_equal(1, 1.0)

    def test_string_never_equals_number(self):
        assert not strict_equal("1", 1)

    def test_structural(self):
        assert strict_equal({"a": [1, {"b": None}]}, {"a": [1, {"b": None}]})
        assert not strict_equal({"a": [1]}, {"a": [1, 2]})
        assert not strict_equal({"a": 1}, {"b": 1})

    def test_none(self):
        assert strict_equal(None, None)
        assert not strict_equal(None, "")

    def test_nan_not_equal_to_itself(self):
        assert not strict_equal(math.nan, math.nan)


# ============================================================================
# Logic expressions
# ============================================================================


class TestLogicExpressions:
    def test_booleans_evaluate_to_themselves(self, ctx):
        assert evaluate_logic_expression(True, ctx) is True
        assert evaluate_logic_expression(False, ctx) is False

    def test_path_truthiness(self, ctx):
        assert evaluate_logic_expression({"path": "/flags/beta"}, ctx)
        assert not evaluate_logic_expression({"path": "/flags/legacy"}, ctx)
        assert not evaluate_logic_expression({"path": "/cart/total"}, ctx)
        assert evaluate_logic_expression({"path": "/cart/items"}, ctx)
        assert not evaluate_logic_expression({"path": "/nope"}, ctx)

    def test_empty_and_is_true_empty_or_is_false(self, ctx):
        assert evaluate_logic_expression({"and": []}, ctx) is True
        assert evaluate_logic_expression({"or": []}, ctx) is False

    def test_and_or_not(self, ctx):
        beta = {"path": "/flags/beta"}
        legacy = {"path": "/flags/legacy"}
        assert evaluate_logic_expression({"and": [beta, {"not": legacy}]}, ctx)
        assert not evaluate_logic_expression({"and": [beta, legacy]}, ctx)
        assert evaluate_logic_expression({"or": [legacy, beta]}, ctx)

    def test_eq_with_path_operand(self, ctx):
        assert evaluate_logic_expression({"eq": [{"path": "/user/role"}, "admin"]}, ctx)
        assert evaluate_logic_expression({"neq": [{"path": "/user/role"}, "guest"]}, ctx)

    def test_eq_does_not_coerce(self, ctx):
        assert not evaluate_logic_expression({"eq": [{"path": "/flags/beta"}, 1]}, ctx)
        assert not evaluate_logic_expression({"eq": [{"path": "/user/age"}, "36"]}, ctx)

    @pytest.mark.parametrize(
        "op, expected",
        [("gt", False), ("gte", False), ("lt", True), ("lte", True)],
    )
    def test_numeric_compare_against_path(self, ctx, op, expected):
        assert evaluate_logic_expression({op: [{"path": "/user/age"}, {"path": "/limit"}]}, ctx) is expected

    def test_numeric_compare_non_numbers_false(self, ctx):
        assert not evaluate_logic_expression({"gt": ["10", 5]}, ctx)
        assert not evaluate_logic_expression({"lt": [{"path": "/nope"}, 5]}, ctx)
        assert not evaluate_logic_expression({"gte": [True, 0]}, ctx)

    def test_wrong_operand_count_false(self, ctx):
        assert not evaluate_logic_expression({"eq": ["a"]}, ctx)
        assert not evaluate_logic_expression({"gt": 3}, ctx)

    def test_unknown_operator_false(self, ctx, caplog):
        assert not evaluate_logic_expression({"xor": [True, False]}, ctx)
        assert "unknown logic operator" in caplog.text

    @pytest.mark.parametrize("expr", [{}, {"and": [], "or": []}, "yes", 1, None])
    def test_malformed_false(self, ctx, expr):
        assert evaluate_logic_expression(expr, ctx) is False


class TestAuthConditions:
    def test_signed_in(self, data):
        ctx = VisibilityContext(data_model=data, auth_state=AuthState(is_signed_in=True))
        assert evaluate_visibility({"auth": "signedIn"}, ctx)
        assert not evaluate_visibility({"auth": "signedOut"}, ctx)

    def test_no_auth_state_is_signed_out(self, ctx):
        assert not evaluate_visibility({"auth": "signedIn"}, ctx)
        assert evaluate_visibility({"auth": "signedOut"}, ctx)

    def test_unknown_auth_value_false(self, ctx):
        assert not evaluate_visibility({"auth": "admin"}, ctx)


class TestEvaluateVisibility:
    def test_no_condition_is_visible(self, ctx):
        assert evaluate_visibility(None, ctx)

    def test_does_not_mutate_data(self, data):
        before = copy.deepcopy(data)
        ctx = VisibilityContext(data_model=data, auth_state=AuthState(is_signed_in=True))
        evaluate_visibility(
            {"and": [{"path": "/user/name"}, {"or": [{"gt": [{"path": "/user/age"}, 18]}, {"auth": "signedIn"}]}]},
            ctx,
        )
        assert data == before

    def test_same_inputs_same_answer(self, ctx):
        cond = {"or": [{"eq": [{"path": "/user/role"}, "admin"]}, {"path": "/flags/legacy"}]}
        results = {evaluate_visibility(cond, ctx) for _ in range(50)}
        assert results == {True}
