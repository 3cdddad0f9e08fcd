"""Tests for the conditional gate."""

import logging
from unittest.mock import MagicMock

import pytest

from fieldgate.conditions import (
    CallableCondition,
    ConstantCondition,
    ExpressionCondition,
    LocatorCondition,
    NamedPredicateCondition,
    PredicateRegistry,
    build_condition,
    should_validate,
)
from fieldgate.errors import ConditionError
from fieldgate.inputs import MemoryInput, MemoryLocator
from fieldgate.types import InputKind


@pytest.fixture
def entity():
    entity = MagicMock()
    entity.name = "field"
    return entity


@pytest.fixture
def locator():
    return MemoryLocator(
        {
            "company": MemoryInput("ACME"),
            "nickname": MemoryInput(""),
            "newsletter": MemoryInput("yes", kind=InputKind.CHECKBOX, checked=False),
            "plan": [
                MemoryInput("basic", kind=InputKind.RADIO),
                MemoryInput("pro", kind=InputKind.RADIO, checked=True),
            ],
        }
    )


# =============================================================================
# build_condition
# =============================================================================


class TestBuildCondition:
    def test_none(self):
        assert build_condition(None) is None

    def test_bool(self):
        assert isinstance(build_condition(False), ConstantCondition)

    def test_callable(self):
        assert isinstance(build_condition(lambda entity: True), CallableCondition)

    def test_named_predicate_before_locator(self):
        predicates = PredicateRegistry()
        predicates.register("isBusiness", lambda entity: True)

        condition = build_condition("isBusiness", predicates, MemoryLocator())
        assert isinstance(condition, NamedPredicateCondition)

    def test_reference(self):
        assert isinstance(build_condition("#company"), LocatorCondition)
        assert isinstance(build_condition("[plan=pro]"), LocatorCondition)

    def test_expression(self):
        assert isinstance(build_condition("age > 18"), ExpressionCondition)

    def test_unsupported(self):
        with pytest.raises(ConditionError):
            build_condition(42)


# =============================================================================
# Evaluation
# =============================================================================


class TestLocatorCondition:
    def test_non_empty_value(self, entity, locator):
        assert LocatorCondition("#company", locator)(entity)
        assert not LocatorCondition("#nickname", locator)(entity)

    def test_checkbox_reads_checked_state(self, entity, locator):
        assert not LocatorCondition("#newsletter", locator)(entity)

    def test_radio_group_any_checked(self, entity, locator):
        assert LocatorCondition("plan", locator)(entity)
        assert LocatorCondition("[plan=pro]", locator)(entity)
        assert not LocatorCondition("[plan=basic]", locator)(entity)

    def test_no_match_raises(self, entity, locator):
        with pytest.raises(ConditionError, match="does not match"):
            LocatorCondition("#missing", locator)(entity)

    def test_no_locator_raises(self, entity):
        with pytest.raises(ConditionError):
            LocatorCondition("#company", None)(entity)


class TestExpressionCondition:
    def test_needs_evaluator(self, entity):
        with pytest.raises(ConditionError, match="No expression evaluator"):
            ExpressionCondition("a == b", None)(entity)

    def test_uses_host_evaluator(self, entity):
        evaluator = MagicMock(return_value=True)
        assert ExpressionCondition("a == b", evaluator)(entity)
        evaluator.assert_called_once_with("a == b", entity)

    def test_evaluator_error(self, entity):
        evaluator = MagicMock(side_effect=NameError("a"))
        with pytest.raises(ConditionError):
            ExpressionCondition("a", evaluator)(entity)


class TestShouldValidate:
    def test_no_conditions(self, entity):
        assert should_validate(entity)

    def test_include(self, entity):
        assert should_validate(entity, ConstantCondition(True))
        assert not should_validate(entity, ConstantCondition(False))

    def test_exclude_wins(self, entity):
        assert not should_validate(entity, ConstantCondition(True), ConstantCondition(True))

    def test_failing_condition_counts_as_false(self, entity, caplog):
        with caplog.at_level(logging.WARNING, logger="fieldgate.conditions"):
            result = should_validate(entity, LocatorCondition("#missing", MemoryLocator()))

        assert result is False
        assert "Cannot evaluate validate-if condition of 'field'" in caplog.text

    def test_failing_exclude_does_not_skip(self, entity):
        assert should_validate(entity, None, LocatorCondition("#missing", MemoryLocator()))

    def test_raising_callable_counts_as_false(self, entity):
        def explode(entity):
            raise KeyError("x")

        assert not should_validate(entity, CallableCondition(explode))


class TestPredicateRegistry:
    def test_decorator(self):
        predicates = PredicateRegistry()

        @predicates.predicate("always")
        def always(entity):
            return True

        assert "always" in predicates
        assert predicates.get("always") is always

    def test_duplicate_ignored(self, caplog):
        predicates = PredicateRegistry()
        first = lambda entity: True  # noqa: E731
        predicates.register("p", first)

        with caplog.at_level(logging.WARNING):
            predicates.register("p", lambda entity: False)

        assert predicates.get("p") is first
        assert "already registered" in caplog.text
