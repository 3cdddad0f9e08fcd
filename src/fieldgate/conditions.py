"""Conditional gate: validate-if / not-validate-if.

A condition source is turned into a Condition once, when the entity is built:

- callable: called with the entity
- bool: constant
- a name registered in the PredicateRegistry: the named predicate
- a reference such as ``#name`` or ``[name=value]``: read through the locator
- any other string: an expression, only evaluated by a host-supplied
  ``expression_evaluator(expression, entity)``

A condition that cannot be evaluated counts as false and is logged. For the
include condition that means the entity is skipped.
"""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

from fieldgate.errors import ConditionError
from fieldgate.inputs import Locator
from fieldgate.validators.testers import is_selector
from fieldgate.values import is_empty

if TYPE_CHECKING:
    from fieldgate.entities import BaseEntity

logger = logging.getLogger(__name__)

PredicateFn = Callable[["BaseEntity"], Any]
ExpressionEvaluator = Callable[[str, "BaseEntity"], Any]


class Condition(Protocol):
    """A condition over an entity.

    Raises:
        ConditionError: If the condition cannot be evaluated
    """

    def __call__(self, entity: "BaseEntity") -> bool:
        ...


class ConstantCondition:
    def __init__(self, value: bool):
        self.value = value

    def __call__(self, entity: "BaseEntity") -> bool:
        return self.value

    def __repr__(self) -> str:
        return f"ConstantCondition({self.value})"


class CallableCondition:
    def __init__(self, fn: PredicateFn):
        self.fn = fn

    def __call__(self, entity: "BaseEntity") -> bool:
        try:
            return bool(self.fn(entity))
        except Exception as e:
            raise ConditionError(f"Condition {self.fn!r} raised: {e}") from e


class NamedPredicateCondition(CallableCondition):
    def __init__(self, name: str, fn: PredicateFn):
        super().__init__(fn)
        self.name = name

    def __repr__(self) -> str:
        return f"NamedPredicateCondition({self.name!r})"


class LocatorCondition:
    """True when the referenced input is set.

    Checkbox and radio targets are set when any of them is checked; other
    targets when the first match has a non-empty value.
    """

    def __init__(self, selector: str, locator: Locator | None):
        self.selector = selector
        self.locator = locator

    def __call__(self, entity: "BaseEntity") -> bool:
        if self.locator is None:
            raise ConditionError(f"No locator to resolve '{self.selector}'")
        sources = self.locator.locate(self.selector)
        if not sources:
            raise ConditionError(f"'{self.selector}' does not match any input")
        if sources[0].kind.is_choice:
            return any(source.is_checked() for source in sources)
        return not is_empty(sources[0].get_value())

    def __repr__(self) -> str:
        return f"LocatorCondition({self.selector!r})"


class ExpressionCondition:
    """An inline expression, evaluated only by a host-supplied evaluator."""

    def __init__(self, expression: str, evaluator: ExpressionEvaluator | None):
        self.expression = expression
        self.evaluator = evaluator

    def __call__(self, entity: "BaseEntity") -> bool:
        if self.evaluator is None:
            raise ConditionError(f"No expression evaluator for '{self.expression}'")
        try:
            return bool(self.evaluator(self.expression, entity))
        except Exception as e:
            raise ConditionError(f"Expression '{self.expression}' raised: {e}") from e

    def __repr__(self) -> str:
        return f"ExpressionCondition({self.expression!r})"


class PredicateRegistry:
    """Named predicates that conditions may refer to.

    Example:
        predicates = PredicateRegistry()

        @predicates.predicate("isBusiness")
        def is_business(entity):
            return entity.form.get("accountType").get_value() == "business"
    """

    def __init__(self) -> None:
        self._predicates: dict[str, PredicateFn] = {}

    def register(self, name: str, fn: PredicateFn) -> None:
        """Register a predicate. Re-registering a name is a no-op."""
        if name in self._predicates:
            logger.warning("Predicate '%s' is already registered, ignoring", name)
            return
        self._predicates[name] = fn

    def predicate(self, name: str) -> Callable[[PredicateFn], PredicateFn]:
        """Decorator to register a predicate."""

        def decorator(fn: PredicateFn) -> PredicateFn:
            self.register(name, fn)
            return fn

        return decorator

    def get(self, name: str) -> PredicateFn | None:
        return self._predicates.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._predicates


def build_condition(
    source: Any,
    predicates: PredicateRegistry | None = None,
    locator: Locator | None = None,
    expression_evaluator: ExpressionEvaluator | None = None,
) -> Condition | None:
    """Turn a declared condition source into a Condition (None if absent)."""
    if source is None:
        return None
    if isinstance(source, bool):
        return ConstantCondition(source)
    if callable(source):
        return CallableCondition(source)
    if not isinstance(source, str):
        raise ConditionError(f"Unsupported condition source {source!r}")

    text = source.strip()
    if predicates is not None and text in predicates:
        return NamedPredicateCondition(text, predicates.get(text))
    if is_selector(text):
        return LocatorCondition(text, locator)
    return ExpressionCondition(text, expression_evaluator)


def _holds(condition: Condition, entity: "BaseEntity", kind: str) -> bool:
    try:
        return condition(entity)
    except ConditionError as e:
        logger.warning("Cannot evaluate %s condition of '%s': %s", kind, entity.name, e)
        return False


def should_validate(
    entity: "BaseEntity",
    validate_if: Condition | None = None,
    not_validate_if: Condition | None = None,
) -> bool:
    """Whether an entity should be validated. Exclusion wins on conflict."""
    if not_validate_if is not None and _holds(not_validate_if, entity, "not-validate-if"):
        return False
    if validate_if is not None and not _holds(validate_if, entity, "validate-if"):
        return False
    return True
