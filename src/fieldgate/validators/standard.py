"""Built-in ("standard") rules.

Every rule is a predicate ``validate(value, requirement, entity)`` plus the
metadata the registry needs to build and order it:
- priority: higher runs first (required=100 ... group counts=30)
- requirement_type: shape the requirement must have, e.g. "integer",
  "number|selector", "[integer,integer]"
- dual: for combined rules, the two single rules they merge, in requirement
  order (range = min + max)

Available rules:
- required, minrequired
- type, pattern, date
- min, max, range
- minlength, maxlength, length
- equalto, notequalto, gt, gte, lt, lte
- mincheck, maxcheck, check
"""

import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from fieldgate.values import is_empty, parse_float, parse_int, size
from fieldgate.validators.testers import TYPE_TESTERS, is_number, parse_date_with_format

if TYPE_CHECKING:
    from fieldgate.entities import BaseEntity


RuleFn = Callable[[Any, Any, "BaseEntity | None"], Any]


@dataclass(frozen=True)
class StandardRule:
    """Definition of a built-in rule."""

    name: str
    validate: RuleFn
    priority: int = 0
    requirement_type: str | None = None
    dual: tuple[str, str] | None = None


# =============================================================================
# Helpers
# =============================================================================


def _pair(requirement: Any) -> tuple[Any, Any]:
    low, high = requirement
    return low, high


def _reference_number(requirement: Any, entity: "BaseEntity | None") -> float:
    """A numeric requirement, or the numeric value of a referenced input."""
    if is_number(requirement):
        return parse_float(requirement)
    if entity is None:
        return math.nan
    return parse_float(entity.reference_value(requirement))


def _length(value: Any) -> int:
    return size(value) if isinstance(value, (str, list, tuple)) else len(str(value))


# =============================================================================
# Predicates
# =============================================================================


def _required(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    return not is_empty(value)


def _minrequired(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    values = value if isinstance(value, (list, tuple)) else [value]
    present = [v for v in values if v is not None and str(v).strip()]
    minimum = parse_int(requirement)
    return len(present) >= (0 if math.isnan(minimum) else minimum)


def _pattern(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    return re.search(requirement, str(value)) is not None


def _type(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    tester = TYPE_TESTERS.get(requirement)
    if tester is None:
        raise ValueError(f"Unknown requirement type '{requirement}' in validator.")
    return tester(value)


def _date(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    if not str(value).strip():
        return True
    return parse_date_with_format(str(value).strip(), requirement) is not None


def _min(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    return parse_float(value) >= parse_float(requirement)


def _max(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    return parse_float(value) <= parse_float(requirement)


def _range(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    low, high = _pair(requirement)
    number = parse_float(value)
    return parse_float(low) <= number <= parse_float(high)


def _minlength(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    return _length(value) >= parse_int(requirement)


def _maxlength(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    return _length(value) <= parse_int(requirement)


def _length_between(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    low, high = _pair(requirement)
    return parse_int(low) <= _length(value) <= parse_int(high)


def _equalto(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    return parse_float(value) == _reference_number(requirement, entity)


def _notequalto(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    return parse_float(value) != _reference_number(requirement, entity)


def _gt(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    return parse_float(value) > _reference_number(requirement, entity)


def _gte(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    return parse_float(value) >= _reference_number(requirement, entity)


def _lt(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    return parse_float(value) < _reference_number(requirement, entity)


def _lte(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    return parse_float(value) <= _reference_number(requirement, entity)


def _mincheck(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    return size(value) >= parse_int(requirement)


def _maxcheck(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    return size(value) <= parse_int(requirement)


def _check(value: Any, requirement: Any, entity: "BaseEntity | None") -> bool:
    low, high = _pair(requirement)
    return parse_int(low) <= size(value) <= parse_int(high)


# =============================================================================
# Rule Table
# =============================================================================

STANDARD_RULES: dict[str, StandardRule] = {
    rule.name: rule
    for rule in (
        StandardRule("required", _required, priority=100),
        StandardRule("minrequired", _minrequired, priority=50, requirement_type="integer"),
        StandardRule("pattern", _pattern, priority=70, requirement_type="regexp"),
        StandardRule("type", _type, priority=70),
        StandardRule("date", _date, priority=60),
        StandardRule("min", _min, priority=60, requirement_type="number"),
        StandardRule("max", _max, priority=60, requirement_type="number"),
        StandardRule("range", _range, priority=61, requirement_type="[number,number]", dual=("min", "max")),
        StandardRule("minlength", _minlength, priority=50, requirement_type="integer"),
        StandardRule("maxlength", _maxlength, priority=50, requirement_type="integer"),
        StandardRule(
            "length", _length_between, priority=51, requirement_type="[integer,integer]", dual=("minlength", "maxlength")
        ),
        StandardRule("equalto", _equalto, priority=40, requirement_type="number|selector"),
        StandardRule("notequalto", _notequalto, priority=40, requirement_type="number|selector"),
        StandardRule("gt", _gt, priority=40, requirement_type="number|selector"),
        StandardRule("gte", _gte, priority=40, requirement_type="number|selector"),
        StandardRule("lt", _lt, priority=40, requirement_type="number|selector"),
        StandardRule("lte", _lte, priority=40, requirement_type="number|selector"),
        StandardRule("mincheck", _mincheck, priority=30, requirement_type="integer"),
        StandardRule("maxcheck", _maxcheck, priority=30, requirement_type="integer"),
        StandardRule("check", _check, priority=31, requirement_type="[integer,integer]", dual=("mincheck", "maxcheck")),
    )
}


@dataclass(frozen=True)
class DualPairing:
    """Links a single rule to its companion and the combined rule."""

    companion: str
    combined: str
    order: tuple[str, str]


def _build_dual_pairings() -> dict[str, DualPairing]:
    pairings: dict[str, DualPairing] = {}
    for rule in STANDARD_RULES.values():
        if rule.dual:
            first, second = rule.dual
            pairings[first] = DualPairing(companion=second, combined=rule.name, order=rule.dual)
            pairings[second] = DualPairing(companion=first, combined=rule.name, order=rule.dual)
    return pairings


DUAL_PAIRINGS: dict[str, DualPairing] = _build_dual_pairings()


def parse_requirement_type(requirement_type: str) -> list[str]:
    """Split "[integer,integer]" into ["integer", "integer"]; "number" into ["number"]."""
    text = requirement_type.strip()
    if text.startswith("[") and text.endswith("]"):
        return [part.strip() for part in text[1:-1].split(",") if part.strip()]
    return [text]


def requirement_matches(requirement: Any, requirement_type: str) -> bool:
    """Check a requirement structurally against a declared requirement type.

    Raises:
        ValueError: If the type declaration names an unknown tester
    """
    types = parse_requirement_type(requirement_type)
    if requirement is None or requirement == "":
        requirements: list[Any] = []
    elif isinstance(requirement, (list, tuple)):
        requirements = list(requirement)
    else:
        requirements = [requirement]

    if len(requirements) != len(types):
        return False

    for item, type_group in zip(requirements, types):
        alternatives = [t.strip() for t in type_group.split("|")]
        for alternative in alternatives:
            if alternative not in TYPE_TESTERS:
                raise ValueError(f"Unknown requirement type '{alternative}' in validator.")
        if not any(TYPE_TESTERS[alternative](item) for alternative in alternatives):
            return False
    return True
