"""Core types for the fieldgate validation engine.

This module defines the foundational types shared by every layer:
- Entity state and input kinds
- ValidationError: the expected, per-rule failure record
- ConstraintResult: the settled result of one constraint
- ValidationOutcome: the settled result of one entity
- FormResult: the aggregated verdict of a form
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fieldgate.entities import BaseEntity


class EntityState(Enum):
    """Cached validity of an entity.

    UNKNOWN: never evaluated, or reset since the last evaluation
    VALID: last evaluation settled valid
    INVALID: last evaluation settled invalid
    """

    UNKNOWN = "unknown"
    VALID = "valid"
    INVALID = "invalid"


class InputKind(Enum):
    """The kind of control an input value is read from."""

    TEXT = "text"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    FILE = "file"

    @property
    def is_choice(self) -> bool:
        """Checkbox and radio inputs only make sense as part of a group."""
        return self in (InputKind.CHECKBOX, InputKind.RADIO)

    @property
    def is_discrete(self) -> bool:
        """Discrete controls commit their value on change, not on keystrokes."""
        return self is not InputKind.TEXT


class Multiplicity(Enum):
    """How a group derives its own value from its children."""

    PLAIN = "plain"  # list of every child value
    MULTI_SELECT = "multi-select"  # list of checked child values
    SINGLE_SELECT = "single-select"  # the checked child value, or ""


@dataclass(frozen=True)
class ValidationError:
    """A single rule failure.

    Attributes:
        assert_kind: Name of the rule that did not pass (e.g. "required")
        message: Human-readable message with requirement values substituted
    """

    assert_kind: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"assert": self.assert_kind, "message": self.message}


@dataclass(frozen=True)
class Passed:
    """Truthy marker a predicate may return to pass with a success message."""

    success_message: str | None = None

    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class ConstraintResult:
    """Settled result of evaluating one constraint."""

    rule: str
    error: ValidationError | None = None
    success_message: str | None = None

    @property
    def valid(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ValidationOutcome:
    """Settled result of evaluating one entity.

    Attributes:
        valid: True when every constraint passed (or evaluation was skipped)
        value: The value that was evaluated
        errors: One ValidationError per failing constraint
        success_message: First success message reported, if any
        blocked: True when a group was blocked by an invalid child
        skipped: True when the entity settled without running constraints
    """

    valid: bool
    value: Any = None
    errors: tuple[ValidationError, ...] = ()
    success_message: str | None = None
    blocked: bool = False
    skipped: bool = False

    def visible_errors(self, show_multiple: bool = False) -> list[ValidationError]:
        """Errors a presentation layer should display.

        "required" failures are moved to the front. Only the first error is
        shown when it is a "required" failure or when multiple errors are
        disabled.
        """
        ordered = sorted(self.errors, key=lambda e: 0 if e.assert_kind == "required" else 1)
        if not ordered:
            return []
        if ordered[0].assert_kind == "required" or not show_multiple:
            return ordered[:1]
        return ordered

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "valid": self.valid,
            "value": self.value,
            "errors": [e.to_dict() for e in self.errors],
        }
        if self.success_message:
            result["successMessage"] = self.success_message
        if self.blocked:
            result["blocked"] = True
        if self.skipped:
            result["skipped"] = True
        return result


@dataclass
class FormResult:
    """Aggregated verdict of a form-wide validation.

    Attributes:
        valid: True if every top-level entity settled valid
        outcomes: Entity name -> settled outcome, in declaration order
        failed: The entities that settled invalid, in declaration order
    """

    valid: bool
    outcomes: dict[str, ValidationOutcome] = field(default_factory=dict)
    failed: list["BaseEntity"] = field(default_factory=list)

    @property
    def values(self) -> dict[str, Any]:
        return {name: o.value for name, o in self.outcomes.items() if o.valid}

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "fields": {name: o.to_dict() for name, o in self.outcomes.items()},
            "failed": [entity.name for entity in self.failed],
        }
