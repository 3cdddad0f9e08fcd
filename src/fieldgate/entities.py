"""Entities: the validity units of a form.

Field and GroupField are sibling implementations of BaseEntity:

- Field reads its value from a ValueSource.
- GroupField derives its value from its children and only runs its own
  constraints once every child is valid.

Evaluation (``validate``):
1. Unchanged value with a settled state: return the cached outcome.
2. Checkbox/radio fields, a false condition, no constraints or an invisible
   entity: settle valid without running constraints.
3. Empty value without a (positive) ``required`` rule: settle valid.
4. Pre-validation (the child gate for groups); a blocked group settles invalid.
5. Run the constraints, sorted by descending priority, with the configured
   strategy, and commit the outcome.

Each evaluation carries a generation number. An outcome from an evaluation
that was overtaken by a newer one is returned to its caller but never
committed, and emits no events.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import partial
from typing import Any

from fieldgate import events
from fieldgate.conditions import ExpressionEvaluator, PredicateRegistry, build_condition, should_validate
from fieldgate.config import FormConfig, parse_triggers
from fieldgate.constraint import Constraint, build_constraints
from fieldgate.debounce import Debouncer
from fieldgate.declarations import EntityDeclaration
from fieldgate.errors import MixedGroupTypeError
from fieldgate.events import EventEmitter
from fieldgate.inputs import Locator, MemoryInput, ValueSource
from fieldgate.messages import MessageCatalog, format_message
from fieldgate.orchestrator import Strategy, by_priority, get_strategy
from fieldgate.registry import ValidatorRegistry
from fieldgate.types import EntityState, InputKind, Multiplicity, ValidationError, ValidationOutcome
from fieldgate.values import clone_value, is_empty, values_equal

logger = logging.getLogger(__name__)

# Events after which a child always asks its group to re-run
_CONFIRMING_EVENTS = ("change", "blur")


@dataclass
class EntityContext:
    """Collaborators shared by every entity of a form."""

    registry: ValidatorRegistry
    config: FormConfig
    catalog: MessageCatalog
    locator: Locator | None = None
    predicates: PredicateRegistry | None = None
    expression_evaluator: ExpressionEvaluator | None = None
    form: Any = None

    @property
    def strategy(self) -> Strategy:
        return get_strategy(self.config.stop_at_first_error)


class BaseEntity(ABC):
    """Shared state machine of fields and groups."""

    is_group = False

    def __init__(
        self,
        declaration: EntityDeclaration,
        context: EntityContext,
        parent: "GroupField | None" = None,
    ):
        self.declaration = declaration
        self.name = declaration.name
        self.context = context
        self.parent = parent
        self.events = EventEmitter()
        self.constraints: dict[str, Constraint] = {}

        self.state = EntityState.UNKNOWN
        self.last_value: Any = None
        self.last_outcome: ValidationOutcome | None = None
        self.has_failed_before = False

        self._generation = 0
        self._debouncer = Debouncer(self.name)
        self._build()

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def _build(self) -> None:
        ctx = self.context
        self.validate_if = build_condition(
            self.declaration.validate_if, ctx.predicates, ctx.locator, ctx.expression_evaluator
        )
        self.not_validate_if = build_condition(
            self.declaration.not_validate_if, ctx.predicates, ctx.locator, ctx.expression_evaluator
        )
        self.constraints = build_constraints(
            self,
            self.declaration.rules,
            ctx.registry,
            catalog=ctx.catalog,
            messages=self.declaration.messages,
            priorities=self.declaration.priorities,
        )

    # -------------------------------------------------------------------------
    # Value access
    # -------------------------------------------------------------------------

    @property
    @abstractmethod
    def kind(self) -> InputKind | None:
        ...

    @abstractmethod
    def get_value(self) -> Any:
        ...

    @abstractmethod
    def is_visible(self) -> bool:
        ...

    @property
    def form(self) -> Any:
        return self.context.form

    def reference_value(self, selector: str) -> Any:
        """Value of another input, for rules that compare against one."""
        sources = self.context.locator.locate(selector) if self.context.locator else []
        if not sources:
            logger.warning("Reference '%s' of '%s' does not match any input", selector, self.name)
            return None
        return sources[0].get_value()

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def is_valid(self) -> bool:
        return self.state is EntityState.VALID

    @property
    def is_required(self) -> bool:
        constraint = self.constraints.get("required")
        if constraint is None:
            return False
        requirement = constraint.requirement
        return not (requirement is False or str(requirement).strip().lower() in ("false", "0"))

    @property
    def errors(self) -> list[ValidationError]:
        return list(self.last_outcome.errors) if self.last_outcome else []

    @property
    def success_message(self) -> str | None:
        return self.last_outcome.success_message if self.last_outcome else None

    def should_validate(self) -> bool:
        return should_validate(self, self.validate_if, self.not_validate_if)

    def needs_validation(self) -> bool:
        """True when the cached state does not cover the current value."""
        if self.state is EntityState.UNKNOWN or self.last_outcome is None or self.last_outcome.blocked:
            return True
        return not values_equal(self.get_value(), self.last_value)

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    async def validate(self) -> ValidationOutcome:
        """Evaluate the entity and settle its state."""
        value = clone_value(self.get_value())
        if not self.needs_validation():
            logger.debug("Cached result for '%s'", self.name)
            return self.last_outcome

        self._generation += 1
        generation = self._generation

        reason = self._skip_reason(value)
        if reason:
            logger.debug("Skipping '%s': %s", self.name, reason)
            outcome = ValidationOutcome(True, value=value, skipped=True)
            self._commit(generation, outcome)
            return outcome

        if not await self.pre_validate():
            logger.debug("'%s' is blocked by an invalid child", self.name)
            outcome = ValidationOutcome(False, value=value, blocked=True)
            self._commit(generation, outcome)
            return outcome

        constraints = by_priority(self.constraints.values())
        logger.debug("Validation order for %s: %s", self.name, [c.rule for c in constraints])
        settlement = await self.context.strategy.run([partial(c.evaluate, value) for c in constraints])

        if settlement.valid:
            message = self.declaration.success_message or next(
                (r.success_message for r in settlement.passed if r.success_message), None
            )
            outcome = ValidationOutcome(True, value=value, success_message=format_message(message, value))
        else:
            outcome = ValidationOutcome(False, value=value, errors=tuple(r.error for r in settlement.failed))
        self._commit(generation, outcome)
        return outcome

    def _skip_reason(self, value: Any) -> str | None:
        kind = self.kind
        if kind is not None and kind.is_choice:
            return "checkbox/radio inputs are validated by their group"
        if not self.should_validate():
            return "condition is false"
        if not self.constraints:
            return "no constraints"
        if not self.is_visible():
            return "not visible"
        if is_empty(value) and not self.is_required:
            return "optional and empty"
        return None

    async def pre_validate(self) -> bool:
        """Hook run before the entity's own constraints. False blocks them."""
        return True

    def _commit(self, generation: int, outcome: ValidationOutcome) -> bool:
        if generation != self._generation:
            logger.debug("Discarding stale result for '%s'", self.name)
            return False

        previous = self.state
        self.last_value = outcome.value
        self.last_outcome = outcome
        self.state = EntityState.VALID if outcome.valid else EntityState.INVALID

        if outcome.valid:
            if not outcome.skipped or previous is EntityState.INVALID:
                self.events.emit(events.PASSED, self, success_message=outcome.success_message)
        else:
            self.has_failed_before = True
            self.events.emit(events.FAILED, self, errors=list(outcome.errors), blocked=outcome.blocked)
        self.events.emit(events.SETTLED, self, entity=self, is_valid=outcome.valid)
        return True

    # -------------------------------------------------------------------------
    # Live triggers
    # -------------------------------------------------------------------------

    def active_triggers(self) -> tuple[str, ...]:
        """Events that currently trigger a live re-check."""
        config = self.context.config
        kind = self.kind
        if kind is not None and kind.is_discrete:
            return ("change",)
        if self.has_failed_before:
            return config.trigger_after_failure
        if self.declaration.trigger is not None:
            return parse_triggers(self.declaration.trigger)
        return config.trigger

    def _deferred_by_threshold(self, event: str) -> bool:
        if event != "input" or self.has_failed_before:
            return False
        value = self.get_value()
        threshold = self.context.config.validation_threshold
        if not isinstance(value, str) or len(value) >= threshold:
            return False
        return not (self.is_required and len(value) == 0)

    def handle_event(self, event: str) -> asyncio.Task | None:
        """React to a UI event (``input``, ``change``, ``blur`` ...).

        Returns the scheduled re-check, or None when the event does not
        trigger one.
        """
        if event not in self.active_triggers():
            return None
        if self._deferred_by_threshold(event):
            logger.debug("Deferring '%s' until the value reaches the threshold", self.name)
            return None
        return self._debouncer.call(self.context.config.debounce_ms, partial(self._silent_validate, event))

    async def _silent_validate(self, event: str) -> ValidationOutcome:
        previous = self.state
        outcome = await self.validate()
        if self.parent is not None and (self.state is not previous or event in _CONFIRMING_EVENTS):
            self.parent.queue_validate_from_child(self, event)
        return outcome

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _clear_state(self) -> None:
        self._generation += 1
        self.state = EntityState.UNKNOWN
        self.last_value = None
        self.last_outcome = None

    def reset(self) -> None:
        """Forget the cached verdict and the failed-once flag."""
        self._debouncer.cancel()
        self._clear_state()
        self.has_failed_before = False
        self.events.emit(events.RESET, self)

    def destroy(self) -> None:
        """Release listeners, constraints and the cache."""
        self._debouncer.cancel()
        self.events.clear()
        self.constraints = {}
        self._clear_state()
        self.has_failed_before = False

    def refresh(self) -> None:
        """Rebuild constraints and conditions from the declaration."""
        self.destroy()
        self._build()

    def walk(self) -> list["BaseEntity"]:
        return [self]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, state={self.state.value})"


class Field(BaseEntity):
    """A single input."""

    def __init__(
        self,
        declaration: EntityDeclaration,
        context: EntityContext,
        parent: "GroupField | None" = None,
    ):
        self.source: ValueSource = declaration.source or MemoryInput()
        super().__init__(declaration, context, parent)

    @property
    def kind(self) -> InputKind:
        return self.source.kind

    def get_value(self) -> Any:
        return self.source.get_value()

    def is_visible(self) -> bool:
        return self.source.is_visible()


class GroupField(BaseEntity):
    """An entity whose value derives from its children.

    Checkbox children give a list of checked values, radio children the
    checked value (or ""), any other children the list of all child values.
    """

    is_group = True

    def __init__(
        self,
        declaration: EntityDeclaration,
        context: EntityContext,
        parent: "GroupField | None" = None,
    ):
        self.children: list[BaseEntity] = []
        self.multiplicity = Multiplicity.PLAIN
        self._group_debouncer = Debouncer(f"{declaration.name}:group")
        super().__init__(declaration, context, parent)

    def _build(self) -> None:
        self.children = [make_entity(child, self.context, parent=self) for child in self.declaration.children]
        self.multiplicity = self._derive_multiplicity()
        super()._build()

    def _derive_multiplicity(self) -> Multiplicity:
        kinds = [child.kind for child in self.children]
        choice_kinds = {kind for kind in kinds if kind is not None and kind.is_choice}
        if not choice_kinds:
            return Multiplicity.PLAIN
        if len(choice_kinds) > 1:
            names = " and ".join(sorted(kind.value for kind in choice_kinds))
            raise MixedGroupTypeError(f"Group '{self.name}' mixes {names} inputs")
        if any(kind not in choice_kinds for kind in kinds):
            (choice,) = choice_kinds
            raise MixedGroupTypeError(f"Group '{self.name}' cannot mix {choice.value} with other input types")
        (choice,) = choice_kinds
        return Multiplicity.MULTI_SELECT if choice is InputKind.CHECKBOX else Multiplicity.SINGLE_SELECT

    @property
    def kind(self) -> None:
        return None

    def get_value(self) -> Any:
        if self.multiplicity is Multiplicity.MULTI_SELECT:
            return [child.get_value() for child in self.children if child.source.is_checked()]
        if self.multiplicity is Multiplicity.SINGLE_SELECT:
            return next((child.get_value() for child in self.children if child.source.is_checked()), "")
        return [child.get_value() for child in self.children]

    def is_visible(self) -> bool:
        return any(child.is_visible() for child in self.children)

    async def pre_validate(self) -> bool:
        """Gate the group's own constraints on its children.

        A child whose invalid verdict still covers its current value blocks
        the group outright. An invalid child whose value has changed since
        then is re-checked rather than treated as blocking. Otherwise only
        children with a stale or missing verdict are evaluated, and the group
        proceeds when all are valid.
        """
        if not self.children:
            return True

        if any(child.state is EntityState.INVALID and not child.needs_validation() for child in self.children):
            return False

        stale = [child for child in self.children if child.needs_validation()]
        if not stale:
            return all(child.state is EntityState.VALID for child in self.children)

        settlement = await self.context.strategy.run([child.validate for child in stale])
        return settlement.valid

    def queue_validate_from_child(self, child: BaseEntity, event: str | None = None) -> asyncio.Task:
        """Schedule a coalesced re-check after a child settled."""
        logger.debug("'%s' notified by child '%s' (%s)", self.name, child.name, event)
        return self._group_debouncer.call(self.context.config.group_debounce_ms, self._revalidate_from_child)

    @property
    def pending(self) -> asyncio.Task | None:
        """The scheduled child-driven re-check, if any."""
        return self._group_debouncer.pending

    async def _revalidate_from_child(self) -> ValidationOutcome | None:
        if self.state is EntityState.INVALID and any(c.state is EntityState.INVALID for c in self.children):
            self._clear_state()
            return None
        return await self.validate()

    def first_invalid_child(self) -> BaseEntity | None:
        return next((child for child in self.children if child.state is not EntityState.VALID), None)

    def destroy(self) -> None:
        self._group_debouncer.cancel()
        for child in self.children:
            child.destroy()
        super().destroy()

    def walk(self) -> list[BaseEntity]:
        found: list[BaseEntity] = [self]
        for child in self.children:
            found.extend(child.walk())
        return found


def make_entity(
    declaration: EntityDeclaration,
    context: EntityContext,
    parent: GroupField | None = None,
) -> BaseEntity:
    """Build a Field or a GroupField from a declaration."""
    if declaration.is_group:
        return GroupField(declaration, context, parent)
    return Field(declaration, context, parent)
