"""Form: the root collection of fields and groups."""

import inspect
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from fieldgate import events
from fieldgate.conditions import ExpressionEvaluator, PredicateRegistry
from fieldgate.config import FormConfig
from fieldgate.declarations import EntityDeclaration, FormDeclaration
from fieldgate.entities import BaseEntity, EntityContext, GroupField, make_entity
from fieldgate.errors import ConfigError
from fieldgate.events import EventEmitter, Listener
from fieldgate.inputs import Locator, MemoryLocator
from fieldgate.orchestrator import CONCURRENT
from fieldgate.registry import ValidatorRegistry, create_registry
from fieldgate.types import FormResult

logger = logging.getLogger(__name__)

CommitFn = Callable[[FormResult], Any]


class Form:
    """A collection of top-level fields and groups.

    Example:
        form = Form(
            [
                EntityDeclaration("email", {"required": True, "type": "email"}, source=MemoryInput("a@b.com")),
                EntityDeclaration("age", {"min": 18}, source=MemoryInput("21")),
            ],
            config=FormConfig(stop_at_first_error=False),
        )
        result = await form.validate_all()
        if not result.valid:
            focus(form.first_invalid(result))
    """

    def __init__(
        self,
        declaration: FormDeclaration | Iterable[EntityDeclaration],
        config: FormConfig | None = None,
        registry: ValidatorRegistry | None = None,
        locator: Locator | None = None,
        predicates: PredicateRegistry | None = None,
        expression_evaluator: ExpressionEvaluator | None = None,
        listeners: Mapping[str, Listener] | None = None,
    ):
        if not isinstance(declaration, FormDeclaration):
            declaration = FormDeclaration(list(declaration))
        self.declaration = declaration
        self.config = config or FormConfig()
        self.registry = registry or create_registry()
        self.catalog = self.registry.messages.merged(self.config.messages)
        self.predicates = predicates or PredicateRegistry()
        self.expression_evaluator = expression_evaluator
        self.events = EventEmitter()
        for name, listener in (listeners or {}).items():
            self.events.on(name, listener)

        self._locator = locator
        self.entities: list[BaseEntity] = []
        self._build()
        self.events.emit(events.INIT, self)

    @property
    def name(self) -> str | None:
        return self.declaration.name

    def _build(self) -> None:
        names = [d.name for d in self.declaration.walk()]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigError(f"Duplicate entity names: {', '.join(duplicates)}")

        self.context = EntityContext(
            registry=self.registry,
            config=self.config,
            catalog=self.catalog,
            locator=self._locator or self._memory_locator(),
            predicates=self.predicates,
            expression_evaluator=self.expression_evaluator,
            form=self,
        )
        self.entities = [make_entity(d, self.context) for d in self.declaration.entities]

    def _memory_locator(self) -> MemoryLocator:
        """Locator over the declared sources; a group name matches its children."""
        locator = MemoryLocator()
        for declaration in self.declaration.walk():
            if declaration.source is not None:
                locator.add(declaration.name, declaration.source)
            else:
                sources = [d.source for d in declaration.walk() if d.source is not None]
                locator.add(declaration.name, sources)
        return locator

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def walk(self) -> list[BaseEntity]:
        """Every entity, groups before their children."""
        found: list[BaseEntity] = []
        for entity in self.entities:
            found.extend(entity.walk())
        return found

    def get(self, name: str) -> BaseEntity:
        for entity in self.walk():
            if entity.name == name:
                return entity
        raise KeyError(f"No entity named '{name}'")

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    async def validate_all(self) -> FormResult:
        """Validate every top-level entity concurrently and aggregate."""
        self.events.emit(events.BEFORE_VALIDATE, self)
        settlement = await CONCURRENT.run([entity.validate for entity in self.entities])

        outcomes = {entity.name: outcome for entity, outcome in zip(self.entities, settlement.results)}
        failed = [entity for entity, outcome in zip(self.entities, settlement.results) if not outcome.valid]
        result = FormResult(valid=not failed, outcomes=outcomes, failed=failed)

        if result.valid:
            self.events.emit(events.ALL_VALID, self, values=result.values)
        else:
            logger.debug("Form has errors in: %s", [entity.name for entity in failed])
            self.events.emit(events.HAS_ERRORS, self, failed=failed)
        return result

    async def validate(self) -> bool:
        return (await self.validate_all()).valid

    async def submit(self, commit: CommitFn | None = None) -> bool:
        """Validate and, when valid, commit.

        A ``before-commit`` listener returning False cancels the commit.

        Returns:
            True if the commit happened
        """
        result = await self.validate_all()
        if not result.valid:
            return False

        responses = self.events.emit(events.BEFORE_COMMIT, self, result=result)
        if any(response is False for response in responses):
            logger.info("Submit of form '%s' cancelled by a listener", self.name)
            return False

        if commit is not None:
            outcome = commit(result)
            if inspect.isawaitable(outcome):
                await outcome
        return True

    def first_invalid(self, result: FormResult) -> BaseEntity | None:
        """The entity a UI should focus after a failed validation.

        For a group this is its first child that is not valid.
        """
        if not result.failed:
            return None
        entity = result.failed[0]
        if isinstance(entity, GroupField) and entity.children:
            return entity.first_invalid_child() or entity.children[0]
        return entity

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        for entity in self.walk():
            entity.reset()

    def rebuild(self, declaration: FormDeclaration | Iterable[EntityDeclaration] | None = None) -> None:
        """Discard every entity and rebuild from the (new) declaration."""
        for entity in self.entities:
            entity.destroy()
        if declaration is not None:
            if not isinstance(declaration, FormDeclaration):
                declaration = FormDeclaration(list(declaration), name=self.declaration.name)
            self.declaration = declaration
        self._build()
        self.events.emit(events.REBUILT, self)

    def teardown(self) -> None:
        for entity in self.entities:
            entity.destroy()
        self.entities = []
        self.events.emit(events.TORN_DOWN, self)
        self.events.clear()
