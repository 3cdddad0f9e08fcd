"""Validator registry for fieldgate.

Provides registration and lookup for:
- Standard validators (the built-in rule table, loaded on creation)
- Custom validators (application-specific, explicitly registered)
- Remote validators (custom validators backed by an HTTP endpoint)

Custom and remote validators share one tier and must have unique names.
A custom validator may shadow a standard one of the same name.
"""

import inspect
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from fieldgate.errors import ConstructionError, RequirementTypeError
from fieldgate.messages import MessageCatalog
from fieldgate.validators.standard import (
    DUAL_PAIRINGS,
    STANDARD_RULES,
    DualPairing,
    StandardRule,
    requirement_matches,
)
from fieldgate.validators.testers import TYPE_TESTERS

if TYPE_CHECKING:
    from fieldgate.entities import BaseEntity

logger = logging.getLogger(__name__)

# Predicate signature: (value, requirement, entity) -> bool-like | awaitable
PredicateFn = Callable[[Any, Any, "BaseEntity | None"], Any]

_REMOTE_KEYS = ("remote", "endpoint", "url")


class Validator:
    """A named, reusable rule implementation.

    Attributes:
        name: Rule name the validator is registered under
        fn: Predicate called with (value, requirement, entity)
        message: Failure template; None falls back to the message catalog
        priority: Higher runs first
        group: True for rules that only make sense on a group
    """

    is_standard = False
    is_remote = False

    def __init__(
        self,
        name: str,
        fn: PredicateFn | None = None,
        message: str | None = None,
        priority: int = 0,
        group: bool = False,
        requirement_type: str | None = None,
    ):
        self.name = name
        self.fn = fn
        self.message = message
        self.priority = priority
        self.group = group
        self.requirement_type = requirement_type

    async def validate(self, value: Any, requirement: Any, entity: "BaseEntity | None") -> Any:
        """Run the predicate, awaiting it when it returns an awaitable."""
        if self.fn is None:
            raise NotImplementedError(f"Validator '{self.name}' has no predicate")
        result = self.fn(value, requirement, entity)
        if inspect.isawaitable(result):
            result = await result
        return result

    def check_requirement(self, requirement: Any) -> None:
        """Fail fast when a requirement does not match the declared shape.

        Raises:
            RequirementTypeError: If the requirement has the wrong shape
        """
        if not self.requirement_type:
            return
        try:
            matches = requirement_matches(requirement, self.requirement_type)
        except ValueError as e:
            raise RequirementTypeError(str(e)) from e
        if not matches:
            raise RequirementTypeError(
                f"Requirement '{requirement}' of rule '{self.name}' does not match "
                f"type '{self.requirement_type}'"
            )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, priority={self.priority})"


class StandardValidator(Validator):
    """A validator from the built-in rule table."""

    is_standard = True

    def __init__(self, rule: StandardRule):
        super().__init__(
            rule.name,
            fn=rule.validate,
            priority=rule.priority,
            requirement_type=rule.requirement_type,
        )
        self.dual = rule.dual


class ValidatorRegistry:
    """Registry for validators.

    Registration is a setup-phase step: register every custom and remote
    rule before building forms that use them.

    Example:
        registry = create_registry()

        @registry.rule("even", message="This value should be even.")
        def even(value, requirement, entity):
            return int(value) % 2 == 0

        validator = registry.resolve("even", True)
    """

    def __init__(self, messages: MessageCatalog | None = None, load_standard: bool = True):
        self.messages = messages or MessageCatalog()
        self._standard: dict[str, StandardValidator] = {}
        self._custom: dict[str, Validator] = {}
        if load_standard:
            self.load_standard()

    def load_standard(self) -> None:
        """Load the built-in rule table."""
        for name, rule in STANDARD_RULES.items():
            self._standard[name] = StandardValidator(rule)

    def register(self, name: str, spec: Validator | PredicateFn | Mapping[str, Any], **options: Any) -> None:
        """Register a custom or remote validator.

        Registering a name that already exists in the custom tier is a no-op
        and logs a warning.

        Args:
            name: Unique rule name
            spec: A Validator, a predicate callable, or a mapping. Mappings
                with a ``remote``, ``endpoint`` or ``url`` key build a
                RemoteValidator; other mappings take ``fn``/``validate``,
                ``message``, ``priority`` and ``group``.
            **options: Extra keyword arguments for a callable spec
        """
        if name in self._custom:
            logger.warning("Validator '%s' is already registered, ignoring", name)
            return

        if isinstance(spec, Validator):
            validator = spec
        elif isinstance(spec, Mapping):
            validator = self._from_mapping(name, spec)
        elif callable(spec):
            validator = Validator(name, fn=spec, **options)
        else:
            raise ConstructionError(f"Cannot register validator '{name}' from {type(spec).__name__}")

        if name in self._standard:
            logger.debug("Custom validator '%s' shadows the standard rule", name)
        self._custom[name] = validator

    def _from_mapping(self, name: str, spec: Mapping[str, Any]) -> Validator:
        group = bool(spec.get("group", spec.get("isGroupValidator", False)))

        if any(key in spec for key in _REMOTE_KEYS):
            from fieldgate.validators.remote import RemoteValidator

            endpoint = spec.get("endpoint") or spec.get("url")
            if endpoint is None and isinstance(spec.get("remote"), str):
                endpoint = spec["remote"]
            return RemoteValidator(
                name,
                endpoint=endpoint,
                method=spec.get("method", "GET"),
                data_key=spec.get("dataKey", spec.get("data_key", "value")),
                is_valid=spec.get("isValid", spec.get("is_valid")),
                extract_messages=spec.get("extractMessages", spec.get("extract_messages")),
                message=spec.get("message"),
                priority=spec.get("priority", -10),
                group=group,
            )

        fn = spec.get("fn") or spec.get("validate")
        if not callable(fn):
            raise ConstructionError(f"Validator '{name}' needs a callable 'fn'")
        return Validator(
            name,
            fn=fn,
            message=spec.get("message"),
            priority=spec.get("priority", 0),
            group=group,
            requirement_type=spec.get("requirementType", spec.get("requirement_type")),
        )

    def rule(
        self,
        name: str,
        *,
        message: str | None = None,
        priority: int = 0,
        group: bool = False,
    ) -> Callable[[PredicateFn], PredicateFn]:
        """Decorator to register a predicate as a custom validator.

        Usage:
            @registry.rule("multiple", message="This value should be a multiple of %s.")
            def multiple(value, requirement, entity):
                return int(value) % int(requirement) == 0
        """

        def decorator(fn: PredicateFn) -> PredicateFn:
            self.register(name, fn, message=message, priority=priority, group=group)
            return fn

        return decorator

    def resolve(self, name: str, requirement: Any = None) -> Validator | None:
        """Resolve a rule name and requirement to a validator.

        Custom validators take precedence over standard ones. The ``type``
        rule only resolves when the requirement names a known type tester.

        Returns:
            The validator, or None if the rule is unknown
        """
        if name in self._custom:
            return self._custom[name]
        validator = self._standard.get(name)
        if validator is None:
            return None
        if name == "type" and requirement not in TYPE_TESTERS:
            return None
        return validator

    def dual_for(self, name: str) -> DualPairing | None:
        """The dual pairing of a single rule, unless a custom rule shadows it."""
        pairing = DUAL_PAIRINGS.get(name)
        if pairing is None:
            return None
        if any(rule in self._custom for rule in (*pairing.order, pairing.combined)):
            return None
        return pairing

    def is_registered(self, name: str) -> bool:
        """Check if a rule name resolves to any validator."""
        return name in self._custom or name in self._standard

    def is_custom(self, name: str) -> bool:
        return name in self._custom

    def list_registered(self) -> list[str]:
        """List all registered rule names."""
        return sorted(set(self._custom) | set(self._standard))

    def clear(self) -> None:
        """Clear custom registrations. Primarily for testing."""
        self._custom.clear()


def create_registry(messages: MessageCatalog | Mapping[str, Any] | None = None) -> ValidatorRegistry:
    """Create a registry with the standard rules loaded.

    Args:
        messages: A catalog, or message overrides for a new default catalog
    """
    if messages is None or isinstance(messages, MessageCatalog):
        return ValidatorRegistry(messages)
    return ValidatorRegistry(MessageCatalog(messages))
