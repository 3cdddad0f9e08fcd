"""fieldgate: declarative constraint validation for forms.

This package validates trees of fields and groups against named rules:
- Validator registry: standard, custom and remote (HTTP) rules
- Constraints: one rule bound to one requirement, with resolved messages
- Fields and groups: cached, conditionally gated evaluation
- Forms: concurrent fan-out and an aggregated verdict

Usage:
    from fieldgate import EntityDeclaration, Form, MemoryInput, create_registry

    registry = create_registry()

    @registry.rule("even", message="This value should be even.")
    def even(value, requirement, entity):
        return int(value) % 2 == 0

    form = Form(
        [EntityDeclaration("count", {"required": True, "even": True}, source=MemoryInput("4"))],
        registry=registry,
    )
    result = await form.validate_all()
"""

from fieldgate.conditions import PredicateRegistry
from fieldgate.config import FormConfig
from fieldgate.constraint import Constraint, build_constraints
from fieldgate.declarations import EntityDeclaration, FormDeclaration, parse_requirement
from fieldgate.entities import BaseEntity, EntityContext, Field, GroupField, make_entity
from fieldgate.errors import (
    ConditionError,
    ConfigError,
    ConstructionError,
    FieldgateError,
    GroupRuleError,
    MixedGroupTypeError,
    RemoteTransportError,
    RequirementTypeError,
    UnknownRuleError,
    ValidationFailed,
)
from fieldgate.events import Event, EventEmitter
from fieldgate.form import Form
from fieldgate.inputs import Locator, MemoryInput, MemoryLocator, ValueSource
from fieldgate.loader import FormDocument, lint_form_document, load_form_document
from fieldgate.messages import MessageCatalog, format_message
from fieldgate.orchestrator import ConcurrentStrategy, SequentialStrategy, Settlement, get_strategy
from fieldgate.registry import StandardValidator, Validator, ValidatorRegistry, create_registry
from fieldgate.types import (
    ConstraintResult,
    EntityState,
    FormResult,
    InputKind,
    Multiplicity,
    Passed,
    ValidationError,
    ValidationOutcome,
)
from fieldgate.validators.remote import RemoteValidator

__all__ = [
    # Registry
    "Validator",
    "StandardValidator",
    "RemoteValidator",
    "ValidatorRegistry",
    "create_registry",
    # Messages
    "MessageCatalog",
    "format_message",
    # Constraints and execution
    "Constraint",
    "build_constraints",
    "SequentialStrategy",
    "ConcurrentStrategy",
    "Settlement",
    "get_strategy",
    # Entities and forms
    "BaseEntity",
    "Field",
    "GroupField",
    "EntityContext",
    "make_entity",
    "Form",
    "FormConfig",
    "PredicateRegistry",
    # Declarations and documents
    "EntityDeclaration",
    "FormDeclaration",
    "parse_requirement",
    "FormDocument",
    "load_form_document",
    "lint_form_document",
    # Inputs and events
    "ValueSource",
    "Locator",
    "MemoryInput",
    "MemoryLocator",
    "Event",
    "EventEmitter",
    # Types
    "EntityState",
    "InputKind",
    "Multiplicity",
    "ValidationError",
    "Passed",
    "ConstraintResult",
    "ValidationOutcome",
    "FormResult",
    # Errors
    "FieldgateError",
    "ConstructionError",
    "UnknownRuleError",
    "RequirementTypeError",
    "MixedGroupTypeError",
    "GroupRuleError",
    "ConfigError",
    "ConditionError",
    "ValidationFailed",
    "RemoteTransportError",
]
