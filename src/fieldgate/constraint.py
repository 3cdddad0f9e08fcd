"""Constraints: one validator bound to one requirement for one entity."""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from fieldgate.errors import GroupRuleError, UnknownRuleError, ValidationFailed
from fieldgate.messages import MessageCatalog, format_message
from fieldgate.registry import Validator, ValidatorRegistry
from fieldgate.types import ConstraintResult, Passed, ValidationError

if TYPE_CHECKING:
    from fieldgate.entities import BaseEntity

logger = logging.getLogger(__name__)


class Constraint:
    """A rule bound to a requirement for a single entity.

    The failure message is resolved in order: entity override, validator
    message, catalog entry for the rule (by sub-kind for ``type``), catalog
    default. ``%s`` placeholders are filled from the requirement.
    """

    def __init__(
        self,
        rule: str,
        requirement: Any,
        validator: Validator,
        entity: "BaseEntity | None" = None,
        catalog: MessageCatalog | None = None,
        priority: int | None = None,
        message: str | None = None,
    ):
        self.rule = rule
        self.requirement = requirement
        self.validator = validator
        self.entity = entity
        self.catalog = catalog or MessageCatalog()
        self.priority = validator.priority if priority is None else priority
        self._message_override = message

    def set_message(self, message: str | None) -> None:
        """Override the failure message for this constraint."""
        self._message_override = message

    @property
    def message(self) -> str:
        if self._message_override:
            template = self.catalog.resolve_reference(self._message_override)
        elif self.validator.message:
            template = self.validator.message
        else:
            sub_key = self.requirement if self.rule == "type" else None
            template = self.catalog.lookup(self.rule, sub_key) or self.catalog.default_message
        return format_message(template, self.requirement)

    async def evaluate(self, value: Any) -> ConstraintResult:
        """Run the validator against a value.

        Falsy results and ValidationFailed are failures. Any other exception
        is logged and re-raised.
        """
        try:
            result = await self.validator.validate(value, self.requirement, self.entity)
        except ValidationFailed as e:
            return ConstraintResult(self.rule, error=ValidationError(self.rule, e.message or self.message))
        except Exception:
            logger.exception(
                "Rule '%s' raised while validating '%s'",
                self.rule,
                getattr(self.entity, "name", None),
            )
            raise

        if isinstance(result, Passed):
            return ConstraintResult(self.rule, success_message=result.success_message)
        if not result:
            return ConstraintResult(self.rule, error=ValidationError(self.rule, self.message))
        if isinstance(result, str):
            return ConstraintResult(self.rule, success_message=result)
        return ConstraintResult(self.rule)

    def __repr__(self) -> str:
        return f"Constraint({self.rule!r}, {self.requirement!r}, priority={self.priority})"


def merge_dual_rules(rules: Mapping[str, Any], registry: ValidatorRegistry) -> dict[str, Any]:
    """Replace companion pairs (min + max) with their combined rule (range).

    The combined requirement is ``[first, second]`` in the pairing order. An
    explicitly declared combined rule wins over the pair.
    """
    merged = dict(rules)
    for name in list(rules):
        if name not in merged:
            continue
        pairing = registry.dual_for(name)
        if pairing is None or pairing.companion not in merged:
            continue
        first, second = pairing.order
        requirement = [merged.pop(first), merged.pop(second)]
        merged.setdefault(pairing.combined, requirement)
    return merged


def build_constraints(
    entity: "BaseEntity",
    rules: Mapping[str, Any],
    registry: ValidatorRegistry,
    catalog: MessageCatalog | None = None,
    messages: Mapping[str, str] | None = None,
    priorities: Mapping[str, int] | None = None,
) -> dict[str, Constraint]:
    """Build an entity's constraints from its declared rules.

    Raises:
        UnknownRuleError: If a rule resolves to no validator
        RequirementTypeError: If a requirement has the wrong shape
        GroupRuleError: If a group-oriented rule is declared on a field
        ConstructionError: If a remote rule has no endpoint
    """
    catalog = catalog or registry.messages
    messages = messages or {}
    priorities = priorities or {}

    constraints: dict[str, Constraint] = {}
    for rule, requirement in merge_dual_rules(rules, registry).items():
        validator = registry.resolve(rule, requirement)
        if validator is None:
            raise UnknownRuleError(f"Unknown rule '{rule}' (requirement {requirement!r}) on '{entity.name}'")
        validator.check_requirement(requirement)
        if validator.group and not entity.is_group:
            raise GroupRuleError(f"Rule '{rule}' only applies to groups, not to field '{entity.name}'")

        constraints[rule] = Constraint(
            rule,
            requirement,
            validator,
            entity=entity,
            catalog=catalog,
            priority=priorities.get(rule),
            message=messages.get(rule),
        )
    return constraints
