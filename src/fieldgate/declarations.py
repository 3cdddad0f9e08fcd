"""Declarative rule structure handed to the engine.

An adapter layer (a UI binding, the YAML loader, application code) produces
one EntityDeclaration per field or group: rule name -> requirement, plus
per-entity options. The engine never inspects markup or attribute strings.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import yaml

from fieldgate.errors import ConfigError
from fieldgate.inputs import MemoryInput, ValueSource
from fieldgate.types import InputKind


def parse_requirement(value: Any) -> Any:
    """Normalize a declared requirement.

    Strings shaped like arrays or objects are read as YAML flow collections,
    so single quotes and unquoted keys are accepted: ``"[1, 10]"`` -> ``[1, 10]``
    and ``"{url: '/check', extra: {id: 1}}"`` -> ``{"url": "/check", "extra": {"id": 1}}``.
    Arrays that do not parse are split on commas. Anything else is returned
    unchanged.
    """
    if not isinstance(value, str):
        return value
    text = value.strip()
    if text.startswith("{") and text.endswith("}"):
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"Cannot parse requirement {value!r}: {e}") from e
    if text.startswith("[") and text.endswith("]"):
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError:
            return [part.strip() for part in text[1:-1].split(",")]
    return value


@dataclass
class EntityDeclaration:
    """Rules and options of one field or group.

    Attributes:
        name: Stable identifier
        rules: Rule name -> requirement
        source: Where a field reads its value (None for groups)
        children: Child declarations; a non-empty list makes this a group
        messages: Rule name -> message override (``@key`` refers to the catalog)
        success_message: Message reported when the entity settles valid
        priorities: Rule name -> priority override
        trigger: Live events that validate this entity (overrides the form's)
        validate_if: Include condition source
        not_validate_if: Exclude condition source
        group: Force group semantics even without children
    """

    name: str
    rules: dict[str, Any] = field(default_factory=dict)
    source: ValueSource | None = None
    children: list["EntityDeclaration"] = field(default_factory=list)
    messages: dict[str, str] = field(default_factory=dict)
    success_message: str | None = None
    priorities: dict[str, int] = field(default_factory=dict)
    trigger: tuple[str, ...] | str | None = None
    validate_if: Any = None
    not_validate_if: Any = None
    group: bool = False

    def __post_init__(self) -> None:
        self.rules = {rule: parse_requirement(req) for rule, req in self.rules.items()}

    @property
    def is_group(self) -> bool:
        return self.group or bool(self.children)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EntityDeclaration":
        """Create EntityDeclaration from a YAML/JSON mapping with camelCase keys."""
        children = [cls.from_dict(child) for child in data.get("children", [])]
        source = None
        if not children:
            source = MemoryInput(
                value=data.get("value", ""),
                kind=InputKind(data.get("kind", "text")),
                checked=bool(data.get("checked", False)),
                visible=bool(data.get("visible", True)),
            )
        return cls(
            name=data["name"],
            rules=dict(data.get("rules") or {}),
            source=source,
            children=children,
            messages=dict(data.get("messages") or {}),
            success_message=data.get("successMessage"),
            priorities=dict(data.get("priorities") or {}),
            trigger=data.get("trigger"),
            validate_if=data.get("validateIf"),
            not_validate_if=data.get("notValidateIf"),
            group=bool(data.get("group", False)),
        )

    def walk(self) -> list["EntityDeclaration"]:
        """This declaration and every descendant, depth first."""
        found = [self]
        for child in self.children:
            found.extend(child.walk())
        return found


@dataclass
class FormDeclaration:
    """The top-level entities of a form, in declaration order."""

    entities: list[EntityDeclaration] = field(default_factory=list)
    name: str | None = None

    def walk(self) -> list[EntityDeclaration]:
        found: list[EntityDeclaration] = []
        for entity in self.entities:
            found.extend(entity.walk())
        return found
