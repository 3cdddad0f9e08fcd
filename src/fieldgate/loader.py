"""
loader.py — YAML form documents.

A form document declares a form's fields, groups, configuration, message
overrides and remote rules:

    form: signup
    config:
      stopAtFirstError: false
    messages:
      required: "Please fill in this field."
    remoteRules:
      unique-email:
        endpoint: https://api.example.com/users/check
        dataKey: email
        failWhen: duplicate
    fields:
      - name: email
        value: a@b.com
        rules: {required: true, type: email, unique-email: true}
      - name: plan
        rules: {required: true}
        children:
          - {name: basic, kind: radio, value: basic}
          - {name: pro, kind: radio, value: pro, checked: true}

Documents are validated against ``schemas/form.schema.json`` before they are
turned into declarations.

Usage:
    document = load_form_document(Path("signup.yaml"), values={"email": "x@y.z"})
    form = document.build_form()
    result = await form.validate_all()
"""
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError as SchemaError

from fieldgate.config import FormConfig
from fieldgate.declarations import EntityDeclaration, FormDeclaration
from fieldgate.errors import ConfigError, FieldgateError
from fieldgate.form import Form
from fieldgate.inputs import MemoryInput
from fieldgate.registry import ValidatorRegistry, create_registry
from fieldgate.validators.remote import RemoteValidator

logger = logging.getLogger(__name__)

_SCHEMAS_DIR = Path(__file__).parent / "schemas"
_FORM_SCHEMA = "form.schema.json"


# ---------------------------------------------------------------------------
# Public data types
# ---------------------------------------------------------------------------


@dataclass
class ValidationIssue:
    """A single problem found in a form document."""

    file: Path
    message: str
    path: str = ""

    def __str__(self) -> str:
        loc = f" at {self.path}" if self.path else ""
        return f"[ERROR] {self.file}{loc}: {self.message}"


@dataclass
class FormDocument:
    """A parsed form document.

    Attributes:
        declaration: Fields and groups
        config: Form configuration (``config`` plus top-level ``messages``)
        remote_rules: Remote rule name -> RemoteValidator
        path: File the document was loaded from
    """

    declaration: FormDeclaration
    config: FormConfig = field(default_factory=FormConfig)
    remote_rules: dict[str, RemoteValidator] = field(default_factory=dict)
    path: Path | None = None

    def build_registry(self, registry: ValidatorRegistry | None = None) -> ValidatorRegistry:
        """Register the document's remote rules (on a new registry by default)."""
        registry = registry or create_registry()
        for name, validator in self.remote_rules.items():
            registry.register(name, validator)
        return registry

    def build_form(self, registry: ValidatorRegistry | None = None, **options: Any) -> Form:
        """Create a Form from this document.

        Raises:
            ConstructionError: If a rule declaration is malformed
        """
        config = options.pop("config", None) or self.config
        return Form(self.declaration, config=config, registry=self.build_registry(registry), **options)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_schema() -> dict[str, Any]:
    with (_SCHEMAS_DIR / _FORM_SCHEMA).open() as fh:
        return json.load(fh)


def _json_path(error: SchemaError) -> str:
    """Convert a jsonschema error path to a readable string."""
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


def _read_yaml(path: Path) -> Any:
    try:
        with path.open() as fh:
            return yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ConfigError(f"YAML parse error in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc


def _fail_when(key: str):
    def is_valid(data: Any, response: Any) -> bool:
        return response.is_success and not (isinstance(data, Mapping) and data.get(key))

    return is_valid


def _remote_rule(name: str, spec: Mapping[str, Any]) -> RemoteValidator:
    fail_key = spec.get("failWhen")
    return RemoteValidator(
        name,
        endpoint=spec.get("endpoint"),
        method=spec.get("method", "GET"),
        data_key=spec.get("dataKey", "value"),
        is_valid=_fail_when(fail_key) if fail_key else None,
        message=spec.get("message"),
        priority=spec.get("priority", -10),
        group=bool(spec.get("group", False)),
    )


def _apply_value(declaration: EntityDeclaration, value: Any) -> None:
    """Override a declared value.

    A bool checks or unchecks a checkbox/radio field. For a checkbox/radio
    group, a value (or list of values) checks exactly the matching children.
    """
    if declaration.source is not None:
        source = declaration.source
        if isinstance(value, bool) and source.kind.is_choice and isinstance(source, MemoryInput):
            source.checked = value
        elif isinstance(source, MemoryInput):
            source.set_value(value)
        return

    choices = [c for c in declaration.children if c.source is not None and c.source.kind.is_choice]
    if choices:
        wanted = {str(v) for v in (value if isinstance(value, list) else [value])}
        for child in choices:
            child.source.checked = str(child.source.get_value()) in wanted
        return
    if isinstance(value, Mapping):
        by_name = {child.name: child for child in declaration.children}
        for name, child_value in value.items():
            if name in by_name:
                _apply_value(by_name[name], child_value)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def check_form_data(data: Any, path: Path) -> list[ValidationIssue]:
    """Validate a parsed document against the form schema."""
    if data is None:
        return [ValidationIssue(file=path, message="File is empty or contains only whitespace")]

    validator = Draft202012Validator(_load_schema())
    return [
        ValidationIssue(file=path, message=error.message, path=_json_path(error))
        for error in sorted(validator.iter_errors(data), key=_json_path)
    ]


def parse_form_data(
    data: Mapping[str, Any],
    path: Path | None = None,
    values: Mapping[str, Any] | None = None,
) -> FormDocument:
    """Turn a schema-valid document mapping into a FormDocument."""
    config_data = dict(data.get("config") or {})
    if data.get("messages"):
        config_data["messages"] = data["messages"]
    config = FormConfig.from_dict(config_data)

    declaration = FormDeclaration(
        entities=[EntityDeclaration.from_dict(entry) for entry in data.get("fields", [])],
        name=data.get("form"),
    )

    if values:
        by_name = {d.name: d for d in declaration.walk()}
        for name, value in values.items():
            if name not in by_name:
                raise ConfigError(f"Value given for unknown field '{name}'")
            _apply_value(by_name[name], value)

    remote_rules = {name: _remote_rule(name, spec) for name, spec in (data.get("remoteRules") or {}).items()}
    return FormDocument(declaration=declaration, config=config, remote_rules=remote_rules, path=path)


def load_form_document(path: Path, values: Mapping[str, Any] | None = None) -> FormDocument:
    """Load and validate a YAML form document.

    Args:
        path: YAML file
        values: Field name -> value overrides

    Raises:
        ConfigError: If the file cannot be parsed or does not match the schema
    """
    path = Path(path)
    data = _read_yaml(path)
    issues = check_form_data(data, path)
    if issues:
        raise ConfigError("\n".join(str(issue) for issue in issues))
    logger.debug("Loaded form document %s", path)
    return parse_form_data(data, path, values)


def lint_form_document(path: Path) -> list[ValidationIssue]:
    """Check a form document without validating any value.

    Runs the schema check, then builds the form so construction errors
    (unknown rules, requirement shape mismatches, mixed groups) are reported.
    """
    path = Path(path)
    try:
        data = _read_yaml(path)
    except ConfigError as exc:
        return [ValidationIssue(file=path, message=str(exc))]

    issues = check_form_data(data, path)
    if issues:
        return issues

    try:
        parse_form_data(data, path).build_form()
    except FieldgateError as exc:
        return [ValidationIssue(file=path, message=str(exc))]
    return []
