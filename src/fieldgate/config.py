"""Form configuration."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from fieldgate.errors import ConfigError

# camelCase document key -> dataclass attribute
_KEY_MAP: dict[str, str] = {
    "stopAtFirstError": "stop_at_first_error",
    "showMultipleErrors": "show_multiple_errors",
    "debounceMs": "debounce_ms",
    "groupDebounceMs": "group_debounce_ms",
    "validationThreshold": "validation_threshold",
    "trigger": "trigger",
    "triggerAfterFailure": "trigger_after_failure",
    "messages": "messages",
}

_TRUTHY = ("1", "true", "yes", "on")


def parse_triggers(value: Any) -> tuple[str, ...]:
    """Normalize "input change" or ["input", "change"] to a tuple of event names."""
    if value is None or value is False:
        return ()
    if isinstance(value, str):
        return tuple(value.split())
    return tuple(str(v) for v in value)


@dataclass
class FormConfig:
    """Options recognized by a form and its entities.

    Attributes:
        stop_at_first_error: Run constraints one at a time and stop at the
            first failure (True), or run them all concurrently (False)
        show_multiple_errors: Display every failure instead of the first
        debounce_ms: Coalescing delay for live value changes
        group_debounce_ms: Coalescing delay for child -> group re-validation
        validation_threshold: Minimum input length before live re-checks
        trigger: Events that validate a free-form input
        trigger_after_failure: Events used once an entity has failed
        messages: Rule-name keyed message overrides
    """

    stop_at_first_error: bool = True
    show_multiple_errors: bool = False
    debounce_ms: int = 0
    group_debounce_ms: int = 50
    validation_threshold: int = 3
    trigger: tuple[str, ...] = ("input",)
    trigger_after_failure: tuple[str, ...] = ("input",)
    messages: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.trigger = parse_triggers(self.trigger)
        self.trigger_after_failure = parse_triggers(self.trigger_after_failure)
        if self.debounce_ms < 0 or self.group_debounce_ms < 0:
            raise ConfigError("debounce delays must not be negative")
        if self.validation_threshold < 0:
            raise ConfigError("validation_threshold must not be negative")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> FormConfig:
        """Create FormConfig from a YAML/JSON mapping with camelCase keys."""
        return cls().merged(data)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> FormConfig:
        """Create config from environment variables.

        Reads FIELDGATE_STOP_AT_FIRST_ERROR, FIELDGATE_SHOW_MULTIPLE_ERRORS,
        FIELDGATE_DEBOUNCE_MS and FIELDGATE_VALIDATION_THRESHOLD; anything
        unset keeps its default.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}

        stop = env.get("FIELDGATE_STOP_AT_FIRST_ERROR")
        if stop is not None:
            overrides["stop_at_first_error"] = stop.strip().lower() in _TRUTHY

        multiple = env.get("FIELDGATE_SHOW_MULTIPLE_ERRORS")
        if multiple is not None:
            overrides["show_multiple_errors"] = multiple.strip().lower() in _TRUTHY

        for var, attr in (
            ("FIELDGATE_DEBOUNCE_MS", "debounce_ms"),
            ("FIELDGATE_VALIDATION_THRESHOLD", "validation_threshold"),
        ):
            raw = env.get(var)
            if raw is None:
                continue
            try:
                overrides[attr] = int(raw)
            except ValueError:
                raise ConfigError(f"{var} must be an integer, got '{raw}'") from None

        return cls(**overrides)

    def merged(self, data: Mapping[str, Any] | None) -> FormConfig:
        """Return a copy with camelCase (or snake_case) overrides applied."""
        if not data:
            return dataclasses.replace(self, messages=dict(self.messages))

        known = set(_KEY_MAP.values())
        overrides: dict[str, Any] = {}
        for key, value in data.items():
            attr = _KEY_MAP.get(key, key)
            if attr not in known:
                raise ConfigError(f"Unknown configuration option '{key}'")
            overrides[attr] = value

        messages = dict(self.messages)
        messages.update(overrides.pop("messages", None) or {})
        return dataclasses.replace(self, messages=messages, **overrides)
