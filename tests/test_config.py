"""Tests for FormConfig."""

import pytest

from fieldgate.config import FormConfig, parse_triggers
from fieldgate.errors import ConfigError


class TestFormConfig:
    def test_defaults(self):
        config = FormConfig()

        assert config.stop_at_first_error is True
        assert config.show_multiple_errors is False
        assert config.debounce_ms == 0
        assert config.group_debounce_ms == 50
        assert config.validation_threshold == 3
        assert config.trigger == ("input",)
        assert config.messages == {}

    def test_triggers_are_normalized(self):
        config = FormConfig(trigger="input change", trigger_after_failure=["blur"])

        assert config.trigger == ("input", "change")
        assert config.trigger_after_failure == ("blur",)

    def test_negative_values_rejected(self):
        with pytest.raises(ConfigError):
            FormConfig(debounce_ms=-1)
        with pytest.raises(ConfigError):
            FormConfig(validation_threshold=-2)

    def test_from_dict_camel_case(self):
        config = FormConfig.from_dict(
            {
                "stopAtFirstError": False,
                "showMultipleErrors": True,
                "debounceMs": 200,
                "trigger": "change",
                "messages": {"required": "Needed."},
            }
        )

        assert config.stop_at_first_error is False
        assert config.show_multiple_errors is True
        assert config.debounce_ms == 200
        assert config.trigger == ("change",)
        assert config.messages == {"required": "Needed."}

    def test_from_dict_unknown_key(self):
        with pytest.raises(ConfigError, match="focusClass"):
            FormConfig.from_dict({"focusClass": "x"})

    def test_from_dict_none(self):
        assert FormConfig.from_dict(None) == FormConfig()

    def test_merged_keeps_original(self):
        base = FormConfig(messages={"required": "A"})
        merged = base.merged({"messages": {"min": "B"}, "validation_threshold": 5})

        assert merged.messages == {"required": "A", "min": "B"}
        assert merged.validation_threshold == 5
        assert base.messages == {"required": "A"}
        assert base.validation_threshold == 3

    def test_from_env(self):
        config = FormConfig.from_env(
            {
                "FIELDGATE_STOP_AT_FIRST_ERROR": "false",
                "FIELDGATE_SHOW_MULTIPLE_ERRORS": "yes",
                "FIELDGATE_DEBOUNCE_MS": "150",
            }
        )

        assert config.stop_at_first_error is False
        assert config.show_multiple_errors is True
        assert config.debounce_ms == 150
        assert config.validation_threshold == 3

    def test_from_env_invalid_integer(self):
        with pytest.raises(ConfigError, match="FIELDGATE_VALIDATION_THRESHOLD"):
            FormConfig.from_env({"FIELDGATE_VALIDATION_THRESHOLD": "three"})


def test_parse_triggers():
    assert parse_triggers(None) == ()
    assert parse_triggers("input  blur") == ("input", "blur")
    assert parse_triggers(("change",)) == ("change",)
