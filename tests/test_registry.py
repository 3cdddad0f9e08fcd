"""Tests for the validator registry.

Tests cover:
- Standard tier loading and resolution
- Custom registration (callable, mapping, Validator, decorator)
- Duplicate registration warnings
- Shadowing of standard rules
- Requirement type checks
- Dual pairings
"""

import logging

import pytest

from fieldgate.errors import ConstructionError, RequirementTypeError
from fieldgate.messages import MessageCatalog
from fieldgate.registry import StandardValidator, Validator, ValidatorRegistry, create_registry
from fieldgate.validators.remote import RemoteValidator


# =============================================================================
# Resolution
# =============================================================================


class TestResolve:
    def test_standard_rules_loaded(self, registry):
        assert registry.is_registered("required")
        assert isinstance(registry.resolve("required", True), StandardValidator)
        assert registry.resolve("required", True).priority == 100

    def test_unknown_rule(self, registry):
        assert registry.resolve("nope", True) is None
        assert not registry.is_registered("nope")

    def test_type_needs_known_tester(self, registry):
        assert registry.resolve("type", "email") is not None
        assert registry.resolve("type", "postcode") is None

    def test_list_registered_is_sorted(self, registry):
        names = registry.list_registered()
        assert names == sorted(names)
        assert "range" in names

    def test_registry_without_standard_tier(self):
        registry = ValidatorRegistry(load_standard=False)
        assert registry.resolve("required", True) is None

    def test_create_registry_with_message_overrides(self):
        registry = create_registry({"required": "Needed."})
        assert registry.messages.lookup("required") == "Needed."

    def test_create_registry_with_catalog(self):
        catalog = MessageCatalog()
        assert create_registry(catalog).messages is catalog


# =============================================================================
# Registration
# =============================================================================


class TestRegister:
    def test_register_callable(self, registry):
        registry.register("even", lambda value, requirement, entity: int(value) % 2 == 0, priority=5)

        validator = registry.resolve("even", True)
        assert isinstance(validator, Validator)
        assert validator.priority == 5
        assert registry.is_custom("even")

    def test_register_mapping(self, registry):
        registry.register("odd", {"fn": lambda v, r, e: int(v) % 2 == 1, "message": "Odd only.", "group": True})

        validator = registry.resolve("odd")
        assert validator.message == "Odd only."
        assert validator.group is True

    def test_register_mapping_without_fn(self, registry):
        with pytest.raises(ConstructionError):
            registry.register("broken", {"message": "x"})

    def test_register_remote_mapping(self, registry):
        registry.register("unique", {"remote": "https://example.com/check", "dataKey": "email", "method": "post"})

        validator = registry.resolve("unique", True)
        assert isinstance(validator, RemoteValidator)
        assert validator.endpoint == "https://example.com/check"
        assert validator.data_key == "email"
        assert validator.method == "POST"
        assert validator.priority == -10

    def test_register_validator_instance(self, registry):
        validator = Validator("custom", fn=lambda v, r, e: True)
        registry.register("custom", validator)
        assert registry.resolve("custom") is validator

    def test_register_unsupported_spec(self, registry):
        with pytest.raises(ConstructionError):
            registry.register("bad", 42)

    def test_duplicate_is_noop_with_warning(self, registry, caplog):
        first = lambda v, r, e: True  # noqa: E731
        registry.register("dup", first)

        with caplog.at_level(logging.WARNING, logger="fieldgate.registry"):
            registry.register("dup", lambda v, r, e: False)

        assert registry.resolve("dup").fn is first
        assert "already registered" in caplog.text

    def test_custom_shadows_standard(self, registry):
        registry.register("required", lambda v, r, e: True)

        validator = registry.resolve("required", True)
        assert not isinstance(validator, StandardValidator)

    def test_rule_decorator(self, registry):
        @registry.rule("multiple", message="Multiple of %s.", priority=12)
        def multiple(value, requirement, entity):
            return int(value) % int(requirement) == 0

        validator = registry.resolve("multiple", 3)
        assert validator.fn is multiple
        assert validator.message == "Multiple of %s."
        assert validator.priority == 12

    def test_clear_only_drops_custom(self, registry):
        registry.register("even", lambda v, r, e: True)
        registry.clear()

        assert not registry.is_registered("even")
        assert registry.is_registered("required")


# =============================================================================
# Requirement types and dual pairings
# =============================================================================


class TestRequirementTypes:
    @pytest.mark.parametrize(
        "rule,requirement",
        [
            ("min", 3),
            ("min", "2.5"),
            ("minlength", "4"),
            ("range", [1, 10]),
            ("length", ["2", "8"]),
            ("gt", "#other"),
            ("gte", 10),
            ("pattern", r"^\d+$"),
            ("minrequired", 1),
        ],
    )
    def test_accepted(self, registry, rule, requirement):
        registry.resolve(rule, requirement).check_requirement(requirement)

    @pytest.mark.parametrize(
        "rule,requirement",
        [
            ("min", "abc"),
            ("minlength", "2.5"),
            ("range", [1]),
            ("range", 5),
            ("check", [1, "x"]),
            ("pattern", r"\d+"),
        ],
    )
    def test_rejected(self, registry, rule, requirement):
        with pytest.raises(RequirementTypeError):
            registry.resolve(rule, requirement).check_requirement(requirement)

    def test_custom_requirement_type(self, registry):
        registry.register("custom", {"fn": lambda v, r, e: True, "requirementType": "integer"})
        with pytest.raises(RequirementTypeError):
            registry.resolve("custom").check_requirement("x")


class TestDualPairings:
    def test_dual_for_single_rules(self, registry):
        pairing = registry.dual_for("max")

        assert pairing.combined == "range"
        assert pairing.companion == "min"
        assert pairing.order == ("min", "max")

    def test_no_pairing_for_plain_rule(self, registry):
        assert registry.dual_for("required") is None

    def test_shadowed_single_disables_merge(self, registry):
        registry.register("minlength", lambda v, r, e: True)
        assert registry.dual_for("maxlength") is None
