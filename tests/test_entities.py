"""Tests for the field state machine.

Tests cover:
- Skips (checkbox/radio, conditions, no constraints, invisible, optional empty)
- Priority ordering and both strategies
- Caching and idempotence
- Events and the failed-once flag
- Stale results
- Live triggers, threshold and debounce
- Lifecycle (reset, destroy, refresh)
"""

import asyncio
import logging
from unittest.mock import MagicMock

import pytest

from fieldgate import events
from fieldgate.declarations import EntityDeclaration
from fieldgate.entities import Field
from fieldgate.inputs import MemoryInput, MemoryLocator
from fieldgate.types import EntityState, InputKind


def make_field(context, rules, value="", kind=InputKind.TEXT, **options):
    source = MemoryInput(value, kind=kind)
    return Field(EntityDeclaration("field", rules, source=source, **options), context)


def record(entity):
    seen = []
    for name in (events.PASSED, events.FAILED, events.SETTLED, events.RESET):
        entity.events.on(name, lambda event: seen.append((event.name, event.data)))
    return seen


# =============================================================================
# Basic outcomes
# =============================================================================


class TestOutcomes:
    @pytest.mark.asyncio
    async def test_required_and_empty(self, make_context):
        field = make_field(make_context(), {"required": True}, value="")

        outcome = await field.validate()

        assert not outcome.valid
        assert [e.assert_kind for e in outcome.errors] == ["required"]
        assert field.state is EntityState.INVALID

    @pytest.mark.asyncio
    async def test_minlength_message_includes_requirement(self, make_context):
        field = make_field(make_context(), {"minlength": 3}, value="ab")

        outcome = await field.validate()

        assert not outcome.valid
        assert "3" in outcome.errors[0].message

    @pytest.mark.asyncio
    async def test_valid_value(self, make_context):
        field = make_field(make_context(), {"required": True, "type": "email"}, value="a@b.com")

        outcome = await field.validate()

        assert outcome.valid
        assert field.is_valid
        assert field.errors == []

    @pytest.mark.asyncio
    async def test_success_message_from_declaration(self, make_context):
        field = make_field(make_context(), {"required": True}, value="Ann", success_message="Hello %s")
        outcome = await field.validate()
        assert outcome.success_message == "Hello Ann"

    @pytest.mark.asyncio
    async def test_success_message_from_rule(self, make_context, registry):
        registry.register("friendly", lambda v, r, e: "Nice choice")
        field = make_field(make_context(), {"friendly": True}, value="x")

        outcome = await field.validate()
        assert field.success_message == outcome.success_message == "Nice choice"


# =============================================================================
# Skips
# =============================================================================


class TestSkips:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", [InputKind.CHECKBOX, InputKind.RADIO])
    async def test_choice_inputs_are_skipped(self, make_context, kind):
        field = make_field(make_context(), {"required": True}, value="", kind=kind)

        outcome = await field.validate()

        assert outcome.valid and outcome.skipped

    @pytest.mark.asyncio
    async def test_no_constraints(self, make_context):
        outcome = await make_field(make_context(), {}, value="").validate()
        assert outcome.valid and outcome.skipped

    @pytest.mark.asyncio
    async def test_invisible(self, make_context):
        field = make_field(make_context(), {"required": True}, value="")
        field.source.visible = False

        assert (await field.validate()).skipped

    @pytest.mark.asyncio
    async def test_optional_empty(self, make_context):
        field = make_field(make_context(), {"minlength": 3}, value="")
        assert (await field.validate()).skipped

    @pytest.mark.asyncio
    @pytest.mark.parametrize("requirement", [False, "false"])
    async def test_negative_required_is_optional(self, make_context, requirement):
        field = make_field(make_context(), {"required": requirement, "minlength": 3}, value="")
        assert (await field.validate()).skipped

    @pytest.mark.asyncio
    async def test_condition_without_match_skips_and_warns(self, make_context, registry, caplog):
        check = MagicMock(return_value=False)
        registry.register("never", check)
        field = make_field(make_context(), {"never": True}, value="x", validate_if="#missing")

        with caplog.at_level(logging.WARNING, logger="fieldgate.conditions"):
            outcome = await field.validate()

        assert outcome.valid and outcome.skipped
        check.assert_not_called()
        assert "does not match any input" in caplog.text

    @pytest.mark.asyncio
    async def test_not_validate_if(self, make_context):
        field = make_field(make_context(), {"required": True}, value="", not_validate_if=True)
        assert (await field.validate()).valid


# =============================================================================
# Ordering and strategies
# =============================================================================


class TestOrdering:
    @pytest.mark.asyncio
    async def test_sequential_stops_at_required(self, make_context, registry):
        late = MagicMock(return_value=False)
        registry.register("late", late, priority=-5)
        field = make_field(make_context(), {"late": True, "minlength": 3, "required": True}, value="")

        outcome = await field.validate()

        assert [e.assert_kind for e in outcome.errors] == ["required"]
        late.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_collects_every_failure(self, make_context):
        field = make_field(make_context(stop_at_first_error=False), {"minlength": 5, "type": "digits"}, value="ab")

        outcome = await field.validate()

        assert [e.assert_kind for e in outcome.errors] == ["type", "minlength"]

    @pytest.mark.asyncio
    async def test_order_is_descending_priority(self, make_context, registry):
        calls = []
        registry.register("first", lambda v, r, e: calls.append("first") or True, priority=80)
        registry.register("last", lambda v, r, e: calls.append("last") or True, priority=1)
        field = make_field(make_context(), {"last": True, "first": True}, value="x")

        await field.validate()

        assert calls == ["first", "last"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["", "ab", "abcd", "12345"])
    async def test_strategies_agree(self, make_context, value):
        rules = {"required": True, "minlength": 3, "pattern": r"^[a-z]+$"}
        sequential = await make_field(make_context(), rules, value=value).validate()
        concurrent = await make_field(make_context(stop_at_first_error=False), rules, value=value).validate()

        assert sequential.valid == concurrent.valid

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates(self, make_context, registry):
        def boom(value, requirement, entity):
            raise RuntimeError("broken rule")

        registry.register("boom", boom)
        field = make_field(make_context(), {"boom": True}, value="x")

        with pytest.raises(RuntimeError):
            await field.validate()
        assert field.state is EntityState.UNKNOWN


# =============================================================================
# Caching
# =============================================================================


class TestCaching:
    @pytest.mark.asyncio
    async def test_unchanged_value_is_not_reevaluated(self, make_context, registry):
        check = MagicMock(return_value=True)
        registry.register("counted", check)
        field = make_field(make_context(), {"counted": True}, value="x")

        first = await field.validate()
        second = await field.validate()

        assert check.call_count == 1
        assert second is first

    @pytest.mark.asyncio
    async def test_cached_failure(self, make_context, registry):
        check = MagicMock(return_value=False)
        registry.register("counted", check)
        field = make_field(make_context(), {"counted": True}, value="x")

        await field.validate()
        outcome = await field.validate()

        assert not outcome.valid
        assert check.call_count == 1

    @pytest.mark.asyncio
    async def test_changed_value_is_reevaluated(self, make_context, registry):
        check = MagicMock(return_value=True)
        registry.register("counted", check)
        field = make_field(make_context(), {"counted": True}, value="x")

        await field.validate()
        field.source.set_value("y")
        await field.validate()

        assert check.call_count == 2

    @pytest.mark.asyncio
    async def test_cached_value_is_a_snapshot(self, make_context, registry):
        check = MagicMock(return_value=True)
        registry.register("counted", check)
        value = ["a"]
        field = make_field(make_context(), {"counted": True}, value=value)

        await field.validate()
        value.append("b")
        await field.validate()

        assert check.call_count == 2


# =============================================================================
# Events
# =============================================================================


class TestEvents:
    @pytest.mark.asyncio
    async def test_failure_events(self, make_context):
        field = make_field(make_context(), {"required": True}, value="")
        seen = record(field)

        await field.validate()

        assert [name for name, _ in seen] == ["failed", "settled"]
        assert seen[0][1]["errors"][0].assert_kind == "required"
        assert seen[1][1]["is_valid"] is False
        assert field.has_failed_before

    @pytest.mark.asyncio
    async def test_success_events(self, make_context):
        field = make_field(make_context(), {"required": True}, value="x")
        seen = record(field)

        await field.validate()

        assert [name for name, _ in seen] == ["passed", "settled"]
        assert not field.has_failed_before

    @pytest.mark.asyncio
    async def test_one_notification_per_evaluation(self, make_context):
        field = make_field(make_context(stop_at_first_error=False), {"minlength": 5, "type": "digits"}, value="ab")
        seen = record(field)

        await field.validate()

        assert [name for name, _ in seen] == ["failed", "settled"]

    @pytest.mark.asyncio
    async def test_skip_after_failure_emits_passed(self, make_context):
        field = make_field(make_context(), {"minlength": 3}, value="ab")
        await field.validate()
        seen = record(field)

        field.source.set_value("")
        outcome = await field.validate()

        assert outcome.skipped
        assert [name for name, _ in seen] == ["passed", "settled"]

    @pytest.mark.asyncio
    async def test_first_skip_emits_only_settled(self, make_context):
        field = make_field(make_context(), {"minlength": 3}, value="")
        seen = record(field)

        await field.validate()

        assert [name for name, _ in seen] == ["settled"]

    @pytest.mark.asyncio
    async def test_failed_once_survives_later_success(self, make_context):
        field = make_field(make_context(), {"minlength": 3}, value="ab")
        await field.validate()
        field.source.set_value("abc")
        await field.validate()

        assert field.is_valid
        assert field.has_failed_before


# =============================================================================
# Stale results
# =============================================================================


class TestStaleResults:
    @pytest.mark.asyncio
    async def test_overtaken_evaluation_is_not_committed(self, make_context, registry):
        gate = asyncio.Event()

        async def slow_when_asked(value, requirement, entity):
            if value == "slow":
                await gate.wait()
                return False
            return True

        registry.register("remoteish", slow_when_asked)
        field = make_field(make_context(), {"remoteish": True}, value="slow")
        seen = record(field)

        first = asyncio.create_task(field.validate())
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        field.source.set_value("fast")
        latest = await field.validate()
        gate.set()
        stale = await first

        assert latest.valid
        assert not stale.valid
        assert field.state is EntityState.VALID
        assert field.last_value == "fast"
        assert [name for name, _ in seen] == ["passed", "settled"]


# =============================================================================
# References
# =============================================================================


class TestReferences:
    @pytest.mark.asyncio
    async def test_comparison_reads_referenced_input(self, make_context):
        locator = MemoryLocator({"limit": MemoryInput("10")})
        field = make_field(make_context(locator=locator), {"gt": "#limit"}, value="11")

        assert (await field.validate()).valid
        field.source.set_value("9")
        assert not (await field.validate()).valid

    def test_missing_reference_warns(self, make_context, caplog):
        field = make_field(make_context(), {}, value="1")

        with caplog.at_level(logging.WARNING, logger="fieldgate.entities"):
            assert field.reference_value("#nothing") is None

        assert "does not match any input" in caplog.text


# =============================================================================
# Live triggers
# =============================================================================


class TestTriggers:
    def test_text_uses_config_trigger(self, make_context):
        field = make_field(make_context(trigger="input blur"), {"required": True})
        assert field.active_triggers() == ("input", "blur")

    def test_entity_trigger_overrides_config(self, make_context):
        field = make_field(make_context(), {"required": True}, trigger="blur")
        assert field.active_triggers() == ("blur",)

    def test_discrete_inputs_use_change(self, make_context):
        field = make_field(make_context(), {"required": True}, kind=InputKind.SELECT)
        assert field.active_triggers() == ("change",)

    @pytest.mark.asyncio
    async def test_after_failure_trigger(self, make_context):
        field = make_field(make_context(trigger="blur", trigger_after_failure="input"), {"minlength": 3}, value="ab")
        await field.validate()
        assert field.active_triggers() == ("input",)

    @pytest.mark.asyncio
    async def test_inactive_event_is_ignored(self, make_context):
        field = make_field(make_context(), {"required": True}, value="hello")
        assert field.handle_event("blur") is None

    @pytest.mark.asyncio
    async def test_short_input_is_deferred(self, make_context):
        field = make_field(make_context(), {"minlength": 5}, value="ab")
        assert field.handle_event("input") is None

    @pytest.mark.asyncio
    async def test_empty_required_input_is_not_deferred(self, make_context):
        field = make_field(make_context(), {"required": True}, value="")

        task = field.handle_event("input")

        assert task is not None
        assert not (await task).valid

    @pytest.mark.asyncio
    async def test_threshold_ignored_after_failure(self, make_context):
        field = make_field(make_context(), {"minlength": 5}, value="abcd")
        await field.validate()
        field.source.set_value("ab")

        task = field.handle_event("input")

        assert task is not None
        await task

    @pytest.mark.asyncio
    async def test_long_enough_input_validates(self, make_context):
        field = make_field(make_context(), {"minlength": 5}, value="abc")

        outcome = await field.handle_event("input")

        assert not outcome.valid
        assert field.state is EntityState.INVALID

    @pytest.mark.asyncio
    async def test_burst_is_coalesced(self, make_context, registry):
        check = MagicMock(return_value=True)
        registry.register("counted", check)
        field = make_field(make_context(debounce_ms=20), {"counted": True}, value="first")

        first = field.handle_event("input")
        field.source.set_value("second")
        second = field.handle_event("input")
        await second

        assert first.cancelled()
        assert check.call_count == 1
        assert field.last_value == "second"


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_reset(self, make_context):
        field = make_field(make_context(), {"required": True}, value="")
        await field.validate()
        seen = record(field)

        field.reset()

        assert field.state is EntityState.UNKNOWN
        assert field.last_outcome is None
        assert not field.has_failed_before
        assert [name for name, _ in seen] == ["reset"]

    @pytest.mark.asyncio
    async def test_destroy(self, make_context):
        field = make_field(make_context(), {"required": True}, value="")
        seen = record(field)
        await field.validate()
        seen.clear()

        field.destroy()
        await field.validate()

        assert field.constraints == {}
        assert seen == []

    @pytest.mark.asyncio
    async def test_refresh_rebuilds_from_declaration(self, make_context):
        field = make_field(make_context(), {"required": True}, value="ab")
        assert (await field.validate()).valid

        field.declaration.rules["minlength"] = 3
        field.refresh()

        assert set(field.constraints) == {"required", "minlength"}
        assert not (await field.validate()).valid
