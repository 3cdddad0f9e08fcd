"""Tests for the execution strategies."""

import asyncio
from types import SimpleNamespace

import pytest

from fieldgate.orchestrator import (
    ConcurrentStrategy,
    SequentialStrategy,
    Settlement,
    by_priority,
    get_strategy,
)
from fieldgate.types import ConstraintResult, ValidationError


def ok(rule):
    return ConstraintResult(rule)


def bad(rule):
    return ConstraintResult(rule, error=ValidationError(rule, f"{rule} failed"))


def thunk(result, calls, delay=0.0):
    async def run():
        calls.append(result.rule)
        if delay:
            await asyncio.sleep(delay)
        return result

    return run


# =============================================================================
# Sequential
# =============================================================================


class TestSequentialStrategy:
    @pytest.mark.asyncio
    async def test_all_pass(self):
        calls = []
        settlement = await SequentialStrategy().run([thunk(ok("a"), calls), thunk(ok("b"), calls)])

        assert settlement.valid
        assert calls == ["a", "b"]
        assert [r.rule for r in settlement.passed] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self):
        calls = []
        settlement = await SequentialStrategy().run(
            [thunk(ok("a"), calls), thunk(bad("b"), calls), thunk(ok("c"), calls)]
        )

        assert not settlement.valid
        assert calls == ["a", "b"]
        assert [r.rule for r in settlement.failed] == ["b"]

    @pytest.mark.asyncio
    async def test_never_interleaves(self):
        events = []

        def slow(rule):
            async def run():
                events.append(f"start {rule}")
                await asyncio.sleep(0.01)
                events.append(f"end {rule}")
                return ok(rule)

            return run

        await SequentialStrategy().run([slow("a"), slow("b")])
        assert events == ["start a", "end a", "start b", "end b"]

    @pytest.mark.asyncio
    async def test_empty(self):
        assert (await SequentialStrategy().run([])).valid


# =============================================================================
# Concurrent
# =============================================================================


class TestConcurrentStrategy:
    @pytest.mark.asyncio
    async def test_runs_everything(self):
        calls = []
        settlement = await ConcurrentStrategy().run(
            [thunk(bad("a"), calls), thunk(ok("b"), calls), thunk(bad("c"), calls)]
        )

        assert not settlement.valid
        assert sorted(calls) == ["a", "b", "c"]
        assert [r.rule for r in settlement.failed] == ["a", "c"]

    @pytest.mark.asyncio
    async def test_results_keep_thunk_order(self):
        calls = []
        settlement = await ConcurrentStrategy().run([thunk(ok("slow"), calls, 0.02), thunk(ok("fast"), calls)])
        assert [r.rule for r in settlement.results] == ["slow", "fast"]

    @pytest.mark.asyncio
    async def test_exception_raised_after_all_settle(self):
        finished = []

        async def boom():
            raise RuntimeError("boom")

        async def slow():
            await asyncio.sleep(0.01)
            finished.append("slow")
            return ok("slow")

        with pytest.raises(RuntimeError, match="boom"):
            await ConcurrentStrategy().run([boom, slow])

        assert finished == ["slow"]


# =============================================================================
# Equivalence and helpers
# =============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "results",
    [
        [ok("a"), ok("b")],
        [ok("a"), bad("b"), ok("c")],
        [bad("a"), bad("b")],
        [],
    ],
)
async def test_strategies_agree_on_verdict(results):
    sequential = await SequentialStrategy().run([thunk(r, []) for r in results])
    concurrent = await ConcurrentStrategy().run([thunk(r, []) for r in results])
    assert sequential.valid == concurrent.valid


def test_get_strategy():
    assert isinstance(get_strategy(True), SequentialStrategy)
    assert isinstance(get_strategy(False), ConcurrentStrategy)


def test_by_priority_is_stable_and_descending():
    items = [
        SimpleNamespace(name="a", priority=50),
        SimpleNamespace(name="b", priority=100),
        SimpleNamespace(name="c", priority=50),
        SimpleNamespace(name="d", priority=-10),
    ]
    assert [i.name for i in by_priority(items)] == ["b", "a", "c", "d"]


def test_settlement_partitions():
    settlement = Settlement([ok("a"), bad("b")])
    assert [r.rule for r in settlement.passed] == ["a"]
    assert [r.rule for r in settlement.failed] == ["b"]
    assert not settlement.valid
