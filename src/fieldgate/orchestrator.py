"""Execution strategies for constraint and entity evaluations.

Both strategies take a list of thunks (zero-argument coroutine functions)
whose results expose a ``valid`` attribute (ConstraintResult for
constraints, ValidationOutcome for entities) and settle into one
Settlement:

- SequentialStrategy: one at a time, in order, stopping at the first failure
- ConcurrentStrategy: all at once, waiting for every thunk to settle

For a given set of side-effect free thunks both produce the same verdict.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)

Thunk = Callable[[], Awaitable[Any]]


class Strategy(Protocol):
    """Protocol for execution strategies."""

    name: str

    async def run(self, thunks: Sequence[Thunk]) -> "Settlement":
        ...


@dataclass
class Settlement:
    """Settled results of a strategy run, in thunk order.

    Under the sequential strategy ``results`` stops at the first failure.
    """

    results: list[Any] = field(default_factory=list)

    @property
    def passed(self) -> list[Any]:
        return [r for r in self.results if r.valid]

    @property
    def failed(self) -> list[Any]:
        return [r for r in self.results if not r.valid]

    @property
    def valid(self) -> bool:
        return not self.failed


class SequentialStrategy:
    """Run thunks strictly one at a time; stop at the first failure."""

    name = "sequential"

    async def run(self, thunks: Sequence[Thunk]) -> Settlement:
        results: list[Any] = []
        for thunk in thunks:
            result = await thunk()
            results.append(result)
            if not result.valid:
                break
        return Settlement(results)


class ConcurrentStrategy:
    """Start every thunk together and wait for all of them to settle.

    An exception raised by any thunk is re-raised once every thunk has
    settled, so no evaluation is left running behind the caller.
    """

    name = "concurrent"

    async def run(self, thunks: Sequence[Thunk]) -> Settlement:
        settled = await asyncio.gather(*(thunk() for thunk in thunks), return_exceptions=True)
        errors = [result for result in settled if isinstance(result, BaseException)]
        if errors:
            if len(errors) > 1:
                logger.warning("%d concurrent evaluations raised, re-raising the first", len(errors))
            raise errors[0]
        return Settlement(list(settled))


SEQUENTIAL = SequentialStrategy()
CONCURRENT = ConcurrentStrategy()


def get_strategy(stop_at_first_error: bool) -> Strategy:
    """Pick the strategy for the ``stop_at_first_error`` option."""
    return SEQUENTIAL if stop_at_first_error else CONCURRENT


def by_priority(items: Iterable[Any]) -> list[Any]:
    """Stable sort by descending ``priority``."""
    return sorted(items, key=lambda item: -item.priority)
