"""Shared fixtures."""

import pytest

from fieldgate.config import FormConfig
from fieldgate.entities import EntityContext
from fieldgate.inputs import MemoryLocator
from fieldgate.registry import create_registry


@pytest.fixture
def registry():
    """A fresh registry with the standard rules loaded."""
    return create_registry()


@pytest.fixture
def make_context(registry):
    """Build an EntityContext over the shared registry."""

    def factory(locator=None, predicates=None, **config):
        return EntityContext(
            registry=registry,
            config=FormConfig(**config),
            catalog=registry.messages,
            locator=locator or MemoryLocator(),
            predicates=predicates,
        )

    return factory
