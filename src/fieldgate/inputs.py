"""Value sources and locators.

The engine never reads a UI directly. It reads values through a ValueSource
and resolves references (``#name``, ``[name=value]``) through a Locator. A
presentation layer implements both; MemoryInput and MemoryLocator serve
headless hosts, form documents and tests.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from fieldgate.types import InputKind

_ATTRIBUTE_SELECTOR = re.compile(r"^\[\s*([\w-]+)\s*(?:=\s*['\"]?([^'\"\]]*)['\"]?\s*)?\]$")


@runtime_checkable
class ValueSource(Protocol):
    """Where an entity reads its current value from."""

    kind: InputKind

    def get_value(self) -> Any:
        ...

    def is_checked(self) -> bool:
        ...

    def is_visible(self) -> bool:
        ...


class Locator(Protocol):
    """Resolves a reference to the value sources it matches."""

    def locate(self, selector: str) -> list[ValueSource]:
        ...


@dataclass
class MemoryInput:
    """An in-memory value source.

    Attributes:
        value: Current value (for checkbox/radio: the value submitted when checked)
        kind: Input kind
        checked: Checked state of checkbox/radio inputs
        visible: Whether the input is presented to the user
    """

    value: Any = ""
    kind: InputKind = InputKind.TEXT
    checked: bool = False
    visible: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.kind, InputKind):
            self.kind = InputKind(self.kind)

    def get_value(self) -> Any:
        return self.value

    def set_value(self, value: Any) -> None:
        self.value = value

    def is_checked(self) -> bool:
        return self.checked

    def check(self) -> None:
        self.checked = True

    def uncheck(self) -> None:
        self.checked = False

    def is_visible(self) -> bool:
        return self.visible


class MemoryLocator:
    """Locator over named in-memory sources.

    Supported references:
    - ``#name`` or ``name``: the source registered under that name
    - ``[name]``: same, in attribute form
    - ``[name=value]``: the sources whose name matches and whose value equals
      ``value`` (e.g. one radio of a group)
    """

    def __init__(self, sources: Mapping[str, ValueSource | Iterable[ValueSource]] | None = None):
        self._sources: dict[str, list[ValueSource]] = {}
        for name, source in (sources or {}).items():
            self.add(name, source)

    def add(self, name: str, source: ValueSource | Iterable[ValueSource]) -> None:
        items = [source] if isinstance(source, ValueSource) else list(source)
        self._sources.setdefault(name, []).extend(items)

    def locate(self, selector: str) -> list[ValueSource]:
        text = selector.strip()
        attribute = _ATTRIBUTE_SELECTOR.match(text)
        if attribute:
            name, wanted = attribute.group(1), attribute.group(2)
            sources = self._sources.get(name, [])
            if wanted is None:
                return list(sources)
            return [s for s in sources if str(s.get_value()) == wanted]
        if text.startswith("#"):
            text = text[1:]
        return list(self._sources.get(text, []))
