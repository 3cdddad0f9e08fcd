"""Message catalog and formatter.

Rule messages are templates with positional ``%s`` placeholders that are
filled, in declaration order, from the rule's requirement value(s):

    format_message("This value should be between %s and %s.", ["1", "10"])
    -> "This value should be between 1 and 10."

The ``type`` rule resolves its message by sub-kind (``type.email``,
``type.integer`` ...).
"""

import copy
import re
from collections.abc import Mapping
from typing import Any

from fieldgate.values import stringify

PLACEHOLDER = re.compile(r"%s", re.IGNORECASE)

DEFAULT_MESSAGE_KEY = "defaultMessage"

DEFAULT_MESSAGES: dict[str, Any] = {
    DEFAULT_MESSAGE_KEY: "This value seems to be invalid.",
    "type": {
        "email": "This value should be a valid email address.",
        "url": "This value should be a valid url.",
        "number": "This value should be a valid number.",
        "integer": "This value should be a valid integer.",
        "digits": "This value should be digits.",
        "alphanum": "This value should be alphanumeric.",
        "date": "Please enter a valid date.",
        "range": "Please select a valid range.",
        "tel": "Please enter a valid telephone number.",
    },
    "notblank": "This value should not be blank.",
    "required": "This value is required.",
    "minrequired": "At least %s input(s) are required.",
    "pattern": "This value seems to be invalid.",
    "min": "This value should be greater than or equal to %s.",
    "max": "This value should be lower than or equal to %s.",
    "range": "This value should be between %s and %s.",
    "minlength": "This value is too short. It should have %s characters or more.",
    "maxlength": "This value is too long. It should have %s characters or fewer.",
    "length": "This value length is invalid. It should be between %s and %s characters long.",
    "mincheck": "You must select at least %s choices.",
    "maxcheck": "You must select %s choices or fewer.",
    "check": "You must select between %s and %s choices.",
    "equalto": "This value should be the same.",
    "notequalto": "This value should be different.",
    "gt": "This value should be greater than %s.",
    "gte": "This value should be greater than or equal to %s.",
    "lt": "This value should be less than %s.",
    "lte": "This value should be less than or equal to %s.",
    "date": "The entered date is invalid (expected format: %s)",
}


def format_message(template: str | None, parameters: Any) -> str | None:
    """Substitute ``%s`` placeholders from a requirement.

    Scalars fill the first placeholder; lists, tuples and mappings fill one
    placeholder per item, in order. Unused placeholders are left in place.
    """
    if template is None:
        return None
    if isinstance(parameters, Mapping):
        parameters = list(parameters.values())
    if isinstance(parameters, (list, tuple)):
        for item in parameters:
            template = format_message(template, item)
        return template
    return PLACEHOLDER.sub(lambda _: stringify(parameters), template, count=1)


def _deep_merge(target: dict[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
    for key, value in source.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        elif isinstance(value, Mapping):
            target[key] = _deep_merge({}, value)
        else:
            target[key] = value
    return target


class MessageCatalog:
    """Rule-name keyed message templates.

    Supports locale-style overrides by rule name and, for ``type``, by
    sub-kind:

        catalog.add_messages({"required": "Ce champ est requis.",
                              "type": {"email": "Entrez une adresse e-mail valide."}})
    """

    def __init__(self, messages: Mapping[str, Any] | None = None):
        self._messages: dict[str, Any] = copy.deepcopy(DEFAULT_MESSAGES)
        if messages:
            self.add_messages(messages)

    @property
    def default_message(self) -> str:
        return self._messages.get(DEFAULT_MESSAGE_KEY) or DEFAULT_MESSAGES[DEFAULT_MESSAGE_KEY]

    def add_messages(self, messages: Mapping[str, Any]) -> None:
        """Deep-merge overrides into the catalog."""
        _deep_merge(self._messages, messages)

    def merged(self, messages: Mapping[str, Any] | None) -> "MessageCatalog":
        """Return a copy of this catalog with overrides applied."""
        catalog = MessageCatalog()
        catalog._messages = copy.deepcopy(self._messages)
        if messages:
            catalog.add_messages(messages)
        return catalog

    def lookup(self, key: str, sub_key: Any = None) -> str | None:
        """Find the template for a rule, or None when there is none.

        Args:
            key: Rule name, or any catalog key
            sub_key: Sub-kind for rules whose entry is a mapping (``type``)
        """
        entry = self._messages.get(key)
        if isinstance(entry, Mapping):
            entry = entry.get(sub_key) if isinstance(sub_key, str) else None
        return entry if isinstance(entry, str) and entry else None

    def get(self, key: str, sub_key: Any = None) -> str:
        """Find the template for a rule, falling back to the default message."""
        return self.lookup(key, sub_key) or self.default_message

    def resolve_reference(self, text: str) -> str:
        """Resolve an ``@key`` reference; any other text is returned as-is."""
        if text.startswith("@"):
            return self.lookup(text[1:]) or text
        return text
