"""Exception taxonomy for fieldgate.

Rule failures are not exceptions: they are reported as ValidationError
records (see fieldgate.types). The classes here cover construction mistakes,
configuration mistakes and infrastructure faults.
"""


class FieldgateError(Exception):
    """Base class for all fieldgate exceptions."""
    pass


class ConstructionError(FieldgateError):
    """A rule declaration is malformed. Fatal at setup time."""
    pass


class UnknownRuleError(ConstructionError):
    """A declared rule name does not resolve to any validator."""
    pass


class RequirementTypeError(ConstructionError):
    """A requirement does not match the shape its rule declares."""
    pass


class MixedGroupTypeError(ConstructionError):
    """A group mixes incompatible child input kinds."""
    pass


class GroupRuleError(ConstructionError):
    """A group-oriented validator was declared on a single field."""
    pass


class ConfigError(FieldgateError):
    """Configuration or form document is invalid."""
    pass


class ConditionError(FieldgateError):
    """A validate-if / not-validate-if source could not be evaluated."""
    pass


class ValidationFailed(FieldgateError):
    """Raised by a predicate to fail with an explicit message.

    The engine converts it into a ValidationError; it never escapes an
    evaluation.
    """

    def __init__(self, message: str | None = None):
        super().__init__(message or "validation failed")
        self.message = message


class RemoteTransportError(FieldgateError):
    """A remote check could not be completed (network error or non-2xx)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
