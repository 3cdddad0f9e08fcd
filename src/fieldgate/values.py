"""Value helpers shared by rules, entities and groups.

Numeric parsing follows the lenient leading-prefix semantics browsers use
for form input ("12px" parses as 12, "abc" as NaN), so comparisons against
unparsable values are always false.
"""

import copy
import math
import re
from typing import Any

_FLOAT_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INT_PREFIX = re.compile(r"^\s*[+-]?\d+")


def size(value: Any) -> int:
    """Length of a string, list or mapping; 0 for anything else."""
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value)
    return 0


def is_empty(value: Any) -> bool:
    """Check if a value is considered empty for validation purposes.

    None, blank strings and empty collections are empty. A list of empty
    strings is not: it is a group of present (if blank) children.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return str(value).strip() == ""


def values_equal(a: Any, b: Any) -> bool:
    """Deep equality used by the evaluation cache."""
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    return type(a) is type(b) and a == b


def clone_value(value: Any) -> Any:
    """Snapshot a value so later mutation of the source does not leak in."""
    if isinstance(value, (list, dict)):
        return copy.copy(value)
    return value


def parse_float(value: Any) -> float:
    """Parse the leading number of a value, NaN if there is none."""
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    if value is None:
        return math.nan
    match = _FLOAT_PREFIX.match(str(value))
    return float(match.group(0)) if match else math.nan


def parse_int(value: Any) -> int | float:
    """Parse the leading integer of a value, NaN if there is none."""
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return float(int(value)) if math.isfinite(value) else math.nan
    if value is None:
        return math.nan
    match = _INT_PREFIX.match(str(value))
    return int(match.group(0)) if match else math.nan


def stringify(value: Any) -> str:
    """Render a requirement or value for message substitution."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(stringify(v) for v in value)
    if value is None:
        return ""
    return str(value)
