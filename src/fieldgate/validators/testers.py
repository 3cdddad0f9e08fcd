"""Type testers used by the ``type`` rule and by requirement-type checks.

Each tester is a predicate over a single value. The same table serves two
purposes:
- ``type`` rule: ``{"type": "email"}`` checks the entity value
- requirement types: ``requirementType = "number|selector"`` checks the
  requirement a rule was declared with
"""

import calendar
import re
from collections.abc import Callable
from datetime import date, datetime
from typing import Any

# =============================================================================
# Patterns
# =============================================================================

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9!#$%&'*+/=?^_`{|}~\u00a0-\uffef-]+"
    r"(?:\.[a-zA-Z0-9!#$%&'*+/=?^_`{|}~\u00a0-\uffef-]+)*"
    r"@(?:[a-zA-Z0-9\u00a0-\uffef](?:[a-zA-Z0-9\u00a0-\uffef_~-]*[a-zA-Z0-9\u00a0-\uffef])?\.)+"
    r"[a-zA-Z\u00a0-\uffef](?:[a-zA-Z0-9\u00a0-\uffef_~-]*[a-zA-Z\u00a0-\uffef])?$"
)

# Scheme is optional; private and local networks are allowed.
URL_PATTERN = re.compile(
    r"^(?:(?:https?|ftp)://)?"
    r"(?:\S+(?::\S*)?@)?"
    r"(?:"
    r"(?:[1-9]\d?|1\d\d|2[01]\d|22[0-3])"
    r"(?:\.(?:1?\d{1,2}|2[0-4]\d|25[0-5])){2}"
    r"(?:\.(?:[1-9]\d?|1\d\d|2[0-4]\d|25[0-4]))"
    r"|"
    r"(?:(?:[a-zA-Z\u00a1-\uffff0-9]-*)*[a-zA-Z\u00a1-\uffff0-9]+)"
    r"(?:\.(?:[a-zA-Z\u00a1-\uffff0-9]-*)*[a-zA-Z\u00a1-\uffff0-9]+)*"
    r"(?:\.(?:[a-zA-Z\u00a1-\uffff]{2,}))"
    r")"
    r"(?::\d{2,5})?"
    r"(?:/\S*)?$"
)

SWISS_PHONE_PATTERN = re.compile(r"^(?:\+41|0041|0)(?:\s?)([2-9]{2})(?:\s?\d{3})(?:\s?\d{2})(?:\s?\d{2})$")
INTERNATIONAL_PHONE_PATTERN = re.compile(r"^(?:\+|00)([1-9]\d{0,3})(?:\s?\d){6,14}$")

NUMBER_PATTERN = re.compile(r"^-?(?:\d+|\d*\.\d+)(?:[eE][+-]?\d+)?$")
INTEGER_PATTERN = re.compile(r"^-?\d+$")
DIGITS_PATTERN = re.compile(r"^\d+$")
ALPHANUM_PATTERN = re.compile(r"^\w+$")

# "#id", ".class", "[attr]", or a bare tag/name
SELECTOR_PATTERN = re.compile(r"^([#.][\w-]+|\[[^\]]+\]|[a-zA-Z][\w-]*)$")

ANCHORED_PATTERN = re.compile(r"^\^.*\$$", re.DOTALL)


# =============================================================================
# Testers
# =============================================================================


def _matches(pattern: re.Pattern[str]) -> Callable[[Any], bool]:
    def test(value: Any) -> bool:
        return isinstance(value, (str, int, float)) and not isinstance(value, bool) and bool(
            pattern.match(str(value).strip())
        )

    return test


def is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    return isinstance(value, str) and bool(NUMBER_PATTERN.match(value.strip()))


def is_tel(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    value = value.strip()
    if value == "*":
        return True
    return bool(SWISS_PHONE_PATTERN.match(value) or INTERNATIONAL_PHONE_PATTERN.match(value))


def is_date(value: Any) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        datetime.fromisoformat(value.strip())
    except ValueError:
        return False
    return True


def is_anchored_regexp(value: Any) -> bool:
    """A regexp requirement must be anchored with ^ and $ and compile."""
    if not isinstance(value, str) or not ANCHORED_PATTERN.match(value.strip()):
        return False
    try:
        re.compile(value)
    except re.error:
        return False
    return True


TYPE_TESTERS: dict[str, Callable[[Any], bool]] = {
    "number": is_number,
    "range": is_number,
    "integer": _matches(INTEGER_PATTERN),
    "digits": _matches(DIGITS_PATTERN),
    "alphanum": _matches(ALPHANUM_PATTERN),
    "email": _matches(EMAIL_PATTERN),
    "url": _matches(URL_PATTERN),
    "tel": is_tel,
    "date": is_date,
    "selector": _matches(SELECTOR_PATTERN),
    "regexp": is_anchored_regexp,
}


def is_selector(value: Any) -> bool:
    return TYPE_TESTERS["selector"](value)


# =============================================================================
# Date Format Parsing
# =============================================================================

DEFAULT_DATE_FORMAT = "MM/DD/YYYY"

_DATE_TOKENS = {
    "D": "day",
    "DD": "day",
    "M": "month",
    "MM": "month",
    "YY": "year",
    "YYYY": "year",
}


def _month_index(name: str) -> int | None:
    lowered = name.strip().lower()
    for index, month in enumerate(calendar.month_name):
        if index and month.lower() == lowered:
            return index
    return None


def parse_date_with_format(value: Any, fmt: str | None = None) -> date | None:
    """Parse a date string against a token format such as ``DD.MM.YYYY``.

    Supported tokens: D, DD, M, MM, MMMM (English month name), YY (20xx),
    YYYY. Returns None when the value does not match or is not a real date.
    """
    if not isinstance(value, str):
        return None
    if not isinstance(fmt, str) or not fmt.strip():
        fmt = DEFAULT_DATE_FORMAT

    separator_match = re.search(r"[^A-Za-z]", fmt)
    if not separator_match:
        return None
    separator = separator_match.group(0)

    format_parts = fmt.split(separator)
    value_parts = value.split(separator)
    if len(format_parts) != len(value_parts):
        return None
    if "MMMM" not in format_parts and len(fmt) != len(value):
        return None

    parts: dict[str, int] = {}
    for token, part in zip(format_parts, value_parts):
        if token == "MMMM":
            month = _month_index(part)
            if month is None:
                return None
            parts["month"] = month
            continue

        key = _DATE_TOKENS.get(token)
        if key is None or not part.isdigit():
            return None
        number = int(part)
        if token == "YY":
            number += 2000
        parts[key] = number

    try:
        return date(parts["year"], parts["month"], parts["day"])
    except (KeyError, ValueError):
        return None
