"""Built-in rules and type testers.

RemoteValidator lives in fieldgate.validators.remote; it builds on the
registry's Validator class and is imported from there directly.
"""

from fieldgate.validators.standard import DUAL_PAIRINGS, STANDARD_RULES, StandardRule
from fieldgate.validators.testers import TYPE_TESTERS, parse_date_with_format

__all__ = [
    "DUAL_PAIRINGS",
    "STANDARD_RULES",
    "StandardRule",
    "TYPE_TESTERS",
    "parse_date_with_format",
]
