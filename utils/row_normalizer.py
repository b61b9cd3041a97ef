import math
import numbers
import re
from typing import Any, Dict, Mapping, Optional, Tuple

import pandas as pd

from constants.report_fields import FIELD_CANDIDATES, FIELD_DEFAULTS

# Leading decimal number of a cell such as "10 PZ" or "1.5 USD"
LEADING_NUMBER_PATTERN = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def is_populated(value: Any) -> bool:
    """A column counts as populated when it is neither null nor an empty string."""
    return value is not None and value != ""


def resolve_field(
    row: Mapping[str, Any],
    field: str,
    candidates: Optional[Dict[str, Tuple[str, ...]]] = None,
    defaults: Optional[Dict[str, Any]] = None,
) -> Any:
    """
    Resolve a logical field from a raw query row.

    The candidate columns for the field are tried in order and the first
    populated one wins. When none is populated the field default is returned,
    or None for fields without a default.

    Args:
        row (Mapping): Raw row as returned by the query API
        field (str): Logical field name, e.g. "part" or "qty"
        candidates (dict): Field -> ordered column names (default: FIELD_CANDIDATES)
        defaults (dict): Field -> default value (default: FIELD_DEFAULTS)

    Returns:
        The resolved value, the default, or None
    """
    if candidates is None:
        candidates = FIELD_CANDIDATES
    if defaults is None:
        defaults = FIELD_DEFAULTS

    if field not in candidates:
        raise KeyError(f"Unknown report field: {field}")

    for column in candidates[field]:
        value = row.get(column)
        if is_populated(value):
            return value

    return defaults.get(field)


def parse_number(value: Any) -> float:
    """
    Convert a raw cell to float.

    Text with a unit or other trailing characters keeps its leading number
    ("10 PZ" -> 10). Anything without a finite number becomes 0.
    """
    if not is_populated(value) or isinstance(value, bool):
        return 0.0
    if not isinstance(value, (str, numbers.Number)):
        return 0.0

    if isinstance(value, str):
        value = value.strip()

    try:
        number = float(pd.to_numeric(value, errors="coerce"))
    except (TypeError, ValueError):
        return 0.0

    if pd.isna(number) and isinstance(value, str):
        match = LEADING_NUMBER_PATTERN.match(value)
        if match:
            number = float(match.group(0))

    if pd.isna(number) or not math.isfinite(number):
        return 0.0
    return number


def resolve_number(row: Mapping[str, Any], field: str) -> float:
    """Resolve a numeric field, 0 when missing or unparseable"""
    return parse_number(resolve_field(row, field))


def resolve_text(row: Mapping[str, Any], field: str) -> Any:
    """Resolve a display field, empty string when missing"""
    value = resolve_field(row, field)
    return "" if value is None else value
