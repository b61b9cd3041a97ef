import logging
from typing import Any, Dict, Iterable, List, Mapping, Set

from constants.report_fields import (
    DEFAULT_PACKAGING_DESCRIPTION,
    PACKAGING_DESCRIPTIONS,
    TOTAL_ROW_PART,
)
from utils.row_normalizer import is_populated, resolve_field, resolve_number

logger = logging.getLogger(__name__)


def derive_packaging_description(part) -> str:
    """Describe a packaging part from the markers in its part number."""
    if not isinstance(part, str) or not part:
        return DEFAULT_PACKAGING_DESCRIPTION

    for markers, description in PACKAGING_DESCRIPTIONS:
        if any(marker in part for marker in markers):
            return description

    return DEFAULT_PACKAGING_DESCRIPTION


def build_packaging_summary(rows: Iterable[Mapping[str, Any]], packaging_parts: Set[Any]) -> List[Dict[str, Any]]:
    """
    Sum packaging quantities per part and close the list with a Total row.

    Parts keep the order in which they first appear in the rows. The Total
    row is always present, with qty 0 when there is no packaging.

    Args:
        rows (list): Raw query rows
        packaging_parts (set): Parts classified as packaging

    Returns:
        list: Packaging item dicts (part, description, qty)
    """
    groups: Dict[Any, Dict[str, Any]] = {}

    for row in rows:
        part = resolve_field(row, "part")
        if not is_populated(part) or part not in packaging_parts:
            continue

        if part not in groups:
            description = resolve_field(row, "packaging_description")
            groups[part] = {
                "part": part,
                "description": description if description is not None else derive_packaging_description(part),
                "qty": 0.0,
            }

        groups[part]["qty"] += resolve_number(row, "qty")

    packaging_items = list(groups.values())
    total_quantity = sum(item["qty"] for item in packaging_items)

    packaging_items.append({
        "part": TOTAL_ROW_PART,
        "description": "",
        "qty": total_quantity,
    })

    logger.info(f"Packaging summary: {len(groups)} parts, total quantity {total_quantity}")
    return packaging_items
