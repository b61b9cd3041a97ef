"""
Packaging material identification for shipment reports.

A visa transaction dataset mixes finished product with the pallets, boxes,
totes and lids it ships in. Nothing in the data flags packaging explicitly,
so three independent heuristics are evaluated and their results unioned:

- no-skid pattern: the part never appears on a skid
- name pattern: the part number contains a packaging marker
- sub-part field: SUB_PART is set to something other than finished product
"""

import logging
from typing import Any, Iterable, Mapping, Set

from constants.report_fields import FINISHED_PRODUCT_MARKER, PACKAGING_NAME_MARKERS
from utils.row_normalizer import is_populated, resolve_field

logger = logging.getLogger(__name__)


def parts_without_skids(rows: Iterable[Mapping[str, Any]]) -> Set[Any]:
    """Parts that are never seen with a skid assignment anywhere in the dataset."""
    all_parts = set()
    parts_with_skids = set()

    for row in rows:
        part = resolve_field(row, "part")
        if not is_populated(part):
            continue

        all_parts.add(part)
        if is_populated(resolve_field(row, "skid")):
            parts_with_skids.add(part)

    return all_parts - parts_with_skids


def parts_by_name_pattern(rows: Iterable[Mapping[str, Any]]) -> Set[str]:
    """Parts whose identifier contains one of PACKAGING_NAME_MARKERS (case-sensitive)."""
    matches = set()
    for row in rows:
        part = resolve_field(row, "part")
        if not isinstance(part, str) or not part:
            continue
        if any(marker in part for marker in PACKAGING_NAME_MARKERS):
            matches.add(part)
    return matches


def parts_by_sub_part(rows: Iterable[Mapping[str, Any]]) -> Set[Any]:
    """Parts with at least one row whose SUB_PART is set and is not the finished product marker."""
    matches = set()
    for row in rows:
        part = resolve_field(row, "part")
        sub_part = resolve_field(row, "sub_part")
        if is_populated(part) and is_populated(sub_part) and sub_part != FINISHED_PRODUCT_MARKER:
            matches.add(part)
    return matches


def identify_packaging_materials(rows) -> Set[Any]:
    """
    Classify the parts in a dataset as packaging.

    Args:
        rows (list): Raw query rows

    Returns:
        set: Part identifiers treated as packaging. Every other part is product.
    """
    rows = list(rows)

    by_skid_pattern = parts_without_skids(rows)
    by_name_pattern = parts_by_name_pattern(rows)
    by_sub_part = parts_by_sub_part(rows)

    packaging = by_skid_pattern | by_name_pattern | by_sub_part

    logger.debug(
        f"Packaging classification: {len(by_skid_pattern)} without skids, "
        f"{len(by_name_pattern)} by name, {len(by_sub_part)} by sub-part"
    )
    logger.info(f"Identified {len(packaging)} packaging parts")

    return packaging
