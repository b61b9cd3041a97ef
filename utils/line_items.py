import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Set

from utils.row_normalizer import is_populated, resolve_field, resolve_number, resolve_text

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def derive_client_part(part) -> str:
    """
    Derive the client part number from our part number.

    KWS001 -> S001, KW123 -> S123. Anything else has no client equivalent.
    """
    if not isinstance(part, str):
        return ""
    if part.startswith("KWS"):
        return "S" + part[3:]
    if part.startswith("KW"):
        return "S" + part[2:]
    return ""


def skid_sort_number(skid) -> int:
    """Leading integer of a skid label ("12", "12A" -> 12). Non-numeric skids sort as 0."""
    if not is_populated(skid):
        return 0
    match = _LEADING_INT.match(str(skid))
    return int(match.group(1)) if match else 0


def _box_key(value) -> str:
    # 3.0 and "3" are the same carton
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _new_group(skid, part, row: Mapping[str, Any]) -> Dict[str, Any]:
    client_part = resolve_text(row, "client_part")
    if not client_part:
        client_part = derive_client_part(part)

    return {
        "skid": skid,
        "part": part,
        "client_part": client_part,
        "description": resolve_text(row, "description"),
        "po": resolve_text(row, "po"),
        "qty": 0.0,
        "uom": resolve_field(row, "uom"),
        "origin": resolve_field(row, "origin"),
        "qty_per_set": 0,
        # Unit economics are taken from the first row of the group only
        "unit_cost": resolve_number(row, "unit_cost"),
        "labor": resolve_number(row, "labor"),
        "unit_weight": resolve_number(row, "unit_weight"),
        "box_numbers": set(),
    }


def build_line_items(rows: Iterable[Mapping[str, Any]], packaging_parts: Set[Any]) -> List[Dict[str, Any]]:
    """
    Group product rows by (skid, part) into report line items.

    Args:
        rows (list): Raw query rows
        packaging_parts (set): Parts classified as packaging, excluded here

    Returns:
        list: Line item dicts sorted by numeric skid, then part
    """
    groups: Dict[tuple, Dict[str, Any]] = {}
    skipped = 0

    for row in rows:
        part = resolve_field(row, "part")
        if not is_populated(part) or part in packaging_parts:
            continue

        skid = resolve_field(row, "skid")
        if not is_populated(skid):
            skipped += 1
            continue

        key = (skid, part)
        if key not in groups:
            groups[key] = _new_group(skid, part, row)
        group = groups[key]

        group["qty"] += resolve_number(row, "qty")

        box = resolve_field(row, "box")
        if is_populated(box):
            group["box_numbers"].add(_box_key(box))

    if skipped:
        logger.debug(f"Skipped {skipped} product rows without a skid")

    line_items = []
    for group in groups.values():
        qty = group["qty"]
        line_items.append({
            "part": group["part"],
            "client_part": group["client_part"],
            "description": group["description"],
            "po": group["po"],
            "qty": qty,
            "uom": group["uom"],
            "box_count": len(group["box_numbers"]),
            "origin": group["origin"],
            "qty_per_set": group["qty_per_set"],
            "weight": group["unit_weight"] * qty,
            "unit_cost": group["unit_cost"],
            "labor": group["labor"],
            "total_cost": (group["unit_cost"] + group["labor"]) * qty,
            "skid": group["skid"],
        })

    line_items.sort(key=lambda item: (skid_sort_number(item["skid"]), str(item["part"])))

    logger.info(f"Built {len(line_items)} line items from {len(groups)} skid/part groups")
    return line_items
