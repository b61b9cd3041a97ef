import copy
import logging
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from constants.report_fields import LINE_ITEM_COLUMNS, PACKAGING_COLUMNS, SUBTOTAL_COLUMNS

logger = logging.getLogger(__name__)


def _row_edits(edited_cells: Mapping, index: int) -> Mapping:
    # Edits arrive from JSON, so row indexes may be strings
    edits = edited_cells.get(index)
    if edits is None:
        edits = edited_cells.get(str(index))
    return edits or {}


def apply_cell_overrides(
    line_items: List[Dict[str, Any]],
    edited_cells: Optional[Mapping] = None,
) -> List[Dict[str, Any]]:
    """
    Apply manual cell edits to report line items.

    Edits are addressed by line item position and field key, e.g.
    {0: {"qty": "12"}, "3": {"description": "Bracket"}}. An empty edit keeps
    the computed value. The report itself is left untouched.

    Args:
        line_items (list): Line items from build_report
        edited_cells (dict): Row index -> {field key: edited value}

    Returns:
        list: Copies of the line items with edits applied
    """
    edited_cells = edited_cells or {}
    result = []

    for index, item in enumerate(line_items):
        row = copy.deepcopy(item)
        for key, value in _row_edits(edited_cells, index).items():
            if key in row and value:
                row[key] = value
        result.append(row)

    valid_rows = {str(i) for i in range(len(line_items))}
    unknown = [k for k in edited_cells if str(k) not in valid_rows]
    if unknown:
        logger.warning(f"Ignoring edits for unknown line item rows: {unknown}")

    return result


def build_line_items_frame(report: Dict[str, Any], edited_cells: Optional[Mapping] = None) -> pd.DataFrame:
    """Line items in export column order, closed by the subtotal row."""
    columns = [header for header, _ in LINE_ITEM_COLUMNS]
    line_items = apply_cell_overrides(report["line_items"], edited_cells)

    records = [
        {header: item.get(key) for header, key in LINE_ITEM_COLUMNS}
        for item in line_items
    ]

    subtotal_row = {header: "" for header in columns}
    subtotal_row["PO"] = "Total"
    for header, key in SUBTOTAL_COLUMNS.items():
        subtotal_row[header] = report["subtotals"][key]
    records.append(subtotal_row)

    return pd.DataFrame(records, columns=columns)


def build_packaging_frame(report: Dict[str, Any]) -> pd.DataFrame:
    """Packaging section as (description, qty) rows, Total row included."""
    records = [
        {PACKAGING_COLUMNS[0]: item["description"], PACKAGING_COLUMNS[1]: item["qty"]}
        for item in report["packaging_section"]
    ]
    return pd.DataFrame(records, columns=PACKAGING_COLUMNS)


def report_filename(header: Mapping[str, Any]) -> str:
    return f"Shipment_Report_{header.get('shipment_number', '')}.xlsx"
