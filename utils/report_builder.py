"""
Shipment report assembly.

Takes the rows returned by the visa transaction query for one declaration and
builds the report consumed by the export layer:

    {
        "header": {...},
        "line_items": [...],
        "packaging_section": [...],
        "subtotals": {...},
    }

The build is pure: the same rows always give the same report and nothing is
kept between builds.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from constants.report_fields import HEADER_FIELD_CANDIDATES
from utils.line_items import build_line_items
from utils.packaging_classifier import identify_packaging_materials
from utils.packaging_summary import build_packaging_summary
from utils.row_normalizer import resolve_field

logger = logging.getLogger(__name__)


class ReportBuildError(ValueError):
    """Raised when the raw dataset cannot be turned into a report."""
    pass


def validate_rows(raw_rows) -> List[Mapping]:
    """
    Check that the dataset is a sequence of row mappings.

    Raises:
        ReportBuildError: If the dataset is missing or has the wrong shape
    """
    if raw_rows is None:
        raise ReportBuildError("No report data received")

    if not isinstance(raw_rows, (list, tuple)):
        raise ReportBuildError(f"Report data must be a list of rows, got {type(raw_rows).__name__}")

    for index, row in enumerate(raw_rows):
        if not isinstance(row, Mapping):
            raise ReportBuildError(f"Row {index} is not a mapping: {type(row).__name__}")

    return list(raw_rows)


def build_report_header(declaration: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Header fields come from the selected declaration, not from the rows."""
    declaration = declaration or {}
    header = {}
    for field in HEADER_FIELD_CANDIDATES:
        value = resolve_field(declaration, field, candidates=HEADER_FIELD_CANDIDATES, defaults={})
        header[field] = "" if value is None else value
    return header


def calculate_subtotals(line_items: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Totals across all line items. Skids counts distinct skid values."""
    return {
        "quantity": sum(item["qty"] for item in line_items),
        "boxes": sum(item["box_count"] for item in line_items),
        "weight": sum(item["weight"] for item in line_items),
        "total_cost": sum(item["total_cost"] for item in line_items),
        "skids": len({item["skid"] for item in line_items}),
    }


def build_report(raw_rows, declaration: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    Build the shipment report for one declaration.

    Args:
        raw_rows (list): Rows returned by the visa transaction query
        declaration (dict): Selected declaration, used for the header

    Returns:
        dict: Report with header, line_items, packaging_section and subtotals

    Raises:
        ReportBuildError: If raw_rows is not a list of row mappings
    """
    rows = validate_rows(raw_rows)

    packaging_parts = identify_packaging_materials(rows)
    line_items = build_line_items(rows, packaging_parts)
    packaging_section = build_packaging_summary(rows, packaging_parts)

    report = {
        "header": build_report_header(declaration),
        "line_items": line_items,
        "packaging_section": packaging_section,
        "subtotals": calculate_subtotals(line_items),
    }

    logger.info(
        f"Built report for shipment {report['header']['shipment_number'] or '(none)'}: "
        f"{len(rows)} rows, {len(line_items)} line items, {len(packaging_section) - 1} packaging parts"
    )
    return report
