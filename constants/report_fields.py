# constants/report_fields.py

# Column names returned by the visa transaction query are not consistent:
# the same concept shows up in upper and lower case and under several
# synonyms. Each logical field lists its candidates in lookup order.
FIELD_CANDIDATES = {
    "part": ("PART", "part"),
    "skid": ("SKIDS", "skids"),
    "sub_part": ("SUB_PART", "sub_part"),
    "client_part": ("MX_PART", "mx_part"),
    "description": ("DESCRIPTION", "description"),
    "packaging_description": ("DESCRIPTION", "DESC_CUMPLE_US", "description"),
    "po": ("LOT_NUM", "LOT", "lot_num", "lot"),
    "uom": ("UM_US", "UM_MX", "um_us", "um_mx"),
    "origin": ("ORIGIN_US", "ORIGIN_MX", "origin_us", "origin_mx"),
    "unit_cost": ("COST", "US_PRICE", "cost", "us_price"),
    "labor": ("LABOR", "labor"),
    "unit_weight": ("US_WEIGHT", "MX_WEIGHT", "WEIGHT_UNIT", "us_weight", "mx_weight", "weight_unit"),
    "qty": ("QTY1", "qty1"),
    "box": ("CTNS", "ctns", "BOX", "box", "CARTON", "carton"),
}

FIELD_DEFAULTS = {
    "uom": "PZ",
    "origin": "MX",
}

# Declaration (shipment) header fields
HEADER_FIELD_CANDIDATES = {
    "client_name": ("COMPANY_NAME", "company_name", "client_name"),
    "shipment_number": ("VISA", "visa", "shipment_number"),
    "export_date": ("EXPORT_AT", "export_at", "export_date"),
    "origin": ("ORIGIN", "origin", "from"),
    "destination": ("DESTINATION", "destination", "to"),
}

# Substrings in a part number that mark it as packaging material
PACKAGING_NAME_MARKERS = [
    "PALLET",
    "BOX",
    "CONTAINER",
    "TOTE",
    "LID",
    "KW16.5X18X24",
]

# SUB_PART value carried by finished product rows
FINISHED_PRODUCT_MARKER = "PRODUCTO TERMINADO"

# First match wins, checked in this order
PACKAGING_DESCRIPTIONS = [
    (("PALLET",), "Standard Wood Pallet"),
    (("TOTE",), "Standard Plastic Tote"),
    (("LID",), "Plastic Lid"),
    (("BOX", "KW16.5X18X24"), "Standard Cardboard Box"),
]
DEFAULT_PACKAGING_DESCRIPTION = "Standard Packaging"

TOTAL_ROW_PART = "Total"

# do not change: column order of the exported shipment report
LINE_ITEM_COLUMNS = [
    ("PART", "part"),
    ("PART CLIENT", "client_part"),
    ("DESCRIPTION", "description"),
    ("PO", "po"),
    ("QTY", "qty"),
    ("UOM", "uom"),
    ("BOX", "box_count"),
    ("ORIGIN", "origin"),
    ("QTY PER SET", "qty_per_set"),
    ("TOTAL WEIGHT (LBS)", "weight"),
    ("UNIT COST", "unit_cost"),
    ("LABOR", "labor"),
    ("TOTAL COST", "total_cost"),
    ("SKID", "skid"),
]

# Line item column -> subtotal key for the closing "Total" row
SUBTOTAL_COLUMNS = {
    "QTY": "quantity",
    "BOX": "boxes",
    "TOTAL WEIGHT (LBS)": "weight",
    "TOTAL COST": "total_cost",
    "SKID": "skids",
}

PACKAGING_COLUMNS = ["Packaging", "Quantity"]
