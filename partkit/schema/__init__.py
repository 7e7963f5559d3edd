"""Ledger schema definitions: column roles, header candidates and report layout."""

from typing import Dict, List

# Column roles in mapping order
COLUMN_ROLES = [
    "part",
    "location",
    "location2",
    "quantity",
    "description"
]

# Priority-ordered header candidates per role. A header matches a candidate
# when it equals it or contains it; earlier candidates win over later ones.
HEADER_CANDIDATES: Dict[str, List[str]] = {
    "part": [
        "part number", "part", "catalog", "cat", "mfg catalog",
        "manufacturer catalog", "catalog number", "cat no", "cat#",
        "component_tag", "component tag", "item"
    ],
    "location": [
        "location", "loc", "panel", "cabinet"
    ],
    "quantity": [
        "qty", "quantity", "count", "total", "sum"
    ],
    "description": [
        "description", "desc", "details", "component description",
        "component_description", "name", "title"
    ]
}

# Searched only once a primary location column is found; never the same column
SECONDARY_LOCATION_CANDIDATES: List[str] = [
    "cabinet", "panel", "room", "area", "section", "bay"
]

# Sentinel for rows with no location
UNSPECIFIED_LOCATION = "UNSPECIFIED"

# Separator between primary and secondary location values
LOCATION_SEPARATOR = " / "

# Column index meaning "not mapped"
UNMAPPED = -1

# Export report header row
REPORT_HEADERS = [
    "Job",
    "Part Number",
    "Location",
    "Required Qty",
    "Assigned Qty",
    "Remaining Qty",
    "Description"
]

# Backup payload format version
BACKUP_VERSION = 1

IMPORT_STRATEGIES = ("merge", "replace")

__all__ = [
    "COLUMN_ROLES",
    "HEADER_CANDIDATES",
    "SECONDARY_LOCATION_CANDIDATES",
    "UNSPECIFIED_LOCATION",
    "LOCATION_SEPARATOR",
    "UNMAPPED",
    "REPORT_HEADERS",
    "BACKUP_VERSION",
    "IMPORT_STRATEGIES"
]
