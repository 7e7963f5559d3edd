"""Header classification for part-placement exports.

Guesses which column holds the part number, location(s), quantity and
description by matching lower-cased header text against priority-ordered
candidate tables.
"""

from dataclasses import dataclass, asdict
from typing import Dict, List, Optional, Sequence, Any

from .schema import HEADER_CANDIDATES, SECONDARY_LOCATION_CANDIDATES, UNMAPPED


class MappingError(ValueError):
    """Raised when a column mapping refers to a column that does not exist."""


@dataclass
class ColumnMapping:
    """
    Column roles for one import, each a column index or UNMAPPED (-1).

    job_id is optional: a confirmed mapping may rename the job it is applied to.
    """
    part: int = UNMAPPED
    location: int = UNMAPPED
    location2: int = UNMAPPED
    quantity: int = UNMAPPED
    description: int = UNMAPPED
    job_id: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def indices(self) -> Dict[str, int]:
        """Return role -> column index, without the job_id."""
        return {
            "part": self.part,
            "location": self.location,
            "location2": self.location2,
            "quantity": self.quantity,
            "description": self.description,
        }

    def validate(self, width: int) -> None:
        """
        Check every mapped index against the number of columns.

        Raises:
            MappingError: If an index is outside [-1, width)
        """
        for role, index in self.indices().items():
            if not isinstance(index, int) or isinstance(index, bool):
                raise MappingError(f"Column index for '{role}' must be an integer, got {index!r}")
            if index < UNMAPPED or index >= width:
                raise MappingError(
                    f"Column index {index} for '{role}' is out of range "
                    f"for {width} column(s)"
                )


def _normalize_header(header: Any) -> str:
    if header is None:
        return ""
    return str(header).lower().strip()


def _find_column(
    headers: List[str],
    candidates: Sequence[str],
    exclude: int = UNMAPPED
) -> int:
    """
    Find the first column matching the highest-priority candidate.

    Candidates are tried in order; for each one the headers are scanned left
    to right and the first header that equals or contains it wins.
    """
    for candidate in candidates:
        for index, header in enumerate(headers):
            if index == exclude:
                continue
            if header == candidate or candidate in header:
                return index
    return UNMAPPED


def classify_headers(headers: Sequence[Any]) -> ColumnMapping:
    """Guess the column mapping for a header row.

    Args:
        headers: Header strings in column order

    Returns:
        ColumnMapping with UNMAPPED for roles that found no column
    """
    lower = [_normalize_header(h) for h in headers]

    location = _find_column(lower, HEADER_CANDIDATES["location"])
    location2 = UNMAPPED
    if location != UNMAPPED:
        location2 = _find_column(lower, SECONDARY_LOCATION_CANDIDATES, exclude=location)

    return ColumnMapping(
        part=_find_column(lower, HEADER_CANDIDATES["part"]),
        location=location,
        location2=location2,
        quantity=_find_column(lower, HEADER_CANDIDATES["quantity"]),
        description=_find_column(lower, HEADER_CANDIDATES["description"]),
    )


def synthetic_headers(width: int) -> List[str]:
    """Build 'Column N' labels for sources without a header row."""
    return [f"Column {i}" for i in range(width)]


def default_mapping_without_headers(width: int) -> ColumnMapping:
    """Suggested mapping for headerless sources: part first, location second."""
    return ColumnMapping(
        part=0 if width > 0 else UNMAPPED,
        location=1 if width > 1 else UNMAPPED,
    )


def suggest_mapping(headers: Sequence[Any], has_header: bool = True) -> ColumnMapping:
    """Suggest a mapping, falling back to positional defaults without a header row."""
    if has_header:
        return classify_headers(headers)
    return default_mapping_without_headers(len(headers))


__all__ = [
    "ColumnMapping",
    "MappingError",
    "classify_headers",
    "synthetic_headers",
    "default_mapping_without_headers",
    "suggest_mapping",
]
