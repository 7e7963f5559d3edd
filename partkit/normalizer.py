from dataclasses import dataclass
from typing import List, Any, Optional, Sequence, Union
import logging
import math
import re

from .header_classifier import ColumnMapping, classify_headers
from .schema import UNSPECIFIED_LOCATION, LOCATION_SEPARATOR, UNMAPPED

logger = logging.getLogger(__name__)

Number = Union[int, float]


@dataclass
class NormalizedRow:
    """
    One canonical placement row.

    - part_number: trimmed, never empty
    - location: combined location key, UNSPECIFIED when blank
    - quantity: positive number
    - description: may be empty
    - row_index: position of the row in the source (for error reporting)
    """
    part_number: str
    location: str
    quantity: Number
    description: str
    row_index: int = 0


def normalize_code(code: Any) -> str:
    """Lowercase a code and strip everything but letters and digits.

    Used for part/job lookups from both typed and scanned input.
    """
    if code is None:
        return ""
    return re.sub(r'[^0-9a-z]', '', str(code).lower())


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def to_number(value: Any) -> Optional[Number]:
    """Parse a cell into a finite number.

    Integral values come back as int, everything else as float.

    Returns:
        The number, or None when the value is blank or not numeric
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except (ValueError, TypeError):
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    if number.is_integer():
        return int(number)
    return number


def combine_locations(primary: Any, secondary: Any = None) -> str:
    """Combine primary and secondary location values into one location key.

    Examples:
        combine_locations("Room 1", "Bay 2") -> "Room 1 / Bay 2"
        combine_locations("", "Bay 2") -> "Bay 2"
        combine_locations("", "") -> "UNSPECIFIED"
    """
    first = _cell_text(primary)
    second = _cell_text(secondary)
    if first and second:
        return f"{first}{LOCATION_SEPARATOR}{second}"
    return first or second or UNSPECIFIED_LOCATION


class RowNormalizer:
    """Normalizer turning raw rows into canonical placement rows.

    Applies a confirmed ColumnMapping to positional rows. Rows with no part
    number or a non-positive/unparseable quantity are dropped silently.
    """

    def __init__(self, mapping: ColumnMapping, headers: Sequence[Any]):
        """Initialize the normalizer.

        Args:
            mapping: Confirmed column mapping
            headers: Header labels of the source (real or synthetic)

        Raises:
            MappingError: If the mapping refers to a column outside the headers
        """
        mapping.validate(len(headers))
        self.mapping = mapping
        self.headers = list(headers)
        # Unmapped part column falls back to the classifier's guess
        self._part_index = mapping.part
        if self._part_index == UNMAPPED:
            self._part_index = classify_headers(self.headers).part
        self.dropped = 0

    @staticmethod
    def _get(values: Sequence[Any], index: int) -> Any:
        if index == UNMAPPED or index >= len(values):
            return ""
        return values[index]

    def resolve_quantity(self, values: Sequence[Any]) -> Optional[Number]:
        """Quantity from the mapped column, defaulting to 1 for unmapped or blank cells."""
        if self.mapping.quantity == UNMAPPED:
            return 1
        raw = self._get(values, self.mapping.quantity)
        if _cell_text(raw) == "":
            return 1
        return to_number(raw)

    def normalize_row(self, values: Sequence[Any], row_index: int = 0) -> Optional[NormalizedRow]:
        """Normalize a single raw row.

        Args:
            values: Cell values in column order
            row_index: Position of the row in the source

        Returns:
            NormalizedRow, or None if the row is rejected
        """
        part_number = _cell_text(self._get(values, self._part_index))
        if not part_number:
            return None

        quantity = self.resolve_quantity(values)
        if quantity is None or quantity <= 0:
            return None

        return NormalizedRow(
            part_number=part_number,
            location=combine_locations(
                self._get(values, self.mapping.location),
                self._get(values, self.mapping.location2)
            ),
            quantity=quantity,
            description=_cell_text(self._get(values, self.mapping.description)),
            row_index=row_index
        )

    def normalize(self, raw_rows: Sequence[Sequence[Any]]) -> List[NormalizedRow]:
        """Normalize a list of raw rows, keeping input order.

        Rejected rows are not returned; their count is kept in self.dropped.
        """
        normalized = []
        self.dropped = 0
        for index, values in enumerate(raw_rows):
            row = self.normalize_row(values, row_index=index)
            if row is None:
                self.dropped += 1
                continue
            normalized.append(row)

        if self.dropped:
            logger.debug(f"Dropped {self.dropped} of {len(raw_rows)} rows with no part number or invalid quantity")

        return normalized


__all__ = [
    "NormalizedRow",
    "RowNormalizer",
    "combine_locations",
    "normalize_code",
    "to_number",
]
