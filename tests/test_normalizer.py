"""Test suite for row normalization: location keys, quantities and row rejection."""

import pytest

from partkit.header_classifier import ColumnMapping, MappingError
from partkit.normalizer import (
    RowNormalizer,
    combine_locations,
    normalize_code,
    to_number,
)

HEADERS = ["Part Number", "Location", "Cabinet", "Qty", "Description"]


@pytest.fixture
def mapping():
    return ColumnMapping(part=0, location=1, location2=2, quantity=3, description=4)


@pytest.fixture
def normalizer(mapping):
    return RowNormalizer(mapping, HEADERS)


# =============================================================================
# LOCATION KEYS
# =============================================================================

class TestLocationKeys:

    def test_both_locations(self):
        assert combine_locations("Room 1", "Bay 2") == "Room 1 / Bay 2"

    def test_primary_only(self):
        assert combine_locations("Room 1", "") == "Room 1"

    def test_secondary_only(self):
        assert combine_locations("  ", "Bay 2") == "Bay 2"

    def test_neither(self):
        assert combine_locations("", None) == "UNSPECIFIED"

    def test_values_are_trimmed(self):
        assert combine_locations(" A ", " B ") == "A / B"

    def test_row_with_two_location_columns(self, normalizer):
        row = normalizer.normalize_row(["P1", "Room 1", "Bay 2", "4", "Breaker"])
        assert row.location == "Room 1 / Bay 2"


# =============================================================================
# QUANTITIES
# =============================================================================

class TestQuantities:

    def test_mapped_quantity(self, normalizer):
        assert normalizer.normalize_row(["P1", "A", "", "4", ""]).quantity == 4

    def test_blank_quantity_defaults_to_one(self, normalizer):
        assert normalizer.normalize_row(["P1", "A", "", "  ", ""]).quantity == 1

    def test_unmapped_quantity_defaults_to_one(self):
        normalizer = RowNormalizer(ColumnMapping(part=0, location=1), ["Part", "Loc"])
        assert normalizer.normalize_row(["P1", "A"]).quantity == 1

    def test_fractional_quantity(self, normalizer):
        assert normalizer.normalize_row(["P1", "A", "", "2.5", ""]).quantity == 2.5

    def test_integral_float_becomes_int(self, normalizer):
        quantity = normalizer.normalize_row(["P1", "A", "", "3.0", ""]).quantity
        assert quantity == 3
        assert isinstance(quantity, int)

    @pytest.mark.parametrize("raw", ["0", "-3", "abc"])
    def test_invalid_quantity_rejected(self, normalizer, raw):
        assert normalizer.normalize_row(["P1", "A", "", raw, ""]) is None

    def test_to_number(self):
        assert to_number("7") == 7
        assert to_number(" 1.5 ") == 1.5
        assert to_number(4.0) == 4
        assert to_number("") is None
        assert to_number("nan") is None
        assert to_number(True) is None


# =============================================================================
# PART NUMBERS AND DESCRIPTIONS
# =============================================================================

class TestPartNumbers:

    def test_part_number_trimmed(self, normalizer):
        row = normalizer.normalize_row(["  P1 ", "A", "", "1", " Breaker "])
        assert row.part_number == "P1"
        assert row.description == "Breaker"

    def test_blank_part_number_rejected(self, normalizer):
        assert normalizer.normalize_row(["   ", "A", "", "1", ""]) is None

    def test_numeric_part_number_from_spreadsheet(self, normalizer):
        assert normalizer.normalize_row([1234.0, "A", "", 2, ""]).part_number == "1234"

    def test_unmapped_part_falls_back_to_header_guess(self):
        mapping = ColumnMapping(quantity=1)
        normalizer = RowNormalizer(mapping, ["Part Number", "Qty"])
        row = normalizer.normalize_row(["P9", "2"])
        assert row.part_number == "P9"
        assert row.quantity == 2
        assert row.location == "UNSPECIFIED"

    def test_unmapped_description_is_empty(self):
        normalizer = RowNormalizer(ColumnMapping(part=0), ["Part"])
        assert normalizer.normalize_row(["P1"]).description == ""

    def test_short_row_reads_blank_cells(self, normalizer):
        row = normalizer.normalize_row(["P1"])
        assert row.location == "UNSPECIFIED"
        assert row.quantity == 1
        assert row.description == ""


# =============================================================================
# BATCH NORMALIZATION
# =============================================================================

class TestNormalize:

    def test_keeps_order_and_counts_dropped(self, normalizer):
        rows = [
            ["P1", "A", "", "1", ""],
            ["", "A", "", "1", ""],
            ["P2", "B", "", "0", ""],
            ["P3", "C", "", "2", ""],
        ]
        result = normalizer.normalize(rows)
        assert [r.part_number for r in result] == ["P1", "P3"]
        assert [r.row_index for r in result] == [0, 3]
        assert normalizer.dropped == 2

    def test_mapping_outside_headers_rejected(self):
        with pytest.raises(MappingError):
            RowNormalizer(ColumnMapping(part=0, quantity=5), ["Part", "Qty"])


def test_normalize_code():
    assert normalize_code("AB-12 c/7") == "ab12c7"
    assert normalize_code(None) == ""
    assert normalize_code("---") == ""
