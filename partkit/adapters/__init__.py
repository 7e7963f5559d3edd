"""Readers turning export files into positional rows."""

from .csv_adapter import CsvAdapter
from .excel_adapter import ExcelAdapter

__all__ = ["CsvAdapter", "ExcelAdapter"]
