from .adapters import CsvAdapter, ExcelAdapter
from typing import List, Any, Optional
from pathlib import Path


class TableParser:
    """Reads placement exports into positional rows through registered adapters."""

    def __init__(self, register_defaults: bool = True):
        """Initialize the parser.

        Args:
            register_defaults: Register the CSV/TXT and Excel adapters (default: True)
        """
        self.adapters = []
        self.text_adapter = CsvAdapter()
        if register_defaults:
            self.register_adapter(self.text_adapter)
            self.register_adapter(ExcelAdapter())

    def register_adapter(self, adapter):
        """Register a file adapter for parsing.

        Args:
            adapter: Adapter instance with can_handle() and read() methods
        """
        self.adapters.append(adapter)

    def find_adapter(self, file_path: str):
        for a in self.adapters:
            if a.can_handle(file_path):
                return a
        return None

    def read(self, file_path: str) -> List[List[Any]]:
        """Read a file into rows.

        Args:
            file_path: Path to a CSV/TSV/TXT or Excel file

        Returns:
            List of rows, each a list of cell values; the first row may be a header

        Raises:
            ValueError: If no adapter is found for the file
        """
        adapter = self.find_adapter(file_path)
        if adapter is None:
            raise ValueError(f"No adapter found for {Path(file_path).name}")
        return adapter.read(file_path)

    def parse_text(self, text: str, delimiter: Optional[str] = None) -> List[List[str]]:
        """Parse pasted delimited text into rows."""
        return self.text_adapter.parse_text(text, delimiter=delimiter)
