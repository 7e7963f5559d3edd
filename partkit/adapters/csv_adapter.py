import csv
import io
import chardet
from pathlib import Path
from typing import List, Optional

DELIMITERS = [',', '\t', '|', ';']


class CsvAdapter:
    """CSV adapter for reading delimited text exports into positional rows.

    Handles:
    - Multiple encodings (UTF-8, UTF-8-BOM, Windows-1252, ISO-8859-1, etc.)
    - Different delimiters (comma, tab, pipe, semicolon)
    - Empty lines (skipped) and ragged rows (kept as-is)

    Rows come back as lists of strings. Whether the first row is a header is
    decided by the caller.
    """

    def can_handle(self, file_path: str) -> bool:
        """Check if this adapter can handle the given file."""
        return Path(file_path).suffix.lower() in [".csv", ".tsv", ".txt"]

    def _detect_encoding(self, raw_data: bytes) -> str:
        """Detect text encoding using chardet with fallback."""
        # Check for BOM first
        if raw_data.startswith(b'\xef\xbb\xbf'):
            return 'utf-8-sig'

        result = chardet.detect(raw_data[:10000])
        encoding = result.get('encoding') or 'utf-8'

        encoding_lower = encoding.lower()
        if 'utf-8' in encoding_lower or 'utf8' in encoding_lower or encoding_lower == 'ascii':
            return 'utf-8'

        return encoding

    def detect_delimiter(self, text: str) -> str:
        """Detect the delimiter from a sample of the text.

        Tries csv.Sniffer first and falls back to counting candidate
        delimiters on the first non-empty line.
        """
        sample = text[:4096]
        try:
            dialect = csv.Sniffer().sniff(sample, delimiters=''.join(DELIMITERS))
            return dialect.delimiter
        except csv.Error:
            pass

        first_line = next((line for line in sample.splitlines() if line.strip()), '')
        counts = {delimiter: first_line.count(delimiter) for delimiter in DELIMITERS}
        best = max(DELIMITERS, key=lambda d: counts[d])
        return best if counts[best] > 0 else ','

    def parse_text(self, text: str, delimiter: Optional[str] = None) -> List[List[str]]:
        """Parse delimited text into rows.

        Args:
            text: Delimited text
            delimiter: Force a delimiter instead of detecting one

        Returns:
            List of rows, each a list of cell strings. Lines whose cells are
            all blank are skipped.

        Raises:
            ValueError: If the text cannot be parsed
        """
        if not text or not text.strip():
            return []

        if text.startswith('\ufeff'):
            text = text[1:]

        delimiter = delimiter or self.detect_delimiter(text)
        rows = []
        try:
            reader = csv.reader(io.StringIO(text, newline=''), delimiter=delimiter)
            for row in reader:
                if not any(cell.strip() for cell in row):
                    continue
                rows.append(row)
        except csv.Error as e:
            raise ValueError(f"Error parsing delimited text: {e}")

        return rows

    def read(self, file_path: str) -> List[List[str]]:
        """Read a CSV/TSV/TXT file and return its rows.

        Args:
            file_path: Path to the file

        Returns:
            List of rows, each a list of cell strings

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If the file cannot be decoded or parsed
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        raw_data = path.read_bytes()
        if not raw_data:
            return []

        encoding = self._detect_encoding(raw_data)
        try:
            text = raw_data.decode(encoding)
        except (UnicodeDecodeError, LookupError) as e:
            # Try with different encoding as fallback
            for fallback_encoding in ['cp1252', 'latin-1']:
                try:
                    text = raw_data.decode(fallback_encoding)
                    break
                except UnicodeDecodeError:
                    continue
            else:
                raise ValueError(f"Could not decode file {file_path}: {e}")

        delimiter = '\t' if path.suffix.lower() == '.tsv' else None
        return self.parse_text(text, delimiter=delimiter)
