import datetime
import openpyxl
from pathlib import Path


def _cell_value(value):
    if value is None:
        return ""
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    return value


class ExcelAdapter:
    def can_handle(self, file_path):
        return Path(file_path).suffix.lower() in [".xlsx", ".xlsm"]

    def read(self, file_path):
        """Read the active sheet as positional rows, skipping blank rows."""
        wb = openpyxl.load_workbook(file_path, data_only=True, read_only=True)
        try:
            ws = wb.active
            rows = []
            for row in ws.iter_rows(values_only=True):
                values = [_cell_value(v) for v in row]
                if not any(str(v).strip() for v in values):
                    continue
                rows.append(values)
        finally:
            wb.close()

        return rows
