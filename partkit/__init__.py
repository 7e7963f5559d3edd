from .header_classifier import (
    ColumnMapping,
    MappingError,
    classify_headers,
    suggest_mapping,
)
from .normalizer import RowNormalizer, NormalizedRow, normalize_code, combine_locations
from .parser import TableParser
from .ledger import (
    LedgerStore,
    LedgerError,
    DatabaseClient,
    DatabaseError,
    MemoryClient,
    PostgresClient,
    Job,
    Part,
)
from .ingest import (
    reconcile_import,
    ImportResult,
    stage_import,
    stage_file,
    complete_import,
    EmptySourceError,
)
from .assignment import AssignmentTracker, AssignmentSettings, ScanResult
from .query import job_stats, filter_parts, part_totals, unique_locations, find_parts_by_code
from .barcode import BarcodeSettings, process_barcode
from .report import (
    export_report_csv,
    write_report,
    build_backup,
    restore_backup,
    BackupFormatError,
)
from .config import Settings, open_store

__all__ = [
    "ColumnMapping",
    "MappingError",
    "classify_headers",
    "suggest_mapping",
    "RowNormalizer",
    "NormalizedRow",
    "normalize_code",
    "combine_locations",
    "TableParser",
    "LedgerStore",
    "LedgerError",
    "DatabaseClient",
    "DatabaseError",
    "MemoryClient",
    "PostgresClient",
    "Job",
    "Part",
    "reconcile_import",
    "ImportResult",
    "stage_import",
    "stage_file",
    "complete_import",
    "EmptySourceError",
    "AssignmentTracker",
    "AssignmentSettings",
    "ScanResult",
    "job_stats",
    "filter_parts",
    "part_totals",
    "unique_locations",
    "find_parts_by_code",
    "BarcodeSettings",
    "process_barcode",
    "export_report_csv",
    "write_report",
    "build_backup",
    "restore_backup",
    "BackupFormatError",
    "Settings",
    "open_store",
]
