"""Import staging and reconciliation into the ledger."""

from .reconciler import (
    reconcile_import,
    ImportResult,
    ImportRowError,
)
from .session import (
    stage_import,
    stage_file,
    complete_import,
    job_id_from_filename,
    EmptySourceError,
)

__all__ = [
    "reconcile_import",
    "ImportResult",
    "ImportRowError",
    "stage_import",
    "stage_file",
    "complete_import",
    "job_id_from_filename",
    "EmptySourceError",
]
