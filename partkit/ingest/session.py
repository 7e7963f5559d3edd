"""
Import session: staging raw rows and confirming their column mapping.

An import happens in two steps:

1. stage_import() creates (or reuses) the job named after the source file and
   parks the raw rows on it as a PendingImport. The job is now "mapping
   pending".
2. complete_import() asks a confirmation callback for the column mapping,
   normalizes the pending rows, reconciles them into the ledger and clears
   the pending import. If the callback returns None the pending rows stay,
   so mapping can be retried later.
"""

import logging
import re
from pathlib import Path
from typing import Optional, List, Any, Sequence, Callable

from ..header_classifier import ColumnMapping, suggest_mapping, synthetic_headers
from ..ledger.models import Job, PendingImport
from ..ledger.store import LedgerStore, LedgerError
from ..normalizer import RowNormalizer
from ..parser import TableParser
from ..schema import IMPORT_STRATEGIES
from .reconciler import reconcile_import, ImportResult, ProgressCallback

logger = logging.getLogger(__name__)

# Blocking confirmation: (headers, suggested mapping) -> confirmed mapping or None
ConfirmMapping = Callable[[List[str], ColumnMapping], Optional[ColumnMapping]]


class EmptySourceError(ValueError):
    """Raised when an import source has no rows."""


def job_id_from_filename(filename: str) -> str:
    """Default job id for a file: name without extension, whitespace runs as '_'.

    Examples:
        job_id_from_filename("Job 42 rev B.csv") -> "Job_42_rev_B"
    """
    base = re.sub(r'\.[^/.]+$', '', Path(str(filename)).name)
    return re.sub(r'\s+', '_', base.strip())


def _header_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def stage_import(
    store: LedgerStore,
    rows: Sequence[Sequence[Any]],
    filename: str,
    has_header: bool = True,
    job_id: Optional[str] = None
) -> Job:
    """
    Park raw rows on a job as its pending import.

    Args:
        store: Ledger Store
        rows: Raw rows; the first one is the header row when has_header is set
        filename: Source filename (display name and default job id)
        has_header: Whether the first row holds column labels
        job_id: Job to stage into instead of the one derived from filename

    Returns:
        The job, now mapping pending

    Raises:
        EmptySourceError: If there are no rows (or only a header row)
    """
    rows = [list(r) for r in rows]
    if not rows:
        raise EmptySourceError(f"{filename or 'Source'} has no rows")

    if has_header:
        headers = [_header_text(h) for h in rows[0]]
        data_rows = rows[1:]
    else:
        headers = synthetic_headers(max(len(r) for r in rows))
        data_rows = rows

    if not data_rows:
        raise EmptySourceError(f"{filename or 'Source'} has a header row but no data rows")

    job_id = (job_id or job_id_from_filename(filename)).strip()
    if not job_id:
        raise EmptySourceError(f"Cannot derive a job id from filename '{filename}'")

    store.ensure_job(job_id, filename)
    store.set_pending_import(job_id, PendingImport(headers=headers, rows=data_rows, has_header=has_header))
    logger.info(f"Staged {len(data_rows)} row(s) from '{filename}' on job '{job_id}'")
    return store.get_job(job_id)


def stage_file(
    store: LedgerStore,
    path: str,
    has_header: bool = True,
    job_id: Optional[str] = None,
    parser: Optional[TableParser] = None
) -> Job:
    """Read a CSV/TSV/TXT/Excel file and stage its rows. See stage_import()."""
    parser = parser or TableParser()
    rows = parser.read(path)
    return stage_import(store, rows, Path(path).name, has_header=has_header, job_id=job_id)


def complete_import(
    store: LedgerStore,
    job_id: str,
    confirm: ConfirmMapping,
    strategy: str = "merge",
    replace_qty_on_merge: bool = False,
    progress_callback: Optional[ProgressCallback] = None,
    batch_size: int = 100,
    should_cancel: Optional[Callable[[], bool]] = None,
    audit: bool = True,
    audit_batch_size: int = 500,
    debug: bool = False
) -> Optional[ImportResult]:
    """
    Confirm the mapping of a job's pending import and apply it.

    Args:
        store: Ledger Store
        job_id: Job holding the pending import
        confirm: Called with (headers, suggested mapping); returns the
                 confirmed mapping, or None to cancel. A mapping carrying a
                 job_id renames the job first (skipped if the id is taken).
        strategy: "merge" or "replace"
        replace_qty_on_merge: See reconcile_import()
        progress_callback: See reconcile_import()
        batch_size: See reconcile_import()
        should_cancel: See reconcile_import()
        audit: See reconcile_import()
        audit_batch_size: See reconcile_import()
        debug: Log row decisions

    Returns:
        ImportResult, or None if the mapping was cancelled

    Raises:
        LedgerError: If the job does not exist or has no pending import
        MappingError: If the confirmed mapping refers to missing columns
        ValueError: If strategy is unknown
    """
    if strategy not in IMPORT_STRATEGIES:
        raise ValueError(f"Unknown import strategy '{strategy}'. Expected one of {IMPORT_STRATEGIES}")

    job = store.get_job(job_id)
    if job is None:
        raise LedgerError(f"Job '{job_id}' does not exist")
    if job.pending_import is None:
        raise LedgerError(f"Job '{job_id}' has no pending import to map")

    pending = job.pending_import
    suggested = suggest_mapping(pending.headers, has_header=pending.has_header)
    mapping = confirm(list(pending.headers), suggested)
    if mapping is None:
        logger.info(f"Mapping cancelled for job '{job_id}'; pending import kept")
        return None

    # Validates the mapping before anything changes
    normalizer = RowNormalizer(mapping, pending.headers)

    if mapping.job_id and mapping.job_id.strip() and mapping.job_id.strip() != job_id:
        new_id = mapping.job_id.strip()
        if store.rename_job(job_id, new_id):
            job_id = new_id
        else:
            logger.warning(f"Job id '{new_id}' is already taken; keeping '{job_id}'")

    rows = normalizer.normalize(pending.rows)
    result = reconcile_import(
        store,
        job_id,
        rows,
        strategy=strategy,
        replace_qty_on_merge=replace_qty_on_merge,
        progress_callback=progress_callback,
        batch_size=batch_size,
        should_cancel=should_cancel,
        audit=audit,
        audit_batch_size=audit_batch_size,
        source=job.filename,
        debug=debug
    )
    if not result.cancelled:
        store.clear_pending_import(job_id)
    return result
