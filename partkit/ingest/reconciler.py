"""
Import reconciliation.

Applies a batch of normalized rows to a job in the Ledger Store under one of
two strategies:

- merge: add each row's quantity to the required quantity of its cell
  (or, with replace_qty_on_merge, overwrite it). Assigned quantities are kept.
- replace: clear the job's parts first, then load every row into the empty
  job. Duplicate (part, location) rows overwrite each other; the last wins.

The import is best-effort, not atomic: a row that fails is recorded in
ImportResult.errors and the next row is processed. Rows are applied strictly
in input order; batches only set the progress and audit-log granularity.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, List, Callable, Sequence

from ..ledger.store import LedgerStore
from ..normalizer import NormalizedRow
from ..schema import IMPORT_STRATEGIES

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, int], None]

DEFAULT_BATCH_SIZE = 100
DEFAULT_AUDIT_BATCH_SIZE = 500


@dataclass
class ImportRowError:
    """A row that could not be applied, with the reason (row is None for audit failures)."""
    row: Optional[NormalizedRow]
    message: str


@dataclass
class ImportResult:
    """Summary of one import run."""
    job_id: str
    strategy: str
    total: int = 0
    processed: int = 0
    parts_created: int = 0
    parts_updated: int = 0
    locations_created: int = 0
    locations_updated: int = 0
    deleted: int = 0
    errors: List[ImportRowError] = field(default_factory=list)
    cancelled: bool = False
    import_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.errors and not self.cancelled


def _percent(done: int, total: int) -> int:
    if total <= 0:
        return 100
    return int(done * 100 / total)


def _write_audit(
    store: LedgerStore,
    result: ImportResult,
    rows: Sequence[NormalizedRow],
    source: Optional[str],
    batch_size: int
) -> None:
    try:
        with store.batch():
            result.import_id = store.record_import(result.job_id, result.strategy, source)
            for start in range(0, len(rows), batch_size):
                chunk = rows[start:start + batch_size]
                store.save_import_items(result.import_id, [
                    {
                        "part_number": row.part_number,
                        "location": row.location,
                        "quantity": row.quantity,
                        "description": row.description,
                    }
                    for row in chunk
                ])
    except Exception as e:
        logger.warning(f"Failed to write import audit log for job '{result.job_id}': {e}")
        result.errors.append(ImportRowError(row=None, message=f"Audit log failed: {e}"))


def reconcile_import(
    store: LedgerStore,
    job_id: str,
    rows: Sequence[NormalizedRow],
    strategy: str = "merge",
    replace_qty_on_merge: bool = False,
    progress_callback: Optional[ProgressCallback] = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    should_cancel: Optional[Callable[[], bool]] = None,
    audit: bool = True,
    audit_batch_size: int = DEFAULT_AUDIT_BATCH_SIZE,
    source: Optional[str] = None,
    debug: bool = False
) -> ImportResult:
    """
    Apply normalized rows to a job.

    Args:
        store: Ledger Store
        job_id: Target job (created if missing)
        rows: Normalized rows in input order
        strategy: "merge" or "replace"
        replace_qty_on_merge: Under merge, overwrite required quantities
                              instead of adding to them
        progress_callback: Called as (processed, total, percent) after each batch
        batch_size: Rows per progress batch
        should_cancel: Polled between rows; returning True stops the import
                       and keeps what was already applied
        audit: Write an import audit record with the raw rows
        audit_batch_size: Rows per audit-log write
        source: Source filename stored in the audit record
        debug: Log each row decision

    Returns:
        ImportResult with created/updated counts and per-row errors

    Raises:
        ValueError: If strategy is unknown or batch sizes are not positive
    """
    if strategy not in IMPORT_STRATEGIES:
        raise ValueError(f"Unknown import strategy '{strategy}'. Expected one of {IMPORT_STRATEGIES}")
    if batch_size <= 0 or audit_batch_size <= 0:
        raise ValueError("Batch sizes must be positive")

    rows = list(rows)
    store.ensure_job(job_id)
    result = ImportResult(job_id=job_id, strategy=strategy, total=len(rows))

    # Replace loads into an empty job with overwrite semantics
    overwrite = strategy == "replace" or replace_qty_on_merge
    if strategy == "replace":
        result.deleted = store.replace_job_contents(job_id)
        logger.info(f"Replace import: removed {result.deleted} part(s) from job '{job_id}'")

    for start in range(0, len(rows), batch_size):
        # One client write per progress batch
        with store.batch():
            for row in rows[start:start + batch_size]:
                if should_cancel is not None and should_cancel():
                    result.cancelled = True
                    break

                try:
                    delta = row.quantity
                    if overwrite:
                        delta = row.quantity - store.required_qty(job_id, row.part_number, row.location)

                    if delta == 0:
                        # Overwrite with the same quantity: cell exists and is unchanged
                        result.parts_updated += 1
                        result.locations_updated += 1
                    else:
                        outcome = store.upsert_cell(
                            job_id,
                            row.part_number,
                            row.location,
                            delta,
                            row.description
                        )
                        if outcome.part_created:
                            result.parts_created += 1
                        else:
                            result.parts_updated += 1
                        if outcome.cell_created:
                            result.locations_created += 1
                        else:
                            result.locations_updated += 1

                    if debug:
                        logger.info(
                            f"Row {row.row_index}: {row.part_number} @ {row.location} "
                            f"{'=' if overwrite else '+'}{row.quantity}"
                        )
                except Exception as e:
                    logger.warning(f"Row {row.row_index} ({row.part_number} @ {row.location}) failed: {e}")
                    result.errors.append(ImportRowError(row=row, message=str(e)))

                result.processed += 1

        if result.cancelled:
            break

        if progress_callback is not None:
            progress_callback(result.processed, result.total, _percent(result.processed, result.total))

    if audit and rows:
        _write_audit(store, result, rows[:result.processed], source, audit_batch_size)

    logger.info(
        f"Import into '{job_id}' ({strategy}): {result.processed}/{result.total} rows, "
        f"{result.parts_created} part(s) created, {result.parts_updated} updated, "
        f"{result.locations_created} location(s) created, {result.locations_updated} updated, "
        f"{len(result.errors)} error(s)"
        + (" [cancelled]" if result.cancelled else "")
    )
    return result
