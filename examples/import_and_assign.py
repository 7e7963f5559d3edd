#!/usr/bin/env python3
"""Example: import a placement export, assign parts by scanning, write a report.

Usage:
    python examples/import_and_assign.py parts.csv [report.csv]

The ledger is kept in memory unless PARTKIT_STORE_PATH or a database URL is
set (see partkit.config).
"""

import logging
import sys

from partkit import AssignmentTracker, Settings, complete_import, open_store, stage_file
from partkit.query import filter_parts, job_stats
from partkit.report import write_report


def accept_suggestion(headers, mapping):
    """Confirmation callback that takes the suggested mapping as is."""
    print("Columns:")
    for role, index in mapping.indices().items():
        label = headers[index] if index >= 0 else "-"
        print(f"  {role:<12} {label}")
    return mapping


def show_progress(processed, total, pct):
    print(f"  {processed}/{total} rows ({pct}%)")


def import_and_assign(input_file: str, report_file: str = None):
    settings = Settings.from_env()
    store = open_store(settings)

    job = stage_file(store, input_file)
    print(f"Staged {len(job.pending_import.rows)} rows into job '{job.id}'")

    result = complete_import(
        store,
        job.id,
        accept_suggestion,
        strategy=settings.default_strategy,
        replace_qty_on_merge=settings.replace_qty_on_merge,
        progress_callback=show_progress,
        batch_size=settings.import_batch_size,
        audit_batch_size=settings.audit_batch_size,
    )
    print(
        f"✓ Imported: {result.parts_created} parts created, {result.parts_updated} updated, "
        f"{result.locations_created} locations created, {len(result.errors)} errors"
    )

    # Scan the first part once, as a handheld scanner would
    job = store.get_job(result.job_id)
    tracker = AssignmentTracker(store)
    views = filter_parts(job)
    if views:
        scan = tracker.assign_scanned(job.id, views[0].part_number)
        print(f"Scanned {views[0].part_number}: {scan.status} {scan.location or ''}")

    stats = job_stats(store.get_job(job.id))
    print(f"Progress: {stats.assigned_total}/{stats.required_total} ({stats.pct}%)")

    if report_file:
        path = write_report(store.get_job(job.id), report_file)
        print(f"✓ Report saved to: {path}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    import_and_assign(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else None)
