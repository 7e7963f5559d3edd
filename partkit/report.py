"""
Assignment report export (CSV, Excel) and whole-ledger backup/restore.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Any, Optional, Dict, Union

import openpyxl

from .ledger.models import Job
from .ledger.store import LedgerStore, LedgerError
from .schema import REPORT_HEADERS, BACKUP_VERSION

logger = logging.getLogger(__name__)


class BackupFormatError(ValueError):
    """Raised when a backup payload cannot be restored."""


def report_rows(job: Job) -> List[List[Any]]:
    """
    One row per (part, location) cell, in ledger order.

    Columns follow REPORT_HEADERS. Assigned is capped at required and
    remaining is never negative.
    """
    rows = []
    for part_number, part in job.parts.items():
        for cell in part.cells():
            assigned = min(cell.assigned, cell.required)
            rows.append([
                job.id,
                part_number,
                cell.location,
                cell.required,
                assigned,
                max(0, cell.required - assigned),
                part.description or "",
            ])
    return rows


def _csv_value(value: Any) -> str:
    text = str(value)
    if "," in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def export_report_csv(job: Job) -> str:
    """
    Render the assignment report as CSV text.

    Values containing a comma are quoted with internal quotes doubled;
    everything else is written as-is.
    """
    lines = [REPORT_HEADERS] + report_rows(job)
    return "\n".join(",".join(_csv_value(v) for v in row) for row in lines)


def report_filename(job: Job, extension: str = "csv") -> str:
    return f"{job.id}_assignment_report.{extension}"


def write_report(job: Job, output_path: str, format: Optional[str] = None) -> str:
    """Write the assignment report to a file.

    Args:
        job: Job to report on
        output_path: Path where the file should be saved
        format: 'csv' or 'excel', or None to auto-detect from the extension

    Returns:
        Path to the written file

    Raises:
        ValueError: If the format is not supported
    """
    output_path = Path(output_path)

    if format is None:
        suffix = output_path.suffix.lower()
        if suffix in ['.xlsx', '.xlsm']:
            format = 'excel'
        elif suffix == '.csv':
            format = 'csv'
        else:
            format = 'csv'
            output_path = output_path.with_suffix('.csv')

    format = format.lower()
    if format == 'csv':
        with open(output_path, 'w', newline='', encoding='utf-8') as f:
            f.write(export_report_csv(job))
    elif format == 'excel':
        _write_report_excel(job, output_path)
    else:
        raise ValueError(f"Unsupported report format: {format}. Supported formats: csv, excel")

    logger.info(f"Wrote {format} report for job '{job.id}' to {output_path}")
    return str(output_path)


def _write_report_excel(job: Job, output_path: Path) -> None:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Assignments"

    ws.append(REPORT_HEADERS)
    for row in report_rows(job):
        ws.append(row)

    wb.save(output_path)


# ----------------------------------------------------------------------
# Backup / restore
# ----------------------------------------------------------------------

def build_backup(store: LedgerStore, selected_job_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Snapshot the whole ledger as a backup payload:

        {"version": 1, "exportedAt": ..., "state": {"jobs": {...}, "selectedJobId": ...}}
    """
    jobs = store.snapshot()
    if selected_job_id not in jobs:
        selected_job_id = next(iter(jobs), None)
    return {
        "version": BACKUP_VERSION,
        "exportedAt": datetime.now(timezone.utc).isoformat(),
        "state": {
            "jobs": {job_id: job.to_dict() for job_id, job in jobs.items()},
            "selectedJobId": selected_job_id,
        },
    }


def write_backup(store: LedgerStore, output_path: str, selected_job_id: Optional[str] = None) -> str:
    payload = build_backup(store, selected_job_id)
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    return str(output_path)


def parse_backup(payload: Union[str, bytes, Dict[str, Any]]):
    """
    Validate a backup payload without touching any store.

    Returns:
        (jobs, selected_job_id)

    Raises:
        BackupFormatError: If the payload is not valid JSON, has no
                           state.jobs, or holds a malformed job
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise BackupFormatError(f"Backup is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise BackupFormatError("Invalid backup format")
    state = payload.get("state")
    if not isinstance(state, dict) or not isinstance(state.get("jobs"), dict):
        raise BackupFormatError("Invalid backup format: missing state.jobs")

    jobs = []
    for job_id, data in state["jobs"].items():
        try:
            jobs.append(Job.from_dict(job_id, data))
        except ValueError as e:
            raise BackupFormatError(f"Invalid backup format: {e}") from e

    selected = state.get("selectedJobId")
    if selected is not None and not isinstance(selected, str):
        raise BackupFormatError(
            f"Invalid backup format: selectedJobId must be a string, got {type(selected).__name__}"
        )
    if selected not in state["jobs"]:
        selected = jobs[0].id if jobs else None
    return jobs, selected


def restore_backup(store: LedgerStore, payload: Union[str, bytes, Dict[str, Any]]) -> Optional[str]:
    """
    Replace the whole ledger with the content of a backup.

    The payload is fully validated first; an invalid payload leaves the
    ledger untouched.

    Args:
        store: Ledger Store to restore into
        payload: Backup as JSON text or an already-decoded dictionary

    Returns:
        The selected job id from the backup (or the first job, or None)

    Raises:
        BackupFormatError: If the payload is invalid
    """
    jobs, selected = parse_backup(payload)
    try:
        store.restore(jobs)
    except LedgerError as e:
        raise BackupFormatError(f"Invalid backup format: {e}") from e
    return selected


def read_backup(store: LedgerStore, input_path: str) -> Optional[str]:
    """Restore from a backup file. See restore_backup()."""
    with open(input_path, 'r', encoding='utf-8') as f:
        text = f.read()
    return restore_backup(store, text)
