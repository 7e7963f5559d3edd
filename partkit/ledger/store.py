"""
Ledger Store: the Job -> Part -> Location aggregate.

Every change to a required or assigned quantity goes through this class; it
is the only place the cell invariant is enforced:

    0 <= assigned <= required,  required > 0

Storage is delegated to a DatabaseClient. Each public method is a sequence
of client round trips (read, then write) with no surrounding transaction.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any, List, Iterable

from .client import DatabaseClient
from .models import Job, Part, PendingImport, LocationCell, Number
from ..normalizer import to_number
from ..schema import UNSPECIFIED_LOCATION

logger = logging.getLogger(__name__)


class LedgerError(ValueError):
    """Raised when an operation would break the ledger invariants."""


@dataclass
class CellUpsert:
    """Outcome of one upsert_cell call."""
    part_created: bool
    cell_created: bool
    required: Number


class LedgerStore:
    """
    Job -> Part -> Location ledger on top of a DatabaseClient.

    The store holds no cached state: every read goes to the client, so two
    stores over the same database see each other's writes.
    """

    def __init__(self, db: DatabaseClient, debug: bool = False):
        """
        Args:
            db: Persistence client
            debug: Log every cell decision at INFO level
        """
        self.db = db
        self.debug = debug

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def _build_job(self, record: Dict[str, Any]) -> Job:
        pending = record.get("pending_import")
        job = Job(
            id=record["id"],
            filename=record.get("filename") or record["id"],
            pending_import=PendingImport.from_dict(pending) if pending else None,
            created_at=record.get("created_at"),
        )
        for part_record in self.db.list_parts_with_locations(job.id):
            part = Part(
                part_number=part_record["part_number"],
                description=part_record.get("description") or "",
            )
            for cell in part_record.get("locations", []):
                part.locations[cell["location"]] = cell["qty_required"]
                part.assigned[cell["location"]] = cell.get("qty_assigned") or 0
            job.parts[part.part_number] = part
        return job

    def get_job(self, job_id: str) -> Optional[Job]:
        """Load a job with all its parts, or None if it does not exist."""
        record = self.db.get_job(job_id)
        if record is None:
            return None
        return self._build_job(record)

    def list_jobs(self) -> List[Job]:
        return [self._build_job(record) for record in self.db.list_jobs()]

    def ensure_job(self, job_id: str, display_name: Optional[str] = None) -> Job:
        """
        Look up a job, creating an empty one if it does not exist.

        Args:
            job_id: Job identifier
            display_name: Filename / display name used when creating

        Returns:
            The existing or newly created job

        Raises:
            LedgerError: If job_id is blank
        """
        job_id = (job_id or "").strip()
        if not job_id:
            raise LedgerError("Job id must not be empty")

        record = self.db.get_job(job_id)
        if record is None:
            self.db.save_job(job_id, display_name or job_id, None)
            logger.info(f"Created job '{job_id}'")
            record = self.db.get_job(job_id)
        return self._build_job(record)

    def rename_job(self, old_id: str, new_id: str) -> bool:
        """
        Rekey a job.

        Returns:
            True if renamed; False (no-op) if old_id is missing, new_id is
            blank, or new_id is already taken
        """
        new_id = (new_id or "").strip()
        if not new_id or new_id == old_id:
            return False
        if self.db.get_job(old_id) is None or self.db.get_job(new_id) is not None:
            return False
        renamed = self.db.rename_job(old_id, new_id)
        if renamed:
            logger.info(f"Renamed job '{old_id}' to '{new_id}'")
        return renamed

    def delete_job(self, job_id: str) -> bool:
        deleted = self.db.delete_job(job_id)
        if deleted:
            logger.info(f"Deleted job '{job_id}'")
        return deleted

    def replace_job_contents(self, job_id: str) -> int:
        """
        Remove every part (and cell) of a job.

        Returns:
            Number of parts removed
        """
        removed = self.db.delete_parts(job_id)
        if self.debug:
            logger.info(f"Cleared {removed} part(s) from job '{job_id}'")
        return removed

    def set_pending_import(self, job_id: str, pending: PendingImport) -> None:
        """
        Store raw rows awaiting column mapping on a job.

        Raises:
            LedgerError: If the job does not exist
        """
        record = self.db.get_job(job_id)
        if record is None:
            raise LedgerError(f"Job '{job_id}' does not exist")
        self.db.save_job(job_id, record["filename"], pending.to_dict())

    def clear_pending_import(self, job_id: str) -> None:
        record = self.db.get_job(job_id)
        if record is None or record.get("pending_import") is None:
            return
        self.db.save_job(job_id, record["filename"], None)

    # ------------------------------------------------------------------
    # Cells
    # ------------------------------------------------------------------

    def get_cell(self, job_id: str, part_number: str, location: str) -> Optional[LocationCell]:
        record = self.db.get_location_cell(job_id, part_number, location)
        if record is None:
            return None
        return LocationCell(
            location=record["location"],
            required=record["qty_required"],
            assigned=record.get("qty_assigned") or 0,
        )

    def required_qty(self, job_id: str, part_number: str, location: str) -> Number:
        """Required quantity of a cell, 0 when the cell does not exist."""
        cell = self.get_cell(job_id, part_number, location)
        return cell.required if cell else 0

    def upsert_cell(
        self,
        job_id: str,
        part_number: str,
        location: str,
        delta_qty: Number,
        description: str = ""
    ) -> CellUpsert:
        """
        Add delta_qty to the required quantity of a cell.

        The part and the cell are created when absent; a new cell starts with
        assigned = 0. The description is written only while the part has
        none. If the new required quantity falls below the assigned one, the
        assigned quantity is lowered to match.

        Args:
            job_id: Job identifier (the job must exist)
            part_number: Part number
            location: Location key (blank means UNSPECIFIED)
            delta_qty: Amount to add to the required quantity; may be negative
            description: Description to use if the part has none yet

        Returns:
            CellUpsert telling whether the part and the cell were created

        Raises:
            LedgerError: If the job is missing, the part number is blank, the
                        delta is not a number, or the resulting required
                        quantity would be <= 0
            DatabaseError: If the client fails
        """
        part_number = (part_number or "").strip()
        location = (location or "").strip() or UNSPECIFIED_LOCATION
        if not part_number:
            raise LedgerError("Part number must not be empty")

        delta = to_number(delta_qty)
        if delta is None:
            raise LedgerError(f"Quantity delta {delta_qty!r} is not a number")

        if self.db.get_job(job_id) is None:
            raise LedgerError(f"Job '{job_id}' does not exist")

        part = self.db.get_part(job_id, part_number)
        cell = self.db.get_location_cell(job_id, part_number, location) if part else None

        current_required = cell["qty_required"] if cell else 0
        current_assigned = (cell.get("qty_assigned") or 0) if cell else 0
        required = to_number(current_required + delta)
        if required is None or required <= 0:
            raise LedgerError(
                f"Required quantity for '{part_number}' at '{location}' would become "
                f"{current_required + delta}"
            )

        description = (description or "").strip()
        part_created = part is None
        if part_created:
            self.db.upsert_part(job_id, part_number, description)
        elif description and not part.get("description"):
            self.db.upsert_part(job_id, part_number, description)

        cell_created = self.db.upsert_location_cell(job_id, part_number, location, required)

        if not cell_created and current_assigned > required:
            self.db.set_assigned(job_id, part_number, location, required)
            logger.debug(
                f"Clamped assigned for '{part_number}' at '{location}' "
                f"from {current_assigned} to {required}"
            )

        if self.debug:
            action = "created" if cell_created else "updated"
            logger.info(
                f"Cell {action}: {job_id}/{part_number}/{location} "
                f"required {current_required} → {required}"
            )

        return CellUpsert(part_created=part_created, cell_created=cell_created, required=required)

    def write_assigned(
        self,
        job_id: str,
        part_number: str,
        location: str,
        value: Number
    ) -> Optional[Number]:
        """
        Set the assigned quantity of a cell, clamped to [0, required].

        Returns:
            The stored value, or None if the cell does not exist

        Raises:
            LedgerError: If value is not a number
        """
        number = to_number(value)
        if number is None:
            raise LedgerError(f"Assigned quantity {value!r} is not a number")

        cell = self.get_cell(job_id, part_number, location)
        if cell is None:
            return None

        clamped = max(0, min(number, cell.required))
        if clamped != cell.assigned:
            self.db.set_assigned(job_id, part_number, location, clamped)
        if self.debug:
            logger.info(f"Assigned {job_id}/{part_number}/{location} = {clamped} (requested {value})")
        return clamped

    # ------------------------------------------------------------------
    # Import audit log
    # ------------------------------------------------------------------

    def record_import(self, job_id: str, strategy: str, source: Optional[str] = None) -> str:
        return self.db.record_import(job_id, strategy, source)

    def save_import_items(self, import_id: str, items: List[Dict[str, Any]]) -> None:
        self.db.save_import_items(import_id, items)

    def batch(self):
        """Context manager grouping the enclosed writes into one client write."""
        return self.db.batch()

    # ------------------------------------------------------------------
    # Whole-ledger snapshot / restore
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Job]:
        """All jobs keyed by id."""
        return {job.id: job for job in self.list_jobs()}

    def restore(self, jobs: Iterable[Job]) -> None:
        """
        Replace the whole ledger with the given jobs.

        Jobs are checked before anything is deleted; a job that breaks the
        cell invariant aborts the restore with the ledger untouched.

        Raises:
            LedgerError: If a job holds an invalid cell or ids collide
        """
        jobs = list(jobs)
        seen = set()
        for job in jobs:
            if job.id in seen:
                raise LedgerError(f"Duplicate job id '{job.id}'")
            seen.add(job.id)
            for part in job.parts.values():
                for cell in part.cells():
                    if cell.required <= 0 or not 0 <= cell.assigned <= cell.required:
                        raise LedgerError(
                            f"Invalid cell {job.id}/{part.part_number}/{cell.location}: "
                            f"required={cell.required}, assigned={cell.assigned}"
                        )

        with self.db.batch():
            for record in self.db.list_jobs():
                self.db.delete_job(record["id"])

            for job in jobs:
                self.db.save_job(
                    job.id,
                    job.filename,
                    job.pending_import.to_dict() if job.pending_import else None
                )
                for part in job.parts.values():
                    self.db.upsert_part(job.id, part.part_number, part.description)
                    for cell in part.cells():
                        self.db.upsert_location_cell(job.id, part.part_number, cell.location, cell.required)
                        if cell.assigned:
                            self.db.set_assigned(job.id, part.part_number, cell.location, cell.assigned)

        logger.info(f"Restored {len(jobs)} job(s)")
