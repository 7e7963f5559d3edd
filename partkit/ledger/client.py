"""
Persistence substrate contract for the ledger.

The LedgerStore never touches storage directly; it goes through a
DatabaseClient. Two implementations ship with partkit:

- MemoryClient: in-process key-value store, optionally mirrored to a JSON file
- PostgresClient: PostgreSQL / Supabase tables via psycopg2

Records cross this boundary as plain dictionaries:

    job:   {"id", "filename", "pending_import", "created_at"}
    part:  {"part_number", "description"}
    cell:  {"location", "qty_required", "qty_assigned"}

Clients store what they are given. Quantities are not validated here:
the cell invariant (0 <= assigned <= required) belongs to the LedgerStore.

NOTE: there is no cross-client locking. Two writers updating the same cell
race and the last write wins.
"""

from contextlib import contextmanager
from typing import Optional, Dict, Any, List


class DatabaseError(Exception):
    """Raised when the persistence substrate fails (I/O, connection, SQL)."""


class DatabaseClient:
    """
    Abstract persistence client.

    Upsert methods return True when the record was created and False when an
    existing record was updated; the import reconciler relies on this for its
    result counts.
    """

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def get_job(self, job_id: str) -> Optional[Dict[str, Any]]:
        """
        Get a job record.

        Args:
            job_id: Job identifier

        Returns:
            Job record, or None if no such job exists
        """
        raise NotImplementedError

    def list_jobs(self) -> List[Dict[str, Any]]:
        """
        List all job records.

        Returns:
            Job records, oldest first
        """
        raise NotImplementedError

    def save_job(
        self,
        job_id: str,
        filename: str,
        pending_import: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Create or update a job record.

        Args:
            job_id: Job identifier
            filename: Display name / source filename
            pending_import: Raw rows awaiting mapping, or None

        Returns:
            True if the job was created
        """
        raise NotImplementedError

    def delete_job(self, job_id: str) -> bool:
        """
        Delete a job with all its parts and cells.

        Returns:
            True if a job was deleted
        """
        raise NotImplementedError

    def rename_job(self, old_id: str, new_id: str) -> bool:
        """
        Rekey a job, keeping its parts.

        Returns:
            True if renamed; False if old_id is missing or new_id is taken
        """
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Parts
    # ------------------------------------------------------------------

    def get_part(self, job_id: str, part_number: str) -> Optional[Dict[str, Any]]:
        """
        Get a part record.

        Returns:
            Part record, or None if the part does not exist in the job
        """
        raise NotImplementedError

    def list_parts_with_locations(self, job_id: str) -> List[Dict[str, Any]]:
        """
        List all parts of a job with their location cells.

        Returns:
            Part records, each with a "locations" list of cell records
        """
        raise NotImplementedError

    def upsert_part(self, job_id: str, part_number: str, description: str = "") -> bool:
        """
        Create a part or overwrite its description.

        Returns:
            True if the part was created
        """
        raise NotImplementedError

    def delete_parts(self, job_id: str) -> int:
        """
        Delete every part (and cell) of a job.

        Returns:
            Number of parts deleted
        """
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Location cells
    # ------------------------------------------------------------------

    def get_location_cell(
        self,
        job_id: str,
        part_number: str,
        location: str
    ) -> Optional[Dict[str, Any]]:
        """
        Get one location cell.

        Returns:
            Cell record, or None if the part has no cell at that location
        """
        raise NotImplementedError

    def upsert_location_cell(
        self,
        job_id: str,
        part_number: str,
        location: str,
        qty_required: Any
    ) -> bool:
        """
        Create a cell with qty_assigned = 0, or overwrite qty_required of an
        existing cell leaving qty_assigned untouched.

        Returns:
            True if the cell was created
        """
        raise NotImplementedError

    def set_assigned(
        self,
        job_id: str,
        part_number: str,
        location: str,
        qty_assigned: Any
    ) -> bool:
        """
        Overwrite qty_assigned of an existing cell.

        Returns:
            True if a cell was updated
        """
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Import audit log
    # ------------------------------------------------------------------

    def record_import(self, job_id: str, strategy: str, source: Optional[str] = None) -> str:
        """
        Create an import audit record.

        Returns:
            Import identifier
        """
        raise NotImplementedError

    def save_import_items(self, import_id: str, items: List[Dict[str, Any]]) -> None:
        """
        Append raw import items to an audit record.

        Args:
            import_id: Identifier returned by record_import
            items: Dictionaries with part_number, location, quantity, description
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release any held resources."""

    @contextmanager
    def batch(self):
        """
        Group several mutations into one write.

        Clients that persist after every call may defer until the block
        exits. The default writes through immediately.
        """
        yield self
