"""
Assignment tracking: recording how much of a part has been placed where.

Every operation works on (job, part, location) cells through
LedgerStore.write_assigned, which clamps to [0, required]. A missing job,
part or location is a benign miss and returns None.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, List

from .barcode import BarcodeSettings, process_barcode
from .ledger.models import Number
from .ledger.store import LedgerStore
from .query import find_parts_by_code

logger = logging.getLogger(__name__)

SCAN_NOT_FOUND = "not_found"
SCAN_AMBIGUOUS = "ambiguous"
SCAN_ASSIGNED = "assigned"
SCAN_FOUND = "found"


@dataclass
class AssignmentSettings:
    """Scan auto-assignment behaviour."""
    auto_assign_to_single: bool = True
    auto_assign_to_active_location: bool = False


@dataclass
class ScanResult:
    status: str
    part_number: Optional[str] = None
    location: Optional[str] = None
    remaining_locations: List[str] = field(default_factory=list)


class AssignmentTracker:
    """Bounded updates of assigned quantities."""

    def __init__(self, store: LedgerStore):
        self.store = store

    def adjust(
        self,
        job_id: str,
        part_number: str,
        location: str,
        delta: Number
    ) -> Optional[Number]:
        """
        Add delta to the assigned quantity of a cell.

        Returns:
            New assigned quantity, or None if the cell does not exist
        """
        cell = self.store.get_cell(job_id, part_number, location)
        if cell is None:
            return None
        return self.store.write_assigned(job_id, part_number, location, cell.assigned + delta)

    def set(
        self,
        job_id: str,
        part_number: str,
        location: str,
        value: Number
    ) -> Optional[Number]:
        """Set the assigned quantity of a cell. Returns the stored value or None."""
        return self.store.write_assigned(job_id, part_number, location, value)

    def fill_one(self, job_id: str, part_number: str, location: str) -> Optional[Number]:
        """Mark one location of a part as fully assigned."""
        cell = self.store.get_cell(job_id, part_number, location)
        if cell is None:
            return None
        return self.store.write_assigned(job_id, part_number, location, cell.required)

    def fill_all(self, job_id: str, part_number: str) -> Optional[Dict[str, Number]]:
        """
        Mark every location of a part as fully assigned.

        Returns:
            location -> assigned quantity, or None if the job or part is missing
        """
        job = self.store.get_job(job_id)
        if job is None or part_number not in job.parts:
            return None

        filled = {}
        for cell in job.parts[part_number].cells():
            filled[cell.location] = self.store.write_assigned(
                job_id, part_number, cell.location, cell.required
            )
        return filled

    def assign_scanned(
        self,
        job_id: str,
        code: str,
        active_location: Optional[str] = None,
        settings: Optional[AssignmentSettings] = None,
        barcode_settings: Optional[BarcodeSettings] = None
    ) -> ScanResult:
        """
        Look up a scanned code and assign one unit when the target is clear.

        The code is processed with barcode_settings and matched against part
        numbers in normalized form. Among the part's locations (only the
        active one, if given) that still have remaining quantity:

        - exactly one, with auto_assign_to_single: +1 there
        - otherwise, with an active location and auto_assign_to_active_location:
          +1 at the first one
        - otherwise nothing is assigned and the part is reported as found

        Returns:
            ScanResult
        """
        settings = settings or AssignmentSettings()
        processed = process_barcode(code, barcode_settings)

        job = self.store.get_job(job_id)
        if job is None:
            return ScanResult(status=SCAN_NOT_FOUND)

        matches = find_parts_by_code(job, processed)
        if not matches:
            logger.info(f"Scan '{processed}': no matching part in job '{job_id}'")
            return ScanResult(status=SCAN_NOT_FOUND)
        if len(matches) > 1:
            logger.info(f"Scan '{processed}': {len(matches)} parts match")
            return ScanResult(status=SCAN_AMBIGUOUS)

        part = matches[0]
        cells = part.cells()
        if active_location is not None:
            cells = [c for c in cells if c.location == active_location]
        open_locations = [c.location for c in cells if c.required > c.assigned]

        target = None
        if len(open_locations) == 1 and settings.auto_assign_to_single:
            target = open_locations[0]
        elif active_location is not None and open_locations and settings.auto_assign_to_active_location:
            target = open_locations[0]

        if target is None:
            return ScanResult(
                status=SCAN_FOUND,
                part_number=part.part_number,
                remaining_locations=open_locations,
            )

        self.adjust(job_id, part.part_number, target, 1)
        logger.info(f"Scan '{processed}': auto-assigned {part.part_number} at {target}")
        return ScanResult(
            status=SCAN_ASSIGNED,
            part_number=part.part_number,
            location=target,
            remaining_locations=open_locations,
        )
