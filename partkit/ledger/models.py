"""
Ledger data model.

A Job holds Parts keyed by part number; each Part holds a required quantity
and an assigned quantity per location key:

    job.parts["P1"].locations["A"] == 5   # required at A
    job.parts["P1"].assigned["A"] == 3    # placed at A so far

Every (part, location) cell satisfies 0 <= assigned <= required, and
required > 0.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

Number = Union[int, float]


@dataclass
class PendingImport:
    """Raw rows waiting for a confirmed column mapping."""
    headers: List[str]
    rows: List[List[Any]]
    has_header: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headers": list(self.headers),
            "rows": [list(r) for r in self.rows],
            "hasHeader": self.has_header,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PendingImport":
        if not isinstance(data, dict):
            raise ValueError("Pending import must be an object")
        headers = data.get("headers")
        rows = data.get("rows")
        if not isinstance(headers, list) or not isinstance(rows, list):
            raise ValueError("Pending import needs 'headers' and 'rows' lists")
        if any(not isinstance(r, list) for r in rows):
            raise ValueError("Pending import rows must be lists")
        return cls(
            headers=[str(h) for h in headers],
            rows=[list(r) for r in rows],
            has_header=bool(data.get("hasHeader", True)),
        )


@dataclass
class LocationCell:
    """Required and assigned quantities of one part at one location."""
    location: str
    required: Number
    assigned: Number = 0

    @property
    def remaining(self) -> Number:
        return max(0, self.required - self.assigned)


@dataclass
class Part:
    part_number: str
    description: str = ""
    locations: Dict[str, Number] = field(default_factory=dict)
    assigned: Dict[str, Number] = field(default_factory=dict)

    def cells(self) -> List[LocationCell]:
        """Cells in insertion order."""
        return [
            LocationCell(location=loc, required=req, assigned=self.assigned.get(loc, 0))
            for loc, req in self.locations.items()
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "locations": dict(self.locations),
            "assigned": dict(self.assigned),
        }

    @classmethod
    def from_dict(cls, part_number: str, data: Dict[str, Any]) -> "Part":
        """Build a Part from its backup form, checking the cell invariant.

        Raises:
            ValueError: If the data is malformed or a cell breaks the invariant
        """
        if not isinstance(data, dict):
            raise ValueError(f"Part '{part_number}' must be an object")
        if not str(part_number).strip():
            raise ValueError("Part number must not be empty")

        locations = data.get("locations") or {}
        assigned = data.get("assigned") or {}
        if not isinstance(locations, dict) or not isinstance(assigned, dict):
            raise ValueError(f"Part '{part_number}' has malformed locations")

        part = cls(part_number=part_number, description=str(data.get("description") or ""))
        for loc, required in locations.items():
            if not _is_number(required) or required <= 0:
                raise ValueError(f"Part '{part_number}' at '{loc}' has invalid required quantity {required!r}")
            value = assigned.get(loc, 0)
            if value is None:
                value = 0
            if not _is_number(value) or value < 0 or value > required:
                raise ValueError(f"Part '{part_number}' at '{loc}' has invalid assigned quantity {value!r}")
            part.locations[loc] = required
            part.assigned[loc] = value

        extra = set(assigned) - set(locations)
        if extra:
            raise ValueError(f"Part '{part_number}' has assignments for unknown locations: {sorted(extra)}")

        return part


@dataclass
class Job:
    id: str
    filename: str
    pending_import: Optional[PendingImport] = None
    parts: Dict[str, Part] = field(default_factory=dict)
    created_at: Optional[str] = None

    @property
    def mapping_pending(self) -> bool:
        """True while raw rows wait for column mapping and nothing has been imported."""
        return self.pending_import is not None and not self.parts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "pendingImport": self.pending_import.to_dict() if self.pending_import else None,
            "parts": {pn: part.to_dict() for pn, part in self.parts.items()},
        }

    @classmethod
    def from_dict(cls, job_id: str, data: Dict[str, Any]) -> "Job":
        """Build a Job from its backup form.

        Accepts the older 'pendingRaw' key for the pending import.

        Raises:
            ValueError: If the data is malformed
        """
        if not isinstance(data, dict):
            raise ValueError(f"Job '{job_id}' must be an object")
        if not str(job_id).strip():
            raise ValueError("Job id must not be empty")

        parts = data.get("parts") or {}
        if not isinstance(parts, dict):
            raise ValueError(f"Job '{job_id}' parts must be an object")

        pending = data.get("pendingImport", data.get("pendingRaw"))
        return cls(
            id=job_id,
            filename=str(data.get("filename") or job_id),
            pending_import=PendingImport.from_dict(pending) if pending else None,
            parts={pn: Part.from_dict(pn, p) for pn, p in parts.items()},
        )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
