"""
Read-only views over a job: completion statistics, filtering and lookups.

Nothing here mutates the ledger; every function takes an already-loaded Job.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional

from .ledger.models import Job, Part, LocationCell, Number
from .normalizer import normalize_code


@dataclass
class JobStats:
    required_total: Number = 0
    assigned_total: Number = 0
    cell_count: int = 0
    pct: int = 0


@dataclass
class PartTotals:
    required: Number = 0
    assigned: Number = 0
    remaining: Number = 0
    pct: int = 0


@dataclass
class PartView:
    """A part as shown in a filtered listing, with totals scoped to the filter."""
    part_number: str
    description: str
    totals: PartTotals
    cells: List[LocationCell] = field(default_factory=list)


def percent(assigned: Number, required: Number) -> int:
    """Completion percentage rounded half-up, 0 when nothing is required."""
    if not required:
        return 0
    return int(math.floor(100 * assigned / required + 0.5))


def job_stats(job: Job) -> JobStats:
    """
    Totals across every cell of a job.

    Assigned quantities are capped at the required quantity of their cell.
    """
    stats = JobStats()
    for part in job.parts.values():
        for cell in part.cells():
            stats.required_total += cell.required
            stats.assigned_total += min(cell.assigned, cell.required)
            stats.cell_count += 1
    stats.pct = percent(stats.assigned_total, stats.required_total)
    return stats


def part_totals(part: Part, location: Optional[str] = None) -> PartTotals:
    """Totals of one part, optionally restricted to a single location."""
    totals = PartTotals()
    for cell in part.cells():
        if location is not None and cell.location != location:
            continue
        totals.required += cell.required
        totals.assigned += min(cell.assigned, cell.required)
        totals.remaining += cell.remaining
    totals.pct = percent(totals.assigned, totals.required)
    return totals


def _matches_text(part: Part, query: str) -> bool:
    lowered = query.lower()
    if lowered in part.part_number.lower():
        return True
    code = normalize_code(query)
    if code and code in normalize_code(part.part_number):
        return True
    return bool(part.description) and lowered in part.description.lower()


def filter_parts(
    job: Job,
    location_filter: Optional[str] = None,
    text_query: Optional[str] = None,
    unassigned_only: bool = False
) -> List[PartView]:
    """
    Filtered listing of a job's parts, ordered by part number.

    Args:
        job: Job to list
        location_filter: Keep only parts with a cell at this location; totals
                         and cells are then scoped to that location
        text_query: Case-insensitive substring of the part number (also
                    compared in normalized code form) or the description
        unassigned_only: Keep only parts with remaining quantity. Ignored
                         while a location filter is active.

    Returns:
        List of PartView
    """
    query = (text_query or "").strip()
    views = []
    for part_number in sorted(job.parts):
        part = job.parts[part_number]

        if query and not _matches_text(part, query):
            continue

        cells = part.cells()
        if location_filter is not None:
            cells = [c for c in cells if c.location == location_filter]
            if not cells:
                continue

        totals = part_totals(part, location_filter)

        # A location filter takes precedence over unassigned_only
        if unassigned_only and location_filter is None and totals.remaining <= 0:
            continue

        views.append(PartView(
            part_number=part_number,
            description=part.description,
            totals=totals,
            cells=sorted(cells, key=lambda c: c.location),
        ))
    return views


def unique_locations(job: Job) -> List[str]:
    """Sorted distinct location keys used in a job."""
    locations = set()
    for part in job.parts.values():
        locations.update(part.locations)
    return sorted(locations)


def find_parts_by_code(job: Job, code: str) -> List[Part]:
    """Parts whose normalized part number equals the normalized code."""
    target = normalize_code(code)
    if not target:
        return []
    return [
        part for part in job.parts.values()
        if normalize_code(part.part_number) == target
    ]


__all__ = [
    "JobStats",
    "PartTotals",
    "PartView",
    "percent",
    "job_stats",
    "part_totals",
    "filter_parts",
    "unique_locations",
    "find_parts_by_code",
    "normalize_code",
]
