"""
In-process key-value client.

Keeps the whole ledger in one dictionary:

    {
      "jobs": {
        "<job id>": {
          "id": ..., "filename": ..., "pending_import": {...} | null,
          "created_at": ...,
          "parts": {
            "<part number>": {
              "description": "",
              "locations": {"<location>": qty_required},
              "assigned":  {"<location>": qty_assigned}
            }
          }
        }
      },
      "imports": {"<import id>": {...}}
    }

When a path is given, "jobs" is saved to that file and the import audit log
to a sibling "<stem>.imports.json", so audit records never bloat ledger
writes. Only the most recent max_imports audit records are kept.

Every mutation saves the sections it touched. Inside a batch() block saves
are deferred and each touched file is written once when the outermost block
exits, also when it exits with an exception. All operations are synchronous;
there is no interleaving.
"""

import copy
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, List, Union
from uuid import uuid4

from .client import DatabaseClient, DatabaseError

logger = logging.getLogger(__name__)

DEFAULT_MAX_IMPORTS = 50

JOBS = "jobs"
IMPORTS = "imports"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class MemoryClient(DatabaseClient):
    """DatabaseClient over a dictionary, optionally persisted to JSON files."""

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        max_imports: int = DEFAULT_MAX_IMPORTS
    ):
        """
        Initialize the client.

        Args:
            path: JSON file to load jobs from and save them to. None keeps
                  state in memory only.
            max_imports: Number of import audit records to keep; older ones
                         are dropped when a new import is recorded

        Raises:
            DatabaseError: If a file exists but cannot be read
            ValueError: If max_imports is not positive
        """
        if max_imports <= 0:
            raise ValueError(f"max_imports must be positive, got {max_imports}")
        self.path = Path(path) if path else None
        self.imports_path = (
            self.path.with_name(f"{self.path.stem}.imports.json") if self.path else None
        )
        self.max_imports = max_imports
        self._state: Dict[str, Any] = {JOBS: {}, IMPORTS: {}}
        self._dirty = set()
        self._batch_depth = 0
        if self.path:
            self._load()

    def _section_path(self, section: str) -> Path:
        return self.path if section == JOBS else self.imports_path

    def _load(self) -> None:
        for section in (JOBS, IMPORTS):
            path = self._section_path(section)
            if not path.exists():
                continue
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                raise DatabaseError(f"Failed to load ledger from {path}: {e}") from e
            self._state[section] = data.get(section) or {}
        logger.debug(f"Loaded {len(self._state[JOBS])} job(s) from {self.path}")

    def _write_file(self, section: str) -> None:
        path = self._section_path(section)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump({section: self._state[section]}, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError as e:
            raise DatabaseError(f"Failed to save ledger to {path}: {e}") from e

    def _flush(self) -> None:
        dirty, self._dirty = self._dirty, set()
        for section in sorted(dirty):
            self._write_file(section)

    def _save(self, *sections: str) -> None:
        if not self.path:
            return
        self._dirty.update(sections or (JOBS,))
        if self._batch_depth == 0:
            self._flush()

    @contextmanager
    def batch(self):
        """Defer saves until the outermost batch exits."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._dirty:
                self._flush()

    def _job(self, job_id: str) -> Optional[Dict[str, Any]]:
        return self._state["jobs"].get(job_id)

    def _part(self, job_id: str, part_number: str) -> Optional[Dict[str, Any]]:
        job = self._job(job_id)
        if job is None:
            return None
        return job["parts"].get(part_number)

    @staticmethod
    def _job_record(job: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": job["id"],
            "filename": job["filename"],
            "pending_import": copy.deepcopy(job.get("pending_import")),
            "created_at": job.get("created_at"),
        }

    # Jobs

    def get_job(self, job_id: str) -> Optional[Dict[str, Any]]:
        job = self._job(job_id)
        return self._job_record(job) if job else None

    def list_jobs(self) -> List[Dict[str, Any]]:
        return [self._job_record(job) for job in self._state["jobs"].values()]

    def save_job(
        self,
        job_id: str,
        filename: str,
        pending_import: Optional[Dict[str, Any]] = None
    ) -> bool:
        job = self._job(job_id)
        created = job is None
        if created:
            job = {"id": job_id, "created_at": _now(), "parts": {}}
            self._state["jobs"][job_id] = job
        job["filename"] = filename
        job["pending_import"] = copy.deepcopy(pending_import)
        self._save()
        return created

    def delete_job(self, job_id: str) -> bool:
        if self._state["jobs"].pop(job_id, None) is None:
            return False
        self._state["imports"] = {
            import_id: record for import_id, record in self._state["imports"].items()
            if record["job_id"] != job_id
        }
        self._save(JOBS, IMPORTS)
        return True

    def rename_job(self, old_id: str, new_id: str) -> bool:
        jobs = self._state["jobs"]
        if old_id not in jobs or new_id in jobs:
            return False
        job = jobs.pop(old_id)
        job["id"] = new_id
        jobs[new_id] = job
        for record in self._state["imports"].values():
            if record["job_id"] == old_id:
                record["job_id"] = new_id
        self._save(JOBS, IMPORTS)
        return True

    # Parts

    def get_part(self, job_id: str, part_number: str) -> Optional[Dict[str, Any]]:
        part = self._part(job_id, part_number)
        if part is None:
            return None
        return {"part_number": part_number, "description": part["description"]}

    def list_parts_with_locations(self, job_id: str) -> List[Dict[str, Any]]:
        job = self._job(job_id)
        if job is None:
            return []
        return [
            {
                "part_number": part_number,
                "description": part["description"],
                "locations": [
                    {
                        "location": loc,
                        "qty_required": required,
                        "qty_assigned": part["assigned"].get(loc, 0),
                    }
                    for loc, required in part["locations"].items()
                ],
            }
            for part_number, part in job["parts"].items()
        ]

    def upsert_part(self, job_id: str, part_number: str, description: str = "") -> bool:
        job = self._job(job_id)
        if job is None:
            raise DatabaseError(f"Job '{job_id}' does not exist")
        part = job["parts"].get(part_number)
        created = part is None
        if created:
            part = {"description": "", "locations": {}, "assigned": {}}
            job["parts"][part_number] = part
        part["description"] = description or ""
        self._save()
        return created

    def delete_parts(self, job_id: str) -> int:
        job = self._job(job_id)
        if job is None:
            return 0
        count = len(job["parts"])
        job["parts"] = {}
        self._save()
        return count

    # Location cells

    def get_location_cell(
        self,
        job_id: str,
        part_number: str,
        location: str
    ) -> Optional[Dict[str, Any]]:
        part = self._part(job_id, part_number)
        if part is None or location not in part["locations"]:
            return None
        return {
            "location": location,
            "qty_required": part["locations"][location],
            "qty_assigned": part["assigned"].get(location, 0),
        }

    def upsert_location_cell(
        self,
        job_id: str,
        part_number: str,
        location: str,
        qty_required: Any
    ) -> bool:
        part = self._part(job_id, part_number)
        if part is None:
            raise DatabaseError(f"Part '{part_number}' does not exist in job '{job_id}'")
        created = location not in part["locations"]
        part["locations"][location] = qty_required
        if created:
            part["assigned"][location] = 0
        self._save()
        return created

    def set_assigned(
        self,
        job_id: str,
        part_number: str,
        location: str,
        qty_assigned: Any
    ) -> bool:
        part = self._part(job_id, part_number)
        if part is None or location not in part["locations"]:
            return False
        part["assigned"][location] = qty_assigned
        self._save()
        return True

    # Import audit log

    def record_import(self, job_id: str, strategy: str, source: Optional[str] = None) -> str:
        import_id = str(uuid4())
        imports = self._state["imports"]
        imports[import_id] = {
            "job_id": job_id,
            "strategy": strategy,
            "source": source,
            "created_at": _now(),
            "items": [],
        }
        # Oldest first: dicts keep insertion order through JSON round trips
        while len(imports) > self.max_imports:
            dropped = next(iter(imports))
            del imports[dropped]
            logger.debug(f"Dropped import audit record {dropped}")
        self._save(IMPORTS)
        return import_id

    def save_import_items(self, import_id: str, items: List[Dict[str, Any]]) -> None:
        record = self._state["imports"].get(import_id)
        if record is None:
            raise DatabaseError(f"Import '{import_id}' does not exist")
        record["items"].extend(copy.deepcopy(items))
        self._save(IMPORTS)

    def get_import(self, import_id: str) -> Optional[Dict[str, Any]]:
        """Return a copy of an import audit record."""
        record = self._state["imports"].get(import_id)
        return copy.deepcopy(record) if record else None
