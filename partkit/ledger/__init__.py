"""Job -> Part -> Location assignment ledger and its storage clients."""

from .client import DatabaseClient, DatabaseError
from .memory_client import MemoryClient
from .models import Job, Part, LocationCell, PendingImport
from .postgres_client import PostgresClient
from .store import LedgerStore, LedgerError, CellUpsert

__all__ = [
    "DatabaseClient",
    "DatabaseError",
    "MemoryClient",
    "PostgresClient",
    "Job",
    "Part",
    "LocationCell",
    "PendingImport",
    "LedgerStore",
    "LedgerError",
    "CellUpsert",
]
