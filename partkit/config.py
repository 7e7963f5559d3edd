"""
Runtime configuration from environment variables (and a .env file).

    PARTKIT_DB_URL                 Postgres URL; falls back to SUPABASE_DB_URL,
                                   then to SUPABASE_DB_HOST/NAME/USER/PASSWORD/PORT
    PARTKIT_STORE_PATH             JSON file for the local store (used when no
                                   database is configured)
    PARTKIT_IMPORT_BATCH_SIZE      rows per progress batch (100)
    PARTKIT_AUDIT_BATCH_SIZE       rows per audit-log write (500)
    PARTKIT_DEFAULT_STRATEGY       merge | replace (merge)
    PARTKIT_REPLACE_QTY_ON_MERGE   overwrite quantities on merge (false)
    PARTKIT_DEBUG                  verbose ledger logging (false)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

from .ledger.memory_client import MemoryClient
from .ledger.postgres_client import PostgresClient
from .ledger.store import LedgerStore
from .schema import IMPORT_STRATEGIES

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUE


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        number = int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{value}'")
    if number <= 0:
        raise ValueError(f"{name} must be positive, got {number}")
    return number


def _db_url_from_env() -> Optional[str]:
    url = os.getenv("PARTKIT_DB_URL") or os.getenv("SUPABASE_DB_URL")
    if url:
        return url

    host = os.getenv("SUPABASE_DB_HOST")
    database = os.getenv("SUPABASE_DB_NAME")
    user = os.getenv("SUPABASE_DB_USER")
    password = os.getenv("SUPABASE_DB_PASSWORD")
    if not all([host, database, user, password]):
        return None
    port = os.getenv("SUPABASE_DB_PORT", "5432")
    return f"postgresql://{user}:{password}@{host}:{port}/{database}"


@dataclass
class Settings:
    db_url: Optional[str] = None
    store_path: Optional[str] = None
    import_batch_size: int = 100
    audit_batch_size: int = 500
    default_strategy: str = "merge"
    replace_qty_on_merge: bool = False
    debug: bool = False

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "Settings":
        """
        Load settings from the environment.

        Args:
            env_file: .env file to load first; None searches for one from the
                      current directory upwards. Existing variables win.

        Raises:
            ValueError: If a variable holds an invalid value
        """
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()

        strategy = (os.getenv("PARTKIT_DEFAULT_STRATEGY") or "merge").strip().lower()
        if strategy not in IMPORT_STRATEGIES:
            raise ValueError(
                f"PARTKIT_DEFAULT_STRATEGY must be one of {IMPORT_STRATEGIES}, got '{strategy}'"
            )

        return cls(
            db_url=_db_url_from_env(),
            store_path=os.getenv("PARTKIT_STORE_PATH") or None,
            import_batch_size=_env_int("PARTKIT_IMPORT_BATCH_SIZE", 100),
            audit_batch_size=_env_int("PARTKIT_AUDIT_BATCH_SIZE", 500),
            default_strategy=strategy,
            replace_qty_on_merge=_env_bool("PARTKIT_REPLACE_QTY_ON_MERGE"),
            debug=_env_bool("PARTKIT_DEBUG"),
        )


def open_store(settings: Optional[Settings] = None) -> LedgerStore:
    """
    Build a LedgerStore on the configured client.

    A database URL selects the PostgresClient; otherwise a MemoryClient is
    used, persisted to store_path when set.
    """
    settings = settings or Settings.from_env()
    if settings.db_url:
        logger.info("Using PostgreSQL ledger store")
        db = PostgresClient(db_url=settings.db_url)
    else:
        if settings.store_path:
            logger.info(f"Using local ledger store at {settings.store_path}")
        else:
            logger.info("Using in-memory ledger store")
        db = MemoryClient(settings.store_path)
    return LedgerStore(db, debug=settings.debug)
