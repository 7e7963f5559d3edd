"""Tests for environment-driven settings and store construction."""

import pytest

from partkit.config import Settings, open_store
from partkit.ledger import MemoryClient, PostgresClient

ENV_VARS = [
    "PARTKIT_DB_URL",
    "SUPABASE_DB_URL",
    "SUPABASE_DB_HOST",
    "SUPABASE_DB_NAME",
    "SUPABASE_DB_USER",
    "SUPABASE_DB_PASSWORD",
    "SUPABASE_DB_PORT",
    "PARTKIT_STORE_PATH",
    "PARTKIT_IMPORT_BATCH_SIZE",
    "PARTKIT_AUDIT_BATCH_SIZE",
    "PARTKIT_DEFAULT_STRATEGY",
    "PARTKIT_REPLACE_QTY_ON_MERGE",
    "PARTKIT_DEBUG",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    # setenv first so values loaded from a .env file are undone at teardown
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    # Keep load_dotenv() from picking up a developer's .env
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def test_defaults(clean_env, tmp_path):
    settings = Settings.from_env(tmp_path / "missing.env")
    assert settings.db_url is None
    assert settings.store_path is None
    assert settings.import_batch_size == 100
    assert settings.audit_batch_size == 500
    assert settings.default_strategy == "merge"
    assert settings.replace_qty_on_merge is False


def test_values_from_env(clean_env, tmp_path):
    clean_env.setenv("PARTKIT_IMPORT_BATCH_SIZE", "25")
    clean_env.setenv("PARTKIT_DEFAULT_STRATEGY", "Replace")
    clean_env.setenv("PARTKIT_REPLACE_QTY_ON_MERGE", "yes")
    clean_env.setenv("PARTKIT_STORE_PATH", str(tmp_path / "ledger.json"))
    settings = Settings.from_env(tmp_path / "missing.env")
    assert settings.import_batch_size == 25
    assert settings.default_strategy == "replace"
    assert settings.replace_qty_on_merge is True
    assert settings.store_path == str(tmp_path / "ledger.json")


def test_dotenv_file(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("SUPABASE_DB_URL=postgresql://u:p@h:5432/db\nPARTKIT_AUDIT_BATCH_SIZE=50\n", encoding="utf-8")
    settings = Settings.from_env(env_file)
    assert settings.db_url == "postgresql://u:p@h:5432/db"
    assert settings.audit_batch_size == 50


def test_db_url_from_parts(clean_env, tmp_path):
    clean_env.setenv("SUPABASE_DB_HOST", "h")
    clean_env.setenv("SUPABASE_DB_NAME", "db")
    clean_env.setenv("SUPABASE_DB_USER", "u")
    clean_env.setenv("SUPABASE_DB_PASSWORD", "p")
    assert Settings.from_env(tmp_path / "missing.env").db_url == "postgresql://u:p@h:5432/db"


@pytest.mark.parametrize("name,value", [
    ("PARTKIT_DEFAULT_STRATEGY", "append"),
    ("PARTKIT_IMPORT_BATCH_SIZE", "lots"),
    ("PARTKIT_AUDIT_BATCH_SIZE", "0"),
])
def test_invalid_values(clean_env, tmp_path, name, value):
    clean_env.setenv(name, value)
    with pytest.raises(ValueError):
        Settings.from_env(tmp_path / "missing.env")


def test_open_store_local(tmp_path):
    store = open_store(Settings(store_path=str(tmp_path / "ledger.json")))
    assert isinstance(store.db, MemoryClient)
    store.ensure_job("J")
    assert (tmp_path / "ledger.json").exists()


def test_open_store_postgres():
    store = open_store(Settings(db_url="postgresql://u:p@h:5432/db", debug=True))
    assert isinstance(store.db, PostgresClient)
    assert store.debug is True
