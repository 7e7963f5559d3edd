"""
Unit tests for the Ledger Store.

These tests verify that:
1. Jobs are created idempotently and can be renamed/deleted
2. upsert_cell adds to required quantities and never resets assigned
3. The cell invariant 0 <= assigned <= required holds after every operation
4. The local JSON-backed client survives a reload and writes once per batch
"""

import pytest

from partkit.ledger import LedgerStore, LedgerError, MemoryClient, PendingImport
from partkit.ingest.reconciler import reconcile_import
from partkit.ledger.client import DatabaseError

from conftest import make_row


def assert_invariant(store):
    for job in store.list_jobs():
        for part in job.parts.values():
            for cell in part.cells():
                assert cell.required > 0
                assert 0 <= cell.assigned <= cell.required


# =============================================================================
# JOBS
# =============================================================================

class TestJobs:

    def test_ensure_job_creates(self, store):
        job = store.ensure_job("JOB1", "JOB1.csv")
        assert job.id == "JOB1"
        assert job.filename == "JOB1.csv"
        assert job.parts == {}
        assert job.pending_import is None

    def test_ensure_job_is_idempotent(self, store):
        store.ensure_job("JOB1", "first.csv")
        store.upsert_cell("JOB1", "P1", "A", 2)
        job = store.ensure_job("JOB1", "second.csv")
        assert job.filename == "first.csv"
        assert "P1" in job.parts

    def test_ensure_job_blank_id(self, store):
        with pytest.raises(LedgerError):
            store.ensure_job("  ")

    def test_get_missing_job(self, store):
        assert store.get_job("nope") is None

    def test_list_jobs(self, store):
        store.ensure_job("A")
        store.ensure_job("B")
        assert [j.id for j in store.list_jobs()] == ["A", "B"]

    def test_rename_job(self, store, job):
        store.upsert_cell("JOB1", "P1", "A", 2)
        assert store.rename_job("JOB1", "JOB2") is True
        assert store.get_job("JOB1") is None
        renamed = store.get_job("JOB2")
        assert renamed.parts["P1"].locations == {"A": 2}

    def test_rename_to_existing_is_noop(self, store, job):
        store.ensure_job("JOB2")
        assert store.rename_job("JOB1", "JOB2") is False
        assert store.get_job("JOB1") is not None

    def test_rename_missing_job(self, store):
        assert store.rename_job("nope", "JOB2") is False

    def test_delete_job(self, store, job):
        store.upsert_cell("JOB1", "P1", "A", 2)
        assert store.delete_job("JOB1") is True
        assert store.get_job("JOB1") is None
        assert store.delete_job("JOB1") is False

    def test_pending_import(self, store, job):
        pending = PendingImport(headers=["Part", "Qty"], rows=[["P1", "2"]])
        store.set_pending_import("JOB1", pending)
        loaded = store.get_job("JOB1")
        assert loaded.pending_import == pending
        assert loaded.mapping_pending

        store.clear_pending_import("JOB1")
        assert store.get_job("JOB1").pending_import is None

    def test_pending_import_on_missing_job(self, store):
        with pytest.raises(LedgerError):
            store.set_pending_import("nope", PendingImport(headers=[], rows=[]))


# =============================================================================
# CELLS
# =============================================================================

class TestUpsertCell:

    def test_creates_part_and_cell(self, store, job):
        outcome = store.upsert_cell("JOB1", "P1", "A", 5, "Breaker")
        assert outcome.part_created
        assert outcome.cell_created
        assert outcome.required == 5

        part = store.get_job("JOB1").parts["P1"]
        assert part.description == "Breaker"
        assert part.locations == {"A": 5}
        assert part.assigned == {"A": 0}

    def test_adds_to_required(self, store, job):
        store.upsert_cell("JOB1", "P1", "A", 5)
        outcome = store.upsert_cell("JOB1", "P1", "A", 3)
        assert not outcome.part_created
        assert not outcome.cell_created
        assert store.required_qty("JOB1", "P1", "A") == 8

    def test_new_location_on_existing_part(self, store, job):
        store.upsert_cell("JOB1", "P1", "A", 5)
        outcome = store.upsert_cell("JOB1", "P1", "B", 1)
        assert not outcome.part_created
        assert outcome.cell_created

    def test_assigned_kept_on_upsert(self, store, job):
        store.upsert_cell("JOB1", "P1", "A", 5)
        store.write_assigned("JOB1", "P1", "A", 3)
        store.upsert_cell("JOB1", "P1", "A", 2)
        assert store.get_cell("JOB1", "P1", "A").assigned == 3

    def test_first_description_wins(self, store, job):
        store.upsert_cell("JOB1", "P1", "A", 1, "")
        store.upsert_cell("JOB1", "P1", "A", 1, "First")
        store.upsert_cell("JOB1", "P1", "B", 1, "Second")
        assert store.get_job("JOB1").parts["P1"].description == "First"

    def test_blank_location_is_unspecified(self, store, job):
        store.upsert_cell("JOB1", "P1", "  ", 1)
        assert store.required_qty("JOB1", "P1", "UNSPECIFIED") == 1

    def test_required_must_stay_positive(self, store, job):
        store.upsert_cell("JOB1", "P1", "A", 2)
        with pytest.raises(LedgerError):
            store.upsert_cell("JOB1", "P1", "A", -2)
        assert store.required_qty("JOB1", "P1", "A") == 2

    def test_non_positive_first_contribution(self, store, job):
        with pytest.raises(LedgerError):
            store.upsert_cell("JOB1", "P1", "A", 0)
        assert store.get_job("JOB1").parts == {}

    def test_lowering_required_clamps_assigned(self, store, job):
        store.upsert_cell("JOB1", "P1", "A", 5)
        store.write_assigned("JOB1", "P1", "A", 5)
        store.upsert_cell("JOB1", "P1", "A", -3)
        cell = store.get_cell("JOB1", "P1", "A")
        assert (cell.required, cell.assigned) == (2, 2)
        assert_invariant(store)

    def test_missing_job(self, store):
        with pytest.raises(LedgerError):
            store.upsert_cell("nope", "P1", "A", 1)

    def test_blank_part_number(self, store, job):
        with pytest.raises(LedgerError):
            store.upsert_cell("JOB1", " ", "A", 1)

    def test_required_qty_of_missing_cell(self, store, job):
        assert store.required_qty("JOB1", "P1", "A") == 0

    def test_replace_job_contents(self, store, job):
        store.upsert_cell("JOB1", "P1", "A", 1)
        store.upsert_cell("JOB1", "P2", "A", 1)
        assert store.replace_job_contents("JOB1") == 2
        assert store.get_job("JOB1").parts == {}


class TestWriteAssigned:

    def test_clamps_to_required(self, store, job):
        store.upsert_cell("JOB1", "P1", "A", 5)
        assert store.write_assigned("JOB1", "P1", "A", 9) == 5
        assert store.write_assigned("JOB1", "P1", "A", -1) == 0
        assert_invariant(store)

    def test_missing_cell(self, store, job):
        assert store.write_assigned("JOB1", "P1", "A", 1) is None

    def test_non_numeric_value(self, store, job):
        store.upsert_cell("JOB1", "P1", "A", 5)
        with pytest.raises(LedgerError):
            store.write_assigned("JOB1", "P1", "A", "many")


# =============================================================================
# LOCAL PERSISTENCE
# =============================================================================

class TestMemoryClientPersistence:

    def test_reload_from_file(self, tmp_path):
        path = tmp_path / "ledger.json"
        store = LedgerStore(MemoryClient(path))
        store.ensure_job("JOB1", "JOB1.csv")
        store.upsert_cell("JOB1", "P1", "A", 5, "Breaker")
        store.write_assigned("JOB1", "P1", "A", 2)

        reloaded = LedgerStore(MemoryClient(path)).get_job("JOB1")
        assert reloaded.parts["P1"].locations == {"A": 5}
        assert reloaded.parts["P1"].assigned == {"A": 2}
        assert reloaded.parts["P1"].description == "Breaker"

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DatabaseError):
            MemoryClient(path)

    def test_import_audit_records(self, client, store, job):
        import_id = store.record_import("JOB1", "merge", "JOB1.csv")
        store.save_import_items(import_id, [{"part_number": "P1", "location": "A", "quantity": 1, "description": ""}])
        record = client.get_import(import_id)
        assert record["strategy"] == "merge"
        assert len(record["items"]) == 1

    def test_delete_job_drops_its_imports(self, client, store, job):
        import_id = store.record_import("JOB1", "merge")
        store.delete_job("JOB1")
        assert client.get_import(import_id) is None


# =============================================================================
# DEFERRED WRITES
# =============================================================================

def count_writes(monkeypatch, client):
    """Record the section of every file write made by a MemoryClient."""
    writes = []
    write_file = client._write_file

    def counting(section):
        writes.append(section)
        write_file(section)

    monkeypatch.setattr(client, "_write_file", counting)
    return writes


class TestBatchedWrites:

    def test_import_writes_once_per_batch(self, tmp_path, monkeypatch):
        path = tmp_path / "ledger.json"
        client = MemoryClient(path)
        store = LedgerStore(client)
        store.ensure_job("JOB1", "JOB1.csv")
        writes = count_writes(monkeypatch, client)

        rows = [make_row(f"P{i}", "A", 1, row_index=i) for i in range(250)]
        result = reconcile_import(store, "JOB1", rows, batch_size=100)

        assert result.processed == 250
        assert writes.count("jobs") == 3
        assert writes.count("imports") == 1
        assert len(LedgerStore(MemoryClient(path)).get_job("JOB1").parts) == 250

    def test_nested_batches_write_on_outer_exit(self, tmp_path, monkeypatch):
        client = MemoryClient(tmp_path / "ledger.json")
        store = LedgerStore(client)
        writes = count_writes(monkeypatch, client)

        with store.batch():
            store.ensure_job("JOB1")
            with store.batch():
                store.upsert_cell("JOB1", "P1", "A", 5)
            assert writes == []
            store.upsert_cell("JOB1", "P2", "A", 1)
        assert writes == ["jobs"]

    def test_batch_writes_on_error(self, tmp_path):
        path = tmp_path / "ledger.json"
        store = LedgerStore(MemoryClient(path))
        with pytest.raises(RuntimeError):
            with store.batch():
                store.ensure_job("JOB1")
                store.upsert_cell("JOB1", "P1", "A", 5)
                raise RuntimeError("interrupted")

        cell = LedgerStore(MemoryClient(path)).get_cell("JOB1", "P1", "A")
        assert cell.required == 5

    def test_restore_writes_once(self, tmp_path, monkeypatch):
        client = MemoryClient(tmp_path / "ledger.json")
        store = LedgerStore(client)
        store.ensure_job("JOB1")
        for i in range(20):
            store.upsert_cell("JOB1", f"P{i}", "A", 2)
        jobs = list(store.snapshot().values())
        writes = count_writes(monkeypatch, client)

        store.restore(jobs)
        assert writes == ["imports", "jobs"]
        assert len(store.get_job("JOB1").parts) == 20


class TestImportAuditFile:

    def test_audit_log_kept_out_of_ledger_file(self, tmp_path):
        path = tmp_path / "ledger.json"
        client = MemoryClient(path)
        store = LedgerStore(client)
        store.ensure_job("JOB1")
        import_id = store.record_import("JOB1", "merge", "JOB1.csv")

        assert "imports" not in path.read_text(encoding="utf-8")
        assert client.imports_path == tmp_path / "ledger.imports.json"
        assert MemoryClient(path).get_import(import_id)["source"] == "JOB1.csv"

    def test_oldest_records_dropped(self, tmp_path):
        client = MemoryClient(tmp_path / "ledger.json", max_imports=2)
        store = LedgerStore(client)
        store.ensure_job("JOB1")
        ids = [store.record_import("JOB1", "merge") for _ in range(3)]

        assert client.get_import(ids[0]) is None
        assert client.get_import(ids[1]) is not None
        assert client.get_import(ids[2]) is not None

    def test_max_imports_must_be_positive(self):
        with pytest.raises(ValueError):
            MemoryClient(max_imports=0)
