"""Shared fixtures: a LedgerStore over an in-memory client and row helpers."""

import sys
from pathlib import Path

import pytest

# Add parent directory to path to import partkit
sys.path.insert(0, str(Path(__file__).parent.parent))

from partkit.ledger import LedgerStore, MemoryClient
from partkit.normalizer import NormalizedRow


@pytest.fixture
def client():
    return MemoryClient()


@pytest.fixture
def store(client):
    return LedgerStore(client)


@pytest.fixture
def job(store):
    """An empty job named JOB1."""
    return store.ensure_job("JOB1", "JOB1.csv")


def make_row(part_number, location="A", quantity=1, description="", row_index=0):
    """Helper to create NormalizedRow objects for testing."""
    return NormalizedRow(
        part_number=part_number,
        location=location,
        quantity=quantity,
        description=description,
        row_index=row_index
    )
