"""
Pytest configuration and fixtures for sheetstore tests.

This module provides shared fixtures used across unit and integration
tests: an in-memory backend with a provisioned sheet, a controllable
clock and a fixed identity.
"""

import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Generator

import pytest

from sheetstore.backend import MemoryBackend, MemorySheet, MemoryWorkbook
from sheetstore.context import OperationContext
from sheetstore.coordinator import AccessCoordinator
from sheetstore.crud import RowStore
from sheetstore.lock import StoreLock
from sheetstore.sheets import create_collection

TEST_USER = "tester@example.com"
START_TIME = datetime(2024, 3, 1, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = START_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock() -> FakeClock:
    """A clock fixed at START_TIME."""
    return FakeClock()


@pytest.fixture
def context(clock: FakeClock) -> OperationContext:
    """Context stamping TEST_USER and the fake clock."""
    return OperationContext(identity=lambda: TEST_USER, clock=clock)


@pytest.fixture
def store(context: OperationContext) -> RowStore:
    """Row-store engine using the test context."""
    return RowStore(context)


@pytest.fixture
def backend() -> MemoryBackend:
    """Empty in-memory backend."""
    return MemoryBackend()


@pytest.fixture
def workbook(backend: MemoryBackend) -> MemoryWorkbook:
    """Workbook named "crm" in the memory backend."""
    return backend.open_workbook("crm")


@pytest.fixture
def sheet(workbook: MemoryWorkbook) -> MemorySheet:
    """Sheet "Contacts" with the reserved header plus name and email."""
    create_collection(workbook, "Contacts", ["name", "email"])
    return workbook.get_sheet("Contacts")


@pytest.fixture
def blank_sheet(workbook: MemoryWorkbook) -> MemorySheet:
    """Sheet "Notes" with no cells at all."""
    return workbook.insert_sheet("Notes")


@pytest.fixture
def lock() -> StoreLock:
    """A lock private to the test."""
    return StoreLock()


@pytest.fixture
def coordinator(backend: MemoryBackend, store: RowStore, lock: StoreLock) -> AccessCoordinator:
    """Coordinator over the memory backend with a short lock timeout."""
    return AccessCoordinator(backend, store=store, lock=lock, lock_timeout=1.0)
