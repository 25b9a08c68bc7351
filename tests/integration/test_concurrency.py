"""
Integration tests for concurrent dispatch.

Threads share one coordinator lock; every operation must appear to run
on its own, with no lost columns or rows.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

from sheetstore.backend import MemoryBackend
from sheetstore.context import OperationContext
from sheetstore.coordinator import AccessCoordinator
from sheetstore.crud import RowStore
from sheetstore.lock import StoreLock
from sheetstore.schema import RESERVED_COLUMNS


def make_coordinators(backend: MemoryBackend, count: int) -> list[AccessCoordinator]:
    """Separate coordinators over one backend, sharing a single lock."""
    lock = StoreLock()
    return [
        AccessCoordinator(
            backend,
            store=RowStore(OperationContext(identity=lambda i=i: f"worker-{i}")),
            lock=lock,
            lock_timeout=10.0,
        )
        for i in range(count)
    ]


class TestConcurrentWrites:
    """Tests for writes racing through the coordinator."""

    def test_new_columns_not_lost(self) -> None:
        """Two callers adding different new fields get distinct columns."""
        backend = MemoryBackend()
        first, second = make_coordinators(backend, 2)
        first.dispatch("CREATE_SHEET", "crm", "Contacts", []).unwrap()

        start = threading.Barrier(2)

        def write(coordinator: AccessCoordinator, field: str) -> dict:
            start.wait()
            return coordinator.dispatch("CREATE", "crm", "Contacts", [[{field: field.upper()}]]).unwrap()

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [pool.submit(write, first, "phone"), pool.submit(write, second, "email")]
            results = [f.result() for f in futures]

        header = backend.open_workbook("crm").get_sheet("Contacts").get_header()
        assert header[: len(RESERVED_COLUMNS)] == list(RESERVED_COLUMNS)
        assert sorted(header[len(RESERVED_COLUMNS):]) == ["email", "phone"]

        rows = first.dispatch("READ", "crm", "Contacts", ["ID"]).unwrap()
        assert len(rows) == 2
        assert {r.get("phone") or r.get("email") for r in rows.values()} == {"PHONE", "EMAIL"}
        assert {next(iter(r)) for r in results} == set(rows)

    def test_many_creates(self) -> None:
        """Every row written by many threads is present exactly once."""
        backend = MemoryBackend()
        coordinators = make_coordinators(backend, 8)
        coordinators[0].dispatch("CREATE_SHEET", "crm", "Orders", [["n"]]).unwrap()

        def write(index: int) -> None:
            coordinator = coordinators[index % len(coordinators)]
            coordinator.dispatch("CREATE", "crm", "Orders", [[{"n": index}]]).unwrap()

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(write, range(40)))

        rows = coordinators[0].dispatch("READ", "crm", "Orders", ["ID"]).unwrap()
        assert sorted(r["n"] for r in rows.values()) == list(range(40))
        assert {r.created_by for r in rows.values()} == {f"worker-{i}" for i in range(8)}

    def test_update_and_delete_race(self) -> None:
        """A racing update and delete leave exactly one consistent outcome."""
        backend = MemoryBackend()
        updater, deleter = make_coordinators(backend, 2)
        updater.dispatch("CREATE_SHEET", "crm", "Contacts", []).unwrap()
        (row_id,) = updater.dispatch("CREATE", "crm", "Contacts", [[{"name": "Ada"}]]).unwrap()

        start = threading.Barrier(2)

        def update() -> None:
            start.wait()
            updater.dispatch("UPDATE", "crm", "Contacts", [{"ID": row_id, "name": "Ada L."}]).unwrap()

        def delete() -> None:
            start.wait()
            deleter.dispatch("DELETE", "crm", "Contacts", ["ID", [row_id]]).unwrap()

        with ThreadPoolExecutor(max_workers=2) as pool:
            for future in [pool.submit(update), pool.submit(delete)]:
                future.result()

        values = backend.open_workbook("crm").get_sheet("Contacts").get_values()
        valid = [row for row in values[1:] if row[5] is True]
        # Update after delete revives the row; delete after update retires both versions
        assert len(valid) <= 1
        assert len(values) == 3
