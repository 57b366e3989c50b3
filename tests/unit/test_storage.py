"""
Unit tests for storage layer and ledger gateways.
"""

import json
import os
import threading
import time

import pytest

from registry.codec import encode_asset
from registry.exceptions import OperationError
from registry.ledger import CollectionAccessError, MemoryLedger
from registry.manager import RegistryManager
from registry.storage import FileLedger, FileLock, IntegrityError, JSONStorage, LockTimeoutError


class TestFileLock:
    """Test file locking mechanism."""

    @pytest.fixture
    def temp_file(self, tmp_path):
        """Create temporary file for locking tests."""
        path = tmp_path / "data.json"
        path.write_text("{}")
        return path

    def test_file_lock_creation(self, temp_file):
        lock = FileLock(temp_file)

        assert lock.lock_file_path == temp_file.with_suffix(temp_file.suffix + '.lock')
        assert not lock.is_locked()

    def test_file_lock_context_manager(self, temp_file):
        lock = FileLock(temp_file)

        with lock:
            assert lock.is_locked()
            assert lock.lock_file_path.exists()

        assert not lock.is_locked()
        assert not lock.lock_file_path.exists()

    def test_file_lock_reentrant(self, temp_file):
        lock = FileLock(temp_file)

        with lock:
            with lock:
                assert lock.is_locked()
            assert lock.is_locked()

        assert not lock.is_locked()

    def test_concurrent_file_locking(self, temp_file):
        """Critical sections of different threads never interleave."""
        events = []
        errors = []

        def worker_thread(thread_id):
            try:
                with FileLock(temp_file, timeout=10.0):
                    events.append(("start", thread_id))
                    time.sleep(0.02)
                    events.append(("end", thread_id))
            except Exception as e:
                errors.append(f"thread_{thread_id}: {e}")

        threads = [threading.Thread(target=worker_thread, args=(i,)) for i in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert not errors
        assert len(events) == 10
        for i in range(0, len(events), 2):
            assert events[i][0] == "start"
            assert events[i + 1] == ("end", events[i][1])

    def test_lock_file_records_holder_pid(self, temp_file):
        lock = FileLock(temp_file)

        with lock:
            assert lock.holder_pid() == os.getpid()

        assert lock.holder_pid() is None

    def test_stale_lock_from_exited_process_is_removed(self, temp_file):
        lock = FileLock(temp_file, timeout=1.0)
        # Far above any pid_max, so no such process exists
        lock.lock_file_path.write_text("99999999")

        with lock:
            assert lock.holder_pid() == os.getpid()

        assert not lock.lock_file_path.exists()

    def test_lock_held_by_live_process_times_out(self, temp_file):
        lock = FileLock(temp_file, timeout=0.2)
        lock.lock_file_path.write_text(str(os.getpid()))

        with pytest.raises(LockTimeoutError):
            lock.acquire()

        assert lock.lock_file_path.read_text() == str(os.getpid())
        assert not lock.is_locked()

    def test_unreadable_lock_file_is_not_removed(self, temp_file):
        lock = FileLock(temp_file, timeout=0.2)
        lock.lock_file_path.write_text("")

        with pytest.raises(LockTimeoutError):
            lock.acquire()

        assert lock.lock_file_path.exists()


class TestJSONStorage:
    """Test JSON document storage."""

    def test_missing_file_reads_empty(self, tmp_path):
        storage = JSONStorage(tmp_path / "nested" / "doc.json")
        assert storage.read() == {}
        assert storage.size() == 0

    def test_update_and_read(self, tmp_path):
        storage = JSONStorage(tmp_path / "doc.json")
        storage.update(lambda data: {**data, "state": {"A1": "x"}})

        assert storage.read() == {"state": {"A1": "x"}}
        assert storage.exists()
        assert not (tmp_path / "doc.json.tmp").exists()

    def test_concurrent_updates(self, tmp_path):
        storage = JSONStorage(tmp_path / "doc.json")

        def increment(data):
            data["count"] = data.get("count", 0) + 1
            return data

        def worker():
            for _ in range(20):
                storage.update(increment)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert storage.read()["count"] == 100

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "doc.json"
        path.write_text("{not json")

        with pytest.raises(IntegrityError):
            JSONStorage(path).read()


class TestMemoryLedger:
    """Test in-memory ledger gateway."""

    def test_state_and_history(self, memory_ledger):
        assert memory_ledger.get_state("A1") is None

        memory_ledger.put_state("A1", "v1")
        memory_ledger.put_state("A1", "v2")

        assert memory_ledger.get_state("A1") == "v2"
        assert [e.value for e in memory_ledger.get_history("A1")] == ["v1", "v2"]
        assert list(memory_ledger.get_history("missing")) == []

    def test_history_is_single_pass(self, memory_ledger):
        memory_ledger.put_state("A1", "v1")

        stream = memory_ledger.get_history("A1")

        assert len(list(stream)) == 1
        assert list(stream) == []

    def test_private_data(self, memory_ledger):
        assert memory_ledger.get_private_data("vault", "A1") is None

        memory_ledger.put_private_data("vault", "A1", b"secret")

        assert memory_ledger.get_private_data("vault", "A1") == b"secret"
        assert memory_ledger.get_private_data("other", "A1") is None
        assert memory_ledger.get_state("A1") is None

    def test_collection_policy(self):
        ledger = MemoryLedger(organization="Org2MSP", collection_policy={"vault": ["Org1MSP"]})

        with pytest.raises(CollectionAccessError):
            ledger.put_private_data("vault", "A1", b"x")

        ledger.put_private_data("open", "A1", b"x")
        assert ledger.get_private_data("open", "A1") == b"x"

    def test_caller_org(self):
        assert MemoryLedger(organization="Org3MSP").get_caller_org_id() == "Org3MSP"


class TestFileLedger:
    """Test file-backed ledger gateway."""

    def test_state_and_history(self, file_ledger):
        file_ledger.put_state("A1", "v1")
        file_ledger.put_state("A1", "v2")

        assert file_ledger.get_state("A1") == "v2"
        history = list(file_ledger.get_history("A1"))
        assert [e.value for e in history] == ["v1", "v2"]
        assert history[0].timestamp <= history[1].timestamp

    def test_state_survives_new_instance(self, tmp_path, sample_asset):
        FileLedger(data_dir=tmp_path).put_state("A1", encode_asset(sample_asset))

        reopened = FileLedger(data_dir=tmp_path)

        assert reopened.get_state("A1") == encode_asset(sample_asset)
        assert len(list(reopened.get_history("A1"))) == 1

    def test_private_data_bytes(self, file_ledger):
        payload = b"\x00\xffbinary\n"
        file_ledger.put_private_data("vault", "A1", payload)

        assert file_ledger.get_private_data("vault", "A1") == payload
        assert file_ledger.get_private_data("vault", "A2") is None

        document = json.loads(file_ledger.storage.file_path.read_text())
        assert "A1" not in document.get("state", {})

    def test_collection_policy(self, tmp_path):
        ledger = FileLedger(
            data_dir=tmp_path,
            organization="Org2MSP",
            collection_policy={"vault": ["Org1MSP"]}
        )

        with pytest.raises(CollectionAccessError):
            ledger.get_private_data("vault", "A1")

    def test_storage_info(self, file_ledger):
        file_ledger.put_state("A1", "v1")

        info = file_ledger.get_storage_info()

        assert info["exists"] is True
        assert info["size_bytes"] > 0
        assert info["file_path"].endswith("ledger.json")

    def test_corrupt_ledger_surfaces_as_operation_error(self, tmp_path):
        ledger = FileLedger(data_dir=tmp_path)
        ledger.storage.file_path.write_text("{broken")

        manager = RegistryManager(ledger)

        with pytest.raises(OperationError) as exc_info:
            manager.query_asset("A1")
        assert isinstance(exc_info.value.cause, IntegrityError)
