"""
Asset Registry - File Ledger Backend

This module provides a JSON-file ledger gateway with thread-safe and
process-safe file operations and atomic updates. It keeps the world state,
the per-key modification history and the private collections in a single
document so that a command-line host sees the same ledger across runs.
"""

import base64
import json
import logging
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Union
from uuid import uuid4

from .ledger import DEFAULT_ORGANIZATION, LedgerGateway, check_collection_access
from .schema import HistoryEntry


class StorageError(Exception):
    """Raised when the ledger document cannot be read or written."""
    pass


class LockTimeoutError(StorageError):
    """Raised when the ledger lock is not obtained in time."""
    pass


class IntegrityError(StorageError):
    """Stored document could not be parsed."""
    pass


class FileLock:
    """
    Exclusive lock file next to the guarded file.

    The lock file is created with O_EXCL and holds the owner's PID. A lock
    file whose PID no longer names a running process is left over from a
    crash and is removed. The lock is re-entrant for the owning thread and
    excludes other threads of this process as well as other processes.
    """

    def __init__(self, file_path: Union[str, Path], timeout: float = 30.0):
        self.file_path = Path(file_path)
        self.lock_file_path = self.file_path.with_suffix(self.file_path.suffix + '.lock')
        self.timeout = timeout
        self.lock_fd = None
        self._depth = 0
        self._thread_lock = threading.RLock()

        self.logger = logging.getLogger(__name__)

    def holder_pid(self) -> Optional[int]:
        """PID recorded in the lock file, or None if absent or unreadable."""
        try:
            pid = int(self.lock_file_path.read_text().strip())
        except (FileNotFoundError, ValueError):
            return None
        return pid if pid > 0 else None

    def _remove_stale_lock(self) -> bool:
        """Delete the lock file if its holder has exited. True if removed."""
        pid = self.holder_pid()
        if pid is None:
            return False

        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            pass
        except PermissionError:
            # Alive, owned by another user
            return False
        else:
            return False

        try:
            self.lock_file_path.unlink()
        except FileNotFoundError:
            pass
        self.logger.warning(f"Removed stale lock {self.lock_file_path} held by exited process {pid}")
        return True

    def acquire(self) -> bool:
        """Block until the lock is held or the timeout elapses."""
        if not self._thread_lock.acquire(timeout=self.timeout):
            raise LockTimeoutError(f"Failed to acquire lock within {self.timeout} seconds")

        if self._depth > 0:
            self._depth += 1
            return True

        deadline = time.time() + self.timeout
        try:
            while True:
                try:
                    self.lock_fd = os.open(
                        str(self.lock_file_path),
                        os.O_CREAT | os.O_EXCL | os.O_WRONLY
                    )
                except FileExistsError:
                    if self._remove_stale_lock():
                        continue
                    if time.time() >= deadline:
                        break
                    time.sleep(0.05)
                    continue

                os.write(self.lock_fd, str(os.getpid()).encode('ascii'))
                self._depth = 1
                return True
        except OSError as e:
            self._discard_lock_file()
            self._thread_lock.release()
            raise StorageError(f"Failed to acquire lock: {e}") from e

        self._thread_lock.release()
        raise LockTimeoutError(f"Failed to acquire lock within {self.timeout} seconds")

    def _discard_lock_file(self) -> None:
        if self.lock_fd is None:
            return
        try:
            os.close(self.lock_fd)
            os.unlink(self.lock_file_path)
        finally:
            self.lock_fd = None

    def release(self) -> None:
        """Drop one level of ownership; the last level removes the lock file."""
        if self._depth == 0:
            return

        try:
            self._depth -= 1
            if self._depth == 0:
                self._discard_lock_file()
        finally:
            self._thread_lock.release()

    def is_locked(self) -> bool:
        """Check whether this instance currently holds the lock."""
        return self._depth > 0

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


class JSONStorage:
    """Thread-safe JSON document storage with atomic replace."""

    def __init__(self, file_path: Union[str, Path], lock_timeout: float = 30.0):
        self.file_path = Path(file_path)
        self.lock = FileLock(self.file_path, timeout=lock_timeout)

        self.file_path.parent.mkdir(parents=True, exist_ok=True)

    def _read_file(self) -> Dict[str, Any]:
        try:
            raw = self.file_path.read_bytes()
        except FileNotFoundError:
            return {}

        if not raw.strip():
            return {}

        try:
            return json.loads(raw)
        except ValueError as e:
            raise IntegrityError(f"Ledger document {self.file_path} is not valid JSON: {e}") from e

    def _write_file(self, document: Dict[str, Any]) -> None:
        payload = json.dumps(document, indent=2, sort_keys=True).encode('utf-8')
        temp_file = self.file_path.with_name(self.file_path.name + '.tmp')

        try:
            with open(temp_file, 'wb') as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())

            # Readers see either the old or the new document
            os.replace(temp_file, self.file_path)

        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise StorageError(f"Could not write ledger document {self.file_path}: {e}") from e

    @contextmanager
    def locked(self):
        """Hold the storage lock for a sequence of reads and writes."""
        with self.lock:
            yield

    def read(self) -> Dict[str, Any]:
        """Return the current document."""
        with self.locked():
            return self._read_file()

    def update(self, updater_func: Callable[[Dict[str, Any]], Dict[str, Any]]) -> None:
        """Apply updater to the document under the lock and persist the result."""
        with self.locked():
            current_data = self._read_file()
            updated_data = updater_func(current_data)
            self._write_file(updated_data)

    def exists(self) -> bool:
        """Whether anything has been written yet."""
        return self.file_path.is_file()

    def size(self) -> int:
        """Document size in bytes, 0 before the first write."""
        return self.file_path.stat().st_size if self.file_path.is_file() else 0


class FileLedger(LedgerGateway):
    """
    Ledger gateway persisted to ``<data_dir>/ledger.json``.

    Document layout::

        {
          "state":   {key: value},
          "history": {key: [history entry, ...]},
          "private": {collection: {key: base64 payload}}
        }
    """

    def __init__(
        self,
        data_dir: Union[str, Path] = "ledger_data",
        organization: str = DEFAULT_ORGANIZATION,
        collection_policy: Optional[Dict[str, Iterable[str]]] = None,
        lock_timeout: float = 30.0
    ):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        self.organization = organization
        self.collection_policy = {
            name: set(orgs) for name, orgs in (collection_policy or {}).items()
        }

        self.storage = JSONStorage(self.data_dir / "ledger.json", lock_timeout=lock_timeout)

        self.logger = logging.getLogger(__name__)

    def get_state(self, key: str) -> Optional[str]:
        return self.storage.read().get('state', {}).get(key)

    def put_state(self, key: str, value: str) -> None:
        entry = HistoryEntry(tx_id=uuid4().hex, value=value)

        def updater(data: Dict[str, Any]) -> Dict[str, Any]:
            data.setdefault('state', {})[key] = value
            data.setdefault('history', {}).setdefault(key, []).append(
                entry.model_dump(mode='json')
            )
            return data

        self.storage.update(updater)
        self.logger.debug(f"Ledger write for key: {key}")

    def get_history(self, key: str) -> Iterator[HistoryEntry]:
        records = self.storage.read().get('history', {}).get(key, [])
        return (HistoryEntry.model_validate(record) for record in records)

    def get_private_data(self, collection: str, key: str) -> Optional[bytes]:
        check_collection_access(self.collection_policy, self.organization, collection)

        encoded = self.storage.read().get('private', {}).get(collection, {}).get(key)
        if encoded is None:
            return None
        return base64.b64decode(encoded)

    def put_private_data(self, collection: str, key: str, value: bytes) -> None:
        check_collection_access(self.collection_policy, self.organization, collection)

        encoded = base64.b64encode(bytes(value)).decode('ascii')

        def updater(data: Dict[str, Any]) -> Dict[str, Any]:
            data.setdefault('private', {}).setdefault(collection, {})[key] = encoded
            return data

        self.storage.update(updater)

    def get_caller_org_id(self) -> str:
        return self.organization

    def get_storage_info(self) -> Dict[str, Any]:
        """Location and size of the ledger document."""
        return {
            'file_path': str(self.storage.file_path),
            'size_bytes': self.storage.size(),
            'exists': self.storage.exists(),
        }
