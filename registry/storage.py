"""
PixelChads Registry - Storage Backend

The registry state lives in a single JSON document. Writes go to a temporary
file that is fsynced and then renamed over the document, so readers see
either the old or the new state. The previous document is copied into a
``backups/`` directory before each write and the oldest copies are pruned.
Other processes are kept out with an flock on a ``.lock`` sidecar file.
"""

import fcntl
import hashlib
import json
import logging
import os
import shutil
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from .schema import RegistryState


logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.05


class StorageError(Exception):
    """Base storage exception."""
    pass


class LockTimeoutError(StorageError):
    """Raised when another holder keeps the file lock past the timeout."""
    pass


class IntegrityError(StorageError):
    """Raised when the stored document cannot be decoded or validated."""
    pass


def sha256_hex(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


class FileLock:
    """Exclusive flock on ``<file>.lock``.

    Re-entrant for the thread holding it; other threads using the same
    instance wait for that thread to release it.
    """

    def __init__(self, file_path: Union[str, Path], timeout: float = 30.0):
        self.file_path = Path(file_path)
        self.lock_file_path = self.file_path.with_name(self.file_path.name + '.lock')
        self.timeout = timeout
        self.lock_fd: Optional[int] = None
        self._holder = RLock()
        self._depth = 0

    def acquire(self) -> None:
        if not self._holder.acquire(timeout=self.timeout):
            raise LockTimeoutError(f"{self.lock_file_path} held by another thread for {self.timeout}s")

        if self._depth == 0:
            try:
                self.lock_fd = self._flock()
            except BaseException:
                self._holder.release()
                raise

        self._depth += 1

    def _flock(self) -> int:
        fd = os.open(str(self.lock_file_path), os.O_CREAT | os.O_RDWR)
        deadline = time.monotonic() + self.timeout

        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                return fd
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    os.close(fd)
                    raise LockTimeoutError(
                        f"{self.lock_file_path} still locked after {self.timeout}s"
                    )
                time.sleep(POLL_INTERVAL)

    def release(self) -> None:
        if self._depth == 0:
            return

        self._depth -= 1
        if self._depth == 0:
            fd, self.lock_fd = self.lock_fd, None
            try:
                fcntl.flock(fd, fcntl.LOCK_UN)
                os.close(fd)
            except OSError as e:
                # Release must not raise while another exception unwinds
                logger.warning(f"Failed to release lock {self.lock_file_path}: {e}")

        self._holder.release()

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


class JSONStorage:
    """One JSON document with atomic replace and rotating backups."""

    def __init__(
        self,
        file_path: Union[str, Path],
        backup_count: int = 5,
        lock_timeout: float = 30.0
    ):
        """
        Args:
            file_path: Location of the document
            backup_count: Number of previous versions to keep; 0 disables backups
            lock_timeout: Seconds to wait for the inter-process lock
        """
        self.file_path = Path(file_path)
        self.backup_count = backup_count
        self.lock_timeout = lock_timeout
        self.backup_dir = self.file_path.parent / 'backups'
        self._file_lock = FileLock(self.file_path, timeout=lock_timeout)

        self.file_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def locked(self):
        """Hold the document lock across several reads and writes."""
        with self._file_lock:
            yield

    def _replace(self, payload: bytes) -> None:
        staging = self.file_path.with_name(self.file_path.name + '.tmp')

        try:
            with open(staging, 'wb') as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(staging, self.file_path)
        except OSError as e:
            staging.unlink(missing_ok=True)
            raise StorageError(f"Failed to write {self.file_path}: {e}") from e

    def _backup_current(self) -> None:
        if self.backup_count <= 0 or not self.file_path.exists():
            return

        stamp = datetime.utcnow().strftime('%Y%m%d_%H%M%S_%f')
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(
            self.file_path,
            self.backup_dir / f"{self.file_path.stem}_{stamp}{self.file_path.suffix}"
        )

        for stale in self.list_backups()[self.backup_count:]:
            try:
                stale.unlink()
            except OSError as e:
                logger.warning(f"Failed to prune backup {stale}: {e}")

    def read(self) -> Dict[str, Any]:
        """Return the stored document, or an empty dict if there is none."""
        with self.locked():
            try:
                raw = self.file_path.read_bytes()
            except FileNotFoundError:
                return {}
            except OSError as e:
                raise StorageError(f"Failed to read {self.file_path}: {e}") from e

        if not raw:
            return {}

        try:
            return json.loads(raw.decode('utf-8'))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise IntegrityError(f"Invalid JSON data in {self.file_path}: {e}") from e

    def write(self, data: Dict[str, Any], create_backup: bool = True) -> str:
        """Replace the document and return the SHA-256 of what was written."""
        payload = json.dumps(data, indent=2, sort_keys=True, default=str).encode('utf-8')

        with self.locked():
            if create_backup:
                self._backup_current()
            self._replace(payload)

        return sha256_hex(payload)

    def exists(self) -> bool:
        return self.file_path.exists()

    def size(self) -> int:
        try:
            return self.file_path.stat().st_size
        except FileNotFoundError:
            return 0

    def checksum(self) -> Optional[str]:
        if not self.file_path.exists():
            return None
        return sha256_hex(self.file_path.read_bytes())

    def list_backups(self) -> List[Path]:
        """Backup files, newest first."""
        if not self.backup_dir.is_dir():
            return []

        found = self.backup_dir.glob(f"{self.file_path.stem}_*{self.file_path.suffix}")
        return sorted(found, key=lambda p: p.name, reverse=True)

    def restore_backup(self, backup_path: Union[str, Path]) -> None:
        """Make a backup the current document; the replaced one is backed up too."""
        backup_path = Path(backup_path)
        if not backup_path.exists():
            raise StorageError(f"Backup not found: {backup_path}")

        payload = backup_path.read_bytes()
        with self.locked():
            self._backup_current()
            self._replace(payload)


class RegistryStorage:
    """Persistence of the registry state aggregate."""

    FILE_NAME = "registry.json"

    def __init__(
        self,
        storage_dir: Union[str, Path] = "pixelchads_data",
        backup_count: int = 5,
        lock_timeout: float = 30.0
    ):
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

        self.json_storage = JSONStorage(
            self.storage_dir / self.FILE_NAME,
            backup_count=backup_count,
            lock_timeout=lock_timeout
        )

    def exists(self) -> bool:
        return self.json_storage.exists() and self.json_storage.size() > 0

    def locked(self):
        """Exclude other processes from the state file for a load-modify-save cycle."""
        return self.json_storage.locked()

    def load_state(self) -> Optional[RegistryState]:
        """Load registry state; None when nothing has been persisted yet."""
        data = self.json_storage.read()
        if not data:
            return None

        try:
            return RegistryState.model_validate(data)
        except ValidationError as e:
            raise IntegrityError(f"Stored registry state is invalid: {e}") from e

    def save_state(self, state: RegistryState) -> str:
        """Persist registry state and return the file checksum."""
        checksum = self.json_storage.write(state.model_dump(mode='json'))
        logger.debug(f"Saved registry state ({checksum[:12]})")
        return checksum

    def list_backups(self) -> List[str]:
        return [str(path) for path in self.json_storage.list_backups()]

    def restore_backup(self, backup_path: Union[str, Path]) -> RegistryState:
        """Restore the state file from a backup and return the restored state."""
        self.json_storage.restore_backup(backup_path)
        return self.load_state()

    def get_storage_info(self) -> Dict[str, Any]:
        """Summary of the state file for status output."""
        return {
            'file_path': str(self.json_storage.file_path),
            'size_bytes': self.json_storage.size(),
            'exists': self.json_storage.exists(),
            'checksum': self.json_storage.checksum(),
            'backup_count': len(self.json_storage.list_backups())
        }
