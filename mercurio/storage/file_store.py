"""
File-system credential store.

Each entry is a separate owner-only file under ``<root>/<namespace>/``.
Writes go to a temporary file that is atomically renamed over the old value.
"""

import contextlib
import errno
import os
import threading
from collections.abc import Mapping
from pathlib import Path

import structlog

from mercurio.exceptions import StoreReadError, StoreWriteError
from mercurio.storage.protocol import validate_entries, validate_name

logger = structlog.get_logger(__name__)

_TMP_SUFFIX = ".tmp"
_DIR_MODE = 0o700
_FILE_MODE = 0o600


class FileCredentialStore:
    """
    Credential store persisting entries as files with restrictive permissions.

    Args:
        root: Directory holding one sub-directory per namespace.
        namespace: Namespace for this store's entries.
    """

    def __init__(self, root: Path | str, namespace: str = "com.mercurio.messenger") -> None:
        validate_name(namespace)
        self._namespace = namespace
        self._dir = Path(root) / namespace
        self._lock = threading.Lock()

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def directory(self) -> Path:
        return self._dir

    def save(self, entries: Mapping[str, bytes]) -> None:
        validate_entries(entries)
        with self._lock:
            self._ensure_directory()
            for name, value in entries.items():
                self._write_entry(name, bytes(value))
        logger.debug("Saved credentials", namespace=self._namespace, names=sorted(entries))

    def get(self, name: str) -> bytes | None:
        validate_name(name)
        with self._lock:
            try:
                return (self._dir / name).read_bytes()
            except FileNotFoundError:
                return None
            except OSError as e:
                logger.error(
                    "Failed to read credential", name=name, status=e.errno, error=e.strerror
                )
                msg = "Failed to read credential"
                raise StoreReadError(msg, status=e.errno, name=name) from e

    def delete_all(self) -> None:
        with self._lock:
            try:
                paths = list(self._dir.iterdir())
            except FileNotFoundError:
                return
            except OSError as e:
                msg = "Failed to list credential directory"
                raise StoreWriteError(msg, status=e.errno) from e
            for path in paths:
                try:
                    path.unlink()
                except FileNotFoundError:
                    continue
                except OSError as e:
                    msg = "Failed to delete credential"
                    raise StoreWriteError(msg, status=e.errno, name=path.name) from e
        logger.debug("Deleted all credentials", namespace=self._namespace)

    def _ensure_directory(self) -> None:
        try:
            self._dir.mkdir(mode=_DIR_MODE, parents=True, exist_ok=True)
        except OSError as e:
            msg = "Failed to create credential directory"
            raise StoreWriteError(msg, status=e.errno) from e

    def _write_entry(self, name: str, value: bytes) -> None:
        target = self._dir / name
        tmp = self._dir / f".{name}{_TMP_SUFFIX}"
        try:
            tmp.unlink(missing_ok=True)
            fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_EXCL, _FILE_MODE)
            with os.fdopen(fd, "wb") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, target)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            msg = "Failed to write credential"
            raise StoreWriteError(msg, status=e.errno or errno.EIO, name=name) from e
