"""In-memory credential store, used in tests and for ephemeral sessions."""

import threading
from collections.abc import Mapping

import structlog

from mercurio.crypto.secure_bytes import SecureBytes
from mercurio.storage.protocol import validate_entries, validate_name

logger = structlog.get_logger(__name__)


class InMemoryCredentialStore:
    """
    Credential store backed by a dict of zeroable buffers.

    Same semantics as the persistent stores: replace on save, idempotent
    delete. Replaced and deleted values are zeroed.
    """

    def __init__(self, namespace: str = "com.mercurio.messenger") -> None:
        self._namespace = namespace
        self._entries: dict[str, SecureBytes] = {}
        self._lock = threading.Lock()

    @property
    def namespace(self) -> str:
        return self._namespace

    def save(self, entries: Mapping[str, bytes]) -> None:
        validate_entries(entries)
        with self._lock:
            for name, value in entries.items():
                previous = self._entries.pop(name, None)
                if previous is not None:
                    previous.clear()
                self._entries[name] = SecureBytes(value)
        logger.debug("Saved credentials", namespace=self._namespace, names=sorted(entries))

    def get(self, name: str) -> bytes | None:
        validate_name(name)
        with self._lock:
            entry = self._entries.get(name)
            return bytes(entry) if entry is not None else None

    def delete_all(self) -> None:
        with self._lock:
            for entry in self._entries.values():
                entry.clear()
            self._entries.clear()
        logger.debug("Deleted all credentials", namespace=self._namespace)

    def __len__(self) -> int:
        return len(self._entries)
