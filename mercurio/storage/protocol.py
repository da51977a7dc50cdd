"""
Credential store protocol definition.

Private identity material is persisted through this interface so the platform
backend (in-memory, file system, OS keychain) can be swapped without touching
the identity manager.
"""

import re
from collections.abc import Mapping
from enum import StrEnum
from typing import Protocol, runtime_checkable

_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9._-]{0,127}$")


class CredentialName(StrEnum):
    """Logical entry names. Each is stored as an independent entry."""

    SIGNING_PUBLIC_KEY = "signing-public-key"
    SIGNING_PRIVATE_KEY = "signing-private-key"
    EXCHANGE_PUBLIC_KEY = "exchange-public-key"
    EXCHANGE_PRIVATE_KEY = "exchange-private-key"
    IDENTIFIER = "identifier"
    RECOVERY_PHRASE = "recovery-phrase"


@runtime_checkable
class CredentialStore(Protocol):
    """
    Keyed persistence of opaque secret values under one namespace.

    Implementations serialize all operations on a single instance, so a
    reader observes either the previous value or the complete new one.
    """

    @property
    def namespace(self) -> str:
        """Namespace all entries live under."""
        ...

    def save(self, entries: Mapping[str, bytes]) -> None:
        """
        Replace each named entry with the given value.

        Raises:
            StoreWriteError: If an entry cannot be written.
        """
        ...

    def get(self, name: str) -> bytes | None:
        """
        Return the current value, or None if absent.

        Raises:
            StoreReadError: If the entry exists but cannot be read.
        """
        ...

    def delete_all(self) -> None:
        """
        Remove every entry. Entries already absent are not an error.

        Raises:
            StoreWriteError: If an entry exists but cannot be removed.
        """
        ...


def validate_entries(entries: Mapping[str, bytes]) -> None:
    """
    Check names and value types before anything is written.

    Raises:
        ValueError: If a name is not a safe entry name.
        TypeError: If a value is not bytes.
    """
    for name, value in entries.items():
        validate_name(name)
        if not isinstance(value, (bytes, bytearray)):
            msg = f"Credential {name!r} must be bytes, got {type(value).__name__}"
            raise TypeError(msg)


def validate_name(name: str) -> None:
    if not _NAME_PATTERN.match(name):
        msg = f"Invalid credential name: {name!r}"
        raise ValueError(msg)
