"""
Secure credential storage.

Private identity material lives behind the ``CredentialStore`` protocol.
"""

from mercurio.storage.file_store import FileCredentialStore
from mercurio.storage.memory import InMemoryCredentialStore
from mercurio.storage.protocol import CredentialName, CredentialStore

__all__ = [
    "CredentialName",
    "CredentialStore",
    "FileCredentialStore",
    "InMemoryCredentialStore",
]
