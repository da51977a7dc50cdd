"""
Domain models for Mercurio.

These are immutable (frozen) dataclasses representing the core domain concepts.
"""

from mercurio.models.crypto import (
    EncryptedPayload,
    Identity,
    PublicMaterial,
    RSAPublicKey,
    identifier_from_signing_key,
    is_valid_identifier,
)
from mercurio.models.messaging import (
    DecryptedMessage,
    MessageRecord,
    MessageStatus,
    UserRecord,
    conversation_id_for,
)

__all__ = [
    # Crypto
    "RSAPublicKey",
    "EncryptedPayload",
    "PublicMaterial",
    "Identity",
    "identifier_from_signing_key",
    "is_valid_identifier",
    # Messaging
    "UserRecord",
    "MessageRecord",
    "MessageStatus",
    "DecryptedMessage",
    "conversation_id_for",
]
