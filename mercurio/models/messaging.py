"""
Directory and message relay domain models.

These mirror the rows stored by the backend. Only public or encrypted data
ever appears here.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any, Self

from mercurio.models.crypto import EncryptedPayload

ENCRYPTED_PLACEHOLDER = "Encrypted message"


class MessageStatus(StrEnum):
    """Delivery status of a stored message."""

    SENDING = "sending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


@dataclass(frozen=True, kw_only=True)
class UserRecord:
    """
    A user published in the directory.

    Attributes:
        identifier: Public identifier (``"05"`` + hex signing key).
        signing_public_key: Base64 Ed25519 public key.
        rsa_public_key_modulus: Base64 modulus of the exchange key.
        rsa_public_key_exponent: Base64 exponent of the exchange key.
        is_online: Presence flag.
        last_seen: Last presence update.
        created_at: When the user was first published.
    """

    identifier: str
    signing_public_key: str
    rsa_public_key_modulus: str
    rsa_public_key_exponent: str
    is_online: bool = False
    last_seen: datetime | None = None
    created_at: datetime | None = None

    def to_row(self) -> dict[str, Any]:
        row: dict[str, Any] = {
            "mercurio_id": self.identifier,
            "ed25519_public_key": self.signing_public_key,
            "rsa_public_key_modulus": self.rsa_public_key_modulus,
            "rsa_public_key_exponent": self.rsa_public_key_exponent,
            "is_online": self.is_online,
        }
        if self.last_seen is not None:
            row["last_seen"] = self.last_seen.isoformat()
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Self:
        return cls(
            identifier=row["mercurio_id"],
            signing_public_key=row["ed25519_public_key"],
            rsa_public_key_modulus=row["rsa_public_key_modulus"],
            rsa_public_key_exponent=row["rsa_public_key_exponent"],
            is_online=bool(row.get("is_online", False)),
            last_seen=parse_timestamp(row.get("last_seen")),
            created_at=parse_timestamp(row.get("created_at")),
        )


@dataclass(frozen=True, kw_only=True)
class MessageRecord:
    """
    An opaque encrypted message as stored by the relay.

    Attributes:
        conversation_id: Conversation key, see ``conversation_id_for``.
        sender_id: Sender identifier.
        recipient_id: Recipient identifier.
        payload: Encrypted content, key, nonce and tag.
        message_id: Server-assigned UUID, ``None`` before insertion.
        status: Delivery status.
        created_at: Server insertion time.
        read_at: When the recipient marked it read.
    """

    conversation_id: str
    sender_id: str
    recipient_id: str
    payload: EncryptedPayload
    message_id: str | None = None
    status: MessageStatus = MessageStatus.SENT
    created_at: datetime | None = None
    read_at: datetime | None = None

    def to_row(self) -> dict[str, Any]:
        row: dict[str, Any] = {
            "conversation_id": self.conversation_id,
            "sender_mercurio_id": self.sender_id,
            "recipient_mercurio_id": self.recipient_id,
            "status": self.status.value,
            **self.payload.to_record(),
        }
        if self.message_id is not None:
            row["id"] = self.message_id
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Self:
        return cls(
            conversation_id=row["conversation_id"],
            sender_id=row["sender_mercurio_id"],
            recipient_id=row["recipient_mercurio_id"],
            payload=EncryptedPayload.from_record(row),
            message_id=row.get("id"),
            status=parse_status(row.get("status")),
            created_at=parse_timestamp(row.get("created_at")),
            read_at=parse_timestamp(row.get("read_at")),
        )


@dataclass(frozen=True, kw_only=True)
class DecryptedMessage:
    """A message after successful local decryption. Never persisted."""

    message_id: str | None
    conversation_id: str
    sender_id: str
    content: str
    created_at: datetime | None = None
    read_at: datetime | None = None
    status: MessageStatus = MessageStatus.SENT


def conversation_id_for(participant_a: str, participant_b: str) -> str:
    """
    Deterministic conversation key for two participants.

    Both sides compute the same value regardless of argument order.
    """
    first, second = sorted((participant_a, participant_b))
    return f"{first}_{second}"


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp as returned by the backend."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def parse_status(value: str | None) -> MessageStatus:
    """Parse a stored status, treating missing or unknown values as sent."""
    try:
        return MessageStatus(value)
    except ValueError:
        return MessageStatus.SENT
