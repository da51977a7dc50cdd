"""
Messaging service.

Encrypts outgoing text for a peer, stores it through the relay, and decrypts
incoming records. A record that fails to decrypt is logged and skipped so the
rest of the conversation still loads.
"""

import asyncio
from collections.abc import AsyncIterator
from datetime import datetime, timezone

import structlog

from mercurio.api.endpoints.conversations import fetch_conversations, upsert_conversation
from mercurio.api.endpoints.messages import (
    fetch_messages,
    fetch_messages_since,
    insert_message,
    mark_message_read,
)
from mercurio.api.http_client import AsyncHttpClient
from mercurio.crypto.hybrid import MessageCipher
from mercurio.crypto.identity import IdentityManager
from mercurio.exceptions import DecryptionFailedError, KeysNotFoundError, RecipientKeyInvalidError
from mercurio.models.messaging import (
    ENCRYPTED_PLACEHOLDER,
    DecryptedMessage,
    MessageRecord,
    MessageStatus,
    conversation_id_for,
)
from mercurio.services.directory_service import DirectoryService

logger = structlog.get_logger(__name__)


class MessagingService:
    """Send, fetch and follow end-to-end encrypted conversations."""

    def __init__(
        self,
        http_client: AsyncHttpClient,
        identity_manager: IdentityManager,
        cipher: MessageCipher,
        directory: DirectoryService,
        *,
        poll_interval: float = 2.0,
    ) -> None:
        """
        Args:
            http_client: HTTP client for API requests.
            identity_manager: Source of the local identifier.
            cipher: Hybrid cipher bound to the local identity.
            directory: Resolves peers' exchange keys.
            poll_interval: Seconds between polls in ``subscribe``.
        """
        self._http = http_client
        self._identity = identity_manager
        self._cipher = cipher
        self._directory = directory
        self._poll_interval = poll_interval

    async def send_message(self, recipient_id: str, text: str) -> DecryptedMessage:
        """
        Encrypt ``text`` for ``recipient_id`` and store it.

        Returns:
            The sent message in plaintext, for local display.

        Raises:
            KeysNotFoundError: If no identity is active.
            PeerNotFoundError: If the recipient is not in the directory.
            RecipientKeyInvalidError: If the recipient's key cannot be used.
        """
        sender_id = await self._require_identifier()
        recipient_key = await self._directory.get_peer_key(recipient_id)

        try:
            payload = self._cipher.encrypt(text, recipient_key)
        except RecipientKeyInvalidError:
            self._directory.forget_peer(recipient_id)
            raise

        conversation_id = conversation_id_for(sender_id, recipient_id)
        stored = await insert_message(
            self._http,
            MessageRecord(
                conversation_id=conversation_id,
                sender_id=sender_id,
                recipient_id=recipient_id,
                payload=payload,
                status=MessageStatus.SENT,
            ),
        )
        await upsert_conversation(
            self._http, conversation_id, sender_id, recipient_id, ENCRYPTED_PLACEHOLDER
        )

        logger.info("Message sent", conversation_id=conversation_id[:20])
        return DecryptedMessage(
            message_id=stored.message_id,
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=text,
            created_at=stored.created_at,
            status=stored.status,
        )

    async def fetch_conversation(self, peer_id: str) -> list[DecryptedMessage]:
        """
        Load and decrypt every message addressed to us from ``peer_id``.

        Messages we sent are encrypted to the peer only and are not returned.
        """
        me = await self._require_identifier()
        records = await fetch_messages(self._http, conversation_id_for(me, peer_id))

        messages = []
        for record in records:
            message = await self._try_decrypt(record, me)
            if message is not None:
                messages.append(message)

        logger.debug("Fetched conversation", total=len(records), decrypted=len(messages))
        return messages

    async def subscribe(
        self, peer_id: str, *, since: datetime | None = None
    ) -> AsyncIterator[DecryptedMessage]:
        """
        Yield messages from ``peer_id`` as they are inserted.

        Polls the relay every ``poll_interval`` seconds. Runs until the caller
        stops iterating.

        Args:
            peer_id: The other participant.
            since: Only messages inserted after this instant. Defaults to now.
        """
        me = await self._require_identifier()
        conversation_id = conversation_id_for(me, peer_id)
        cursor = since or datetime.now(timezone.utc)

        while True:
            records = await fetch_messages_since(self._http, conversation_id, cursor)
            for record in records:
                if record.created_at is not None and record.created_at > cursor:
                    cursor = record.created_at
                message = await self._try_decrypt(record, me)
                if message is not None:
                    yield message
            await asyncio.sleep(self._poll_interval)

    async def mark_read(self, message: DecryptedMessage) -> None:
        if message.message_id is None:
            return
        await mark_message_read(self._http, message.message_id)

    async def list_peers(self) -> list[str]:
        """Identifiers of everyone we have a conversation with, most recent first."""
        me = await self._require_identifier()
        rows = await fetch_conversations(self._http, me)
        return [
            row["participant2_id"] if row["participant1_id"] == me else row["participant1_id"]
            for row in rows
        ]

    async def _try_decrypt(self, record: MessageRecord, me: str) -> DecryptedMessage | None:
        if record.recipient_id != me:
            return None

        try:
            content = await self._cipher.decrypt(record.payload)
        except DecryptionFailedError:
            logger.warning("Failed to decrypt message, skipping", message_id=record.message_id)
            return None

        return DecryptedMessage(
            message_id=record.message_id,
            conversation_id=record.conversation_id,
            sender_id=record.sender_id,
            content=content,
            created_at=record.created_at,
            read_at=record.read_at,
            status=record.status,
        )

    async def _require_identifier(self) -> str:
        identifier = await self._identity.get_identifier()
        if identifier is None:
            raise KeysNotFoundError()
        return identifier
