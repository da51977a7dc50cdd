"""
Mercurio client facade.

This is the main entry point for users of the library. It wires the
credential store, identity manager, cipher and backend services together.
"""

import asyncio
from collections.abc import AsyncIterator
from typing import Self

import httpx
import structlog

from mercurio.api.http_client import AsyncHttpClient
from mercurio.config import MercurioConfig
from mercurio.crypto.hybrid import MessageCipher
from mercurio.crypto.identity import IdentityManager
from mercurio.exceptions import APIError, NetworkError
from mercurio.models.crypto import PublicMaterial
from mercurio.models.messaging import DecryptedMessage
from mercurio.services.directory_service import DirectoryService
from mercurio.services.messaging_service import MessagingService
from mercurio.storage.file_store import FileCredentialStore
from mercurio.storage.memory import InMemoryCredentialStore
from mercurio.storage.protocol import CredentialStore

logger = structlog.get_logger(__name__)


class MercurioClient:
    """
    Async client for end-to-end encrypted messaging.

    Example:
        ```python
        async with MercurioClient(MercurioConfig.from_env()) as client:
            if not await client.has_identity():
                my_id = await client.register()
                print("Write these words down:", await client.recovery_phrase())

            await client.send_message(peer_id, "hello")
            for message in await client.fetch_conversation(peer_id):
                print(message.content)
        ```

    Args:
        config: Client configuration. Uses defaults if not provided.
        store: Credential store. Defaults to a file store under
            ``config.credential_dir``, or memory when that is unset.
        transport: Optional httpx transport for testing (mock transport).
    """

    def __init__(
        self,
        config: MercurioConfig | None = None,
        *,
        store: CredentialStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or MercurioConfig()
        self._transport = transport
        self._store = store if store is not None else _default_store(self._config)

        self._identity = IdentityManager(
            self._store,
            rsa_key_size=self._config.rsa_key_size,
            rsa_public_exponent=self._config.rsa_public_exponent,
            clamp_signing_seed=self._config.clamp_signing_seed,
        )
        self._cipher = MessageCipher(self._identity)

        self._http: AsyncHttpClient | None = None
        self._directory: DirectoryService | None = None
        self._messaging: MessagingService | None = None

        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def __aenter__(self) -> Self:
        await self._ensure_initialized()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        await self.close()

    @property
    def identity(self) -> IdentityManager:
        return self._identity

    @property
    def cipher(self) -> MessageCipher:
        return self._cipher

    async def _ensure_initialized(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return

            self._http = AsyncHttpClient(self._config, transport=self._transport)
            await self._http.__aenter__()

            self._directory = DirectoryService(
                self._http,
                self._identity,
                cache_size=self._config.peer_key_cache_size,
                cache_ttl=self._config.peer_key_ttl,
            )
            self._messaging = MessagingService(
                self._http,
                self._identity,
                self._cipher,
                self._directory,
                poll_interval=self._config.poll_interval,
            )

            self._initialized = True
            logger.debug("Client initialized")

    async def close(self) -> None:
        """Close the HTTP client. Stored credentials are kept."""
        async with self._init_lock:
            if self._http:
                await self._http.__aexit__(None, None, None)
                self._http = None

            self._directory = None
            self._messaging = None
            self._initialized = False
            logger.debug("Client closed")

    async def has_identity(self) -> bool:
        return await self._identity.has_identity()

    async def identifier(self) -> str | None:
        return await self._identity.get_identifier()

    async def recovery_phrase(self) -> str | None:
        return await self._identity.get_recovery_phrase()

    async def public_material(self) -> PublicMaterial:
        return await self._identity.get_public_material()

    async def register(self) -> str:
        """
        Generate a new identity and publish its public keys.

        Returns:
            The new identifier.
        """
        directory = self._directory_service()
        identifier = await self._identity.generate_identity()
        await directory.publish_identity()
        return identifier

    async def restore(self, phrase: str) -> str:
        """
        Restore an identity from its recovery phrase and republish.

        Messages encrypted to the previous exchange key stay undecryptable.

        Raises:
            InvalidRecoveryPhraseError: If the phrase is not valid.
        """
        directory = self._directory_service()
        identifier = await self._identity.restore_from_phrase(phrase)
        await directory.publish_identity()
        return identifier

    async def send_message(self, recipient_id: str, text: str) -> DecryptedMessage:
        return await self._messaging_service().send_message(recipient_id, text)

    async def fetch_conversation(self, peer_id: str) -> list[DecryptedMessage]:
        return await self._messaging_service().fetch_conversation(peer_id)

    def subscribe(self, peer_id: str) -> AsyncIterator[DecryptedMessage]:
        """Follow new messages from ``peer_id``. Close the iterator to stop."""
        return self._messaging_service().subscribe(peer_id)

    async def mark_read(self, message: DecryptedMessage) -> None:
        await self._messaging_service().mark_read(message)

    async def list_peers(self) -> list[str]:
        return await self._messaging_service().list_peers()

    async def logout(self) -> None:
        """Mark offline, erase the local identity and forget cached peer keys."""
        if self._directory is not None:
            try:
                await self._directory.set_offline()
            except (APIError, NetworkError) as e:
                logger.warning("Presence update failed", error_type=type(e).__name__)
            self._directory.clear_cache()
        await self._identity.clear_identity()

    def _directory_service(self) -> DirectoryService:
        if self._directory is None:
            msg = "Client not initialized. Use 'async with' first."
            raise RuntimeError(msg)
        return self._directory

    def _messaging_service(self) -> MessagingService:
        if self._messaging is None:
            msg = "Client not initialized. Use 'async with' first."
            raise RuntimeError(msg)
        return self._messaging


def _default_store(config: MercurioConfig) -> CredentialStore:
    if config.credential_dir is not None:
        return FileCredentialStore(config.credential_dir, namespace=config.credential_namespace)
    return InMemoryCredentialStore(namespace=config.credential_namespace)
