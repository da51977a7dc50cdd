"""
Directory service.

Publishes the local identity's public keys and resolves peers' exchange keys.
"""

import base64
from datetime import datetime, timezone

import structlog

from mercurio.api.endpoints.users import fetch_user, set_presence, upsert_user
from mercurio.api.http_client import AsyncHttpClient
from mercurio.crypto.identity import IdentityManager
from mercurio.crypto.key_codec import WIRE_EXPONENT, WIRE_MODULUS, from_wire_format, to_wire_format
from mercurio.exceptions import (
    KeysNotFoundError,
    MalformedKeyEncodingError,
    PeerNotFoundError,
    RecipientKeyInvalidError,
)
from mercurio.models.crypto import RSAPublicKey, is_valid_identifier
from mercurio.models.messaging import UserRecord
from mercurio.services.key_cache import PeerKeyCache

logger = structlog.get_logger(__name__)


class DirectoryService:
    """Bridges the identity manager and the backend user directory."""

    def __init__(
        self,
        http_client: AsyncHttpClient,
        identity_manager: IdentityManager,
        *,
        cache_size: int = 256,
        cache_ttl: float = 300.0,
    ) -> None:
        """
        Args:
            http_client: HTTP client for API requests.
            identity_manager: Source of the local public material.
            cache_size: Maximum number of peer keys to cache.
            cache_ttl: Seconds before a cached peer key is fetched again.
        """
        self._http = http_client
        self._identity = identity_manager
        self._cache = PeerKeyCache(max_size=cache_size, ttl=cache_ttl)

    async def publish_identity(self) -> UserRecord:
        """
        Upload the local identifier and public keys.

        Returns:
            The published record.

        Raises:
            KeysNotFoundError: If no identity is active.
        """
        identifier = await self._identity.get_identifier()
        if identifier is None:
            raise KeysNotFoundError()
        material = await self._identity.get_public_material()
        wire = to_wire_format(material.exchange_public_key)

        record = UserRecord(
            identifier=identifier,
            signing_public_key=base64.b64encode(material.signing_public_key).decode("ascii"),
            rsa_public_key_modulus=wire[WIRE_MODULUS],
            rsa_public_key_exponent=wire[WIRE_EXPONENT],
            is_online=True,
            last_seen=datetime.now(timezone.utc),
        )
        await upsert_user(self._http, record)
        logger.info("Published public keys", identifier=identifier[:20])
        return record

    async def set_offline(self) -> None:
        """Mark the local user offline. No-op without an identity."""
        identifier = await self._identity.get_identifier()
        if identifier is not None:
            await set_presence(self._http, identifier, is_online=False)

    async def get_peer_key(self, identifier: str) -> RSAPublicKey:
        """
        Resolve a peer's exchange key, from cache when possible.

        Raises:
            PeerNotFoundError: If the identifier is malformed or unpublished.
            RecipientKeyInvalidError: If the published key columns are corrupt.
        """
        if not is_valid_identifier(identifier):
            raise PeerNotFoundError(identifier)

        if (cached := self._cache.get(identifier)) is not None:
            logger.debug("Peer key retrieved from cache", identifier=identifier[:20])
            return cached

        user = await fetch_user(self._http, identifier)
        if user is None:
            raise PeerNotFoundError(identifier)

        try:
            key = from_wire_format(
                {
                    WIRE_MODULUS: user.rsa_public_key_modulus,
                    WIRE_EXPONENT: user.rsa_public_key_exponent,
                }
            )
        except MalformedKeyEncodingError as e:
            logger.warning("Peer published a malformed key", identifier=identifier[:20])
            raise RecipientKeyInvalidError(identifier=identifier[:12]) from e

        self._cache.put(identifier, key)
        return key

    def forget_peer(self, identifier: str) -> None:
        self._cache.invalidate(identifier)

    def clear_cache(self) -> None:
        self._cache.clear()
