"""
Identity lifecycle for a single device.

An identity is an Ed25519 signing keypair (whose public key yields the
identifier), an RSA exchange keypair used to receive messages, and the
recovery phrase. Only the signing keypair can be recreated from the phrase;
the exchange keypair is always freshly generated.
"""

import asyncio
import contextlib
import json

import structlog
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, rsa

from mercurio.crypto.key_codec import from_wire_format, public_key_from_crypto, to_wire_format
from mercurio.crypto.recovery import (
    derive_signing_seed,
    generate_recovery_phrase,
    validate_recovery_phrase,
)
from mercurio.exceptions import (
    KeyGenerationError,
    KeysNotFoundError,
    MalformedKeyEncodingError,
    StoreWriteError,
)
from mercurio.models.crypto import (
    Identity,
    PublicMaterial,
    RSAPublicKey,
    identifier_from_signing_key,
)
from mercurio.storage.protocol import CredentialName, CredentialStore

logger = structlog.get_logger(__name__)


class IdentityManager:
    """
    Owns the device's single active identity.

    The durable copy lives in the credential store; every operation goes
    through an internal lock, so generation, restoration and logout never
    interleave with a read. CPU-bound key generation and store I/O run in a
    worker thread while the lock is held.
    """

    def __init__(
        self,
        store: CredentialStore,
        *,
        rsa_key_size: int = 2048,
        rsa_public_exponent: int = 65537,
        clamp_signing_seed: bool = False,
    ) -> None:
        """
        Args:
            store: Durable storage for the identity's fields.
            rsa_key_size: Exchange key modulus size in bits.
            rsa_public_exponent: Exchange key public exponent.
            clamp_signing_seed: Clamp the phrase-derived signing seed.
        """
        self._store = store
        self._rsa_key_size = rsa_key_size
        self._rsa_public_exponent = rsa_public_exponent
        self._clamp_signing_seed = clamp_signing_seed
        self._lock = asyncio.Lock()
        self._exchange_key: rsa.RSAPrivateKey | None = None

    async def generate_identity(self) -> str:
        """
        Create a brand new identity and persist it.

        Returns:
            The new identifier.

        Raises:
            KeyGenerationError: If a keypair cannot be generated.
            StoreWriteError: If persisting fails.
        """
        logger.info("Starting identity generation")
        async with self._lock:
            identity = await asyncio.to_thread(self._build_identity, None)
            await self._persist(identity)

        logger.info("Identity generated", identifier=identity.identifier[:20])
        return identity.identifier

    async def restore_from_phrase(self, phrase: str) -> str:
        """
        Recreate the signing identity from a recovery phrase.

        The identifier is the same on every device for the same phrase. The
        exchange keypair is new, so messages encrypted to a previous exchange
        key can no longer be decrypted.

        Args:
            phrase: 12-word recovery phrase.

        Returns:
            The restored identifier.

        Raises:
            InvalidRecoveryPhraseError: On an unknown word or bad checksum.
            KeyGenerationError: If a keypair cannot be generated.
            StoreWriteError: If persisting fails.
        """
        normalized = validate_recovery_phrase(phrase)

        logger.info("Restoring identity from recovery phrase")
        async with self._lock:
            identity = await asyncio.to_thread(self._build_identity, normalized)
            await self._persist(identity)

        logger.info("Identity restored", identifier=identity.identifier[:20])
        return identity.identifier

    async def has_identity(self) -> bool:
        return await self.get_identifier() is not None

    async def get_identifier(self) -> str | None:
        value = await self._read(CredentialName.IDENTIFIER)
        return value.decode("utf-8") if value is not None else None

    async def get_recovery_phrase(self) -> str | None:
        value = await self._read(CredentialName.RECOVERY_PHRASE)
        return value.decode("utf-8") if value is not None else None

    async def get_public_material(self) -> PublicMaterial:
        """
        Public keys to publish in the directory.

        Raises:
            KeysNotFoundError: If no identity is active.
            MalformedKeyEncodingError: If the stored exchange key is corrupt.
        """
        async with self._lock:
            signing_public = await asyncio.to_thread(
                self._store.get, CredentialName.SIGNING_PUBLIC_KEY
            )
            exchange_public = await asyncio.to_thread(
                self._store.get, CredentialName.EXCHANGE_PUBLIC_KEY
            )

        if signing_public is None or exchange_public is None:
            raise KeysNotFoundError()

        return PublicMaterial(
            signing_public_key=signing_public,
            exchange_public_key=_decode_stored_public_key(exchange_public),
        )

    async def exchange_private_key(self) -> rsa.RSAPrivateKey:
        """
        The local exchange private key, loaded once and cached.

        Raises:
            KeysNotFoundError: If no identity is active or the key is unreadable.
        """
        async with self._lock:
            if self._exchange_key is not None:
                return self._exchange_key

            der = await asyncio.to_thread(self._store.get, CredentialName.EXCHANGE_PRIVATE_KEY)
            if der is None:
                raise KeysNotFoundError()

            try:
                key = serialization.load_der_private_key(der, password=None)
            except (ValueError, TypeError, UnsupportedAlgorithm) as e:
                logger.error("Stored exchange key is unreadable", error_type=type(e).__name__)
                raise KeysNotFoundError() from e
            if not isinstance(key, rsa.RSAPrivateKey):
                raise KeysNotFoundError()

            self._exchange_key = key
            return key

    async def clear_identity(self) -> None:
        """Erase every persisted field. Idempotent."""
        async with self._lock:
            self._exchange_key = None
            await asyncio.to_thread(self._store.delete_all)
        logger.info("Identity cleared")

    def _build_identity(self, phrase: str | None) -> Identity:
        if phrase is None:
            signing_key = _generate_signing_key()
            phrase = generate_recovery_phrase()
        else:
            with derive_signing_seed(phrase, clamp=self._clamp_signing_seed) as seed:
                signing_key = _signing_key_from_seed(bytes(seed))

        exchange_key = self._generate_exchange_key()
        exchange_private = exchange_key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

        signing_public = signing_key.public_key().public_bytes_raw()
        return Identity(
            identifier=identifier_from_signing_key(signing_public),
            signing_public_key=signing_public,
            signing_private_key=signing_key.private_bytes_raw(),
            exchange_public_key=public_key_from_crypto(exchange_key.public_key()),
            exchange_private_key=exchange_private,
            recovery_phrase=phrase,
        )

    def _generate_exchange_key(self) -> rsa.RSAPrivateKey:
        try:
            return rsa.generate_private_key(
                public_exponent=self._rsa_public_exponent,
                key_size=self._rsa_key_size,
            )
        except (ValueError, UnsupportedAlgorithm) as e:
            msg = f"Failed to generate exchange keypair: {e}"
            raise KeyGenerationError(msg, key_type="exchange") from e

    async def _persist(self, identity: Identity) -> None:
        entries = {
            CredentialName.SIGNING_PUBLIC_KEY: identity.signing_public_key,
            CredentialName.SIGNING_PRIVATE_KEY: identity.signing_private_key,
            CredentialName.EXCHANGE_PUBLIC_KEY: _encode_stored_public_key(
                identity.exchange_public_key
            ),
            CredentialName.EXCHANGE_PRIVATE_KEY: identity.exchange_private_key,
            CredentialName.IDENTIFIER: identity.identifier.encode("utf-8"),
            CredentialName.RECOVERY_PHRASE: identity.recovery_phrase.encode("utf-8"),
        }

        self._exchange_key = None
        try:
            await asyncio.to_thread(self._store.save, entries)
        except StoreWriteError:
            # Never leave a half-written identity behind.
            logger.error("Failed to persist identity, clearing store")
            with contextlib.suppress(StoreWriteError):
                await asyncio.to_thread(self._store.delete_all)
            raise

        logger.debug("Identity persisted", namespace=self._store.namespace)

    async def _read(self, name: CredentialName) -> bytes | None:
        async with self._lock:
            return await asyncio.to_thread(self._store.get, name)


def _generate_signing_key() -> ed25519.Ed25519PrivateKey:
    try:
        return ed25519.Ed25519PrivateKey.generate()
    except UnsupportedAlgorithm as e:
        msg = f"Failed to generate signing keypair: {e}"
        raise KeyGenerationError(msg, key_type="signing") from e


def _signing_key_from_seed(seed: bytes) -> ed25519.Ed25519PrivateKey:
    try:
        return ed25519.Ed25519PrivateKey.from_private_bytes(seed)
    except (ValueError, UnsupportedAlgorithm) as e:
        msg = f"Failed to derive signing keypair: {e}"
        raise KeyGenerationError(msg, key_type="signing") from e


def _encode_stored_public_key(key: RSAPublicKey) -> bytes:
    return json.dumps(to_wire_format(key), sort_keys=True).encode("utf-8")


def _decode_stored_public_key(data: bytes) -> RSAPublicKey:
    try:
        wire = json.loads(data)
    except (ValueError, UnicodeDecodeError) as e:
        msg = "Stored exchange public key is not valid JSON"
        raise MalformedKeyEncodingError(msg) from e
    if not isinstance(wire, dict):
        msg = "Stored exchange public key has the wrong shape"
        raise MalformedKeyEncodingError(msg)
    return from_wire_format(wire)
