"""
Hybrid message encryption.

Each message gets a fresh AES-256-GCM key and nonce. The AES key is wrapped
for the recipient with RSA-OAEP (SHA-256), and the GCM tag is carried as a
separate field so both clients can store the four parts independently.
"""

import base64
import os
from typing import TYPE_CHECKING

from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from mercurio.crypto.key_codec import encode_public_key_to_der
from mercurio.exceptions import DecryptionFailedError, RecipientKeyInvalidError
from mercurio.models.crypto import (
    AES_KEY_SIZE,
    GCM_NONCE_SIZE,
    GCM_TAG_SIZE,
    EncryptedPayload,
    RSAPublicKey,
)

if TYPE_CHECKING:
    from mercurio.crypto.identity import IdentityManager

_MIN_RECIPIENT_KEY_BITS = 2048

_OAEP = padding.OAEP(
    mgf=padding.MGF1(algorithm=hashes.SHA256()),
    algorithm=hashes.SHA256(),
    label=None,
)


def encrypt_message(plaintext: str, recipient_key: RSAPublicKey) -> EncryptedPayload:
    """
    Encrypt text for one recipient.

    Args:
        plaintext: Message text, encoded as UTF-8 before encryption.
        recipient_key: The recipient's published exchange key.

    Returns:
        Base64 ciphertext, wrapped key, nonce and tag.

    Raises:
        RecipientKeyInvalidError: If the recipient key cannot be imported.
    """
    public_key = import_recipient_key(recipient_key)

    aes_key = AESGCM.generate_key(bit_length=AES_KEY_SIZE * 8)
    nonce = os.urandom(GCM_NONCE_SIZE)
    sealed = AESGCM(aes_key).encrypt(nonce, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-GCM_TAG_SIZE], sealed[-GCM_TAG_SIZE:]

    wrapped_key = public_key.encrypt(aes_key, _OAEP)

    return EncryptedPayload(
        ciphertext=_b64encode(ciphertext),
        wrapped_key=_b64encode(wrapped_key),
        nonce=_b64encode(nonce),
        tag=_b64encode(tag),
    )


def decrypt_message(payload: EncryptedPayload, private_key: rsa.RSAPrivateKey) -> str:
    """
    Decrypt a payload with the local exchange private key.

    The tag is verified before any plaintext is returned.

    Raises:
        DecryptionFailedError: On any decoding, unwrap, authentication or
            UTF-8 failure. The cause is deliberately not exposed.
    """
    try:
        ciphertext = _b64decode(payload.ciphertext)
        wrapped_key = _b64decode(payload.wrapped_key)
        nonce = _b64decode(payload.nonce)
        tag = _b64decode(payload.tag)
        if len(nonce) != GCM_NONCE_SIZE or len(tag) != GCM_TAG_SIZE:
            raise DecryptionFailedError()

        aes_key = private_key.decrypt(wrapped_key, _OAEP)
        if len(aes_key) != AES_KEY_SIZE:
            raise DecryptionFailedError()

        plaintext = AESGCM(aes_key).decrypt(nonce, ciphertext + tag, None)
        return plaintext.decode("utf-8")
    except (ValueError, TypeError, InvalidTag):
        raise DecryptionFailedError() from None


def import_recipient_key(recipient_key: RSAPublicKey) -> rsa.RSAPublicKey:
    """
    Import a peer's key through its DER encoding.

    Raises:
        RecipientKeyInvalidError: If the key does not load as a usable RSA key.
    """
    try:
        public_key = serialization.load_der_public_key(encode_public_key_to_der(recipient_key))
    except (ValueError, UnsupportedAlgorithm) as e:
        raise RecipientKeyInvalidError(reason=str(e)) from e

    if not isinstance(public_key, rsa.RSAPublicKey):
        raise RecipientKeyInvalidError(reason="not an RSA key")
    if public_key.key_size < _MIN_RECIPIENT_KEY_BITS:
        raise RecipientKeyInvalidError(reason=f"key too small: {public_key.key_size} bits")
    return public_key


class MessageCipher:
    """
    Encrypts for peers and decrypts with the local identity.

    Stateless apart from the identity manager it reads the private key from;
    calls for different messages can run concurrently.
    """

    def __init__(self, identity_manager: "IdentityManager") -> None:
        """
        Args:
            identity_manager: Source of the local exchange private key.
        """
        self._identity = identity_manager

    def encrypt(self, plaintext: str, recipient_key: RSAPublicKey) -> EncryptedPayload:
        return encrypt_message(plaintext, recipient_key)

    async def decrypt(self, payload: EncryptedPayload) -> str:
        """
        Decrypt a payload addressed to the local identity.

        Raises:
            KeysNotFoundError: If no identity is active.
            DecryptionFailedError: If the payload does not decrypt.
        """
        private_key = await self._identity.exchange_private_key()
        return decrypt_message(payload, private_key)


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(value: str) -> bytes:
    return base64.b64decode(value, validate=True)
