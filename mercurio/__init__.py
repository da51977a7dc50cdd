"""
Mercurio Python Client.

An async client for anonymous, end-to-end encrypted one-to-one messaging.
Identities are Ed25519 keys restored from a 12-word recovery phrase; messages
are sealed with AES-256-GCM under a key wrapped for the recipient's RSA key.

Example:
    ```python
    from mercurio import MercurioClient, MercurioConfig

    async with MercurioClient(MercurioConfig.from_env()) as client:
        my_id = await client.register()
        print("Share your ID:", my_id)

        await client.send_message(peer_id, "hello")

        async for message in client.subscribe(peer_id):
            print(message.content)
    ```
"""

from mercurio.client import MercurioClient
from mercurio.config import MercurioConfig
from mercurio.exceptions import (
    APIError,
    CryptoError,
    DecryptionFailedError,
    IdentityError,
    InvalidRecoveryPhraseError,
    KeyGenerationError,
    KeysNotFoundError,
    MalformedKeyEncodingError,
    MercurioError,
    NetworkError,
    NotFoundError,
    PeerNotFoundError,
    RateLimitError,
    RecipientKeyInvalidError,
    ServerError,
    StoreReadError,
    StoreWriteError,
)
from mercurio.models.crypto import EncryptedPayload, PublicMaterial, RSAPublicKey
from mercurio.models.messaging import DecryptedMessage

__version__ = "0.1.0"

__all__ = [
    # Main client
    "MercurioClient",
    "MercurioConfig",
    # Models
    "DecryptedMessage",
    "EncryptedPayload",
    "PublicMaterial",
    "RSAPublicKey",
    # Exceptions
    "MercurioError",
    "IdentityError",
    "InvalidRecoveryPhraseError",
    "KeysNotFoundError",
    "KeyGenerationError",
    "CryptoError",
    "MalformedKeyEncodingError",
    "RecipientKeyInvalidError",
    "DecryptionFailedError",
    "StoreReadError",
    "StoreWriteError",
    "APIError",
    "NotFoundError",
    "RateLimitError",
    "ServerError",
    "NetworkError",
    "PeerNotFoundError",
]
