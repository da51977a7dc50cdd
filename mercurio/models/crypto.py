"""
Cryptographic domain models.
"""

from dataclasses import dataclass, field
from typing import Self

IDENTIFIER_PREFIX = "05"
IDENTIFIER_LENGTH = 66
SIGNING_KEY_SIZE = 32
AES_KEY_SIZE = 32
GCM_NONCE_SIZE = 12
GCM_TAG_SIZE = 16


@dataclass(frozen=True, kw_only=True)
class RSAPublicKey:
    """
    RSA exchange public key as raw big-endian unsigned integers.

    Attributes:
        modulus: Modulus bytes, possibly with a leading 0x00 pad byte.
        exponent: Public exponent bytes (usually ``01 00 01``).
    """

    modulus: bytes
    exponent: bytes

    def __post_init__(self) -> None:
        if not self.modulus:
            msg = "modulus must not be empty"
            raise ValueError(msg)
        if not self.exponent:
            msg = "exponent must not be empty"
            raise ValueError(msg)

    @property
    def n(self) -> int:
        return int.from_bytes(self.modulus, "big")

    @property
    def e(self) -> int:
        return int.from_bytes(self.exponent, "big")

    @property
    def key_size(self) -> int:
        """Modulus size in bits."""
        return self.n.bit_length()


@dataclass(frozen=True, kw_only=True)
class EncryptedPayload:
    """
    One hybrid-encrypted message, every field base64-encoded.

    Attributes:
        ciphertext: AES-256-GCM ciphertext without the tag.
        wrapped_key: AES key encrypted with RSA-OAEP-SHA256.
        nonce: 12-byte GCM nonce.
        tag: 16-byte GCM authentication tag.
    """

    ciphertext: str
    wrapped_key: str
    nonce: str
    tag: str

    def to_record(self) -> dict[str, str]:
        """Map onto the stored message record columns."""
        return {
            "encrypted_content": self.ciphertext,
            "encrypted_aes_key": self.wrapped_key,
            "nonce": self.nonce,
            "mac": self.tag,
        }

    @classmethod
    def from_record(cls, record: dict[str, object]) -> Self:
        """Build from a stored message record."""
        return cls(
            ciphertext=str(record["encrypted_content"]),
            wrapped_key=str(record["encrypted_aes_key"]),
            nonce=str(record["nonce"]),
            tag=str(record["mac"]),
        )


@dataclass(frozen=True, kw_only=True)
class PublicMaterial:
    """Public half of the local identity, safe to publish."""

    signing_public_key: bytes
    exchange_public_key: RSAPublicKey


@dataclass(frozen=True, kw_only=True)
class Identity:
    """
    The device's single active identity.

    Private fields are excluded from repr.
    """

    identifier: str
    signing_public_key: bytes
    signing_private_key: bytes = field(repr=False)
    exchange_public_key: RSAPublicKey
    exchange_private_key: bytes = field(repr=False)
    recovery_phrase: str = field(repr=False)

    @property
    def public_material(self) -> PublicMaterial:
        return PublicMaterial(
            signing_public_key=self.signing_public_key,
            exchange_public_key=self.exchange_public_key,
        )


def identifier_from_signing_key(signing_public_key: bytes) -> str:
    """
    Derive the public identifier from an Ed25519 public key.

    Args:
        signing_public_key: Raw 32-byte Ed25519 public key.

    Returns:
        ``"05"`` followed by 64 lowercase hex characters.

    Raises:
        ValueError: If the key is not 32 bytes.
    """
    if len(signing_public_key) != SIGNING_KEY_SIZE:
        msg = f"Signing public key must be {SIGNING_KEY_SIZE} bytes, got {len(signing_public_key)}"
        raise ValueError(msg)
    return IDENTIFIER_PREFIX + signing_public_key.hex()


def is_valid_identifier(identifier: str) -> bool:
    """Check that a string has the identifier shape."""
    if len(identifier) != IDENTIFIER_LENGTH or not identifier.startswith(IDENTIFIER_PREFIX):
        return False
    hex_part = identifier[len(IDENTIFIER_PREFIX) :]
    return all(c in "0123456789abcdef" for c in hex_part)
