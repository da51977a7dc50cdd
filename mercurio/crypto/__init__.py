"""
Cryptographic operations for Mercurio.

This module provides:
- Recovery phrase generation, validation and seed derivation
- Identity management (Ed25519 signing key, RSA exchange key)
- DER and wire encoding of RSA public keys
- Hybrid AES-GCM / RSA-OAEP message encryption
- Secure memory handling
"""

from mercurio.crypto.hybrid import MessageCipher, decrypt_message, encrypt_message
from mercurio.crypto.identity import IdentityManager
from mercurio.crypto.key_codec import (
    decode_public_key_from_der,
    encode_public_key_to_der,
    from_wire_format,
    to_wire_format,
)
from mercurio.crypto.recovery import (
    derive_signing_seed,
    generate_recovery_phrase,
    validate_recovery_phrase,
)
from mercurio.crypto.secure_bytes import SecureBytes

__all__ = [
    "SecureBytes",
    "IdentityManager",
    "MessageCipher",
    "encrypt_message",
    "decrypt_message",
    "decode_public_key_from_der",
    "encode_public_key_to_der",
    "to_wire_format",
    "from_wire_format",
    "generate_recovery_phrase",
    "validate_recovery_phrase",
    "derive_signing_seed",
]
