"""
Recovery phrase handling (BIP-39, English word list).

A phrase is 12 words encoding 128 bits of entropy plus a 4-bit checksum.
The seed is PBKDF2-HMAC-SHA512 over the phrase with the salt
``"mnemonic"`` and an empty passphrase, 2048 iterations.
"""

from mnemonic import Mnemonic

from mercurio.crypto.secure_bytes import SecureBytes
from mercurio.exceptions import InvalidRecoveryPhraseError

PHRASE_WORD_COUNT = 12
ENTROPY_BITS = 128
SIGNING_SEED_SIZE = 32

_mnemo = Mnemonic("english")
_WORDS = frozenset(_mnemo.wordlist)


def generate_recovery_phrase() -> str:
    """Generate a fresh 12-word phrase from 128 bits of OS entropy."""
    return _mnemo.generate(strength=ENTROPY_BITS)


def normalize_phrase(phrase: str) -> str:
    """Lowercase and collapse whitespace to single spaces."""
    return " ".join(phrase.lower().split())


def validate_recovery_phrase(phrase: str) -> str:
    """
    Check length, word-list membership and checksum.

    Args:
        phrase: User-supplied phrase.

    Returns:
        The normalized phrase.

    Raises:
        InvalidRecoveryPhraseError: If any check fails.
    """
    normalized = normalize_phrase(phrase)
    words = normalized.split(" ") if normalized else []

    if len(words) != PHRASE_WORD_COUNT:
        raise InvalidRecoveryPhraseError(
            f"Recovery phrase must have {PHRASE_WORD_COUNT} words", word_count=len(words)
        )

    unknown = [i for i, word in enumerate(words) if word not in _WORDS]
    if unknown:
        raise InvalidRecoveryPhraseError("Unknown word in recovery phrase", positions=unknown)

    if not _mnemo.check(normalized):
        raise InvalidRecoveryPhraseError("Recovery phrase checksum mismatch")

    return normalized


def phrase_to_seed(phrase: str) -> SecureBytes:
    """
    Derive the 64-byte BIP-39 seed. The phrase must already be validated.
    """
    return SecureBytes(Mnemonic.to_seed(phrase, passphrase=""))


def derive_signing_seed(phrase: str, *, clamp: bool = False) -> SecureBytes:
    """
    Derive the Ed25519 signing seed from a validated phrase.

    The first 32 bytes of the BIP-39 seed are used as-is. With ``clamp`` the
    Curve25519 bit clearing is applied first, which reproduces identifiers
    created by clients that clamp.

    Returns:
        32-byte seed. Caller clears it.
    """
    with phrase_to_seed(phrase) as seed:
        signing_seed = seed.prefix(SIGNING_SEED_SIZE)

    if not clamp:
        return signing_seed

    with signing_seed:
        return SecureBytes(clamp_scalar(bytes(signing_seed)))


def clamp_scalar(seed: bytes) -> bytes:
    """Apply Curve25519 scalar clamping to a 32-byte value."""
    if len(seed) != SIGNING_SEED_SIZE:
        msg = f"Seed must be {SIGNING_SEED_SIZE} bytes"
        raise ValueError(msg)
    clamped = bytearray(seed)
    clamped[0] &= 248
    clamped[31] &= 127
    clamped[31] |= 64
    return bytes(clamped)
