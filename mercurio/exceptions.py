"""
Mercurio exception hierarchy.

All exceptions inherit from MercurioError for easy catching.
"""

from typing import Any


class MercurioError(Exception):
    """Base exception for all mercurio errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class IdentityError(MercurioError):
    """Identity lifecycle operation failed."""


class InvalidRecoveryPhraseError(IdentityError):
    """Recovery phrase has an unknown word, a wrong length or a bad checksum."""

    def __init__(self, message: str = "Invalid recovery phrase", **context: Any) -> None:
        super().__init__(message, **context)


class KeysNotFoundError(IdentityError):
    """No identity is active on this device."""

    def __init__(self, message: str = "Not authenticated: no identity keys found") -> None:
        super().__init__(message)


class KeyGenerationError(IdentityError):
    """Asymmetric key generation failed. Safe to retry."""

    def __init__(self, message: str, *, key_type: str | None = None) -> None:
        super().__init__(message, key_type=key_type)
        self.key_type = key_type


class CryptoError(MercurioError):
    """Cryptographic operation failed."""


class MalformedKeyEncodingError(CryptoError):
    """Public key bytes are corrupt or not a DER RSA public key."""

    def __init__(self, message: str, *, offset: int | None = None) -> None:
        super().__init__(message, offset=offset)
        self.offset = offset


class RecipientKeyInvalidError(CryptoError):
    """The peer's published exchange key could not be imported."""

    def __init__(
        self, message: str = "Cannot message this user: invalid public key", **context: Any
    ) -> None:
        super().__init__(message, **context)


class DecryptionFailedError(CryptoError):
    """
    Message could not be decrypted.

    Raised identically for key-unwrap, authentication and decoding failures.
    """

    def __init__(self) -> None:
        super().__init__("Decryption failed")


class StoreWriteError(MercurioError):
    """Credential store write or delete failed."""

    def __init__(self, message: str, *, status: int | None = None, name: str | None = None) -> None:
        super().__init__(message, status=status, name=name)
        self.status = status
        self.name = name


class StoreReadError(MercurioError):
    """Credential store entry exists but could not be read."""

    def __init__(self, message: str, *, status: int | None = None, name: str | None = None) -> None:
        super().__init__(message, status=status, name=name)
        self.status = status
        self.name = name


class APIError(MercurioError):
    """Backend request failed."""

    def __init__(self, message: str, *, code: int, endpoint: str | None = None) -> None:
        super().__init__(message, code=code, endpoint=endpoint)
        self.code = code
        self.endpoint = endpoint


class NotFoundError(APIError):
    """Backend resource not found."""

    def __init__(self, message: str, *, endpoint: str | None = None) -> None:
        super().__init__(message, code=404, endpoint=endpoint)


class RateLimitError(APIError):
    """Rate limited by the backend."""

    def __init__(
        self, message: str = "Rate limit exceeded", *, retry_after: int | None = None
    ) -> None:
        super().__init__(message, code=429)
        self.retry_after = retry_after


class ServerError(APIError):
    """Server-side error (5xx)."""

    def __init__(self, message: str, *, code: int = 500, endpoint: str | None = None) -> None:
        super().__init__(message, code=code, endpoint=endpoint)


class NetworkError(MercurioError):
    """Network-level error (connection failed, timeout)."""


class PeerNotFoundError(MercurioError):
    """No user with this identifier is published in the directory."""

    def __init__(self, identifier: str) -> None:
        super().__init__("Peer not found", identifier=identifier[:12])
        self.identifier = identifier
