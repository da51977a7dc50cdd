"""
Mercurio client configuration.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Self

_MIN_RSA_KEY_SIZE = 2048


@dataclass(frozen=True, kw_only=True)
class MercurioConfig:
    """
    Attributes:
        api_url: Base URL of the backend (PostgREST-style REST API).
        api_key: Anonymous API key sent as ``apikey`` and bearer token.
        timeout: Request timeout in seconds.
        user_agent: User-Agent header value.
        max_retries: Maximum number of retries for failed requests.
        retry_delay: Base delay between retries in seconds.
        rsa_key_size: Exchange key modulus size in bits.
        rsa_public_exponent: Exchange key public exponent.
        clamp_signing_seed: Apply Curve25519-style clamping to the signing seed
            derived from a recovery phrase. Only needed to reproduce identifiers
            created by clients that clamp.
        credential_namespace: Namespace under which private material is stored.
        credential_dir: Root directory for file-backed credential storage.
            ``None`` keeps credentials in memory only.
        peer_key_cache_size: Maximum number of peer public keys to cache.
        peer_key_ttl: Seconds a cached peer key is trusted before it is
            fetched again from the directory.
        poll_interval: Delay between polls when subscribed to a conversation.
    """

    api_url: str = "http://localhost:54321"
    api_key: str = ""
    timeout: float = 30.0
    user_agent: str = "Mercurio-Python/0.1"
    max_retries: int = 3
    retry_delay: float = 1.0
    rsa_key_size: int = 2048
    rsa_public_exponent: int = 65537
    clamp_signing_seed: bool = False
    credential_namespace: str = "com.mercurio.messenger"
    credential_dir: Path | None = None
    peer_key_cache_size: int = 256
    peer_key_ttl: float = 300.0
    poll_interval: float = 2.0

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)
        if self.max_retries < 0:
            msg = "max_retries must be non-negative"
            raise ValueError(msg)
        if self.retry_delay < 0:
            msg = "retry_delay must be non-negative"
            raise ValueError(msg)
        if self.rsa_key_size < _MIN_RSA_KEY_SIZE:
            msg = f"rsa_key_size must be at least {_MIN_RSA_KEY_SIZE}"
            raise ValueError(msg)
        if self.rsa_public_exponent < 3 or self.rsa_public_exponent % 2 == 0:
            msg = "rsa_public_exponent must be an odd integer >= 3"
            raise ValueError(msg)
        if not self.credential_namespace:
            msg = "credential_namespace must not be empty"
            raise ValueError(msg)
        if self.peer_key_cache_size <= 0:
            msg = "peer_key_cache_size must be positive"
            raise ValueError(msg)
        if self.peer_key_ttl <= 0:
            msg = "peer_key_ttl must be positive"
            raise ValueError(msg)
        if self.poll_interval <= 0:
            msg = "poll_interval must be positive"
            raise ValueError(msg)

    @classmethod
    def from_env(cls, **overrides: object) -> Self:
        """
        Build a config from environment variables.

        Reads ``MERCURIO_API_URL`` and ``MERCURIO_API_KEY``, falling back to the
        browser client's ``VITE_SUPABASE_URL`` and ``VITE_SUPABASE_ANON_KEY``.

        Raises:
            ValueError: If the backend URL or key is missing.
        """
        api_url = os.getenv("MERCURIO_API_URL") or os.getenv("VITE_SUPABASE_URL")
        api_key = os.getenv("MERCURIO_API_KEY") or os.getenv("VITE_SUPABASE_ANON_KEY")
        if not api_url or not api_key:
            msg = "Backend configuration missing: set MERCURIO_API_URL and MERCURIO_API_KEY"
            raise ValueError(msg)

        credential_dir = os.getenv("MERCURIO_CREDENTIAL_DIR")
        params: dict[str, object] = {"api_url": api_url, "api_key": api_key}
        if credential_dir:
            params["credential_dir"] = Path(credential_dir)
        params.update(overrides)
        return cls(**params)
