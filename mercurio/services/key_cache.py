"""
LRU cache for peers' published exchange keys.

Avoids a directory round trip for every outgoing message to the same peer.
Entries expire so that a key republished after a restore is picked up.
"""

import time
from collections import OrderedDict
from collections.abc import Callable

from mercurio.models.crypto import RSAPublicKey


class PeerKeyCache:
    """
    Least-recently-used map of identifier to exchange public key.

    Single event loop use only.
    """

    def __init__(
        self,
        max_size: int = 256,
        ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            max_size: Maximum number of peers to remember.
            ttl: Seconds a key stays valid after it was fetched.
            clock: Monotonic time source.
        """
        if max_size <= 0:
            msg = "max_size must be positive"
            raise ValueError(msg)
        if ttl <= 0:
            msg = "ttl must be positive"
            raise ValueError(msg)
        self._max_size = max_size
        self._ttl = ttl
        self._clock = clock
        self._keys: OrderedDict[str, tuple[RSAPublicKey, float]] = OrderedDict()

    def get(self, identifier: str) -> RSAPublicKey | None:
        entry = self._keys.get(identifier)
        if entry is None:
            return None

        key, expires_at = entry
        if self._clock() >= expires_at:
            del self._keys[identifier]
            return None

        self._keys.move_to_end(identifier)
        return key

    def put(self, identifier: str, key: RSAPublicKey) -> None:
        self._keys[identifier] = (key, self._clock() + self._ttl)
        self._keys.move_to_end(identifier)
        while len(self._keys) > self._max_size:
            self._keys.popitem(last=False)

    def invalidate(self, identifier: str) -> None:
        """Forget one peer, e.g. after they restored and republished."""
        self._keys.pop(identifier, None)

    def clear(self) -> None:
        self._keys.clear()

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._keys
