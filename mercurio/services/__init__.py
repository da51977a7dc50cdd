"""
Business logic services for Mercurio.
"""

from mercurio.services.directory_service import DirectoryService
from mercurio.services.key_cache import PeerKeyCache
from mercurio.services.messaging_service import MessagingService

__all__ = [
    "DirectoryService",
    "MessagingService",
    "PeerKeyCache",
]
