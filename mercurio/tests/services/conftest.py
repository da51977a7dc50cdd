from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass

import pytest
import pytest_asyncio

from mercurio.api.http_client import AsyncHttpClient
from mercurio.config import MercurioConfig
from mercurio.crypto.hybrid import MessageCipher
from mercurio.crypto.identity import IdentityManager
from mercurio.services.directory_service import DirectoryService
from mercurio.services.messaging_service import MessagingService
from mercurio.storage.memory import InMemoryCredentialStore
from mercurio.tests.utils.fake_backend import FakeBackend


@dataclass
class Participant:
    identifier: str
    identity: IdentityManager
    directory: DirectoryService
    messaging: MessagingService


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest_asyncio.fixture
async def http(backend: FakeBackend) -> AsyncIterator[AsyncHttpClient]:
    async with AsyncHttpClient(MercurioConfig(), transport=backend) as client:
        yield client


@pytest.fixture
def make_participant(http: AsyncHttpClient) -> Callable[..., Awaitable[Participant]]:
    async def _make(*, publish: bool = True) -> Participant:
        identity = IdentityManager(InMemoryCredentialStore())
        identifier = await identity.generate_identity()
        directory = DirectoryService(http, identity, cache_size=8)
        messaging = MessagingService(
            http, identity, MessageCipher(identity), directory, poll_interval=0.01
        )
        if publish:
            await directory.publish_identity()
        return Participant(identifier, identity, directory, messaging)

    return _make
