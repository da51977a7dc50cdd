import asyncio
from pathlib import Path

import pytest

from mercurio.client import MercurioClient
from mercurio.config import MercurioConfig
from mercurio.exceptions import (
    DecryptionFailedError,
    InvalidRecoveryPhraseError,
    KeysNotFoundError,
)
from mercurio.models.crypto import EncryptedPayload
from mercurio.storage.memory import InMemoryCredentialStore
from mercurio.tests.constants import BAD_CHECKSUM_PHRASE, VALID_PHRASE
from mercurio.tests.utils.fake_backend import FakeBackend


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def config() -> MercurioConfig:
    return MercurioConfig(api_key="anon", poll_interval=0.01)


@pytest.mark.asyncio
async def test_alice_sends_bob_hello(backend: FakeBackend, config: MercurioConfig) -> None:
    async with (
        MercurioClient(config, transport=backend) as alice,
        MercurioClient(config, transport=backend) as bob,
    ):
        alice_id = await alice.register()
        bob_id = await bob.register()

        await alice.send_message(bob_id, "hello")
        messages = await bob.fetch_conversation(alice_id)

    assert [m.content for m in messages] == ["hello"]
    assert messages[0].sender_id == alice_id


@pytest.mark.asyncio
async def test_register_exposes_identity(config: MercurioConfig, backend: FakeBackend) -> None:
    async with MercurioClient(config, transport=backend) as client:
        assert not await client.has_identity()

        identifier = await client.register()

        assert await client.identifier() == identifier
        assert len((await client.recovery_phrase()).split(" ")) == 12
        material = await client.public_material()
        assert identifier == "05" + material.signing_public_key.hex()


@pytest.mark.asyncio
async def test_restore_on_second_device_yields_same_identifier(
    config: MercurioConfig, backend: FakeBackend
) -> None:
    async with MercurioClient(config, transport=backend) as phone:
        original = await phone.restore(VALID_PHRASE)

    async with MercurioClient(config, transport=backend) as laptop:
        restored = await laptop.restore(VALID_PHRASE)

    assert restored == original
    assert len(backend.tables["users"]) == 1


@pytest.mark.asyncio
async def test_restore_with_bad_phrase_raises(config: MercurioConfig, backend: FakeBackend) -> None:
    async with MercurioClient(config, transport=backend) as client:
        with pytest.raises(InvalidRecoveryPhraseError):
            await client.restore(BAD_CHECKSUM_PHRASE)

    assert backend.tables["users"] == []


@pytest.mark.asyncio
async def test_messages_before_restore_are_lost(backend: FakeBackend) -> None:
    config = MercurioConfig(api_key="anon", poll_interval=0.01, peer_key_ttl=0.05)
    async with (
        MercurioClient(config, transport=backend) as alice,
        MercurioClient(config, transport=backend) as bob,
    ):
        alice_id = await alice.register()
        bob_id = await bob.restore(VALID_PHRASE)
        await alice.send_message(bob_id, "before")

        await bob.restore(VALID_PHRASE)
        await asyncio.sleep(0.1)
        await alice.send_message(bob_id, "after")

        messages = await bob.fetch_conversation(alice_id)

    assert [m.content for m in messages] == ["after"]


@pytest.mark.asyncio
async def test_logout_clears_identity_and_marks_offline(
    config: MercurioConfig, backend: FakeBackend
) -> None:
    store = InMemoryCredentialStore()
    async with MercurioClient(config, store=store, transport=backend) as client:
        await client.register()

        await client.logout()

        assert not await client.has_identity()
        with pytest.raises(KeysNotFoundError):
            await client.fetch_conversation("05" + "00" * 32)

    assert len(store) == 0
    assert backend.tables["users"][0]["is_online"] is False


@pytest.mark.asyncio
async def test_identity_survives_restart_with_file_store(
    tmp_path: Path, backend: FakeBackend
) -> None:
    config = MercurioConfig(api_key="anon", credential_dir=tmp_path)

    async with MercurioClient(config, transport=backend) as first:
        identifier = await first.register()

    async with MercurioClient(config, transport=backend) as second:
        assert await second.identifier() == identifier
        assert (tmp_path / config.credential_namespace / "identifier").is_file()


@pytest.mark.asyncio
async def test_network_operations_require_context(config: MercurioConfig) -> None:
    client = MercurioClient(config)

    with pytest.raises(RuntimeError, match="not initialized"):
        await client.register()


@pytest.mark.asyncio
async def test_subscribe_through_client(config: MercurioConfig, backend: FakeBackend) -> None:
    async with (
        MercurioClient(config, transport=backend) as alice,
        MercurioClient(config, transport=backend) as bob,
    ):
        alice_id = await alice.register()
        bob_id = await bob.register()
        stream = bob.subscribe(alice_id)
        pending = asyncio.create_task(anext(stream))
        await asyncio.sleep(0.05)
        try:
            await alice.send_message(bob_id, "ping")
            message = await asyncio.wait_for(pending, timeout=5)
        finally:
            await stream.aclose()

        await bob.mark_read(message)
        peers = await bob.list_peers()

    assert message.content == "ping"
    assert peers == [alice_id]


@pytest.mark.asyncio
async def test_sender_cannot_decrypt_own_message(
    config: MercurioConfig, backend: FakeBackend
) -> None:
    async with (
        MercurioClient(config, transport=backend) as alice,
        MercurioClient(config, transport=backend) as bob,
    ):
        await alice.register()
        bob_id = await bob.register()
        await alice.send_message(bob_id, "hello")
        payload = EncryptedPayload.from_record(backend.tables["messages"][0])

        assert await bob.cipher.decrypt(payload) == "hello"
        with pytest.raises(DecryptionFailedError):
            await alice.cipher.decrypt(payload)
        assert await alice.fetch_conversation(bob_id) == []
